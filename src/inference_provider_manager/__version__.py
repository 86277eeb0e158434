"""Version information for inference_provider_manager."""

__version__ = "0.1.0"
