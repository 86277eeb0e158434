"""Install, upgrade and remove Kubernetes inference providers with Helm."""

from inference_provider_manager.__version__ import __version__

__all__ = ["__version__"]
