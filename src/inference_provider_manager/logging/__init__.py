"""Logging configuration for inference_provider_manager."""

from inference_provider_manager.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
