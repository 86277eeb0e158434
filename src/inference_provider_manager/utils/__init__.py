"""Utility functions for inference_provider_manager."""

from inference_provider_manager.utils.output import (
    MAX_STDERR_CHARS,
    MAX_STDOUT_CHARS,
    bound_output,
    sanitize_output,
)

__all__ = [
    "MAX_STDERR_CHARS",
    "MAX_STDOUT_CHARS",
    "bound_output",
    "sanitize_output",
]
