"""Configuration management with Pydantic validation."""

from inference_provider_manager.core.config.models import (
    CatalogConfig,
    ConfigError,
    HelmConfig,
    ManagerConfig,
    load_config,
)

__all__ = [
    "CatalogConfig",
    "ConfigError",
    "HelmConfig",
    "ManagerConfig",
    "load_config",
]
