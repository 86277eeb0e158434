"""Pydantic configuration models for the provider manager."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from inference_provider_manager.integrations.kubernetes.config import KubernetesConfig

CONFIG_DIR = Path.home() / ".config" / "ipm"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

CatalogSource = Literal["builtin", "file", "cluster"]


class ConfigError(ValueError):
    """Configuration file or environment could not be turned into a valid config."""


class HelmConfig(BaseModel):
    """Helm CLI settings."""

    model_config = ConfigDict(extra="forbid")

    binary_path: str | None = Field(default=None, description="Explicit helm path; PATH otherwise")
    list_timeout: int = Field(default=30, gt=0, description="Seconds allowed for helm list")

    @field_validator("binary_path")
    @classmethod
    def expand_binary_path(cls, v: str | None) -> str | None:
        return str(Path(v).expanduser()) if v else None


class CatalogConfig(BaseModel):
    """Where provider definitions come from."""

    model_config = ConfigDict(extra="forbid")

    source: CatalogSource = "builtin"
    path: str | None = None

    @model_validator(mode="after")
    def require_path_for_file(self) -> CatalogConfig:
        if self.source == "file" and not self.path:
            raise ValueError("catalog.path is required when catalog.source is 'file'")
        return self


class ManagerConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra="forbid")

    helm: HelmConfig = Field(default_factory=HelmConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)

    def to_yaml(self) -> str:
        """Render the configuration as a commented YAML document."""
        header = "# Inference Provider Manager configuration\n"
        return header + yaml.dump(
            self.model_dump(exclude_none=True), default_flow_style=False, sort_keys=False
        )


def load_raw_config(path: Path | None = None) -> dict[str, Any]:
    """Read the config file as a plain mapping.

    Returns an empty dict when the file does not exist.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    helm = dict(data.get("helm") or {})
    catalog = dict(data.get("catalog") or {})

    if binary := os.environ.get("IPM_HELM_BINARY"):
        helm["binary_path"] = binary
    if source := os.environ.get("IPM_CATALOG_SOURCE"):
        catalog["source"] = source
    if catalog_path := os.environ.get("IPM_CATALOG_PATH"):
        catalog["path"] = catalog_path

    return {**data, "helm": helm, "catalog": catalog}


def load_config(path: Path | None = None) -> ManagerConfig:
    """Load configuration from YAML and ``IPM_*`` environment variables.

    A missing file yields the defaults. Environment variables win over the
    file.

    Args:
        path: Config file; defaults to ``~/.config/ipm/config.yaml``.

    Raises:
        ConfigError: If the file or the resulting configuration is invalid.
    """
    data = _apply_env_overrides(load_raw_config(path))
    try:
        kubernetes = KubernetesConfig.from_env(data.get("kubernetes") or {})
        return ManagerConfig.model_validate({**data, "kubernetes": kubernetes})
    except (ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
