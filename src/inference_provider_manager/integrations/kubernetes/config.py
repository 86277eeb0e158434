"""Kubernetes integration configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class KubernetesConfig(BaseModel):
    """How to reach the target cluster."""

    model_config = ConfigDict(extra="forbid")

    context: str | None = None
    kubeconfig: str | None = None
    retry_attempts: int = 3

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if v is None:
            return None
        return str(Path(v).expanduser())

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is at least one."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> KubernetesConfig:
        """Create configuration with environment variable overrides.

        Supported environment variables:
            IPM_K8S_CONTEXT: kubeconfig context to use
            IPM_K8S_KUBECONFIG: path to the kubeconfig file
            IPM_K8S_RETRIES: attempts for transient connection errors
        """
        config_dict = base_config.copy() if base_config else {}

        if context := os.environ.get("IPM_K8S_CONTEXT"):
            config_dict["context"] = context
        if kubeconfig := os.environ.get("IPM_K8S_KUBECONFIG"):
            config_dict["kubeconfig"] = kubeconfig
        if retries := os.environ.get("IPM_K8S_RETRIES"):
            config_dict["retry_attempts"] = int(retries)

        return cls.model_validate(config_dict)
