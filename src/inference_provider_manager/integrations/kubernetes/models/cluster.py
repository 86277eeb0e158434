"""Data models for cluster-side provider operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ResourceDeletion:
    """Outcome of deleting a namespace or CRD."""

    name: str
    success: bool
    message: str


@dataclass
class InstallationStatus:
    """Whether a provider's operator is present and running."""

    provider_id: str
    installed: bool
    crd_found: bool
    operator_running: bool
    message: str
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the HTTP layer."""
        data: dict[str, Any] = {
            "providerId": self.provider_id,
            "installed": self.installed,
            "crdFound": self.crd_found,
            "operatorRunning": self.operator_running,
            "message": self.message,
        }
        if self.version:
            data["version"] = self.version
        return data
