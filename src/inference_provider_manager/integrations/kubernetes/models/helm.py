"""Data models for Helm operations.

Typed dataclasses for Helm releases, streamed command output,
and per-step command results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

# Terminal status of a release uninstalled with --keep-history
UNINSTALLED = "uninstalled"


class ReleaseStatus(StrEnum):
    """Lifecycle status of a Helm release as seen by the installer."""

    DEPLOYED = "deployed"
    FAILED = "failed"
    PENDING_INSTALL = "pending-install"
    PENDING_UPGRADE = "pending-upgrade"
    PENDING_ROLLBACK = "pending-rollback"
    UNINSTALLING = "uninstalling"
    UNKNOWN = "unknown"
    ABSENT = "absent"

    @classmethod
    def parse(cls, value: str | None) -> ReleaseStatus:
        """Map a raw ``helm list`` status string onto a known status.

        An empty value, or ``uninstalled`` (history kept by
        ``--keep-history``), means the release is absent. Other statuses the
        installer does not act on (``superseded``) and anything unrecognised
        collapse to ``UNKNOWN``.
        """
        if not value:
            return cls.ABSENT
        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        if normalized == UNINSTALLED:
            return cls.ABSENT
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_pending(self) -> bool:
        """Whether the release is mid-operation."""
        return self in PENDING_STATUSES


PENDING_STATUSES = frozenset(
    {
        ReleaseStatus.PENDING_INSTALL,
        ReleaseStatus.PENDING_UPGRADE,
        ReleaseStatus.PENDING_ROLLBACK,
    }
)


class OutputStream(StrEnum):
    """Which pipe a line of process output came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class OutputLine:
    """A single tagged line of helm output."""

    stream: OutputStream
    text: str


@dataclass
class HelmRelease:
    """A Helm release entry."""

    name: str
    namespace: str
    revision: int
    status: str
    chart: str
    app_version: str
    updated: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> HelmRelease:
        """Create a HelmRelease from ``helm list --output json`` entry."""
        return cls(
            name=str(data.get("name", "")),
            namespace=str(data.get("namespace", "")),
            revision=int(data.get("revision", 0) or 0),
            status=str(data.get("status", "")),
            chart=str(data.get("chart", "")),
            app_version=str(data.get("app_version", "")),
            updated=str(data.get("updated", "")),
        )

    @property
    def release_status(self) -> ReleaseStatus:
        """Parsed lifecycle status."""
        return ReleaseStatus.parse(self.status) if self.status else ReleaseStatus.UNKNOWN


@dataclass(frozen=True)
class ReleaseState:
    """Point-in-time state of a declared chart's release."""

    name: str
    namespace: str
    status: ReleaseStatus
    revision: int = 0

    @classmethod
    def absent(cls, name: str, namespace: str) -> ReleaseState:
        """State for a release Helm does not know about."""
        return cls(name=name, namespace=namespace, status=ReleaseStatus.ABSENT)


@dataclass
class StepResult:
    """Result of one helm (or cluster) step.

    ``stdout`` and ``stderr`` are already sanitized and bounded when
    produced by :class:`HelmClient`.
    """

    step: str
    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the HTTP layer."""
        return {
            "step": self.step,
            "success": self.success,
            "output": self.stdout,
            "error": self.stderr,
            "exitCode": self.exit_code,
        }


@dataclass
class HelmAvailability:
    """Whether the helm binary can be used."""

    available: bool
    version: str | None = None
    binary: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the HTTP layer."""
        data: dict[str, Any] = {"available": self.available}
        if self.version:
            data["version"] = self.version
        if self.error:
            data["error"] = self.error
        return data
