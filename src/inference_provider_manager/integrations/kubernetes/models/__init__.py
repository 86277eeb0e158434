"""Data models for the Helm and cluster gateways."""

from inference_provider_manager.integrations.kubernetes.models.cluster import (
    InstallationStatus,
    ResourceDeletion,
)
from inference_provider_manager.integrations.kubernetes.models.helm import (
    PENDING_STATUSES,
    HelmAvailability,
    HelmRelease,
    OutputLine,
    OutputStream,
    ReleaseState,
    ReleaseStatus,
    StepResult,
)

__all__ = [
    "PENDING_STATUSES",
    "HelmAvailability",
    "HelmRelease",
    "InstallationStatus",
    "OutputLine",
    "OutputStream",
    "ReleaseState",
    "ReleaseStatus",
    "ResourceDeletion",
    "StepResult",
]
