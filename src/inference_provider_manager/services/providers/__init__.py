"""Provider installation service.

Catalog lookup, release state inspection, and the orchestrator that installs,
upgrades and removes providers.
"""

from inference_provider_manager.services.providers.catalog import CatalogError, ProviderCatalog
from inference_provider_manager.services.providers.exceptions import (
    HelmUnavailableError,
    ProviderNotFoundError,
    ProviderOperationError,
    ReleaseConflictError,
    StepFailureError,
    UnknownOperationError,
)
from inference_provider_manager.services.providers.inspector import ReleaseStateInspector
from inference_provider_manager.services.providers.models import (
    ChartRef,
    HelmRepository,
    InstallStep,
    OperationOutcome,
    ProviderCRD,
    ProviderDefinition,
    UninstallTargets,
)
from inference_provider_manager.services.providers.orchestrator import InstallationOrchestrator

__all__ = [
    "CatalogError",
    "ChartRef",
    "HelmRepository",
    "HelmUnavailableError",
    "InstallStep",
    "InstallationOrchestrator",
    "OperationOutcome",
    "ProviderCRD",
    "ProviderCatalog",
    "ProviderDefinition",
    "ProviderNotFoundError",
    "ProviderOperationError",
    "ReleaseConflictError",
    "ReleaseStateInspector",
    "StepFailureError",
    "UninstallTargets",
    "UnknownOperationError",
]
