"""Kubernetes integration - API client, Helm CLI gateway, and cluster gateway."""

from inference_provider_manager.integrations.kubernetes.client import KubernetesClient
from inference_provider_manager.integrations.kubernetes.cluster_gateway import ClusterGateway
from inference_provider_manager.integrations.kubernetes.config import KubernetesConfig
from inference_provider_manager.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
)
from inference_provider_manager.integrations.kubernetes.helm_client import (
    HelmBinaryNotFoundError,
    HelmClient,
    HelmCommandError,
    HelmError,
)

__all__ = [
    "ClusterGateway",
    "HelmBinaryNotFoundError",
    "HelmClient",
    "HelmCommandError",
    "HelmError",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConfig",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesNotFoundError",
]
