"""Build catalogs and orchestrators from configuration."""

from __future__ import annotations

from collections.abc import Callable

import structlog

from inference_provider_manager.core.config.models import CatalogConfig, ManagerConfig
from inference_provider_manager.integrations.kubernetes.client import KubernetesClient
from inference_provider_manager.integrations.kubernetes.cluster_gateway import ClusterGateway
from inference_provider_manager.integrations.kubernetes.helm_client import HelmClient
from inference_provider_manager.services.providers.catalog import CatalogError, ProviderCatalog
from inference_provider_manager.services.providers.orchestrator import InstallationOrchestrator

logger = structlog.get_logger()


def build_catalog(config: CatalogConfig, cluster: ClusterGateway | None = None) -> ProviderCatalog:
    """Load the catalog the configuration points at.

    Raises:
        CatalogError: If the source cannot be loaded, or ``cluster`` is
            required but missing.
    """
    if config.source == "file":
        return ProviderCatalog.from_yaml(config.path or "")
    if config.source == "cluster":
        if cluster is None:
            raise CatalogError("A cluster connection is required for the 'cluster' catalog source")
        return ProviderCatalog.from_cluster(cluster)
    return ProviderCatalog.builtin()


def build_helm_client(config: ManagerConfig) -> HelmClient:
    return HelmClient(config.helm.binary_path, list_timeout=config.helm.list_timeout)


def build_orchestrator(
    config: ManagerConfig,
    progress_callback: Callable[[str], None] | None = None,
) -> InstallationOrchestrator:
    """Wire an orchestrator to the configured cluster and helm binary.

    Raises:
        KubernetesConnectionError: If no cluster configuration can be loaded.
        CatalogError: If the catalog cannot be loaded.
    """
    cluster = ClusterGateway(KubernetesClient(config.kubernetes))
    catalog = build_catalog(config.catalog, cluster)
    logger.debug("orchestrator_built", catalog_source=config.catalog.source, providers=len(catalog))
    return InstallationOrchestrator(
        catalog,
        build_helm_client(config),
        cluster,
        progress_callback=progress_callback,
    )
