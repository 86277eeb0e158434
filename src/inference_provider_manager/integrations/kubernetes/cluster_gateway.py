"""Cluster-side operations used by the provider installer.

Deletes namespaces and CRDs, probes whether a provider's operator is
installed, and reads the cluster-scoped ``InferenceProviderConfig``
resources that providers register themselves with.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from inference_provider_manager.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from inference_provider_manager.integrations.kubernetes.models.cluster import (
    InstallationStatus,
    ResourceDeletion,
)

if TYPE_CHECKING:
    from inference_provider_manager.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

PROTECTED_NAMESPACES = frozenset({"default", "kube-system", "kube-public", "kube-node-lease"})

PROVIDER_CONFIG_GROUP = "kubefoundry.kubefoundry.ai"
PROVIDER_CONFIG_VERSION = "v1alpha1"
PROVIDER_CONFIG_PLURAL = "inferenceproviderconfigs"


class ClusterGateway:
    """Kubernetes API operations needed around Helm installs."""

    def __init__(self, client: KubernetesClient) -> None:
        self._client = client
        self._log = logger.bind(component="cluster")

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_namespace(self, name: str) -> ResourceDeletion:
        """Delete a namespace.

        Protected system namespaces are refused. A namespace that is already
        gone counts as success.
        """
        if name in PROTECTED_NAMESPACES:
            self._log.warning("refused_protected_namespace_deletion", namespace=name)
            return ResourceDeletion(
                name=name,
                success=False,
                message=f"Cannot delete protected namespace: {name}",
            )

        self._log.info("deleting_namespace", namespace=name)
        try:
            self._client.call(
                self._client.core_v1.delete_namespace,
                name,
                resource_type="Namespace",
                resource_name=name,
            )
        except KubernetesNotFoundError:
            self._log.debug("namespace_already_deleted", namespace=name)
            return ResourceDeletion(
                name=name,
                success=True,
                message=f"Namespace {name} not found (already deleted)",
            )
        except KubernetesError as e:
            self._log.error("namespace_deletion_failed", namespace=name, error=str(e))
            return ResourceDeletion(
                name=name,
                success=False,
                message=f"Failed to delete namespace {name}: {e.message}",
            )

        return ResourceDeletion(
            name=name,
            success=True,
            message=f"Namespace {name} deletion initiated",
        )

    def delete_crd(self, name: str) -> ResourceDeletion:
        """Delete a CustomResourceDefinition by full name (``plural.group``).

        A CRD that is already gone counts as success.
        """
        self._log.info("deleting_crd", crd=name)
        try:
            self._client.call(
                self._client.apiextensions_v1.delete_custom_resource_definition,
                name,
                resource_type="CustomResourceDefinition",
                resource_name=name,
            )
        except KubernetesNotFoundError:
            self._log.debug("crd_already_deleted", crd=name)
            return ResourceDeletion(
                name=name,
                success=True,
                message=f"CRD {name} not found (already deleted)",
            )
        except KubernetesError as e:
            self._log.error("crd_deletion_failed", crd=name, error=str(e))
            return ResourceDeletion(
                name=name,
                success=False,
                message=f"Failed to delete CRD {name}: {e.message}",
            )

        return ResourceDeletion(name=name, success=True, message=f"CRD {name} deleted")

    # =========================================================================
    # Probes
    # =========================================================================

    def crd_exists(self, name: str) -> bool:
        """Check whether a CRD is registered."""
        try:
            self._client.call(
                self._client.apiextensions_v1.read_custom_resource_definition,
                name,
                resource_type="CustomResourceDefinition",
                resource_name=name,
            )
        except KubernetesNotFoundError:
            return False
        except KubernetesError as e:
            self._log.error("crd_check_failed", crd=name, error=str(e))
            return False
        return True

    def operator_running(self, namespace: str) -> bool:
        """Check whether any pod in ``namespace`` is in the Running phase."""
        try:
            pods = self._client.call(
                self._client.core_v1.list_namespaced_pod,
                namespace,
                resource_type="Namespace",
                resource_name=namespace,
            )
        except KubernetesError as e:
            # Namespace might not exist yet
            self._log.debug("operator_pod_check_failed", namespace=namespace, error=str(e))
            return False

        return any(
            pod.status is not None and pod.status.phase == "Running" for pod in pods.items or []
        )

    def check_provider_installation(
        self,
        provider_id: str,
        *,
        crd_name: str | None,
        operator_namespace: str,
    ) -> InstallationStatus:
        """Probe whether a provider is installed.

        A provider is installed when its primary CRD is registered and at
        least one pod in its operator namespace is running. Providers that
        declare no CRD are judged on the operator alone.

        Args:
            provider_id: Provider identifier.
            crd_name: Full name of the provider's primary CRD, if any.
            operator_namespace: Namespace the operator runs in.
        """
        crd_found = self.crd_exists(crd_name) if crd_name else False
        running = self.operator_running(operator_namespace)
        installed = running and (crd_found or crd_name is None)

        if installed:
            message = f"{provider_id} is installed and running"
        elif crd_found:
            message = f"{provider_id} CRD found but operator is not running"
        elif running:
            message = f"{provider_id} operator is running but CRD {crd_name} was not found"
        else:
            message = f"{provider_id} is not installed"

        version = None
        if installed:
            try:
                config = self.get_provider_config(provider_id)
            except KubernetesError as e:
                self._log.debug(
                    "provider_version_lookup_failed", provider=provider_id, error=str(e)
                )
                config = None
            if config:
                version = (config.get("status") or {}).get("version")

        return InstallationStatus(
            provider_id=provider_id,
            installed=installed,
            crd_found=crd_found,
            operator_running=running,
            message=message,
            version=version,
        )

    # =========================================================================
    # Provider registrations
    # =========================================================================

    def get_provider_config(self, provider_id: str) -> dict[str, Any] | None:
        """Fetch the ``InferenceProviderConfig`` a provider registered.

        Returns:
            The raw resource, or None when the provider has not registered.

        Raises:
            KubernetesError: On any API failure other than 404.
        """
        try:
            obj = self._client.call(
                self._client.custom_objects.get_cluster_custom_object,
                PROVIDER_CONFIG_GROUP,
                PROVIDER_CONFIG_VERSION,
                PROVIDER_CONFIG_PLURAL,
                provider_id,
                resource_type="InferenceProviderConfig",
                resource_name=provider_id,
            )
        except KubernetesNotFoundError:
            return None
        return dict(obj) if obj else None

    def list_provider_configs(self) -> list[dict[str, Any]]:
        """List every registered ``InferenceProviderConfig``.

        Returns an empty list when the resource type itself is not installed.
        """
        try:
            response = self._client.call(
                self._client.custom_objects.list_cluster_custom_object,
                PROVIDER_CONFIG_GROUP,
                PROVIDER_CONFIG_VERSION,
                PROVIDER_CONFIG_PLURAL,
                resource_type="InferenceProviderConfig",
            )
        except KubernetesNotFoundError:
            return []
        return list((response or {}).get("items") or [])
