"""Unit tests for ClusterGateway."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from inference_provider_manager.integrations.kubernetes.cluster_gateway import (
    PROTECTED_NAMESPACES,
    PROVIDER_CONFIG_GROUP,
    PROVIDER_CONFIG_PLURAL,
    PROVIDER_CONFIG_VERSION,
    ClusterGateway,
)
from inference_provider_manager.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
)


def _pod(phase: str) -> MagicMock:
    pod = MagicMock()
    pod.status.phase = phase
    return pod


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """KubernetesClient mock whose ``call`` invokes the API method directly."""
    client = MagicMock()

    def _call(func: Any, *args: Any, **kwargs: Any) -> Any:
        kwargs.pop("resource_type", None)
        kwargs.pop("resource_name", None)
        return func(*args, **kwargs)

    client.call.side_effect = _call
    return client


@pytest.fixture
def gateway(mock_k8s_client: MagicMock) -> ClusterGateway:
    return ClusterGateway(mock_k8s_client)


# ===========================================================================
# TestDeleteNamespace
# ===========================================================================


@pytest.mark.unit
@pytest.mark.kubernetes
class TestDeleteNamespace:
    """Tests for ClusterGateway.delete_namespace."""

    @pytest.mark.parametrize("name", sorted(PROTECTED_NAMESPACES))
    def test_refuses_protected(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock, name: str
    ) -> None:
        result = gateway.delete_namespace(name)

        assert result.success is False
        assert "protected" in result.message
        mock_k8s_client.core_v1.delete_namespace.assert_not_called()

    def test_deletes(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        result = gateway.delete_namespace("kaito-workspace")

        assert result.success is True
        assert result.name == "kaito-workspace"
        mock_k8s_client.core_v1.delete_namespace.assert_called_once_with("kaito-workspace")

    def test_already_gone_is_success(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.delete_namespace.side_effect = KubernetesNotFoundError(
            resource_type="Namespace", resource_name="ray-system"
        )

        result = gateway.delete_namespace("ray-system")

        assert result.success is True
        assert "already deleted" in result.message

    def test_other_error_is_failure(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.delete_namespace.side_effect = KubernetesAuthError(
            message="namespaces is forbidden", status_code=403
        )

        result = gateway.delete_namespace("dynamo-system")

        assert result.success is False
        assert "namespaces is forbidden" in result.message


# ===========================================================================
# TestDeleteCrd
# ===========================================================================


@pytest.mark.unit
@pytest.mark.kubernetes
class TestDeleteCrd:
    """Tests for ClusterGateway.delete_crd."""

    def test_deletes(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        result = gateway.delete_crd("workspaces.kaito.sh")

        assert result.success is True
        api = mock_k8s_client.apiextensions_v1
        api.delete_custom_resource_definition.assert_called_once_with("workspaces.kaito.sh")

    def test_already_gone_is_success(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        api = mock_k8s_client.apiextensions_v1
        api.delete_custom_resource_definition.side_effect = KubernetesNotFoundError(
            resource_type="CustomResourceDefinition", resource_name="rayjobs.ray.io"
        )

        assert gateway.delete_crd("rayjobs.ray.io").success is True

    def test_error_is_failure(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        api = mock_k8s_client.apiextensions_v1
        api.delete_custom_resource_definition.side_effect = KubernetesConnectionError()

        result = gateway.delete_crd("rayjobs.ray.io")

        assert result.success is False
        assert "rayjobs.ray.io" in result.message


# ===========================================================================
# TestProbes
# ===========================================================================


@pytest.mark.unit
@pytest.mark.kubernetes
class TestProbes:
    """Tests for CRD and operator probes."""

    def test_crd_exists(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        assert gateway.crd_exists("workspaces.kaito.sh") is True

    def test_crd_missing(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        api = mock_k8s_client.apiextensions_v1
        api.read_custom_resource_definition.side_effect = KubernetesNotFoundError()

        assert gateway.crd_exists("workspaces.kaito.sh") is False

    def test_operator_running(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(
            items=[_pod("Pending"), _pod("Running")]
        )

        assert gateway.operator_running("ray-system") is True
        mock_k8s_client.core_v1.list_namespaced_pod.assert_called_once_with("ray-system")

    def test_operator_not_running(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(
            items=[_pod("Pending"), _pod("Failed")]
        )

        assert gateway.operator_running("ray-system") is False

    def test_operator_probe_error(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.side_effect = KubernetesError("boom")

        assert gateway.operator_running("ray-system") is False


# ===========================================================================
# TestCheckProviderInstallation
# ===========================================================================


@pytest.mark.unit
@pytest.mark.kubernetes
class TestCheckProviderInstallation:
    """Tests for ClusterGateway.check_provider_installation."""

    def test_installed_with_version(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(
            items=[_pod("Running")]
        )
        mock_k8s_client.custom_objects.get_cluster_custom_object.return_value = {
            "status": {"version": "0.8.0"}
        }

        status = gateway.check_provider_installation(
            "kaito", crd_name="workspaces.kaito.sh", operator_namespace="kaito-workspace"
        )

        assert status.installed is True
        assert status.crd_found is True
        assert status.operator_running is True
        assert status.version == "0.8.0"
        mock_k8s_client.custom_objects.get_cluster_custom_object.assert_called_once_with(
            PROVIDER_CONFIG_GROUP, PROVIDER_CONFIG_VERSION, PROVIDER_CONFIG_PLURAL, "kaito"
        )

    def test_crd_without_operator(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(items=[])

        status = gateway.check_provider_installation(
            "kaito", crd_name="workspaces.kaito.sh", operator_namespace="kaito-workspace"
        )

        assert status.installed is False
        assert status.crd_found is True
        assert "not running" in status.message
        mock_k8s_client.custom_objects.get_cluster_custom_object.assert_not_called()

    def test_operator_without_crd(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(
            items=[_pod("Running")]
        )
        api = mock_k8s_client.apiextensions_v1
        api.read_custom_resource_definition.side_effect = KubernetesNotFoundError()

        status = gateway.check_provider_installation(
            "kuberay", crd_name="rayservices.ray.io", operator_namespace="ray-system"
        )

        assert status.installed is False
        assert status.operator_running is True
        assert "rayservices.ray.io" in status.message

    def test_no_crd_declared(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(
            items=[_pod("Running")]
        )
        mock_k8s_client.custom_objects.get_cluster_custom_object.side_effect = (
            KubernetesNotFoundError()
        )

        status = gateway.check_provider_installation(
            "demo", crd_name=None, operator_namespace="demo-ns"
        )

        assert status.installed is True
        assert status.version is None
        mock_k8s_client.apiextensions_v1.read_custom_resource_definition.assert_not_called()

    def test_version_lookup_failure_is_tolerated(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.core_v1.list_namespaced_pod.return_value = MagicMock(
            items=[_pod("Running")]
        )
        mock_k8s_client.custom_objects.get_cluster_custom_object.side_effect = KubernetesError(
            "server error", status_code=500
        )

        status = gateway.check_provider_installation(
            "kaito", crd_name="workspaces.kaito.sh", operator_namespace="kaito-workspace"
        )

        assert status.installed is True
        assert status.version is None


# ===========================================================================
# TestProviderConfigs
# ===========================================================================


@pytest.mark.unit
@pytest.mark.kubernetes
class TestProviderConfigs:
    """Tests for reading InferenceProviderConfig resources."""

    def test_get_missing_returns_none(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.custom_objects.get_cluster_custom_object.side_effect = (
            KubernetesNotFoundError()
        )

        assert gateway.get_provider_config("kaito") is None

    def test_get_propagates_other_errors(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.custom_objects.get_cluster_custom_object.side_effect = (
            KubernetesConnectionError()
        )

        with pytest.raises(KubernetesConnectionError):
            gateway.get_provider_config("kaito")

    def test_list(self, gateway: ClusterGateway, mock_k8s_client: MagicMock) -> None:
        items = [{"metadata": {"name": "kaito"}}, {"metadata": {"name": "dynamo"}}]
        mock_k8s_client.custom_objects.list_cluster_custom_object.return_value = {"items": items}

        assert gateway.list_provider_configs() == items

    def test_list_without_crd_installed(
        self, gateway: ClusterGateway, mock_k8s_client: MagicMock
    ) -> None:
        mock_k8s_client.custom_objects.list_cluster_custom_object.side_effect = (
            KubernetesNotFoundError()
        )

        assert gateway.list_provider_configs() == []
