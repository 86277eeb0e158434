"""Shared fixtures for provider service tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from inference_provider_manager.integrations.kubernetes.models.cluster import (
    InstallationStatus,
    ResourceDeletion,
)
from inference_provider_manager.integrations.kubernetes.models.helm import (
    HelmAvailability,
    HelmRelease,
    StepResult,
)
from inference_provider_manager.services.providers.catalog import ProviderCatalog
from inference_provider_manager.services.providers.inspector import ReleaseStateInspector
from inference_provider_manager.services.providers.models import ProviderDefinition
from inference_provider_manager.services.providers.orchestrator import InstallationOrchestrator


def _release(name: str, namespace: str, status: str, revision: int = 1) -> HelmRelease:
    """A ``helm list`` entry."""
    return HelmRelease(
        name=name,
        namespace=namespace,
        revision=revision,
        status=status,
        chart=f"{name}-1.0.0",
        app_version="1.0.0",
        updated="2025-01-01 00:00:00",
    )


def _installation(installed: bool, provider_id: str = "demo") -> InstallationStatus:
    return InstallationStatus(
        provider_id=provider_id,
        installed=installed,
        crd_found=installed,
        operator_running=installed,
        message="installed" if installed else "not installed",
    )


def _ok_step(step: str) -> StepResult:
    return StepResult(step=step, success=True, stdout="", stderr="", exit_code=0)


def _failed_step(step: str, stderr: str, exit_code: int = 1) -> StepResult:
    return StepResult(step=step, success=False, stdout="", stderr=stderr, exit_code=exit_code)


@pytest.fixture
def demo_provider() -> ProviderDefinition:
    """Single-chart provider: release demo-op in demo-ns from repo demo."""
    return ProviderDefinition.model_validate(
        {
            "id": "demo",
            "name": "Demo",
            "defaultNamespace": "demo-ns",
            "crdConfig": {
                "apiGroup": "demo.example.com",
                "apiVersion": "v1",
                "plural": "demos",
                "kind": "Demo",
            },
            "helmRepos": [{"name": "demo", "url": "https://charts.example.com/demo"}],
            "helmCharts": [
                {
                    "name": "demo-op",
                    "chart": "demo/operator",
                    "version": "1.0.0",
                    "namespace": "demo-ns",
                    "createNamespace": True,
                }
            ],
            "installationSteps": [
                {
                    "title": "Add repo",
                    "command": "helm repo add demo https://charts.example.com/demo",
                }
            ],
            "uninstall": {"namespaces": ["demo-ns"], "crds": ["demos.demo.example.com"]},
        }
    )


@pytest.fixture
def platform_provider() -> ProviderDefinition:
    """Two-chart provider: a CRD chart, then a platform chart."""
    return ProviderDefinition.model_validate(
        {
            "id": "platform",
            "name": "Platform",
            "defaultNamespace": "platform-system",
            "helmRepos": [{"name": "plat", "url": "https://charts.example.com/plat"}],
            "helmCharts": [
                {"name": "crds", "chart": "plat/crds", "namespace": "default"},
                {
                    "name": "platform",
                    "chart": "plat/platform",
                    "namespace": "platform-system",
                    "createNamespace": True,
                },
            ],
            "uninstall": {
                "namespaces": ["platform-system"],
                "crds": ["widgets.plat.example.com", "gadgets.plat.example.com"],
            },
        }
    )


@pytest.fixture
def catalog(
    demo_provider: ProviderDefinition, platform_provider: ProviderDefinition
) -> ProviderCatalog:
    return ProviderCatalog([demo_provider, platform_provider])


@pytest.fixture
def releases() -> dict[str, list[HelmRelease]]:
    """Releases ``helm list`` reports, keyed by namespace. Tests fill it in."""
    return {}


@pytest.fixture
def mock_helm(releases: dict[str, list[HelmRelease]]) -> MagicMock:
    """HelmClient mock where every mutating step succeeds."""
    helm = MagicMock()
    helm.check_available.return_value = HelmAvailability(
        available=True, version="v3.17.0", binary="/usr/local/bin/helm"
    )

    def _list(namespace: str | None = None, **_: Any) -> list[HelmRelease]:
        return list(releases.get(namespace or "", []))

    def _upgrade(
        release: str, chart: str, *, install: bool = False, step: str | None = None, **_: Any
    ) -> StepResult:
        return _ok_step(step or f"{'Install' if install else 'Upgrade'} {release}")

    def _uninstall(release: str, *, step: str | None = None, **_: Any) -> StepResult:
        return _ok_step(step or f"Uninstall {release}")

    helm.list_releases.side_effect = _list
    helm.repo_add.side_effect = lambda name, url, **_: _ok_step(f"Add Helm repository {name}")
    helm.repo_update.side_effect = lambda **_: _ok_step("Update Helm repositories")
    helm.upgrade.side_effect = _upgrade
    helm.uninstall.side_effect = _uninstall
    return helm


@pytest.fixture
def mock_cluster() -> MagicMock:
    """ClusterGateway mock: nothing installed, no registrations, deletions succeed."""
    cluster = MagicMock()
    cluster.check_provider_installation.return_value = _installation(False)
    cluster.get_provider_config.return_value = None
    cluster.delete_namespace.side_effect = lambda name: ResourceDeletion(
        name=name, success=True, message=f"Namespace {name} deletion initiated"
    )
    cluster.delete_crd.side_effect = lambda name: ResourceDeletion(
        name=name, success=True, message=f"CRD {name} deleted"
    )
    return cluster


@pytest.fixture
def progress() -> MagicMock:
    return MagicMock()


@pytest.fixture
def orchestrator(
    catalog: ProviderCatalog,
    mock_helm: MagicMock,
    mock_cluster: MagicMock,
    progress: MagicMock,
) -> InstallationOrchestrator:
    return InstallationOrchestrator(
        catalog,
        mock_helm,
        mock_cluster,
        inspector=ReleaseStateInspector(mock_helm),
        progress_callback=progress,
    )


@pytest.fixture
def make_release() -> Callable[..., HelmRelease]:
    return _release


@pytest.fixture
def make_installation() -> Callable[..., InstallationStatus]:
    return _installation


@pytest.fixture
def make_failed_step() -> Callable[..., StepResult]:
    return _failed_step
