"""Read-only catalog of installable providers.

A catalog is built once, from the builtin table, a YAML file, or the
``InferenceProviderConfig`` resources providers register in the cluster,
and is then passed explicitly to whatever needs it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog
import yaml
from pydantic import ValidationError

from inference_provider_manager.services.providers.exceptions import ProviderNotFoundError
from inference_provider_manager.services.providers.models import ProviderDefinition

if TYPE_CHECKING:
    from inference_provider_manager.integrations.kubernetes.cluster_gateway import ClusterGateway

logger = structlog.get_logger()

KAITO_VERSION = "0.8.0"
DYNAMO_VERSION = "0.7.1"
KUBERAY_VERSION = "1.3.0"

DYNAMO_CHARTS_URL = "https://helm.ngc.nvidia.com/nvidia/ai-dynamo/charts"

BUILTIN_PROVIDERS: tuple[dict[str, Any], ...] = (
    {
        "id": "kaito",
        "name": "KAITO",
        "description": "Kubernetes AI Toolchain Operator for simplified model deployment",
        "default_namespace": "kaito-workspace",
        "crd": {
            "api_group": "kaito.sh",
            "api_version": "v1beta1",
            "plural": "workspaces",
            "kind": "Workspace",
        },
        "repositories": [
            {"name": "kaito", "url": "https://kaito-project.github.io/kaito/charts/kaito"},
        ],
        "charts": [
            {
                "name": "kaito-workspace",
                "chart": "kaito/workspace",
                "version": KAITO_VERSION,
                "namespace": "kaito-workspace",
                "create_namespace": True,
            },
        ],
        "installation_steps": [
            {
                "title": "Add KAITO Helm Repository",
                "command": "helm repo add kaito https://kaito-project.github.io/kaito/charts/kaito",
                "description": "Add the KAITO Helm repository.",
            },
            {
                "title": "Update Helm Repositories",
                "command": "helm repo update",
                "description": "Update local Helm repository cache.",
            },
            {
                "title": "Install KAITO Workspace Operator",
                "command": (
                    "helm upgrade --install kaito-workspace kaito/workspace "
                    f"--version {KAITO_VERSION} "
                    "-n kaito-workspace --create-namespace "
                    "--set featureGates.disableNodeAutoProvisioning=true --wait"
                ),
                "description": (
                    f"Install the KAITO workspace operator v{KAITO_VERSION} with Node "
                    "Auto-Provisioning disabled (BYO nodes mode)."
                ),
            },
        ],
        "uninstall": {
            "namespaces": ["kaito-workspace"],
            "crds": ["workspaces.kaito.sh", "ragengines.kaito.sh"],
        },
    },
    {
        "id": "dynamo",
        "name": "Dynamo",
        "description": "NVIDIA Dynamo for high-performance GPU inference",
        "default_namespace": "dynamo-system",
        "crd": {
            "api_group": "nvidia.com",
            "api_version": "v1alpha1",
            "plural": "dynamographdeployments",
            "kind": "DynamoGraphDeployment",
        },
        "repositories": [
            {"name": "nvidia-ai-dynamo", "url": "https://helm.ngc.nvidia.com/nvidia/ai-dynamo"},
        ],
        "charts": [
            {
                "name": "dynamo-crds",
                "chart": f"{DYNAMO_CHARTS_URL}/dynamo-crds-{DYNAMO_VERSION}.tgz",
                "namespace": "default",
            },
            {
                "name": "dynamo-platform",
                "chart": f"{DYNAMO_CHARTS_URL}/dynamo-platform-{DYNAMO_VERSION}.tgz",
                "namespace": "dynamo-system",
                "create_namespace": True,
            },
        ],
        "installation_steps": [
            {
                "title": "Install Dynamo CRDs",
                "command": (
                    f"helm fetch {DYNAMO_CHARTS_URL}/dynamo-crds-{DYNAMO_VERSION}.tgz && "
                    f"helm install dynamo-crds dynamo-crds-{DYNAMO_VERSION}.tgz --namespace default"
                ),
                "description": f"Install the Dynamo Custom Resource Definitions v{DYNAMO_VERSION}.",
            },
            {
                "title": "Install Dynamo Platform",
                "command": (
                    f"helm fetch {DYNAMO_CHARTS_URL}/dynamo-platform-{DYNAMO_VERSION}.tgz && "
                    f"helm install dynamo-platform dynamo-platform-{DYNAMO_VERSION}.tgz "
                    "--namespace dynamo-system --create-namespace"
                ),
                "description": f"Install the Dynamo platform operator v{DYNAMO_VERSION}.",
            },
        ],
        "uninstall": {
            "namespaces": ["dynamo-system"],
            "crds": [
                "dynamographdeployments.nvidia.com",
                "dynamocomponentdeployments.nvidia.com",
            ],
        },
    },
    {
        "id": "kuberay",
        "name": "KubeRay",
        "description": "Ray Serve via KubeRay for distributed Ray-based model serving with vLLM",
        "default_namespace": "ray-system",
        "crd": {
            "api_group": "ray.io",
            "api_version": "v1",
            "plural": "rayservices",
            "kind": "RayService",
        },
        "repositories": [
            {"name": "kuberay", "url": "https://ray-project.github.io/kuberay-helm/"},
        ],
        "charts": [
            {
                "name": "kuberay-operator",
                "chart": "kuberay/kuberay-operator",
                "version": KUBERAY_VERSION,
                "namespace": "ray-system",
                "create_namespace": True,
            },
        ],
        "installation_steps": [
            {
                "title": "Add KubeRay Helm Repository",
                "command": "helm repo add kuberay https://ray-project.github.io/kuberay-helm/",
                "description": "Add the KubeRay Helm repository.",
            },
            {
                "title": "Update Helm Repositories",
                "command": "helm repo update",
                "description": "Update local Helm repository cache.",
            },
            {
                "title": "Install KubeRay Operator",
                "command": (
                    "helm upgrade --install kuberay-operator kuberay/kuberay-operator "
                    f"--version {KUBERAY_VERSION} -n ray-system --create-namespace --wait"
                ),
                "description": f"Install the KubeRay operator v{KUBERAY_VERSION}.",
            },
        ],
        "uninstall": {
            "namespaces": ["ray-system"],
            "crds": ["rayclusters.ray.io", "rayjobs.ray.io", "rayservices.ray.io"],
        },
    },
    {
        "id": "gpu-operator",
        "name": "NVIDIA GPU Operator",
        "description": "Device plugin, drivers, and runtime for NVIDIA GPUs",
        "default_namespace": "gpu-operator",
        "crd": {
            "api_group": "nvidia.com",
            "api_version": "v1",
            "plural": "clusterpolicies",
            "kind": "ClusterPolicy",
        },
        "repositories": [
            {"name": "nvidia", "url": "https://helm.ngc.nvidia.com/nvidia"},
        ],
        "charts": [
            {
                "name": "gpu-operator",
                "chart": "nvidia/gpu-operator",
                "namespace": "gpu-operator",
                "create_namespace": True,
            },
        ],
        "installation_steps": [
            {
                "title": "Add NVIDIA Helm Repository",
                "command": "helm repo add nvidia https://helm.ngc.nvidia.com/nvidia",
                "description": "Add the NVIDIA Helm repository.",
            },
            {
                "title": "Update Helm Repositories",
                "command": "helm repo update",
                "description": "Update local Helm repository cache.",
            },
            {
                "title": "Install NVIDIA GPU Operator",
                "command": (
                    "helm upgrade --install gpu-operator nvidia/gpu-operator "
                    "-n gpu-operator --create-namespace --wait"
                ),
                "description": "Install the NVIDIA GPU Operator.",
            },
        ],
        "uninstall": {
            "namespaces": ["gpu-operator"],
            "crds": ["clusterpolicies.nvidia.com", "nvidiadrivers.nvidia.com"],
        },
    },
)


class CatalogError(Exception):
    """Raised when a catalog source cannot be loaded."""


def chart_versions_from_config(config: dict[str, Any] | None) -> dict[str, str]:
    """Extract ``release name -> chart version`` from a provider registration."""
    if not config:
        return {}
    installation = (config.get("spec") or {}).get("installation") or {}
    versions = {}
    for chart in installation.get("helmCharts") or []:
        name = chart.get("name")
        version = chart.get("version")
        if name and version:
            versions[str(name)] = str(version)
    return versions


def definition_from_config(
    config: dict[str, Any],
    base: ProviderDefinition | None = None,
) -> ProviderDefinition | None:
    """Build a definition from an ``InferenceProviderConfig`` resource.

    Fields the registration does not carry (primary CRD, uninstall targets)
    come from ``base`` when given.

    Returns:
        The definition, or None if the registration has no installation block.
    """
    provider_id = (config.get("metadata") or {}).get("name")
    installation = (config.get("spec") or {}).get("installation")
    if not provider_id or not installation:
        return None

    data: dict[str, Any] = {
        "id": provider_id,
        "name": base.name if base else provider_id[:1].upper() + provider_id[1:],
        "description": installation.get("description", base.description if base else ""),
        "defaultNamespace": installation.get(
            "defaultNamespace", base.default_namespace if base else provider_id
        ),
        "helmRepos": installation.get("helmRepos") or [],
        "helmCharts": installation.get("helmCharts") or [],
        "installationSteps": installation.get("steps") or [],
    }
    if base is not None:
        data["crdConfig"] = base.crd
        data["uninstall"] = base.uninstall
    return ProviderDefinition.model_validate(data)


class ProviderCatalog:
    """Immutable lookup of provider id to definition."""

    def __init__(self, providers: Iterable[ProviderDefinition]) -> None:
        table: dict[str, ProviderDefinition] = {}
        for provider in providers:
            if provider.id in table:
                raise CatalogError(f"Duplicate provider id: {provider.id}")
            table[provider.id] = provider
        self._providers = MappingProxyType(table)

    def get(self, provider_id: str) -> ProviderDefinition:
        """Look up a provider.

        Raises:
            ProviderNotFoundError: If the id is not in the catalog.
        """
        try:
            return self._providers[provider_id]
        except KeyError:
            raise ProviderNotFoundError(provider_id) from None

    def has(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def list(self) -> list[ProviderDefinition]:
        return list(self._providers.values())

    def ids(self) -> list[str]:
        return list(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def __iter__(self) -> Iterator[ProviderDefinition]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    # -----------------------------------------------------------------------
    # Sources
    # -----------------------------------------------------------------------

    @classmethod
    def builtin(cls) -> ProviderCatalog:
        """Catalog of the providers shipped with the installer."""
        return cls(ProviderDefinition.model_validate(p) for p in BUILTIN_PROVIDERS)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ProviderCatalog:
        """Load a catalog from a YAML file with a top-level ``providers`` list.

        Raises:
            CatalogError: If the file is missing, unparsable, or invalid.
        """
        path = Path(path).expanduser()
        try:
            with path.open() as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise CatalogError(f"Cannot read provider catalog {path}: {e}") from e
        except yaml.YAMLError as e:
            raise CatalogError(f"Invalid YAML in provider catalog {path}: {e}") from e

        entries = data.get("providers") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise CatalogError(f"Provider catalog {path} must contain a 'providers' list")

        try:
            catalog = cls(ProviderDefinition.model_validate(entry) for entry in entries)
        except ValidationError as e:
            raise CatalogError(f"Invalid provider definition in {path}: {e}") from e

        logger.info("provider_catalog_loaded", source=str(path), providers=catalog.ids())
        return catalog

    @classmethod
    def from_cluster(
        cls,
        gateway: ClusterGateway,
        fallback: ProviderCatalog | None = None,
    ) -> ProviderCatalog:
        """Build a catalog from providers registered in the cluster.

        Registrations override ``fallback`` entries with the same id; fallback
        providers that have not registered are kept.

        Raises:
            CatalogError: If a registration is invalid.
        """
        fallback = fallback or cls.builtin()
        providers = {p.id: p for p in fallback}

        for config in gateway.list_provider_configs():
            name = (config.get("metadata") or {}).get("name")
            try:
                definition = definition_from_config(config, providers.get(name or ""))
            except ValidationError as e:
                raise CatalogError(f"Invalid provider registration '{name}': {e}") from e
            if definition is not None:
                providers[definition.id] = definition

        catalog = cls(providers.values())
        logger.info("provider_catalog_loaded", source="cluster", providers=catalog.ids())
        return catalog
