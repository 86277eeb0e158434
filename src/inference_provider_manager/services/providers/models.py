"""Provider definitions and orchestration result models.

Provider definitions are frozen pydantic models: they are validated once when
the catalog is loaded (from the builtin table, a YAML file, or a cluster
registration) and never mutated afterwards. Transient inspection and
operation results are plain dataclasses, like the Helm models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from inference_provider_manager.integrations.kubernetes.models.helm import (
    ReleaseStatus,
    StepResult,
)


class _Frozen(BaseModel):
    """Immutable model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


class HelmRepository(_Frozen):
    """A chart repository a provider needs."""

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)


class ChartRef(_Frozen):
    """One chart release belonging to a provider."""

    name: str = Field(min_length=1, description="Release name")
    chart: str = Field(min_length=1, description="Chart reference (repo/chart, URL or path)")
    version: str | None = None
    namespace: str = Field(min_length=1)
    create_namespace: bool = False


class InstallStep(_Frozen):
    """A manual installation step shown to operators as a fallback."""

    title: str
    command: str
    description: str = ""


class UninstallTargets(_Frozen):
    """Cluster objects removed after (namespaces) or apart from (CRDs) the charts."""

    namespaces: tuple[str, ...] = ()
    crds: tuple[str, ...] = ()


class ProviderCRD(_Frozen):
    """The primary custom resource a provider's operator serves."""

    api_group: str
    api_version: str
    plural: str
    kind: str

    @property
    def name(self) -> str:
        """Full CRD name, e.g. ``workspaces.kaito.sh``."""
        return f"{self.plural}.{self.api_group}"


class ProviderDefinition(_Frozen):
    """Everything needed to install and remove one provider.

    ``charts`` order is install order; uninstall walks it in reverse.
    """

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    default_namespace: str
    crd: ProviderCRD | None = Field(default=None, alias="crdConfig")
    repositories: tuple[HelmRepository, ...] = Field(default=(), alias="helmRepos")
    charts: tuple[ChartRef, ...] = Field(default=(), alias="helmCharts")
    installation_steps: tuple[InstallStep, ...] = Field(default=(), alias="installationSteps")
    uninstall: UninstallTargets = UninstallTargets()

    @model_validator(mode="after")
    def _check_unique_releases(self) -> ProviderDefinition:
        seen: set[tuple[str, str]] = set()
        for chart in self.charts:
            key = (chart.namespace, chart.name)
            if key in seen:
                raise ValueError(
                    f"duplicate release '{chart.name}' in namespace '{chart.namespace}'"
                )
            seen.add(key)
        return self

    def with_chart_versions(self, versions: dict[str, str]) -> ProviderDefinition:
        """Return a copy whose charts carry the given versions.

        Args:
            versions: Release name to chart version. Unknown names are ignored.
        """
        if not versions:
            return self
        charts = tuple(
            chart.model_copy(update={"version": versions[chart.name]})
            if versions.get(chart.name)
            else chart
            for chart in self.charts
        )
        return self.model_copy(update={"charts": charts})


# ---------------------------------------------------------------------------
# Inspection results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReleaseProblem:
    """A declared chart whose release is in a problem state."""

    chart: str
    namespace: str
    status: ReleaseStatus
    message: str


@dataclass
class ProblemReport:
    """Result of checking declared charts for problem releases."""

    problems: list[ReleaseProblem] = field(default_factory=list)

    @property
    def has_problems(self) -> bool:
        """Whether any declared chart is in a problem state."""
        return bool(self.problems)


@dataclass(frozen=True)
class PendingChart:
    """A declared chart whose release is mid-operation."""

    chart: str
    namespace: str
    status: ReleaseStatus


@dataclass
class ProgressReport:
    """Result of checking declared charts for in-flight operations."""

    pending_charts: list[PendingChart] = field(default_factory=list)

    @property
    def in_progress(self) -> bool:
        """Whether any declared chart is mid-operation."""
        return bool(self.pending_charts)

    def describe(self) -> str:
        """One-line summary such as ``kaito-workspace (pending-install)``."""
        return ", ".join(f"{p.chart} ({p.status.value})" for p in self.pending_charts)


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass
class OperationOutcome:
    """What an orchestrator operation did, step by step."""

    success: bool
    message: str
    results: list[StepResult] = field(default_factory=list)
    installing: bool | None = None
    already_installed: bool | None = None

    @property
    def failed_step(self) -> StepResult | None:
        """The first unsuccessful step, if any."""
        return next((r for r in self.results if not r.success), None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the HTTP response shape."""
        data: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "results": [r.to_dict() for r in self.results],
        }
        if self.installing is not None:
            data["installing"] = self.installing
        if self.already_installed is not None:
            data["alreadyInstalled"] = self.already_installed
        return data
