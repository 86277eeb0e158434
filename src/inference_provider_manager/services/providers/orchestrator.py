"""Provider installation orchestrator.

Decides, per provider, whether to install, skip, force-repair, upgrade or
tear down its ordered set of chart releases. Helm returns as soon as a
release is accepted and leaves partial state behind on failure, so every
operation re-reads release state from Helm rather than trusting earlier
results.

All gateway calls within one operation are made sequentially.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from inference_provider_manager.integrations.kubernetes.models.helm import StepResult
from inference_provider_manager.services.providers.catalog import chart_versions_from_config
from inference_provider_manager.services.providers.exceptions import (
    HelmUnavailableError,
    ProviderOperationError,
    ReleaseConflictError,
    StepFailureError,
    UnknownOperationError,
)
from inference_provider_manager.services.providers.hints import failure_hint
from inference_provider_manager.services.providers.inspector import ReleaseStateInspector
from inference_provider_manager.services.providers.models import (
    ChartRef,
    OperationOutcome,
    ProblemReport,
    ProviderDefinition,
)
from inference_provider_manager.utils.output import (
    MAX_STDERR_CHARS,
    MAX_STDOUT_CHARS,
    bound_output,
)

if TYPE_CHECKING:
    from inference_provider_manager.integrations.kubernetes.cluster_gateway import ClusterGateway
    from inference_provider_manager.integrations.kubernetes.helm_client import (
        HelmClient,
        OutputSink,
    )
    from inference_provider_manager.integrations.kubernetes.models.cluster import (
        InstallationStatus,
        ResourceDeletion,
    )
    from inference_provider_manager.integrations.kubernetes.models.helm import HelmAvailability
    from inference_provider_manager.services.providers.catalog import ProviderCatalog
    from inference_provider_manager.services.providers.models import InstallStep

logger = structlog.get_logger()


def deletion_step(step: str, deletion: ResourceDeletion) -> StepResult:
    """Record a cluster-side deletion as a step result."""
    if deletion.success:
        return StepResult(
            step=step,
            success=True,
            stdout=bound_output(deletion.message, MAX_STDOUT_CHARS),
        )
    return StepResult(
        step=step,
        success=False,
        stderr=bound_output(deletion.message, MAX_STDERR_CHARS),
    )


class InstallationOrchestrator:
    """Installs, upgrades and removes catalog providers with Helm.

    The catalog, Helm gateway and cluster gateway are injected; the
    orchestrator holds no state between operations.
    """

    def __init__(
        self,
        catalog: ProviderCatalog,
        helm: HelmClient,
        cluster: ClusterGateway,
        inspector: ReleaseStateInspector | None = None,
        progress_callback: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            catalog: Providers that can be operated on.
            helm: Helm CLI gateway.
            cluster: Kubernetes API gateway.
            inspector: Release state inspector; built on ``helm`` when omitted.
            progress_callback: Receives a short message as each phase starts.
        """
        self._catalog = catalog
        self._helm = helm
        self._cluster = cluster
        self._inspector = inspector or ReleaseStateInspector(helm)
        self._progress = progress_callback or (lambda msg: None)
        self._log = logger.bind(component="orchestrator")

    @property
    def catalog(self) -> ProviderCatalog:
        return self._catalog

    # =========================================================================
    # Helpers
    # =========================================================================

    @contextmanager
    def _operation(self, name: str, provider_id: str) -> Iterator[Any]:
        """Scope one operation, wrapping unexpected exceptions."""
        log = self._log.bind(operation=name, provider=provider_id)
        try:
            yield log
        except ProviderOperationError:
            raise
        except Exception as e:
            log.exception("provider_operation_crashed", error=str(e))
            raise UnknownOperationError(
                f"Unexpected error during {name} of {provider_id}: {e}"
            ) from e

    def _require_helm(self) -> None:
        availability = self._helm.check_available()
        if not availability.available:
            raise HelmUnavailableError(availability.error)

    def _refresh_versions(self, provider: ProviderDefinition, log: Any) -> ProviderDefinition:
        """Apply chart versions from the provider's cluster registration, if any."""
        try:
            versions = chart_versions_from_config(self._cluster.get_provider_config(provider.id))
        except Exception as e:
            log.warning("chart_version_refresh_failed", error=str(e))
            return provider

        if versions:
            log.debug("chart_versions_refreshed", versions=versions)
        return provider.with_chart_versions(versions)

    def _fail(
        self,
        verb: str,
        outcome: OperationOutcome,
        step: StepResult,
        log: Any,
    ) -> StepFailureError:
        outcome.success = False
        outcome.message = f'{verb} failed at step "{step.step}": {step.stderr or "no error output"}'
        log.error("provider_step_failed", step=step.step, exit_code=step.exit_code)
        return StepFailureError(
            outcome.message,
            step,
            hint=failure_hint(step.stderr),
            outcome=outcome,
        )

    def _add_repositories(
        self,
        provider: ProviderDefinition,
        outcome: OperationOutcome,
        sink: OutputSink | None,
    ) -> StepResult | None:
        """Add every repository, then update once. Returns the first failed step."""
        if not provider.repositories:
            return None

        self._progress("Adding Helm repositories...")
        for repo in provider.repositories:
            result = self._helm.repo_add(repo.name, repo.url, sink=sink)
            outcome.results.append(result)
            if not result.success:
                return result

        result = self._helm.repo_update(sink=sink)
        outcome.results.append(result)
        return None if result.success else result

    def _cleanup_problems(
        self,
        provider: ProviderDefinition,
        report: ProblemReport,
        outcome: OperationOutcome,
        sink: OutputSink | None,
        log: Any,
    ) -> None:
        """Uninstall problem releases; failures are recorded but tolerated."""
        self._progress("Cleaning up releases in a problem state...")
        for problem in report.problems:
            result = self._helm.uninstall(
                problem.chart,
                namespace=problem.namespace,
                step=f"Clean up {problem.status.value} release {problem.chart}",
                sink=sink,
            )
            outcome.results.append(result)
            if not result.success:
                log.warning(
                    "problem_release_cleanup_failed",
                    release=problem.chart,
                    namespace=problem.namespace,
                    stderr=result.stderr,
                )

    def _verify_installed(self, provider: ProviderDefinition, log: Any) -> bool:
        try:
            status = self.status_of(provider)
        except Exception as e:
            log.warning("installation_verification_failed", error=str(e))
            return False
        return status.installed

    def status_of(self, provider: ProviderDefinition) -> InstallationStatus:
        """Probe the cluster for a provider's operator and primary CRD."""
        return self._cluster.check_provider_installation(
            provider.id,
            crd_name=provider.crd.name if provider.crd else None,
            operator_namespace=provider.default_namespace,
        )

    # =========================================================================
    # Operations
    # =========================================================================

    def install(
        self,
        provider_id: str,
        *,
        force: bool = False,
        sink: OutputSink | None = None,
    ) -> OperationOutcome:
        """Install a provider's charts in declared order.

        Without ``force``, pending releases are treated as an install already
        in progress and failed or unknown releases are a conflict. With
        ``force``, every problem release is uninstalled first.

        Args:
            provider_id: Catalog id of the provider.
            force: Uninstall problem releases before installing.
            sink: Receives every helm output line.

        Returns:
            The outcome. ``installing`` is True when Helm accepted the
            releases but the operator is not running yet, or when another
            install was already in flight.

        Raises:
            ProviderNotFoundError: Unknown provider id.
            HelmUnavailableError: helm cannot be executed.
            ReleaseConflictError: Problem releases exist and ``force`` is False.
            StepFailureError: A helm step failed.
            UnknownOperationError: Anything unexpected.
        """
        provider = self._catalog.get(provider_id)

        with self._operation("install", provider_id) as log:
            self._require_helm()

            self._progress(f"Checking whether {provider.name} is installed...")
            current = self.status_of(provider)
            if current.installed:
                log.info("provider_already_installed")
                return OperationOutcome(
                    success=True,
                    message=f"{provider.name} is already installed",
                    already_installed=True,
                )

            provider = self._refresh_versions(provider, log)
            outcome = OperationOutcome(success=True, message="")

            self._progress("Checking existing releases...")
            if force:
                problems = self._inspector.check_problems(provider.charts)
                if problems.has_problems:
                    self._cleanup_problems(provider, problems, outcome, sink, log)
                progress = self._inspector.check_in_progress(provider.charts)
            else:
                progress = self._inspector.check_in_progress(provider.charts)
                if not progress.in_progress:
                    problems = self._inspector.check_problems(provider.charts)
                    if problems.has_problems:
                        raise ReleaseConflictError(provider_id, problems.problems)

            if progress.in_progress:
                log.info("provider_install_in_progress", releases=progress.describe())
                outcome.installing = True
                outcome.message = (
                    f"{provider.name} installation is already in progress: "
                    f"{progress.describe()}"
                )
                return outcome

            failed = self._add_repositories(provider, outcome, sink)
            if failed:
                raise self._fail("Installation", outcome, failed, log)

            for chart in provider.charts:
                self._progress(f"Installing {chart.name}...")
                result = self._install_chart(chart, sink)
                outcome.results.append(result)
                if not result.success:
                    raise self._fail("Installation", outcome, result, log)

            verified = self._verify_installed(provider, log)
            outcome.installing = not verified
            if verified:
                outcome.message = f"{provider.name} installed successfully"
            else:
                outcome.message = (
                    f"{provider.name} installation started; the operator is not "
                    "running yet. Check the provider status again shortly."
                )
            log.info("provider_installed", verified=verified)
            return outcome

    def _install_chart(self, chart: ChartRef, sink: OutputSink | None) -> StepResult:
        return self._helm.upgrade(
            chart.name,
            chart.chart,
            namespace=chart.namespace,
            version=chart.version,
            install=True,
            create_namespace=chart.create_namespace,
            sink=sink,
        )

    def upgrade(self, provider_id: str, *, sink: OutputSink | None = None) -> OperationOutcome:
        """Upgrade every chart of an installed provider in declared order.

        Raises:
            ProviderNotFoundError: Unknown provider id.
            HelmUnavailableError: helm cannot be executed.
            StepFailureError: A helm step failed.
            UnknownOperationError: Anything unexpected.
        """
        provider = self._catalog.get(provider_id)

        with self._operation("upgrade", provider_id) as log:
            self._require_helm()
            provider = self._refresh_versions(provider, log)
            outcome = OperationOutcome(success=True, message="")

            failed = self._add_repositories(provider, outcome, sink)
            if failed:
                raise self._fail("Upgrade", outcome, failed, log)

            for chart in provider.charts:
                self._progress(f"Upgrading {chart.name}...")
                result = self._helm.upgrade(
                    chart.name,
                    chart.chart,
                    namespace=chart.namespace,
                    version=chart.version,
                    sink=sink,
                )
                outcome.results.append(result)
                if not result.success:
                    raise self._fail("Upgrade", outcome, result, log)

            outcome.message = f"{provider.name} upgraded successfully"
            log.info("provider_upgraded")
            return outcome

    def uninstall(self, provider_id: str, *, sink: OutputSink | None = None) -> OperationOutcome:
        """Remove a provider's releases in reverse order, then its namespaces.

        CRDs are left in place; see :meth:`uninstall_crds`.

        Raises:
            ProviderNotFoundError: Unknown provider id.
            HelmUnavailableError: helm cannot be executed.
            StepFailureError: A release or namespace could not be removed.
            UnknownOperationError: Anything unexpected.
        """
        provider = self._catalog.get(provider_id)

        with self._operation("uninstall", provider_id) as log:
            self._require_helm()
            outcome = OperationOutcome(success=True, message="")

            for chart in reversed(provider.charts):
                self._progress(f"Uninstalling {chart.name}...")
                result = self._helm.uninstall(chart.name, namespace=chart.namespace, sink=sink)
                outcome.results.append(result)
                if not result.success:
                    raise self._fail("Uninstall", outcome, result, log)

            for namespace in provider.uninstall.namespaces:
                self._progress(f"Deleting namespace {namespace}...")
                result = deletion_step(
                    f"Delete namespace {namespace}",
                    self._cluster.delete_namespace(namespace),
                )
                outcome.results.append(result)
                if not result.success:
                    raise self._fail("Uninstall", outcome, result, log)

            outcome.message = f"{provider.name} uninstalled successfully"
            if provider.uninstall.crds:
                outcome.message += "; its CRDs were kept and can be removed separately"
            log.info("provider_uninstalled")
            return outcome

    def uninstall_crds(self, provider_id: str) -> OperationOutcome:
        """Delete every CRD the provider declares.

        Does not require helm. All CRDs are attempted even after a failure.

        Raises:
            ProviderNotFoundError: Unknown provider id.
            StepFailureError: At least one CRD could not be deleted.
            UnknownOperationError: Anything unexpected.
        """
        provider = self._catalog.get(provider_id)

        with self._operation("uninstall_crds", provider_id) as log:
            outcome = OperationOutcome(success=True, message="")
            for crd in provider.uninstall.crds:
                self._progress(f"Deleting CRD {crd}...")
                outcome.results.append(
                    deletion_step(f"Delete CRD {crd}", self._cluster.delete_crd(crd))
                )

            failed = outcome.failed_step
            if failed:
                raise self._fail("CRD removal", outcome, failed, log)

            outcome.message = f"Removed {len(outcome.results)} CRDs for {provider.name}"
            log.info("provider_crds_removed", count=len(outcome.results))
            return outcome

    def status(self, provider_id: str) -> InstallationStatus:
        """Current installation status of a provider.

        Raises:
            ProviderNotFoundError: Unknown provider id.
            UnknownOperationError: Anything unexpected.
        """
        provider = self._catalog.get(provider_id)
        with self._operation("status", provider_id):
            return self.status_of(provider)

    def commands(self, provider_id: str) -> Sequence[InstallStep]:
        """Manual installation steps for a provider."""
        return self._catalog.get(provider_id).installation_steps

    def helm_status(self) -> HelmAvailability:
        """Whether helm can be executed; never raises."""
        return self._helm.check_available()
