"""Classification of live release state for a provider's declared charts.

The inspector reads release state fresh from Helm on every call; nothing is
cached between calls. It reports problem and in-progress releases from the
same point-in-time signal and leaves it to the caller to decide which
interpretation applies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from inference_provider_manager.integrations.kubernetes.models.helm import (
    HelmRelease,
    ReleaseState,
    ReleaseStatus,
)
from inference_provider_manager.services.providers.models import (
    PendingChart,
    ProblemReport,
    ProgressReport,
    ReleaseProblem,
)

if TYPE_CHECKING:
    from inference_provider_manager.integrations.kubernetes.helm_client import HelmClient
    from inference_provider_manager.services.providers.models import ChartRef

logger = structlog.get_logger()

PROBLEM_STATUSES = frozenset(
    {
        ReleaseStatus.FAILED,
        ReleaseStatus.PENDING_INSTALL,
        ReleaseStatus.PENDING_UPGRADE,
        ReleaseStatus.PENDING_ROLLBACK,
        ReleaseStatus.UNKNOWN,
    }
)


def release_filter(names: Iterable[str]) -> str:
    """Anchored ``helm list --filter`` regex matching exactly the given names."""
    return "^(" + "|".join(re.escape(n) for n in dict.fromkeys(names)) + ")$"


def describe_problem(state: ReleaseState) -> str:
    """Human-readable explanation of why a release blocks installation."""
    where = f"Release '{state.name}' in namespace '{state.namespace}'"
    if state.status is ReleaseStatus.FAILED:
        return f"{where} is in failed state from a previous attempt"
    if state.status.is_pending:
        return f"{where} is stuck in {state.status.value} state"
    return f"{where} is in an unknown state"


class ReleaseStateInspector:
    """Reads and classifies the release state of declared charts."""

    def __init__(self, helm: HelmClient) -> None:
        self._helm = helm
        self._log = logger.bind(component="inspector")

    def _list_namespaces(self, charts: Iterable[ChartRef]) -> dict[str, dict[str, HelmRelease]]:
        names: dict[str, list[str]] = {}
        for chart in charts:
            names.setdefault(chart.namespace, []).append(chart.name)

        releases: dict[str, dict[str, HelmRelease]] = {}
        for namespace, declared in names.items():
            listed = self._helm.list_releases(
                namespace=namespace,
                filter_pattern=release_filter(declared),
            )
            releases[namespace] = {r.name: r for r in listed}
        return releases

    def get_release_states(self, charts: Sequence[ChartRef]) -> list[ReleaseState]:
        """Current state of each declared chart's release, in chart order.

        ``helm list`` is invoked once per distinct namespace,
        filtered to the declared release names.

        Raises:
            HelmError: If releases cannot be listed.
        """
        by_namespace = self._list_namespaces(charts)
        states = []
        for chart in charts:
            release = by_namespace[chart.namespace].get(chart.name)
            if release is None:
                states.append(ReleaseState.absent(chart.name, chart.namespace))
            else:
                states.append(
                    ReleaseState(
                        name=chart.name,
                        namespace=chart.namespace,
                        status=release.release_status,
                        revision=release.revision,
                    )
                )
        return states

    def get_release_state(self, chart: ChartRef) -> ReleaseState:
        """Current state of a single chart's release."""
        return self.get_release_states([chart])[0]

    def check_problems(self, charts: Sequence[ChartRef]) -> ProblemReport:
        """Find declared charts whose release is failed, pending, or unknown.

        Absent and deployed releases are healthy.
        """
        report = ProblemReport()
        for state in self.get_release_states(charts):
            if state.status in PROBLEM_STATUSES:
                report.problems.append(
                    ReleaseProblem(
                        chart=state.name,
                        namespace=state.namespace,
                        status=state.status,
                        message=describe_problem(state),
                    )
                )

        if report.has_problems:
            self._log.info(
                "release_problems_found",
                releases=[f"{p.namespace}/{p.chart}:{p.status.value}" for p in report.problems],
            )
        return report

    def check_in_progress(self, charts: Sequence[ChartRef]) -> ProgressReport:
        """Find declared charts whose release is in a pending-* state."""
        report = ProgressReport()
        for state in self.get_release_states(charts):
            if state.status.is_pending:
                report.pending_charts.append(
                    PendingChart(chart=state.name, namespace=state.namespace, status=state.status)
                )

        if report.in_progress:
            self._log.info("releases_in_progress", releases=report.describe())
        return report
