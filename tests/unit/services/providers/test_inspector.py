"""Unit tests for ReleaseStateInspector."""

from __future__ import annotations

import re
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from inference_provider_manager.integrations.kubernetes.helm_client import HelmCommandError
from inference_provider_manager.integrations.kubernetes.models.helm import (
    HelmRelease,
    ReleaseStatus,
)
from inference_provider_manager.services.providers.inspector import (
    ReleaseStateInspector,
    release_filter,
)
from inference_provider_manager.services.providers.models import ProviderDefinition

Releases = dict[str, list[HelmRelease]]


@pytest.fixture
def inspector(mock_helm: MagicMock) -> ReleaseStateInspector:
    return ReleaseStateInspector(mock_helm)


@pytest.mark.unit
@pytest.mark.providers
class TestGetReleaseStates:
    """Tests for reading release state."""

    def test_absent_when_not_listed(
        self, inspector: ReleaseStateInspector, demo_provider: ProviderDefinition
    ) -> None:
        state = inspector.get_release_state(demo_provider.charts[0])

        assert state.status is ReleaseStatus.ABSENT
        assert state.name == "demo-op"
        assert state.namespace == "demo-ns"

    def test_reads_status_and_revision(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
    ) -> None:
        releases["demo-ns"] = [make_release("demo-op", "demo-ns", "deployed", revision=4)]

        state = inspector.get_release_state(demo_provider.charts[0])

        assert state.status is ReleaseStatus.DEPLOYED
        assert state.revision == 4

    def test_same_name_in_other_namespace_is_ignored(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
    ) -> None:
        releases["other"] = [make_release("demo-op", "other", "failed")]

        state = inspector.get_release_state(demo_provider.charts[0])

        assert state.status is ReleaseStatus.ABSENT

    def test_lists_each_namespace_once(
        self,
        inspector: ReleaseStateInspector,
        platform_provider: ProviderDefinition,
        mock_helm: MagicMock,
    ) -> None:
        states = inspector.get_release_states(platform_provider.charts)

        assert [s.name for s in states] == ["crds", "platform"]
        namespaces = [c.kwargs["namespace"] for c in mock_helm.list_releases.call_args_list]
        assert namespaces == ["default", "platform-system"]

    def test_lists_only_declared_releases(
        self,
        inspector: ReleaseStateInspector,
        platform_provider: ProviderDefinition,
        mock_helm: MagicMock,
    ) -> None:
        inspector.get_release_states(platform_provider.charts)

        filters = [c.kwargs["filter_pattern"] for c in mock_helm.list_releases.call_args_list]
        assert filters == ["^(crds)$", "^(platform)$"]

    def test_release_filter_is_anchored_and_escaped(self) -> None:
        pattern = release_filter(["dynamo-crds", "op.v2", "dynamo-crds"])

        assert re.fullmatch(pattern, "op.v2")
        assert re.fullmatch(pattern, "dynamo-crds")
        assert not re.fullmatch(pattern, "opxv2")
        assert not re.search(pattern, "dynamo-crds-old")
        assert pattern.count("dynamo") == 1

    def test_reads_fresh_each_call(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
    ) -> None:
        chart = demo_provider.charts[0]
        releases["demo-ns"] = [make_release("demo-op", "demo-ns", "pending-install")]
        assert inspector.get_release_state(chart).status is ReleaseStatus.PENDING_INSTALL

        releases["demo-ns"] = [make_release("demo-op", "demo-ns", "deployed", revision=2)]
        assert inspector.get_release_state(chart).status is ReleaseStatus.DEPLOYED

    def test_listing_error_propagates(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        mock_helm: MagicMock,
    ) -> None:
        mock_helm.list_releases.side_effect = HelmCommandError("Helm command failed")

        with pytest.raises(HelmCommandError):
            inspector.get_release_states(demo_provider.charts)


@pytest.mark.unit
@pytest.mark.providers
class TestCheckProblems:
    """Tests for problem classification."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("failed", ReleaseStatus.FAILED),
            ("pending-install", ReleaseStatus.PENDING_INSTALL),
            ("pending-upgrade", ReleaseStatus.PENDING_UPGRADE),
            ("pending-rollback", ReleaseStatus.PENDING_ROLLBACK),
            ("superseded", ReleaseStatus.UNKNOWN),
            ("weird", ReleaseStatus.UNKNOWN),
        ],
    )
    def test_problem_statuses(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
        status: str,
        expected: ReleaseStatus,
    ) -> None:
        releases["demo-ns"] = [make_release("demo-op", "demo-ns", status)]

        report = inspector.check_problems(demo_provider.charts)

        assert report.has_problems is True
        assert report.problems[0].status is expected
        assert report.problems[0].chart == "demo-op"

    def test_uninstalled_history_is_absent(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
    ) -> None:
        releases["demo-ns"] = [make_release("demo-op", "demo-ns", "uninstalled", revision=3)]

        assert inspector.get_release_state(demo_provider.charts[0]).status is ReleaseStatus.ABSENT
        assert inspector.check_problems(demo_provider.charts).has_problems is False
        assert inspector.check_in_progress(demo_provider.charts).in_progress is False

    @pytest.mark.parametrize("status", ["deployed", "uninstalling", "uninstalled"])
    def test_healthy_statuses(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
        status: str,
    ) -> None:
        releases["demo-ns"] = [make_release("demo-op", "demo-ns", status)]

        assert inspector.check_problems(demo_provider.charts).has_problems is False

    def test_absent_is_not_a_problem(
        self, inspector: ReleaseStateInspector, demo_provider: ProviderDefinition
    ) -> None:
        assert inspector.check_problems(demo_provider.charts).problems == []

    def test_messages(
        self,
        inspector: ReleaseStateInspector,
        platform_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
    ) -> None:
        releases["default"] = [make_release("crds", "default", "failed")]
        releases["platform-system"] = [
            make_release("platform", "platform-system", "pending-upgrade")
        ]

        messages = [p.message for p in inspector.check_problems(platform_provider.charts).problems]

        assert messages == [
            "Release 'crds' in namespace 'default' is in failed state from a previous attempt",
            "Release 'platform' in namespace 'platform-system' is stuck in pending-upgrade state",
        ]


@pytest.mark.unit
@pytest.mark.providers
class TestCheckInProgress:
    """Tests for in-progress detection."""

    def test_pending_charts(
        self,
        inspector: ReleaseStateInspector,
        platform_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
    ) -> None:
        releases["default"] = [make_release("crds", "default", "deployed")]
        releases["platform-system"] = [
            make_release("platform", "platform-system", "pending-install")
        ]

        report = inspector.check_in_progress(platform_provider.charts)

        assert report.in_progress is True
        assert [p.chart for p in report.pending_charts] == ["platform"]
        assert report.describe() == "platform (pending-install)"

    @pytest.mark.parametrize("status", ["failed", "deployed", "unknown"])
    def test_not_pending(
        self,
        inspector: ReleaseStateInspector,
        demo_provider: ProviderDefinition,
        releases: Releases,
        make_release: Callable[..., HelmRelease],
        status: str,
    ) -> None:
        releases["demo-ns"] = [make_release("demo-op", "demo-ns", status)]

        report = inspector.check_in_progress(demo_provider.charts)

        assert report.in_progress is False
        assert report.describe() == ""
