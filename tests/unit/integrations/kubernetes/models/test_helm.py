"""Unit tests for Helm data models."""

from __future__ import annotations

import pytest

from inference_provider_manager.integrations.kubernetes.models.helm import (
    HelmAvailability,
    HelmRelease,
    ReleaseState,
    ReleaseStatus,
    StepResult,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestReleaseStatus:
    """Tests for ReleaseStatus.parse."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("deployed", ReleaseStatus.DEPLOYED),
            ("failed", ReleaseStatus.FAILED),
            ("pending-install", ReleaseStatus.PENDING_INSTALL),
            ("pending_upgrade", ReleaseStatus.PENDING_UPGRADE),
            ("PENDING-ROLLBACK", ReleaseStatus.PENDING_ROLLBACK),
            ("uninstalling", ReleaseStatus.UNINSTALLING),
            ("superseded", ReleaseStatus.UNKNOWN),
            ("uninstalled", ReleaseStatus.ABSENT),
            ("UNINSTALLED", ReleaseStatus.ABSENT),
            ("garbage", ReleaseStatus.UNKNOWN),
            ("", ReleaseStatus.ABSENT),
            (None, ReleaseStatus.ABSENT),
        ],
    )
    def test_parse(self, raw: str | None, expected: ReleaseStatus) -> None:
        assert ReleaseStatus.parse(raw) is expected

    def test_pending(self) -> None:
        pending = {s for s in ReleaseStatus if s.is_pending}
        assert pending == {
            ReleaseStatus.PENDING_INSTALL,
            ReleaseStatus.PENDING_UPGRADE,
            ReleaseStatus.PENDING_ROLLBACK,
        }


@pytest.mark.unit
@pytest.mark.kubernetes
class TestHelmRelease:
    """Tests for HelmRelease."""

    def test_from_json(self) -> None:
        release = HelmRelease.from_json(
            {
                "name": "kuberay-operator",
                "namespace": "ray-system",
                "revision": "3",
                "status": "deployed",
                "chart": "kuberay-operator-1.3.0",
                "app_version": "v1.3.0",
                "updated": "2025-02-01 10:00:00 +0000 UTC",
            }
        )
        assert release.revision == 3
        assert release.release_status is ReleaseStatus.DEPLOYED

    def test_missing_status_is_unknown(self) -> None:
        release = HelmRelease.from_json({"name": "x", "namespace": "y"})
        assert release.revision == 0
        assert release.release_status is ReleaseStatus.UNKNOWN


@pytest.mark.unit
@pytest.mark.kubernetes
class TestResults:
    """Tests for ReleaseState, StepResult and HelmAvailability."""

    def test_absent_state(self) -> None:
        state = ReleaseState.absent("demo-op", "demo-ns")
        assert state.status is ReleaseStatus.ABSENT
        assert state.revision == 0

    def test_step_result_wire_shape(self) -> None:
        result = StepResult(
            step="Install demo-op", success=False, stdout="", stderr="boom", exit_code=1
        )
        assert result.to_dict() == {
            "step": "Install demo-op",
            "success": False,
            "output": "",
            "error": "boom",
            "exitCode": 1,
        }

    def test_availability_omits_empty_fields(self) -> None:
        assert HelmAvailability(available=False, error="missing").to_dict() == {
            "available": False,
            "error": "missing",
        }
        available = HelmAvailability(available=True, version="v3.17.0", binary="/bin/helm")
        assert available.to_dict() == {
            "available": True,
            "version": "v3.17.0",
        }
