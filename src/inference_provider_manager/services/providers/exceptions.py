"""Errors raised by provider installation operations.

Every error carries a ``kind`` (the taxonomy the HTTP layer maps on), an
``http_status`` suggestion, and, where steps were already executed, the
:class:`OperationOutcome` built so far.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from inference_provider_manager.integrations.kubernetes.models.helm import StepResult
    from inference_provider_manager.services.providers.models import (
        OperationOutcome,
        ReleaseProblem,
    )


class ProviderOperationError(Exception):
    """Base exception for provider operations.

    Attributes:
        message: Human-readable error message.
        hint: Optional advisory text appended when displayed.
        outcome: Steps executed before the failure, if any.
    """

    kind: ClassVar[str] = "unknown"
    http_status: ClassVar[int] = 500

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        outcome: OperationOutcome | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.outcome = outcome

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} {self.hint}"
        return self.message

    def to_dict(self) -> dict[str, object]:
        """Serialize for an error response body."""
        data: dict[str, object] = {"error": self.kind, "message": str(self)}
        if self.outcome is not None:
            data["results"] = [r.to_dict() for r in self.outcome.results]
        return data


class ProviderNotFoundError(ProviderOperationError):
    """No provider with the requested id is in the catalog."""

    kind = "not_found"
    http_status = 404

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider '{provider_id}' not found")
        self.provider_id = provider_id


class HelmUnavailableError(ProviderOperationError):
    """The helm binary cannot be used."""

    kind = "unavailable"
    http_status = 503

    def __init__(self, reason: str | None) -> None:
        super().__init__(
            f"Helm CLI not available: {reason or 'unknown error'}",
            hint="Install Helm or use the manual installation commands.",
        )
        self.reason = reason


class ReleaseConflictError(ProviderOperationError):
    """Declared releases are stuck and ``force`` was not requested."""

    kind = "conflict"
    http_status = 409

    def __init__(self, provider_id: str, problems: list[ReleaseProblem]) -> None:
        details = "; ".join(p.message for p in problems)
        super().__init__(
            f"Cannot install {provider_id}: existing releases are in a problem state: {details}",
            hint="Retry with force to uninstall the problem releases before installing.",
        )
        self.provider_id = provider_id
        self.problems = problems


class StepFailureError(ProviderOperationError):
    """A step of the operation did not succeed."""

    kind = "step_failure"
    http_status = 500

    def __init__(
        self,
        message: str,
        step: StepResult,
        *,
        hint: str | None = None,
        outcome: OperationOutcome | None = None,
    ) -> None:
        super().__init__(message, hint=hint, outcome=outcome)
        self.step = step


class UnknownOperationError(ProviderOperationError):
    """An unexpected exception escaped an operation."""

    kind = "unknown"
    http_status = 500
