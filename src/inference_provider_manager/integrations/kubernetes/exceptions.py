"""Exceptions raised by the Kubernetes API integration."""

from __future__ import annotations


class KubernetesError(Exception):
    """Base exception for Kubernetes API operations.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the API server (if any).
        resource_type: Kind of the resource involved (e.g. "Namespace").
        resource_name: Name of the resource involved.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.resource_type = resource_type
        self.resource_name = resource_name

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.resource_type and self.resource_name:
            parts.append(f"[{self.resource_type}/{self.resource_name}]")
        return " ".join(parts)


class KubernetesConnectionError(KubernetesError):
    """The API server could not be reached or kubeconfig could not be loaded.

    This is the only error the client retries.
    """

    def __init__(
        self,
        message: str = "Failed to connect to Kubernetes cluster",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message)
        self.original_error = original_error


class KubernetesAuthError(KubernetesError):
    """Authentication or RBAC denial (401/403)."""

    def __init__(
        self,
        message: str = "Kubernetes authentication/authorization failed",
        status_code: int | None = 401,
    ) -> None:
        super().__init__(message=message, status_code=status_code)


class KubernetesNotFoundError(KubernetesError):
    """The requested resource does not exist (404)."""

    def __init__(
        self,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> None:
        message = "Kubernetes resource not found"
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' not found"
        super().__init__(
            message=message,
            status_code=404,
            resource_type=resource_type,
            resource_name=resource_name,
        )


class KubernetesConflictError(KubernetesError):
    """The API server rejected the request with 409 Conflict."""

    def __init__(
        self,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> None:
        message = "Resource conflict"
        if resource_type and resource_name:
            message = f"Conflict on {resource_type} '{resource_name}'"
        super().__init__(
            message=message,
            status_code=409,
            resource_type=resource_type,
            resource_name=resource_name,
        )
