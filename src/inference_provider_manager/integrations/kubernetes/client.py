"""Kubernetes API client wrapper.

Wraps the official kubernetes Python client with lazy API group
initialization, retry of transient connection errors, and consistent
error translation.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from inference_provider_manager.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
)

if TYPE_CHECKING:
    from kubernetes.client import (
        ApiextensionsV1Api,
        CoreV1Api,
        CustomObjectsApi,
        VersionApi,
    )

    from inference_provider_manager.integrations.kubernetes.config import KubernetesConfig

logger = structlog.get_logger()

T = TypeVar("T")


class KubernetesClient:
    """Kubernetes API client.

    Only the API groups the installer touches are exposed: core
    (namespaces, pods), apiextensions (CRDs), and custom objects
    (provider registrations).

    Example:
        ```python
        config = KubernetesConfig.from_env()
        with KubernetesClient(config) as client:
            client.call(client.core_v1.read_namespace, "kaito-workspace")
        ```
    """

    def __init__(self, config: KubernetesConfig) -> None:
        """Initialize the client and load kubeconfig.

        Args:
            config: Cluster connection settings.
        """
        self._config = config
        self._retries = config.retry_attempts
        self._current_context: str | None = None

        self._core_v1: CoreV1Api | None = None
        self._apiextensions_v1: ApiextensionsV1Api | None = None
        self._custom_objects: CustomObjectsApi | None = None
        self._version_api: VersionApi | None = None

        self._load_config()

        logger.info("kubernetes_client_initialized", context=self._current_context)

    def _load_config(self) -> None:
        """Load kubeconfig, falling back to in-cluster service account config."""
        from kubernetes import config
        from kubernetes.config import ConfigException

        try:
            config.load_kube_config(
                config_file=self._config.kubeconfig,
                context=self._config.context,
            )
            self._current_context = self._config.context or "current"
            logger.debug(
                "loaded_kubeconfig",
                context=self._config.context,
                kubeconfig=self._config.kubeconfig,
            )
        except ConfigException:
            try:
                config.load_incluster_config()
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException as e:
                raise KubernetesConnectionError(
                    message="Cannot load Kubernetes configuration. "
                    "Ensure kubeconfig exists or running inside a cluster.",
                    original_error=e,
                ) from e

        self._invalidate_api_cache()

    def _invalidate_api_cache(self) -> None:
        """Clear cached API group instances."""
        self._core_v1 = None
        self._apiextensions_v1 = None
        self._custom_objects = None
        self._version_api = None

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (namespaces, pods)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api()
        return self._core_v1

    @property
    def apiextensions_v1(self) -> ApiextensionsV1Api:
        """Get ApiextensionsV1Api instance (custom resource definitions)."""
        if self._apiextensions_v1 is None:
            from kubernetes.client import ApiextensionsV1Api

            self._apiextensions_v1 = ApiextensionsV1Api()
        return self._apiextensions_v1

    @property
    def custom_objects(self) -> CustomObjectsApi:
        """Get CustomObjectsApi instance (cluster-scoped provider configs)."""
        if self._custom_objects is None:
            from kubernetes.client import CustomObjectsApi

            self._custom_objects = CustomObjectsApi()
        return self._custom_objects

    @property
    def version_api(self) -> VersionApi:
        """Get VersionApi instance for cluster version info."""
        if self._version_api is None:
            from kubernetes.client import VersionApi

            self._version_api = VersionApi()
        return self._version_api

    @property
    def current_context(self) -> str:
        """The loaded context name, or 'in-cluster'."""
        return self._current_context or "unknown"

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes client exception to a KubernetesError.

        Args:
            e: The original exception.
            resource_type: Kind of resource being operated on.
            resource_name: Name of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException
        from urllib3.exceptions import HTTPError

        if isinstance(e, (HTTPError, ConnectionError)):
            return KubernetesConnectionError(
                message=f"Kubernetes API unreachable: {e}",
                original_error=e,
            )

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
            )

        if not status:
            return KubernetesConnectionError(
                message=e.reason or "Kubernetes API unreachable",
                original_error=e,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
        )

    # =========================================================================
    # Calls
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def call(
        self,
        func: Callable[..., T],
        *args: Any,
        resource_type: str | None = None,
        resource_name: str | None = None,
        **kwargs: Any,
    ) -> T:
        """Invoke an API method with retry and error translation.

        Args:
            func: Bound kubernetes API method.
            *args: Positional arguments for ``func``.
            resource_type: Kind used in translated errors.
            resource_name: Name used in translated errors.
            **kwargs: Keyword arguments for ``func``.

        Returns:
            Whatever ``func`` returns.

        Raises:
            KubernetesError: Translated API failure.
        """

        @self.make_retry_decorator()
        def _invoke() -> T:
            try:
                return func(*args, **kwargs)
            except KubernetesError:
                raise
            except Exception as e:
                raise self.translate_api_exception(
                    e,
                    resource_type=resource_type,
                    resource_name=resource_name,
                ) from e

        return _invoke()

    def check_connection(self) -> bool:
        """Check if the Kubernetes API server answers.

        Returns:
            True if connection is successful, False otherwise.
        """
        try:
            self.version_api.get_code()
            return True
        except Exception:
            return False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Release cached API instances."""
        self._invalidate_api_cache()
        logger.debug("kubernetes_client_closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
