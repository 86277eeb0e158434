"""Helm CLI wrapper for provider chart management.

Wraps the helm binary via subprocess for repository setup, install-or-upgrade,
uninstall, and release listing. Mutating commands stream their output as
tagged lines and return a :class:`StepResult` instead of raising, so callers
can decide how a failed step affects the wider operation.
"""

from __future__ import annotations

import json
import queue
import shutil
import subprocess
import threading
from collections.abc import Callable, Iterator
from contextlib import closing
from pathlib import Path
from typing import IO

import structlog

from inference_provider_manager.integrations.kubernetes.exceptions import KubernetesError
from inference_provider_manager.integrations.kubernetes.models.helm import (
    HelmAvailability,
    HelmRelease,
    OutputLine,
    OutputStream,
    StepResult,
)
from inference_provider_manager.utils.output import (
    MAX_STDERR_CHARS,
    MAX_STDOUT_CHARS,
    bound_output,
)

logger = structlog.get_logger()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION_TIMEOUT_SECONDS = 10
SHORT_TIMEOUT_SECONDS = 30

# Exit code reported when the binary cannot be executed at all
BINARY_MISSING_EXIT_CODE = 127

OutputSink = Callable[[OutputLine], None]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class HelmError(KubernetesError):
    """Base exception for Helm operations."""

    def __init__(
        self,
        message: str,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message=message)
        self.stderr = stderr


class HelmBinaryNotFoundError(HelmError):
    """Raised when helm binary is not found in PATH."""

    def __init__(self, binary_path: str | None = None) -> None:
        where = f"at {binary_path}" if binary_path else "in PATH"
        super().__init__(
            message=(
                f"helm binary not found {where}. "
                "Install from: https://helm.sh/docs/intro/install/"
            ),
        )


class HelmCommandError(HelmError):
    """Raised when a read-only helm command fails."""


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

_EOF = object()


class HelmProcess:
    """A running helm command.

    Iterating yields :class:`OutputLine` events from both pipes in the order
    they arrive. ``returncode`` is populated once iteration is exhausted or
    abandoned; an abandoned process is killed.
    """

    def __init__(self, cmd: list[str]) -> None:
        self.cmd = cmd
        self.returncode: int | None = None
        self._proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            bufsize=1,
        )

    @staticmethod
    def _drain(
        pipe: IO[str],
        stream: OutputStream,
        sink: queue.Queue[OutputLine | object],
    ) -> None:
        try:
            for line in pipe:
                sink.put(OutputLine(stream=stream, text=line.rstrip("\r\n")))
        finally:
            pipe.close()
            sink.put(_EOF)

    def __iter__(self) -> Iterator[OutputLine]:
        events: queue.Queue[OutputLine | object] = queue.Queue()
        readers = [
            threading.Thread(
                target=self._drain,
                args=(self._proc.stdout, OutputStream.STDOUT, events),
                daemon=True,
            ),
            threading.Thread(
                target=self._drain,
                args=(self._proc.stderr, OutputStream.STDERR, events),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        open_pipes = len(readers)
        try:
            while open_pipes:
                event = events.get()
                if isinstance(event, OutputLine):
                    yield event
                else:
                    open_pipes -= 1
        finally:
            if open_pipes:
                self._proc.kill()
            self.returncode = self._proc.wait()
            for reader in readers:
                reader.join()

    def close(self) -> None:
        """Kill the process if it is still running and reap it."""
        if self.returncode is None:
            self._proc.kill()
            self.returncode = self._proc.wait()


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class HelmClient:
    """Client for interacting with the Helm CLI.

    The binary is resolved lazily so that a missing helm can be reported
    through :meth:`check_available` rather than at construction.
    """

    def __init__(
        self,
        binary_path: str | None = None,
        *,
        list_timeout: int = SHORT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize Helm client.

        Args:
            binary_path: Optional explicit path to helm binary.
                If None, searches PATH.
            list_timeout: Timeout in seconds for read-only commands.
        """
        self._binary_path = binary_path
        self._binary: str | None = None
        self._list_timeout = list_timeout
        self._log = logger.bind(component="helm")

    @staticmethod
    def _find_binary(binary_path: str | None) -> str:
        """Locate helm binary.

        Args:
            binary_path: Explicit path or None to search PATH.

        Returns:
            Path to helm binary.

        Raises:
            HelmBinaryNotFoundError: If not found.
        """
        if binary_path:
            path = Path(binary_path)
            if not path.exists():
                raise HelmBinaryNotFoundError(binary_path)
            return str(path.resolve())

        found = shutil.which("helm")
        if not found:
            raise HelmBinaryNotFoundError()

        return found

    @property
    def binary(self) -> str:
        """Resolved path of the helm binary.

        Raises:
            HelmBinaryNotFoundError: If not found.
        """
        if self._binary is None:
            self._binary = self._find_binary(self._binary_path)
            self._log = self._log.bind(binary=self._binary)
        return self._binary

    def _run(
        self,
        args: list[str],
        *,
        timeout: int,
    ) -> subprocess.CompletedProcess[str]:
        """Run a read-only helm command to completion.

        Args:
            args: Command arguments (without the ``helm`` prefix).
            timeout: Timeout in seconds.

        Returns:
            CompletedProcess result.

        Raises:
            HelmCommandError: On non-zero exit.
            HelmError: On timeout.
        """
        cmd = [self.binary, *args]
        self._log.debug("running_helm_command", args=args)

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=timeout,
            )
        except subprocess.CalledProcessError as e:
            stderr = bound_output(e.stderr, MAX_STDERR_CHARS)
            raise HelmCommandError(
                message=f"Helm command failed: {stderr or f'exit code {e.returncode}'}",
                stderr=stderr,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise HelmError(
                message=f"Helm command timed out after {timeout}s",
            ) from e

    # -----------------------------------------------------------------------
    # Availability
    # -----------------------------------------------------------------------

    def get_version(self) -> str:
        """Get helm version string.

        Returns:
            Version string (e.g., ``v3.17.0``).

        Raises:
            HelmError: If version command fails.
        """
        result = self._run(["version", "--short"], timeout=VERSION_TIMEOUT_SECONDS)
        version = result.stdout.strip()
        # Strip build metadata (e.g., "v3.17.0+g301108e" -> "v3.17.0")
        if "+" in version:
            version = version.split("+")[0]
        return version

    def check_available(self) -> HelmAvailability:
        """Check whether helm can be executed.

        Never raises; failures are reported in the result.
        """
        try:
            binary = self.binary
            version = self.get_version()
        except HelmError as e:
            self._log.warning("helm_unavailable", error=e.message)
            return HelmAvailability(available=False, error=e.message)
        except OSError as e:
            self._log.warning("helm_unavailable", error=str(e))
            return HelmAvailability(available=False, error=str(e))

        return HelmAvailability(available=True, version=version, binary=binary)

    # -----------------------------------------------------------------------
    # Streaming steps
    # -----------------------------------------------------------------------

    def stream(self, args: list[str]) -> HelmProcess:
        """Start a helm command and return its output iterator.

        Args:
            args: Command arguments (without the ``helm`` prefix).

        Raises:
            HelmBinaryNotFoundError: If helm cannot be resolved.
            OSError: If the process cannot be started.
        """
        cmd = [self.binary, *args]
        self._log.debug("starting_helm_command", args=args)
        return HelmProcess(cmd)

    def _log_line(self, line: OutputLine) -> None:
        self._log.debug("helm_output", stream=line.stream.value, line=line.text)

    def run_step(
        self,
        step: str,
        args: list[str],
        sink: OutputSink | None = None,
    ) -> StepResult:
        """Run one mutating helm command as a named step.

        Args:
            step: Human-readable step name.
            args: Command arguments (without the ``helm`` prefix).
            sink: Receives every output line; defaults to debug logging.

        Returns:
            Step result with bounded, sanitized output. Never raises for a
            failing command.
        """
        emit = sink or self._log_line
        stdout: list[str] = []
        stderr: list[str] = []

        try:
            process = self.stream(args)
        except HelmBinaryNotFoundError as e:
            return StepResult(
                step=step,
                success=False,
                stderr=bound_output(e.message, MAX_STDERR_CHARS),
                exit_code=BINARY_MISSING_EXIT_CODE,
            )
        except OSError as e:
            return StepResult(
                step=step,
                success=False,
                stderr=bound_output(str(e), MAX_STDERR_CHARS),
                exit_code=BINARY_MISSING_EXIT_CODE,
            )

        with closing(process):
            for line in process:
                (stdout if line.stream is OutputStream.STDOUT else stderr).append(line.text)
                emit(line)

        result = StepResult(
            step=step,
            success=process.returncode == 0,
            stdout=bound_output("\n".join(stdout), MAX_STDOUT_CHARS),
            stderr=bound_output("\n".join(stderr), MAX_STDERR_CHARS),
            exit_code=process.returncode,
        )

        if result.success:
            self._log.info("helm_step_succeeded", step=step)
        else:
            self._log.warning(
                "helm_step_failed",
                step=step,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result

    # -----------------------------------------------------------------------
    # Repository management
    # -----------------------------------------------------------------------

    def repo_add(
        self,
        name: str,
        url: str,
        *,
        sink: OutputSink | None = None,
    ) -> StepResult:
        """Add (or replace) a chart repository.

        Args:
            name: Repository name.
            url: Repository URL.
            sink: Output line consumer.
        """
        return self.run_step(
            f"Add Helm repository {name}",
            ["repo", "add", name, url, "--force-update"],
            sink,
        )

    def repo_update(self, *, sink: OutputSink | None = None) -> StepResult:
        """Update all chart repository indexes."""
        return self.run_step("Update Helm repositories", ["repo", "update"], sink)

    # -----------------------------------------------------------------------
    # Release management
    # -----------------------------------------------------------------------

    def upgrade(
        self,
        release_name: str,
        chart: str,
        *,
        namespace: str | None = None,
        version: str | None = None,
        install: bool = False,
        create_namespace: bool = False,
        step: str | None = None,
        sink: OutputSink | None = None,
    ) -> StepResult:
        """Upgrade a release, optionally installing it if absent.

        ``--wait`` is never passed: the call returns once Helm has accepted
        the release, not when its workloads are ready.

        Args:
            release_name: Name of the release.
            chart: Chart reference (repo/chart, URL or path).
            namespace: Target namespace.
            version: Chart version constraint.
            install: Install if release doesn't exist (--install).
            create_namespace: Create namespace if needed.
            step: Step name; derived from the release when omitted.
            sink: Output line consumer.
        """
        args = ["upgrade", release_name, chart]
        if install:
            args.append("--install")
        if namespace:
            args.extend(["--namespace", namespace])
        if version:
            args.extend(["--version", version])
        if create_namespace:
            args.append("--create-namespace")

        verb = "Install" if install else "Upgrade"
        return self.run_step(step or f"{verb} {release_name}", args, sink)

    def uninstall(
        self,
        release_name: str,
        *,
        namespace: str | None = None,
        step: str | None = None,
        sink: OutputSink | None = None,
    ) -> StepResult:
        """Uninstall a release; an already-absent release is not an error.

        Args:
            release_name: Name of the release.
            namespace: Target namespace.
            step: Step name; derived from the release when omitted.
            sink: Output line consumer.
        """
        args = ["uninstall", release_name, "--ignore-not-found"]
        if namespace:
            args.extend(["--namespace", namespace])

        return self.run_step(step or f"Uninstall {release_name}", args, sink)

    def list_releases(
        self,
        *,
        namespace: str | None = None,
        all_namespaces: bool = False,
        filter_pattern: str | None = None,
    ) -> list[HelmRelease]:
        """List releases in every state (``--all``).

        ``--max 0`` lifts helm's default limit of 256 releases.

        Args:
            namespace: Namespace to list releases from.
            all_namespaces: List releases across all namespaces.
            filter_pattern: Filter releases by name regex.

        Returns:
            List of releases.

        Raises:
            HelmCommandError: If helm exits non-zero.
            HelmError: On timeout or unparsable output.
        """
        args = ["list", "--all", "--max", "0", "--output", "json"]
        if all_namespaces:
            args.append("--all-namespaces")
        elif namespace:
            args.extend(["--namespace", namespace])
        if filter_pattern:
            args.extend(["--filter", filter_pattern])

        result = self._run(args, timeout=self._list_timeout)
        try:
            data = json.loads(result.stdout) if result.stdout.strip() else []
        except json.JSONDecodeError as e:
            raise HelmError(message=f"Unparsable helm list output: {e}") from e
        return [HelmRelease.from_json(entry) for entry in data or []]
