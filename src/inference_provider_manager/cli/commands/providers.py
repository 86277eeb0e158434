"""CLI commands for provider installation.

Provides list, show, commands, status, helm-status, install, upgrade,
uninstall and uninstall-crds commands.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from functools import partial
from enum import StrEnum
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape

from inference_provider_manager.cli.output import Table
from inference_provider_manager.core.config.models import ConfigError
from inference_provider_manager.integrations.kubernetes.exceptions import (
    KubernetesConnectionError,
    KubernetesError,
)
from inference_provider_manager.integrations.kubernetes.models.helm import OutputLine, OutputStream
from inference_provider_manager.services.providers.catalog import CatalogError
from inference_provider_manager.services.providers.exceptions import ProviderOperationError

if TYPE_CHECKING:
    from inference_provider_manager.integrations.kubernetes.helm_client import (
        HelmClient,
        OutputSink,
    )
    from inference_provider_manager.services.providers.catalog import ProviderCatalog
    from inference_provider_manager.services.providers.models import OperationOutcome
    from inference_provider_manager.services.providers.orchestrator import (
        InstallationOrchestrator,
    )

console = Console()
err_console = Console(stderr=True)


class OutputFormat(StrEnum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

ProviderArgument = Annotated[
    str,
    typer.Argument(help="Provider id (e.g. kaito, dynamo, kuberay)"),
]

OutputOption = Annotated[
    OutputFormat,
    typer.Option(
        "--output",
        "-o",
        help="Output format: table or json",
        case_sensitive=False,
    ),
]

StreamOption = Annotated[
    bool,
    typer.Option(
        "--stream",
        "-s",
        help="Print helm output as it arrives",
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Skip confirmation prompt",
    ),
]


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


def handle_provider_error(error: ProviderOperationError) -> None:
    """Print a provider error, the steps that ran, and its hint, then exit 1."""
    if error.outcome is not None and error.outcome.results:
        _print_results(error.outcome)
    console.print(f"[red]Error:[/red] {escape(error.message)}")
    if error.hint:
        console.print(f"\n[dim]Hint: {error.hint}[/dim]")
    raise typer.Exit(1)


def handle_setup_error(error: Exception) -> None:
    """Print a configuration, catalog or cluster connection error, then exit 1."""
    if isinstance(error, KubernetesConnectionError):
        console.print("[red]Error:[/red] Cannot connect to Kubernetes cluster")
        console.print(f"  {error.message}")
        console.print(
            "\n[dim]Hint: Check that your kubeconfig is valid and the cluster is reachable.[/dim]"
        )
    elif isinstance(error, KubernetesError):
        console.print(f"[red]Error:[/red] {escape(error.message)}")
    else:
        console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _print_results(outcome: OperationOutcome) -> None:
    if not outcome.results:
        return
    table = Table(title="Steps")
    table.add_column("Step", style="cyan")
    table.add_column("Result")
    table.add_column("Exit", justify="right")
    table.add_column("Error", style="dim")
    for result in outcome.results:
        table.add_row(
            result.step,
            "[green]ok[/green]" if result.success else "[red]failed[/red]",
            "" if result.exit_code is None else str(result.exit_code),
            escape(result.stderr),
        )
    console.print(table)


def _print_outcome(outcome: OperationOutcome, output: OutputFormat) -> None:
    if output == OutputFormat.JSON:
        _print_json(outcome.to_dict())
        return

    _print_results(outcome)
    color = "yellow" if outcome.installing else "green"
    console.print(f"[{color}]{escape(outcome.message)}[/{color}]")


def _echo_line(line: OutputLine, target: Console = console) -> None:
    style = "red" if line.stream is OutputStream.STDERR else "dim"
    target.print(line.text, style=style, highlight=False, markup=False)


def _stream_sink(stream: bool, output: OutputFormat) -> OutputSink | None:
    """Echo helm output; to stderr when stdout carries a JSON document."""
    if not stream:
        return None
    if output == OutputFormat.JSON:
        return partial(_echo_line, target=err_console)
    return _echo_line


# ---------------------------------------------------------------------------
# Command registration
# ---------------------------------------------------------------------------


def register_provider_commands(
    app: typer.Typer,
    get_orchestrator: Callable[[], InstallationOrchestrator],
    get_catalog: Callable[[], ProviderCatalog],
    get_helm_client: Callable[[], HelmClient],
) -> None:
    """Register provider commands with the CLI app.

    ``get_catalog`` serves the read-only commands and ``get_helm_client``
    serves ``helm-status``, so neither needs a cluster connection; everything
    else goes through ``get_orchestrator``.
    """

    providers_app = typer.Typer(
        name="providers",
        help="Install and manage inference providers",
        no_args_is_help=True,
    )
    app.add_typer(providers_app, name="providers")

    def _catalog() -> ProviderCatalog:
        try:
            return get_catalog()
        except (ConfigError, CatalogError, KubernetesError) as e:
            handle_setup_error(e)
            raise

    def _orchestrator() -> InstallationOrchestrator:
        try:
            return get_orchestrator()
        except (ConfigError, CatalogError, KubernetesError) as e:
            handle_setup_error(e)
            raise

    def _helm_client() -> HelmClient:
        try:
            return get_helm_client()
        except ConfigError as e:
            handle_setup_error(e)
            raise

    # -----------------------------------------------------------------
    # list
    # -----------------------------------------------------------------

    @providers_app.command("list")
    def list_providers(output: OutputOption = OutputFormat.TABLE) -> None:
        """List providers in the catalog.

        Examples:
            ipm providers list
            ipm providers list -o json
        """
        providers = _catalog().list()

        if output == OutputFormat.JSON:
            _print_json([p.model_dump(mode="json", by_alias=True) for p in providers])
            return

        table = Table(title="Providers")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        table.add_column("Namespace")
        table.add_column("Charts")
        table.add_column("Description", style="dim")
        for provider in providers:
            table.add_row(
                provider.id,
                provider.name,
                provider.default_namespace,
                ", ".join(c.name for c in provider.charts),
                provider.description,
            )
        console.print(table)

    # -----------------------------------------------------------------
    # show
    # -----------------------------------------------------------------

    @providers_app.command("show")
    def show(provider_id: ProviderArgument, output: OutputOption = OutputFormat.TABLE) -> None:
        """Show a provider's charts, repositories and uninstall targets.

        Examples:
            ipm providers show kaito
        """
        try:
            provider = _catalog().get(provider_id)
        except ProviderOperationError as e:
            handle_provider_error(e)
            return

        if output == OutputFormat.JSON:
            _print_json(provider.model_dump(mode="json", by_alias=True))
            return

        console.print(f"[bold]{provider.name}[/bold] ({provider.id})")
        if provider.description:
            console.print(f"  {provider.description}")
        console.print(f"  Namespace: {provider.default_namespace}")
        if provider.crd:
            console.print(f"  CRD: {provider.crd.name} ({provider.crd.kind})")

        charts = Table(title="Charts")
        charts.add_column("Release", style="cyan")
        charts.add_column("Chart")
        charts.add_column("Version")
        charts.add_column("Namespace")
        for chart in provider.charts:
            charts.add_row(chart.name, chart.chart, chart.version or "latest", chart.namespace)
        console.print(charts)

        if provider.repositories:
            repos = Table(title="Repositories")
            repos.add_column("Name", style="cyan")
            repos.add_column("URL")
            for repo in provider.repositories:
                repos.add_row(repo.name, repo.url)
            console.print(repos)

        if provider.uninstall.namespaces:
            namespaces = ", ".join(provider.uninstall.namespaces)
            console.print(f"Namespaces removed on uninstall: {namespaces}")
        if provider.uninstall.crds:
            crds = ", ".join(provider.uninstall.crds)
            console.print(f"CRDs removed by uninstall-crds: {crds}")

    # -----------------------------------------------------------------
    # commands
    # -----------------------------------------------------------------

    @providers_app.command("commands")
    def commands(provider_id: ProviderArgument, output: OutputOption = OutputFormat.TABLE) -> None:
        """Print the manual installation commands for a provider.

        Examples:
            ipm providers commands kuberay
        """
        try:
            steps = _catalog().get(provider_id).installation_steps
        except ProviderOperationError as e:
            handle_provider_error(e)
            return

        if output == OutputFormat.JSON:
            _print_json([s.model_dump(mode="json") for s in steps])
            return

        for number, step in enumerate(steps, start=1):
            console.print(f"[bold]{number}. {step.title}[/bold]")
            if step.description:
                console.print(f"   [dim]{step.description}[/dim]")
            console.print(f"   {step.command}", highlight=False, markup=False)

    # -----------------------------------------------------------------
    # status
    # -----------------------------------------------------------------

    @providers_app.command("status")
    def status(provider_id: ProviderArgument, output: OutputOption = OutputFormat.TABLE) -> None:
        """Show whether a provider is installed and running.

        Examples:
            ipm providers status kaito
        """
        try:
            result = _orchestrator().status(provider_id)
        except ProviderOperationError as e:
            handle_provider_error(e)
            return

        if output == OutputFormat.JSON:
            _print_json(result.to_dict())
            return

        color = "green" if result.installed else "yellow"
        console.print(f"[{color}]{result.message}[/{color}]")
        console.print(f"  CRD found:        {result.crd_found}")
        console.print(f"  Operator running: {result.operator_running}")
        if result.version:
            console.print(f"  Version:          {result.version}")

    # -----------------------------------------------------------------
    # helm-status
    # -----------------------------------------------------------------

    @providers_app.command("helm-status")
    def helm_status(output: OutputOption = OutputFormat.TABLE) -> None:
        """Check whether the helm CLI can be used."""
        result = _helm_client().check_available()

        if output == OutputFormat.JSON:
            _print_json(result.to_dict())
        elif result.available:
            console.print(f"[green]Helm {result.version} available[/green] ({result.binary})")
        else:
            console.print(f"[red]Helm not available:[/red] {result.error}")

        if not result.available:
            raise typer.Exit(1)

    # -----------------------------------------------------------------
    # install
    # -----------------------------------------------------------------

    @providers_app.command("install")
    def install(
        provider_id: ProviderArgument,
        force: Annotated[
            bool,
            typer.Option(
                "--force",
                "-f",
                help="Uninstall releases left failed or stuck by a previous attempt first",
            ),
        ] = False,
        stream: StreamOption = False,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """Install a provider.

        Examples:
            ipm providers install kaito
            ipm providers install dynamo --force --stream
        """
        try:
            outcome = _orchestrator().install(
                provider_id,
                force=force,
                sink=_stream_sink(stream, output),
            )
        except ProviderOperationError as e:
            handle_provider_error(e)
            return
        _print_outcome(outcome, output)

    # -----------------------------------------------------------------
    # upgrade
    # -----------------------------------------------------------------

    @providers_app.command("upgrade")
    def upgrade(
        provider_id: ProviderArgument,
        stream: StreamOption = False,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """Upgrade an installed provider's charts.

        Examples:
            ipm providers upgrade kuberay
        """
        try:
            outcome = _orchestrator().upgrade(provider_id, sink=_stream_sink(stream, output))
        except ProviderOperationError as e:
            handle_provider_error(e)
            return
        _print_outcome(outcome, output)

    # -----------------------------------------------------------------
    # uninstall
    # -----------------------------------------------------------------

    @providers_app.command("uninstall")
    def uninstall(
        provider_id: ProviderArgument,
        yes: YesOption = False,
        stream: StreamOption = False,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """Uninstall a provider's releases and delete its namespaces.

        CRDs are kept; remove them with ``uninstall-crds``.

        Examples:
            ipm providers uninstall kaito
            ipm providers uninstall kaito --yes
        """
        if not yes and not typer.confirm(
            f"Uninstall provider '{provider_id}' and delete its namespaces?", default=False
        ):
            raise typer.Abort()
        try:
            outcome = _orchestrator().uninstall(provider_id, sink=_stream_sink(stream, output))
        except ProviderOperationError as e:
            handle_provider_error(e)
            return
        _print_outcome(outcome, output)

    # -----------------------------------------------------------------
    # uninstall-crds
    # -----------------------------------------------------------------

    @providers_app.command("uninstall-crds")
    def uninstall_crds(
        provider_id: ProviderArgument,
        yes: YesOption = False,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """Delete a provider's CRDs and every custom resource of those kinds.

        Examples:
            ipm providers uninstall-crds kaito --yes
        """
        if not yes and not typer.confirm(
            f"Delete all CRDs of provider '{provider_id}'? Existing custom resources "
            "of these kinds will be deleted too.",
            default=False,
        ):
            raise typer.Abort()
        try:
            outcome = _orchestrator().uninstall_crds(provider_id)
        except ProviderOperationError as e:
            handle_provider_error(e)
            return
        _print_outcome(outcome, output)
