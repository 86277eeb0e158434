"""Main CLI entry point using Typer."""

from __future__ import annotations

import typer
from rich.console import Console

from inference_provider_manager import __version__
from inference_provider_manager.cli.commands import init
from inference_provider_manager.cli.commands.providers import register_provider_commands
from inference_provider_manager.core.config.models import load_config
from inference_provider_manager.integrations.kubernetes.helm_client import HelmClient
from inference_provider_manager.logging.config import configure_logging
from inference_provider_manager.services.providers.catalog import ProviderCatalog
from inference_provider_manager.services.providers.factory import (
    build_catalog,
    build_helm_client,
    build_orchestrator,
)
from inference_provider_manager.services.providers.orchestrator import InstallationOrchestrator

app = typer.Typer(
    name="ipm",
    help="Install and manage Kubernetes inference providers.",
    add_completion=True,
)

console = Console()
progress_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ipm version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
) -> None:
    """Inference Provider Manager - install operators that serve ML models."""
    configure_logging(verbose=verbose, debug=debug)


def _report_progress(message: str) -> None:
    progress_console.print(f"[dim]{message}[/dim]")


def get_orchestrator() -> InstallationOrchestrator:
    """Build an orchestrator from the user's configuration."""
    return build_orchestrator(load_config(), progress_callback=_report_progress)


def get_catalog() -> ProviderCatalog:
    """Load the configured catalog, connecting to the cluster only if it is the source."""
    config = load_config()
    if config.catalog.source == "cluster":
        return build_orchestrator(config).catalog
    return build_catalog(config.catalog)


def get_helm_client() -> HelmClient:
    """Build a Helm client from the user's configuration."""
    return build_helm_client(load_config())


app.add_typer(init.app, name="init")
register_provider_commands(app, get_orchestrator, get_catalog, get_helm_client)


if __name__ == "__main__":
    app()
