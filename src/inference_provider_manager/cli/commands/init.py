"""Init command writing a default configuration file."""

from __future__ import annotations

import structlog
import typer
from rich.console import Console
from rich.panel import Panel

from inference_provider_manager.core.config import models

app = typer.Typer(help="Write a default configuration file.")
console = Console()
logger = structlog.get_logger()


@app.callback(invoke_without_command=True)
def init(
    ctx: typer.Context,
    catalog: str = typer.Option(
        "builtin",
        "--catalog",
        "-c",
        help="Catalog source to configure: builtin, file or cluster.",
    ),
    catalog_path: str | None = typer.Option(
        None,
        "--catalog-path",
        help="Provider catalog YAML, required with --catalog file.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration.",
    ),
) -> None:
    """Create ~/.config/ipm/config.yaml with default settings."""
    if ctx.invoked_subcommand is not None:
        return

    config_file = models.CONFIG_FILE
    if config_file.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {config_file}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=1)

    try:
        config = models.ManagerConfig.model_validate(
            {"catalog": {"source": catalog, "path": catalog_path}}
        )
    except ValueError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        raise typer.Exit(code=1) from None

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(config.to_yaml())
    logger.info("config_initialized", config_file=str(config_file), catalog=catalog)

    console.print(
        Panel(
            f"[green]Configuration initialized successfully![/green]\n\n"
            f"Configuration created at: {config_file}\n\n"
            f"Next steps:\n"
            f"  1. Set kubernetes.context if you do not use the current context\n"
            f"  2. Run [bold]ipm providers list[/bold] to see installable providers",
            title="ipm init",
            border_style="green",
        )
    )
