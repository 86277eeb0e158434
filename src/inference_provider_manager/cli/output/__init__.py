"""Shared CLI output helpers.

Usage:
    from inference_provider_manager.cli.output import Table

    table = Table(title="Providers")
    table.add_column("ID", style="cyan")
    table.add_row("kaito")
    console.print(table)
"""

from inference_provider_manager.cli.output.table import Table

__all__ = ["Table"]
