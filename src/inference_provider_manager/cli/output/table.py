"""Rich table used by every command."""

from __future__ import annotations

from typing import Any

from rich.table import Table as RichTable


class Table(RichTable):
    """Rich Table whose columns wrap long cells instead of truncating them.

    Pass ``overflow=...`` to a column to opt out, e.g. for ids that should
    stay on one line.
    """

    def add_column(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("overflow", "fold")
        super().add_column(*args, **kwargs)
