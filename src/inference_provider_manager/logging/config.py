"""Structured logging setup.

structlog is routed through stdlib logging so one event reaches two
handlers: a console handler (Rich-backed pretty output, or JSON) at the
requested level, and a rotating JSON file under ``~/.local/state/ipm`` that
always captures DEBUG, including every line of helm output.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

LOG_DIR = Path.home() / ".local" / "state" / "ipm"
LOG_FILE_NAME = "ipm.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5
RETENTION_DAYS = 30

# Marks handlers installed here so reconfiguring replaces them.
_HANDLER_FLAG = "_ipm_handler"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _level_for(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def _cleanup_old_logs() -> None:
    """Remove rotated log files not modified within RETENTION_DAYS."""
    if not LOG_DIR.exists():
        return
    cutoff = (datetime.now() - timedelta(days=RETENTION_DAYS)).timestamp()
    for path in LOG_DIR.glob(f"{LOG_FILE_NAME}*"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
        except OSError:
            continue


def _file_handler() -> logging.Handler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    _cleanup_old_logs()

    handler = RotatingFileHandler(
        LOG_DIR / LOG_FILE_NAME,
        maxBytes=MAX_LOG_BYTES,
        backupCount=BACKUP_COUNT,
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_shared_processors(),
        )
    )
    return handler


def _console_handler(level: int, *, json_output: bool, debug: bool) -> logging.Handler:
    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=debug),
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=_shared_processors(),
        )
    )
    return handler


def _install(handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_FLAG, True)
    logging.getLogger().addHandler(handler)


def configure_logging(
    verbose: bool = False,
    debug: bool = False,
    json_output: bool = False,
    log_to_file: bool = True,
) -> None:
    """Configure structlog and the root logger.

    The console shows WARNING and above by default, INFO with ``verbose``
    and DEBUG with ``debug``. The log file at ``~/.local/state/ipm/ipm.log``
    rotates at 10 MB, keeps 5 backups and drops files older than 30 days.

    Args:
        verbose: Show INFO events on the console.
        debug: Show DEBUG events and local variables in tracebacks.
        json_output: Render console events as JSON lines.
        log_to_file: Also write JSON events to the rotating log file.
    """
    level = _level_for(verbose, debug)
    # The file handler wants everything; handlers do the filtering.
    event_level = logging.DEBUG if log_to_file else level

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(event_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, _HANDLER_FLAG, False)]
    root.setLevel(logging.DEBUG)

    _install(_console_handler(level, json_output=json_output, debug=debug))
    if log_to_file:
        _install(_file_handler())


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Return a structlog logger with ``initial_context`` already bound."""
    log: structlog.BoundLogger = structlog.get_logger(name)
    return log.bind(**initial_context) if initial_context else log
