"""Sanitizing and bounding of captured process output.

Anything a child process writes may end up in an error message shown to an
operator or returned over HTTP, so it is stripped of control bytes and
truncated before it leaves the gateway.
"""

from __future__ import annotations

import re

MAX_STDERR_CHARS = 1000
MAX_STDOUT_CHARS = 500

# C0 control characters and DEL
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_output(text: str | None) -> str:
    """Replace every control byte (0x00-0x1F, 0x7F) with a space.

    Args:
        text: Raw captured output.

    Returns:
        Text safe to embed in a single-line message.
    """
    if not text:
        return ""
    return _CONTROL_CHARS.sub(" ", text)


def bound_output(text: str | None, limit: int) -> str:
    """Sanitize and truncate output to at most ``limit`` characters.

    Args:
        text: Raw captured output.
        limit: Maximum length of the returned string.

    Returns:
        Sanitized text no longer than ``limit``.
    """
    cleaned = sanitize_output(text).strip()
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[:limit]
