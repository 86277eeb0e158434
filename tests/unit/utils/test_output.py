"""Unit tests for output sanitizing and bounding."""

from __future__ import annotations

import pytest

from inference_provider_manager.utils.output import (
    MAX_STDERR_CHARS,
    MAX_STDOUT_CHARS,
    bound_output,
    sanitize_output,
)


@pytest.mark.unit
class TestSanitizeOutput:
    """Tests for sanitize_output."""

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty(self, text: str | None) -> None:
        assert sanitize_output(text) == ""

    def test_replaces_control_characters(self) -> None:
        assert sanitize_output("a\x00b\x1b[31mc\x7fd") == "a b [31mc d"

    def test_newlines_and_tabs_become_spaces(self) -> None:
        assert sanitize_output("line one\nline\ttwo\r\n") == "line one line two  "

    def test_keeps_printable_unicode(self) -> None:
        assert sanitize_output("déploiement ✓") == "déploiement ✓"


@pytest.mark.unit
class TestBoundOutput:
    """Tests for bound_output."""

    def test_strips_after_sanitizing(self) -> None:
        assert bound_output("\n  Error: boom\n", 100) == "Error: boom"

    def test_truncates(self) -> None:
        assert bound_output("x" * 2000, MAX_STDERR_CHARS) == "x" * MAX_STDERR_CHARS

    def test_short_text_unchanged(self) -> None:
        assert bound_output("ok", MAX_STDOUT_CHARS) == "ok"

    def test_limits(self) -> None:
        assert MAX_STDERR_CHARS == 1000
        assert MAX_STDOUT_CHARS == 500
