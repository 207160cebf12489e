"""Markdown-to-ANSI conversion backed by rich."""

from __future__ import annotations

import io
import shutil
from typing import Protocol

from rich.console import Console
from rich.markdown import Markdown

# Cheap heuristics; false positives only cost a trip through the converter.
_MARKDOWN_INDICATORS = (
    "# ",
    "- ",
    "* ",
    "```",
    "~~~",
    "`",
    "**",
    "__",
    "[",
    "> ",
)


class MarkdownConverter(Protocol):
    """Anything that can turn Markdown into terminal-ready text."""

    def convert(self, text: str) -> str: ...


class RichMarkdownConverter:
    """Render Markdown to ANSI text through a capturing rich Console.

    Args:
        width: Wrap width; defaults to the current terminal width.
        code_theme: Pygments theme for fenced code blocks.
        color_system: rich color system ("standard", "256", "truecolor").
    """

    def __init__(
        self,
        width: int | None = None,
        code_theme: str = "monokai",
        color_system: str = "truecolor",
    ) -> None:
        self.width = width or shutil.get_terminal_size((80, 24)).columns
        self.code_theme = code_theme
        self.color_system = color_system

    def convert(self, text: str) -> str:
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            force_terminal=True,
            color_system=self.color_system,
            width=self.width,
        )
        console.print(Markdown(text, code_theme=self.code_theme))
        return buffer.getvalue()


def looks_like_markdown(text: str) -> bool:
    """Return True if *text* appears to contain Markdown formatting."""
    return any(indicator in text for indicator in _MARKDOWN_INDICATORS)
