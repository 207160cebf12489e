"""Terminal rendering of streamed fragments."""

from __future__ import annotations

from gptcli.ui.markdown import MarkdownConverter, RichMarkdownConverter, looks_like_markdown
from gptcli.ui.renderer import FragmentRenderer, FragmentWriter, RenderState, render_plain

__all__ = [
    "FragmentRenderer",
    "FragmentWriter",
    "MarkdownConverter",
    "RenderState",
    "RichMarkdownConverter",
    "looks_like_markdown",
    "render_plain",
]
