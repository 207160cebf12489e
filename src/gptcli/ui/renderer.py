"""Fragment-aware rendering for streamed responses.

Fragments arrive one at a time from the FragmentBuffer. Rendering each one
independently would double up blank lines at fragment seams, so what the
previous fragment ended on (a blank line, or an unfinished line) is kept in a
RenderState owned by the caller. One RenderState per response.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from typing import TextIO

from gptcli.core.buffer import FENCE_MARKERS

from .markdown import MarkdownConverter, RichMarkdownConverter, looks_like_markdown

logger = logging.getLogger(__name__)

_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s")
_BLOCKQUOTE = re.compile(r"^\s*>")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_ESC = "\x1b"


@dataclass
class RenderState:
    """Carried between successive render calls for one response."""

    prev_blank: bool = False
    # The previous fragment stopped before its line ended (a fence closer or
    # the text in front of a fence opener).
    mid_line: bool = False


@dataclass
class _Line:
    text: str
    # Fence delimiters and fenced content are never trimmed or re-indented.
    verbatim: bool = False

    @property
    def blank(self) -> bool:
        return not self.verbatim and not self.text


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def _ends_blank(fragment: str) -> bool:
    lines = _split_lines(fragment)
    return bool(lines) and not lines[-1].strip()


def _normalize_lines(text: str) -> list[_Line]:
    """Trim prose lines and collapse blank runs, leaving fenced code alone."""
    out: list[_Line] = []
    fence: str | None = None
    blank_run = False
    for raw in _split_lines(text):
        stripped = raw.strip()
        # Only the marker that opened a block closes it.
        marker = next((m for m in FENCE_MARKERS if stripped.startswith(m)), None)
        if marker is not None and fence in (None, marker):
            fence = None if fence else marker
            out.append(_Line(stripped, verbatim=True))
            blank_run = False
        elif fence is not None:
            out.append(_Line(raw, verbatim=True))
            blank_run = False
        elif not stripped:
            if not blank_run:
                out.append(_Line(""))
            blank_run = True
        else:
            out.append(_Line(stripped))
            blank_run = False
    return out


def _strip_leading_blank(lines: list[_Line]) -> list[_Line]:
    start = 0
    while start < len(lines) and lines[start].blank:
        start += 1
    return lines[start:]


def _strip_trailing_blank(lines: list[_Line]) -> list[_Line]:
    end = len(lines)
    while end > 0 and lines[end - 1].blank:
        end -= 1
    return lines[:end]


def _indent_exempt(text: str) -> bool:
    return bool(_LIST_ITEM.match(text) or _BLOCKQUOTE.match(text)) or text.startswith(_ESC)


def _strip_common_indent(lines: list[_Line]) -> list[_Line]:
    """Dedent non-verbatim lines by their shared leading whitespace.

    Lines coming out of _normalize_lines are already trimmed, so inside
    render() this leaves prose unchanged; it only removes indentation from
    lines that still carry it.
    """
    widths = [
        len(line.text) - len(line.text.lstrip())
        for line in lines
        if not line.verbatim and line.text.strip() and not _indent_exempt(line.text)
    ]
    indent = min(widths, default=0)
    if indent == 0:
        return lines

    stripped: list[_Line] = []
    for line in lines:
        if line.verbatim:
            stripped.append(line)
            continue
        width = min(indent, len(line.text) - len(line.text.lstrip()))
        stripped.append(_Line(line.text[width:]))
    return stripped


def _join(lines: list[_Line]) -> str:
    text = "\n".join(line.text for line in lines)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.rstrip("\n") + "\n"


def render_plain(text: str) -> str:
    """Normalize a complete response without any prior-fragment context.

    Prose lines are trimmed, blank runs collapse to one, trailing blank lines
    are dropped and the result ends with exactly one newline. Applying it to
    its own output changes nothing.
    """
    if not text:
        return ""
    return _join(_strip_trailing_blank(_normalize_lines(text)))


class FragmentRenderer:
    """Turns safe fragments into terminal text.

    With rich formatting on, each fragment goes through the Markdown
    converter; a converter failure silently falls back to plain
    normalization. The renderer itself holds no per-stream state and can be
    shared; the RenderState passed to :meth:`render` must not be.

    Args:
        rich: True or False to force rich formatting; None to enable it only
              when stdout is a terminal.
        converter: Markdown converter; a RichMarkdownConverter is created
                   when rich formatting is on and none is given.
    """

    def __init__(
        self,
        rich: bool | None = None,
        converter: MarkdownConverter | None = None,
    ) -> None:
        if rich is None:
            rich = sys.stdout.isatty()
        self.rich = rich
        self.converter = converter
        if self.rich and self.converter is None:
            self.converter = RichMarkdownConverter()

    def _convert(self, text: str) -> str | None:
        if not self.rich or self.converter is None:
            return None
        try:
            rendered = self.converter.convert(text)
        except Exception as exc:
            logger.debug("Markdown conversion failed, using plain text: %s", exc)
            return None
        if not rendered.endswith("\n"):
            rendered += "\n"
        return rendered

    def render(self, fragment: str, state: RenderState) -> str:
        """Render one fragment and update *state* for the next one."""
        if not fragment:
            return ""

        if state.mid_line and fragment.startswith("\n"):
            # Terminates the previous line; it is not a blank line of its own.
            fragment = fragment[1:]
            state.mid_line = False
            if not fragment:
                return ""
        state.mid_line = not fragment.endswith("\n")

        ends_blank = _ends_blank(fragment)

        rendered = self._convert(fragment)
        if rendered is not None:
            state.prev_blank = ends_blank
            return rendered

        lines = _normalize_lines(fragment)
        if state.prev_blank:
            lines = _strip_leading_blank(lines)
        lines = _strip_trailing_blank(lines)
        lines = _strip_common_indent(lines)

        state.prev_blank = ends_blank
        return _join(lines)

    def render_full(self, text: str) -> str:
        """Render a complete, non-streamed response."""
        if not text:
            return ""
        if looks_like_markdown(text):
            rendered = self._convert(text)
            if rendered is not None:
                return rendered
        return render_plain(text)


class FragmentWriter:
    """Writes rendered fragments, dropping repeated blank-line sentinels.

    An all-blank fragment renders to a lone ``"\\n"``; two of those in a row
    would print two blank lines where a one-shot render prints one.
    """

    def __init__(self, out: TextIO) -> None:
        self._out = out
        self._last_was_blank = False

    def write(self, rendered: str) -> None:
        if not rendered:
            return
        if rendered == "\n":
            if self._last_was_blank:
                return
            self._last_was_blank = True
        else:
            self._last_was_blank = False
        self._out.write(rendered)
        self._out.flush()
