"""Turns arbitrarily chunked response text into render-safe fragments."""

from __future__ import annotations

FENCE_MARKERS = ("```", "~~~")


def _find_fence(text: str) -> tuple[int, str | None]:
    """Return the offset and marker of the earliest fence delimiter in *text*."""
    best_index = -1
    best_marker: str | None = None
    for marker in FENCE_MARKERS:
        index = text.find(marker)
        if index != -1 and (best_index == -1 or index < best_index):
            best_index = index
            best_marker = marker
    return best_index, best_marker


class FragmentBuffer:
    """Accumulates streamed chunks and releases the longest safe prefix.

    Plain text is released one line at a time (each fragment ends with its
    newline). Once a fence opener (```` ``` ```` or ``~~~``) is seen, nothing
    more is released until the same marker appears again, at which point the
    whole block, opener and closer included, goes out as a single fragment.
    Fences do not nest: the first later occurrence of the marker closes the
    block.

    Not thread-safe; one buffer belongs to exactly one stream.

    Usage:
        buffer = FragmentBuffer()
        for chunk in chunks:
            for fragment in buffer.add_chunk(chunk):
                render(fragment)
        tail = buffer.force_flush()
    """

    def __init__(self) -> None:
        self._buffer: str = ""
        self._fence_marker: str | None = None

    @property
    def in_fence(self) -> bool:
        """True while a fenced block has been opened but not yet closed."""
        return self._fence_marker is not None

    @property
    def fence_marker(self) -> str | None:
        """The delimiter that opened the current fence, if any."""
        return self._fence_marker

    @property
    def pending(self) -> str:
        """Text buffered but not yet released."""
        return self._buffer

    def add_chunk(self, chunk: str) -> list[str]:
        """Append *chunk* and return every fragment that became safe to render."""
        fragments: list[str] = []
        self._buffer += chunk

        while self._buffer:
            text = self._buffer

            if self._fence_marker is not None:
                marker = self._fence_marker
                # The buffer starts with the opener, so search past it.
                close = text.find(marker, len(marker))
                if close == -1:
                    break
                end = close + len(marker)
                fragments.append(text[:end])
                self._buffer = text[end:]
                self._fence_marker = None
                continue

            fence_at, marker = _find_fence(text)
            if marker is not None:
                if fence_at > 0:
                    fragments.append(text[:fence_at])
                self._buffer = text[fence_at:]
                self._fence_marker = marker
                break

            newline = text.find("\n")
            if newline == -1:
                break
            fragments.append(text[: newline + 1])
            self._buffer = text[newline + 1 :]

        return fragments

    def force_flush(self) -> str:
        """Return and clear everything still buffered, open fence or not."""
        remainder = self._buffer
        self._buffer = ""
        self._fence_marker = None
        return remainder
