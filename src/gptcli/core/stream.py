"""Drive a byte source through a FragmentBuffer."""

from __future__ import annotations

import codecs
import logging
from typing import AsyncIterator, BinaryIO, Iterator, Protocol

from gptcli.core.buffer import FragmentBuffer
from gptcli.core.errors import SourceReadError, StreamError

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 1024


class ByteSource(Protocol):
    """Readable, closable stream of response bytes.

    ``read`` returns ``b""`` once the source is exhausted.
    """

    async def read(self, size: int = -1) -> bytes: ...

    async def aclose(self) -> None: ...


class _FragmentDecoder:
    """Incremental UTF-8 decoding in front of a FragmentBuffer.

    A multi-byte character split across two reads is held back until its
    remaining bytes arrive.
    """

    def __init__(self) -> None:
        self._buffer = FragmentBuffer()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: bytes) -> list[str]:
        text = self._decoder.decode(data)
        if not text:
            return []
        return self._buffer.add_chunk(text)

    def finish(self) -> list[str]:
        fragments: list[str] = []
        tail = self._decoder.decode(b"", final=True)
        if tail:
            fragments.extend(self._buffer.add_chunk(tail))
        remainder = self._buffer.force_flush()
        if remainder:
            fragments.append(remainder)
        return fragments


async def stream_fragments(
    source: ByteSource, read_size: int = DEFAULT_READ_SIZE
) -> AsyncIterator[str]:
    """Yield safe fragments from *source* as soon as they become available.

    Each non-empty read goes through the buffer and every resulting fragment
    is yielded in order. At end of source the buffer is force-flushed and a
    non-empty remainder becomes the last fragment.

    Raises:
        SourceReadError: If a read fails. Fragments already yielded stay valid.
    """
    decoder = _FragmentDecoder()
    reads = 0
    while True:
        try:
            data = await source.read(read_size)
        except StreamError:
            raise
        except Exception as exc:
            logger.error("Read failed after %d reads: %s", reads, exc)
            raise SourceReadError(f"stream read failed: {exc}") from exc
        if not data:
            break
        reads += 1
        for fragment in decoder.feed(data):
            yield fragment

    logger.debug("Source exhausted after %d reads", reads)
    for fragment in decoder.finish():
        yield fragment


def iter_fragments(
    reader: BinaryIO, read_size: int = DEFAULT_READ_SIZE
) -> Iterator[str]:
    """Blocking counterpart of :func:`stream_fragments` for file objects."""
    decoder = _FragmentDecoder()
    while True:
        try:
            data = reader.read(read_size)
        except OSError as exc:
            raise SourceReadError(f"stream read failed: {exc}") from exc
        if not data:
            break
        yield from decoder.feed(data)
    yield from decoder.finish()
