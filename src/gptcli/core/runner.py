"""One streaming request end-to-end, with cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from gptcli.core.errors import (
    GptCliError,
    SourceOpenError,
    StreamError,
    UnexpectedEndOfInput,
)
from gptcli.core.stream import DEFAULT_READ_SIZE, stream_fragments

if TYPE_CHECKING:
    from gptcli.core.stream import ByteSource
    from gptcli.providers.base import StreamAdapter

logger = logging.getLogger(__name__)


class StreamSession:
    """Relay between a single worker task and the consuming loop.

    Fragments are handed over one at a time: the worker does not read further
    from the source until the consumer has taken the previous fragment, so a
    slow consumer throttles the network reads. At most one terminal error is
    recorded in :attr:`error`.

    Iterate with ``async for``; the iteration ends when the source is
    exhausted, an error occurs, or the session is cancelled. Using the session
    as an async context manager cancels the worker on exit.
    """

    def __init__(
        self,
        adapter: StreamAdapter | None,
        prompt: str,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        self._finished = asyncio.Event()
        self._error: BaseException | None = None
        self._task = asyncio.create_task(self._run(adapter, prompt, read_size))
        # A task cancelled before its first step never runs its finally block.
        self._task.add_done_callback(lambda _: self._finished.set())

    async def _run(
        self, adapter: StreamAdapter | None, prompt: str, read_size: int
    ) -> None:
        try:
            if adapter is None:
                raise UnexpectedEndOfInput()

            logger.debug("Opening stream for prompt (%d chars)", len(prompt))
            try:
                source = await adapter.open(prompt)
            except GptCliError:
                raise
            except Exception as exc:
                raise SourceOpenError(f"could not open stream: {exc}") from exc

            count = 0
            try:
                async for fragment in stream_fragments(source, read_size):
                    await self._queue.put(fragment)
                    await self._queue.join()
                    count += 1
            finally:
                await self._close(source)
            logger.debug("Stream complete (%d fragments)", count)
        except asyncio.CancelledError:
            logger.debug("Stream cancelled")
            raise
        except GptCliError as exc:
            logger.error("Stream failed: %s", exc)
            self._error = exc
        except Exception as exc:
            logger.error("Stream failed: %s", exc)
            error = StreamError(f"stream failed: {exc}")
            error.__cause__ = exc
            self._error = error
        finally:
            self._finished.set()

    async def _close(self, source: ByteSource) -> None:
        try:
            await source.aclose()
        except Exception as exc:
            # Never replaces the terminal error.
            logger.warning("Closing stream source failed: %s", exc)

    @property
    def error(self) -> BaseException | None:
        """The terminal error, if the stream ended abnormally."""
        return self._error

    @property
    def done(self) -> bool:
        """True once the worker has exited."""
        return self._finished.is_set()

    @property
    def cancelled(self) -> bool:
        """True if the worker was stopped by :meth:`cancel`."""
        return self._task.done() and self._task.cancelled()

    def cancel(self) -> None:
        """Stop the worker at its next suspension point."""
        self._task.cancel()

    async def wait(self) -> BaseException | None:
        """Wait for the worker to exit and return the terminal error, if any."""
        await self._finished.wait()
        return self._error

    def __aiter__(self) -> StreamSession:
        return self

    async def __anext__(self) -> str:
        while True:
            if not self._queue.empty():
                fragment = self._queue.get_nowait()
                self._queue.task_done()
                return fragment
            if self._finished.is_set():
                raise StopAsyncIteration

            getter = asyncio.ensure_future(self._queue.get())
            finished = asyncio.ensure_future(self._finished.wait())
            try:
                done, _ = await asyncio.wait(
                    {getter, finished}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                for waiter in (getter, finished):
                    if not waiter.done():
                        waiter.cancel()

            if getter in done:
                self._queue.task_done()
                return getter.result()

    async def __aenter__(self) -> StreamSession:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cancel()
        await self._finished.wait()


def run_streaming(
    adapter: StreamAdapter | None,
    prompt: str,
    read_size: int = DEFAULT_READ_SIZE,
) -> StreamSession:
    """Start streaming *prompt* through *adapter* and return the live session.

    Must be called from a running event loop; the worker starts immediately.
    """
    return StreamSession(adapter, prompt, read_size)
