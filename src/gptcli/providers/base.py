"""Provider abstraction: anything that can open a byte stream for a prompt."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable

from gptcli.core.errors import ConfigError
from gptcli.core.stream import ByteSource

# provider name -> (API key variable, base URL variable)
PROVIDER_ENV: dict[str, tuple[str, str]] = {
    "openai": ("OPENAI_API_KEY", "OPENAI_API_BASE"),
    "copilot": ("COPILOT_API_KEY", "COPILOT_API_BASE"),
    "gemini": ("GEMINI_API_KEY", "GEMINI_API_BASE"),
}

DEFAULT_BASE_URLS: dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai",
}


@dataclass
class ProviderOptions:
    """API credentials and endpoint for one provider."""

    api_key: str = ""
    base_url: str = ""

    def validate(self) -> None:
        """Raise ConfigError when a required field is missing."""
        if not self.api_key.strip():
            raise ConfigError("missing API key")


def build_provider_options(provider: str) -> ProviderOptions:
    """Read credentials for *provider* from the environment.

    Unknown providers get empty options.
    """
    names = PROVIDER_ENV.get(provider.lower())
    if names is None:
        return ProviderOptions()
    key_var, base_var = names
    return ProviderOptions(
        api_key=os.environ.get(key_var, ""),
        base_url=os.environ.get(base_var, ""),
    )


class TextChunkSource:
    """ByteSource over an async iterator of text deltas.

    SDK clients yield decoded content deltas; this re-encodes them so they
    travel through the same byte pipeline as a raw HTTP body would.
    """

    def __init__(
        self,
        chunks: AsyncIterator[str],
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._chunks = chunks
        self._on_close = on_close
        self._pending = b""
        self._exhausted = False
        self._closed = False

    async def read(self, size: int = -1) -> bytes:
        while not self._pending and not self._exhausted and not self._closed:
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                break
            if chunk:
                self._pending += chunk.encode("utf-8")

        if size < 0 or size >= len(self._pending):
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        return data

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending = b""
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._on_close is not None:
            await self._on_close()

    @property
    def closed(self) -> bool:
        return self._closed


class StreamAdapter(ABC):
    """Abstract base class for provider adapters.

    Adapters handle transport, authentication and the provider's wire
    format; the streaming pipeline only ever sees plain content bytes.
    """

    name: str = "provider"

    @abstractmethod
    async def open(self, prompt: str) -> ByteSource:
        """Start a streaming completion for *prompt*.

        The caller owns the returned source and must close it.

        Raises:
            SourceOpenError: If the stream could not be established.
            ProviderError: If the provider answered with an error status.
        """

    async def complete(self, prompt: str) -> str:
        """Return the full reply for *prompt*.

        The default implementation drains :meth:`open`; adapters with a
        cheaper single-shot call should override it.
        """
        source = await self.open(prompt)
        parts: list[bytes] = []
        try:
            while True:
                data = await source.read()
                if not data:
                    break
                parts.append(data)
        finally:
            await source.aclose()
        return b"".join(parts).decode("utf-8", errors="replace")
