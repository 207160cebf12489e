"""OpenAI-compatible provider adapter (OpenAI, Copilot gateways, Gemini)."""

from __future__ import annotations

import logging
from typing import AsyncIterator

import openai
from openai import AsyncOpenAI

from gptcli.core.errors import SourceOpenError, format_provider_error
from gptcli.core.stream import ByteSource

from .base import StreamAdapter, TextChunkSource

logger = logging.getLogger(__name__)


class OpenAICompatibleAdapter(StreamAdapter):
    """Adapter for any endpoint speaking the OpenAI chat-completions API.

    The SDK decodes the event-stream framing; only the content deltas are
    forwarded into the byte source.
    """

    def __init__(
        self,
        name: str,
        model: str,
        api_key: str,
        base_url: str | None = None,
        system_prompt: str | None = None,
        temperature: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            name: Provider name used in log lines and error messages.
            model: Model identifier.
            api_key: API key for authentication.
            base_url: Base URL of the endpoint; the SDK default when empty.
            system_prompt: Optional system message sent before every prompt.
            temperature: Optional sampling temperature.
            client: Pre-built client, mainly for tests.
        """
        self.name = name
        self.model = model
        self.api_key = api_key
        self.base_url = base_url or None
        self.system_prompt = system_prompt
        self.temperature = temperature
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        """Lazy client initialization."""
        if self._client is None:
            self._client = AsyncOpenAI(base_url=self.base_url, api_key=self.api_key)
        return self._client

    def _request_kwargs(self, prompt: str, stream: bool) -> dict:
        messages: list[dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict = dict(model=self.model, messages=messages, stream=stream)
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        return kwargs

    async def open(self, prompt: str) -> ByteSource:
        client = self._get_client()
        logger.info("Streaming from %s (model=%s)", self.name, self.model)
        try:
            stream = await client.chat.completions.create(
                **self._request_kwargs(prompt, stream=True)
            )
        except openai.APIStatusError as exc:
            logger.error("%s returned status %d", self.name, exc.status_code)
            raise format_provider_error(self.name, exc.status_code, exc.message) from exc
        except openai.OpenAIError as exc:
            logger.error("Could not reach %s: %s", self.name, exc)
            raise SourceOpenError(f"{self.name}: {exc}") from exc

        async def deltas() -> AsyncIterator[str]:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content

        return TextChunkSource(deltas(), on_close=stream.close)

    async def complete(self, prompt: str) -> str:
        client = self._get_client()
        logger.info("Requesting completion from %s (model=%s)", self.name, self.model)
        try:
            response = await client.chat.completions.create(
                **self._request_kwargs(prompt, stream=False)
            )
        except openai.APIStatusError as exc:
            logger.error("%s returned status %d", self.name, exc.status_code)
            raise format_provider_error(self.name, exc.status_code, exc.message) from exc
        except openai.OpenAIError as exc:
            logger.error("Could not reach %s: %s", self.name, exc)
            raise SourceOpenError(f"{self.name}: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
