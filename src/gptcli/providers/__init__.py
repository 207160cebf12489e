"""Provider adapters that open byte streams for prompts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gptcli.core.errors import ConfigError

from .base import (
    DEFAULT_BASE_URLS,
    PROVIDER_ENV,
    ProviderOptions,
    StreamAdapter,
    TextChunkSource,
    build_provider_options,
)
from .openai import OpenAICompatibleAdapter
from .simulated import SimulatedAdapter

if TYPE_CHECKING:
    from ..config import CliConfig

__all__ = [
    "DEFAULT_BASE_URLS",
    "PROVIDER_ENV",
    "OpenAICompatibleAdapter",
    "ProviderOptions",
    "SimulatedAdapter",
    "StreamAdapter",
    "TextChunkSource",
    "build_provider_options",
    "create_adapter",
]

logger = logging.getLogger(__name__)


def create_adapter(
    config: CliConfig,
    system_prompt: str | None = None,
    temperature: float | None = None,
) -> StreamAdapter:
    """Instantiate the adapter selected by ``config.provider``.

    ``system_prompt`` and ``temperature`` override the configured values
    for this adapter only.
    """
    provider = (config.provider or "").lower()
    logger.info("Creating adapter (provider=%s, model=%s)", provider, config.model)

    if provider == "simulated":
        return SimulatedAdapter()

    if provider not in PROVIDER_ENV:
        raise ConfigError(f"Unknown provider: {config.provider!r}")

    options = ProviderOptions(api_key=config.api_key or "", base_url=config.base_url or "")
    options.validate()
    if not options.base_url:
        options.base_url = DEFAULT_BASE_URLS.get(provider, "")
        if not options.base_url:
            raise ConfigError(f"Provider {provider!r} requires a base URL")

    return OpenAICompatibleAdapter(
        name=provider,
        model=config.model,
        api_key=options.api_key,
        base_url=options.base_url,
        system_prompt=system_prompt if system_prompt is not None else config.system,
        temperature=temperature if temperature is not None else config.temperature,
    )
