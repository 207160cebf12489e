"""Chunk-safe streaming pipeline: buffering, source adaptation and relay."""

from __future__ import annotations

from gptcli.core.buffer import FENCE_MARKERS, FragmentBuffer
from gptcli.core.errors import (
    ConfigError,
    GptCliError,
    ProviderError,
    SourceOpenError,
    SourceReadError,
    StreamError,
    UnexpectedEndOfInput,
    format_provider_error,
)
from gptcli.core.runner import StreamSession, run_streaming
from gptcli.core.stream import ByteSource, iter_fragments, stream_fragments

__all__ = [
    "FENCE_MARKERS",
    "ByteSource",
    "ConfigError",
    "FragmentBuffer",
    "GptCliError",
    "ProviderError",
    "SourceOpenError",
    "SourceReadError",
    "StreamError",
    "StreamSession",
    "UnexpectedEndOfInput",
    "format_provider_error",
    "iter_fragments",
    "run_streaming",
    "stream_fragments",
]
