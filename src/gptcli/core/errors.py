"""Exception types raised by the streaming pipeline and its collaborators."""

from __future__ import annotations


class GptCliError(Exception):
    """Base class for all errors reported to the user."""


class ConfigError(GptCliError):
    """Invalid or incomplete configuration."""


class StreamError(GptCliError):
    """A streaming request ended abnormally."""


class SourceOpenError(StreamError):
    """The provider adapter could not establish a byte source."""


class SourceReadError(StreamError):
    """Reading from an open byte source failed mid-stream."""


class UnexpectedEndOfInput(StreamError):
    """No byte source could be produced at all (e.g. no adapter)."""

    def __init__(self, message: str = "unexpected end of input") -> None:
        super().__init__(message)


class ProviderError(GptCliError):
    """A provider answered with an error status."""

    def __init__(self, provider: str, status: int, body: str) -> None:
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"{provider} API returned status {status}: {body}")


def format_provider_error(provider: str, status: int, body: str) -> ProviderError:
    """Build the error reported when a provider returns a failure status."""
    return ProviderError(provider, status, body)
