"""Shared fixtures for gpt-cli tests."""

import asyncio

import pytest

from gptcli.providers.base import StreamAdapter

_ENV_VARS = (
    "GPT_CLI_PROVIDER",
    "GPT_CLI_MODEL",
    "GPT_CLI_TEMPERATURE",
    "GPT_CLI_SYSTEM",
    "GPT_CLI_VERBOSE",
    "GPT_CLI_MARKDOWN",
    "OPENAI_API_KEY",
    "OPENAI_API_BASE",
    "COPILOT_API_KEY",
    "COPILOT_API_BASE",
    "GEMINI_API_KEY",
    "GEMINI_API_BASE",
)


class ScriptedSource:
    """ByteSource that returns preset reads, then end of input.

    An exception in the script is raised from the read that reaches it.
    """

    def __init__(self, reads, close_error=None):
        self._reads = list(reads)
        self._close_error = close_error
        self.read_sizes = []
        self.closed = False

    async def read(self, size=-1):
        self.read_sizes.append(size)
        if not self._reads:
            return b""
        item = self._reads.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self):
        self.closed = True
        if self._close_error is not None:
            raise self._close_error


class BlockingSource:
    """ByteSource that returns one read and then never returns again."""

    def __init__(self, first=b"hello\n"):
        self._first = first
        self.blocked = asyncio.Event()
        self.closed = False

    async def read(self, size=-1):
        if self._first is not None:
            data, self._first = self._first, None
            return data
        self.blocked.set()
        await asyncio.sleep(3600)
        return b""

    async def aclose(self):
        self.closed = True


class FakeAdapter(StreamAdapter):
    """Adapter handing out a prepared source, or failing to open."""

    name = "fake"

    def __init__(self, source=None, error=None):
        self.source = source
        self.error = error
        self.prompts = []

    async def open(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.source


@pytest.fixture
def make_source():
    """Build a ScriptedSource from a list of byte strings or exceptions."""
    return ScriptedSource


@pytest.fixture
def blocking_source():
    return BlockingSource()


@pytest.fixture
def make_adapter():
    """Build a FakeAdapter around a source or an open() failure."""
    return FakeAdapter


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the configuration layer reads."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def tmp_config_dir(tmp_path, monkeypatch, clean_env):
    """Point XDG_CONFIG_HOME at a temporary directory and return gpt-cli's dir."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    config_dir = tmp_path / "config" / "gpt-cli"
    config_dir.mkdir(parents=True)
    return config_dir
