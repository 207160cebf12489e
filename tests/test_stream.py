"""Tests for driving byte sources through the fragment buffer."""

import io

import pytest

from gptcli.core.errors import SourceReadError
from gptcli.core.stream import DEFAULT_READ_SIZE, iter_fragments, stream_fragments


async def collect(source, read_size=DEFAULT_READ_SIZE):
    return [fragment async for fragment in stream_fragments(source, read_size)]


def chop(data, size):
    return [data[i : i + size] for i in range(0, len(data), size)]


class TestStreamFragments:
    @pytest.mark.asyncio
    async def test_lines_in_order(self, make_source):
        source = make_source([b"first\nsec", b"ond\nthird"])
        assert await collect(source) == ["first\n", "second\n", "third"]

    @pytest.mark.asyncio
    async def test_reads_use_requested_size(self, make_source):
        source = make_source([b"a\n"])
        await collect(source, read_size=16)
        assert source.read_sizes == [16, 16]

    @pytest.mark.asyncio
    async def test_many_lines_in_tiny_reads(self, make_source):
        """10,000 lines read 8 bytes at a time all arrive, in order, intact."""
        lines = [f"line {i}\n" for i in range(10_000)]
        data = "".join(lines).encode()
        fragments = await collect(make_source(chop(data, 8)), read_size=8)
        assert fragments == lines

    @pytest.mark.asyncio
    async def test_unclosed_fence_flushed_at_end(self, make_source):
        source = make_source([b"text\n```py\nx = 1\n"])
        assert await collect(source) == ["text\n", "```py\nx = 1\n"]

    @pytest.mark.asyncio
    async def test_multibyte_character_split_across_reads(self, make_source):
        data = "héllo wörld ✓\n".encode()
        fragments = await collect(make_source(chop(data, 1)))
        assert fragments == ["héllo wörld ✓\n"]

    @pytest.mark.asyncio
    async def test_empty_source(self, make_source):
        assert await collect(make_source([])) == []

    @pytest.mark.asyncio
    async def test_read_error_after_fragments(self, make_source):
        """Fragments before the failure are delivered, then SourceReadError."""
        source = make_source([b"ok\n", ConnectionResetError("reset")])
        received = []
        with pytest.raises(SourceReadError, match="reset"):
            async for fragment in stream_fragments(source):
                received.append(fragment)
        assert received == ["ok\n"]


class TestIterFragments:
    def test_file_object(self):
        reader = io.BytesIO(b"# Title\n\n```\ncode\n```\nend")
        assert list(iter_fragments(reader, read_size=3)) == [
            "# Title\n",
            "\n",
            "```\ncode\n```",
            "\n",
            "end",
        ]

    def test_os_error_becomes_read_error(self):
        class BrokenReader:
            def read(self, size=-1):
                raise OSError("disk gone")

        with pytest.raises(SourceReadError):
            list(iter_fragments(BrokenReader()))
