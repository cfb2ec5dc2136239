"""Tests for incremental HTTP framing: head parsing and body accounting."""

from __future__ import annotations

import asyncio

import pytest

from toolbridge.http.parser import (
    BodyPhase,
    Connection,
    ConnectionClosedError,
    HeaderPhase,
    HttpParseError,
    ParsedRequest,
    content_length,
    parse_head,
    parse_header_line,
    read_body,
    read_head,
)


def _connection(*chunks: bytes, eof: bool = True, read_size: int = 65536) -> Connection:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return Connection(reader, read_size=read_size)


# ===========================================================================
# Header lines
# ===========================================================================


class TestHeaderLines:

    def test_basic(self):
        assert parse_header_line("Content-Type: application/json") == (
            "content-type",
            "application/json",
        )

    def test_splits_on_first_colon_only(self):
        assert parse_header_line("Host: localhost:3000") == ("host", "localhost:3000")

    def test_drops_only_one_leading_space(self):
        assert parse_header_line("X-Pad:   three") == ("x-pad", "  three")

    def test_no_space_after_colon(self):
        assert parse_header_line("X-Tight:value") == ("x-tight", "value")

    def test_trims_trailing_cr(self):
        assert parse_header_line("Content-Length: 12\r") == ("content-length", "12")

    def test_line_without_colon_ignored(self):
        assert parse_header_line("garbage line") is None


class TestParseHead:

    def test_request_line_and_headers(self):
        request = parse_head(
            b"POST /message HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"CONTENT-LENGTH: 2\r\n"
            b"no colon here"
        )
        assert request.method == "POST"
        assert request.path == "/message"
        assert request.http_version == "HTTP/1.1"
        assert request.headers == {"host": "localhost", "content-length": "2"}
        assert request.body is None

    def test_header_lookup_is_case_insensitive(self):
        request = parse_head(b"GET / HTTP/1.1\r\nX-Thing: 1")
        assert request.header("X-THING") == "1"
        assert request.header("missing", "d") == "d"

    def test_short_request_line(self):
        request = parse_head(b"GET")
        assert request.method == "GET"
        assert request.path == ""
        assert request.http_version == ""

    def test_route_path_strips_query(self):
        request = ParsedRequest(method="POST", path="/message?session=1", http_version="HTTP/1.1")
        assert request.route_path == "/message"


class TestContentLength:

    def _request(self, **headers):
        return ParsedRequest(method="POST", path="/", http_version="HTTP/1.1", headers=headers)

    def test_absent(self):
        assert content_length(self._request()) is None

    def test_present(self):
        assert content_length(self._request(**{"content-length": " 17 "})) == 17

    def test_zero(self):
        assert content_length(self._request(**{"content-length": "0"})) == 0

    @pytest.mark.parametrize("value", ["", "abc", "-5", "1.5", "²"])
    def test_invalid(self, value):
        with pytest.raises(HttpParseError):
            content_length(self._request(**{"content-length": value}))


# ===========================================================================
# Header phase
# ===========================================================================


class TestHeaderPhase:

    @pytest.mark.asyncio
    async def test_reads_head_and_keeps_surplus(self):
        conn = _connection(b"POST / HTTP/1.1\r\nContent-Length: 4\r\n\r\nbodyEXTRA")
        request = await read_head(conn)
        assert request.method == "POST"
        assert request.headers["content-length"] == "4"
        assert bytes(conn.buffer) == b"bodyEXTRA"

    @pytest.mark.asyncio
    async def test_terminator_split_across_chunks(self):
        conn = _connection(
            b"GET /sse HTTP/1.1\r\nHost: x\r",
            b"\n\r",
            b"\nleftover",
            read_size=3,
        )
        request = await read_head(conn)
        assert request.path == "/sse"
        assert request.headers == {"host": "x"}
        assert bytes(conn.buffer) + await conn.reader.read() == b"leftover"

    @pytest.mark.asyncio
    async def test_suspends_until_terminator_arrives(self):
        reader = asyncio.StreamReader()
        conn = Connection(reader)
        task = asyncio.ensure_future(read_head(conn))

        reader.feed_data(b"GET / HTTP/1.1\r\nHost: x\r\n")
        await asyncio.sleep(0.01)
        assert not task.done()

        reader.feed_data(b"\r\n")
        request = await asyncio.wait_for(task, timeout=1)
        assert request.method == "GET"

    @pytest.mark.asyncio
    async def test_eof_before_terminator(self):
        conn = _connection(b"GET / HTTP/1.1\r\nHost: x\r\n")
        with pytest.raises(ConnectionClosedError):
            await read_head(conn)

    @pytest.mark.asyncio
    async def test_oversized_head_rejected(self):
        conn = _connection(b"GET / HTTP/1.1\r\n" + b"X: " + b"a" * 200, eof=False)
        with pytest.raises(HttpParseError):
            await HeaderPhase(max_header_bytes=64).read(conn)


# ===========================================================================
# Body phase
# ===========================================================================


class TestBodyPhase:

    def test_take_buffered_never_overreads(self):
        buffer = bytearray(b"abcdefgh")
        phase = BodyPhase(bytes_remaining=5)
        assert phase.take_buffered(buffer) == b"abcde"
        assert phase.bytes_remaining == 0
        assert phase.done
        assert buffer == bytearray(b"fgh")

    def test_take_buffered_short_buffer(self):
        buffer = bytearray(b"abc")
        phase = BodyPhase(bytes_remaining=10)
        assert phase.take_buffered(buffer) == b"abc"
        assert phase.bytes_remaining == 7
        assert not phase.done
        assert buffer == bytearray()

    @pytest.mark.asyncio
    async def test_body_entirely_buffered(self):
        conn = _connection()
        conn.buffer.extend(b'{"a":1}tail')
        body = await read_body(conn, 7)
        assert body == b'{"a":1}'
        assert bytes(conn.buffer) == b"tail"

    @pytest.mark.asyncio
    async def test_body_partly_buffered_reads_exact_shortfall(self):
        conn = _connection(b"defgh", b"NEXT")
        conn.buffer.extend(b"abc")
        phase = BodyPhase(bytes_remaining=8)
        body = await phase.read(conn)
        assert body == b"abcdefgh"
        assert phase.done
        # The stream still holds exactly the bytes past the body.
        assert await conn.reader.read() == b"NEXT"

    @pytest.mark.asyncio
    async def test_body_waits_for_late_bytes(self):
        reader = asyncio.StreamReader()
        conn = Connection(reader)
        conn.buffer.extend(b"12")
        task = asyncio.ensure_future(read_body(conn, 5))

        await asyncio.sleep(0.01)
        assert not task.done()
        reader.feed_data(b"34")
        await asyncio.sleep(0.01)
        assert not task.done()
        reader.feed_data(b"5")

        assert await asyncio.wait_for(task, timeout=1) == b"12345"

    @pytest.mark.asyncio
    async def test_zero_length_body(self):
        conn = _connection()
        conn.buffer.extend(b"xyz")
        assert await read_body(conn, 0) == b""
        assert bytes(conn.buffer) == b"xyz"

    @pytest.mark.asyncio
    async def test_eof_during_body(self):
        conn = _connection(b"12")
        with pytest.raises(ConnectionClosedError):
            await read_body(conn, 5)

    @pytest.mark.asyncio
    async def test_head_then_body_over_small_reads(self):
        raw = b"POST /message HTTP/1.1\r\nContent-Length: 11\r\n\r\nhello worldSURPLUS"
        conn = _connection(raw, read_size=7)
        request = await read_head(conn)
        body = await read_body(conn, content_length(request))
        assert body == b"hello world"
        rest = bytes(conn.buffer) + await conn.reader.read()
        assert rest == b"SURPLUS"
