import asyncio
import socket
from contextlib import asynccontextmanager

import pytest

from dashdotcache.cache import Cache
from dashdotcache.executor import CommandExecutor
from dashdotcache.resp_api import RespServer


def _make_server() -> RespServer:
    return RespServer(CommandExecutor(Cache()))


@asynccontextmanager
async def _serving(resp_server: RespServer):
    server = await asyncio.start_server(resp_server.handle_connection, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        try:
            yield reader, writer
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_single_line_is_answered_with_pong():
    async with _serving(_make_server()) as (reader, writer):
        writer.write(b"PING\r\n")
        await writer.drain()
        reply = await asyncio.wait_for(reader.readline(), 5)
    assert reply == b"+PONG\r\n"


@pytest.mark.asyncio
async def test_each_line_gets_its_own_reply():
    async with _serving(_make_server()) as (reader, writer):
        writer.write(b"GET a\r\nSET a b\r\nDEL a\r\n")
        await writer.drain()
        replies = [await asyncio.wait_for(reader.readline(), 5) for _ in range(3)]
    assert replies == [b"+PONG\r\n"] * 3


@pytest.mark.asyncio
async def test_partial_line_at_end_of_input_is_answered_then_closed():
    async with _serving(_make_server()) as (reader, writer):
        writer.write(b"unterminated")
        writer.write_eof()
        await writer.drain()
        data = await asyncio.wait_for(reader.read(), 5)
    assert data == b"+PONG\r\n"


@pytest.mark.asyncio
async def test_client_closing_without_data_gets_nothing():
    async with _serving(_make_server()) as (reader, writer):
        writer.write_eof()
        data = await asyncio.wait_for(reader.read(), 5)
    assert data == b""


@pytest.mark.asyncio
async def test_lines_do_not_touch_the_cache():
    resp_server = _make_server()
    async with _serving(resp_server) as (reader, writer):
        writer.write(b"SET key value\r\n")
        await writer.drain()
        reply = await asyncio.wait_for(reader.readline(), 5)
    assert reply == b"+PONG\r\n"
    assert len(resp_server.executor.cache) == 0
    assert resp_server.executor.cache.stats.sets == 0


@pytest.mark.asyncio
async def test_run_fails_when_port_is_taken():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]
        with pytest.raises(OSError):
            await asyncio.wait_for(_make_server().run("127.0.0.1", port), 5)