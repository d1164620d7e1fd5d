"""Line-based TCP front end on the Redis port.

Every line a client sends is answered as a ping through the shared executor.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress

from dashdotcache.executor import CommandExecutor, Ping


class RespServer:
    """Accepts TCP clients and answers each line they send."""

    def __init__(self, executor: CommandExecutor) -> None:
        self.executor = executor

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Answer every line from one client until it disconnects."""
        try:
            while await reader.readline():
                response = self.executor.execute(Ping())
                writer.write(f"+{response.data}\r\n".encode("utf-8"))
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            writer.close()
            with suppress(ConnectionError):
                await writer.wait_closed()

    async def run(self, host: str = "127.0.0.1", port: int = 6379) -> None:
        """Listen on ``host``:``port`` and serve clients until cancelled."""
        server = await asyncio.start_server(self.handle_connection, host, port)
        async with server:
            await server.serve_forever()