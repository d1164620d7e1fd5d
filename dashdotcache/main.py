"""Command-line entry point: runs the HTTP and RESP front ends over one cache."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from dashdotcache import http_api
from dashdotcache.cache import Cache, Config
from dashdotcache.executor import CommandExecutor
from dashdotcache.resp_api import RespServer


def _report(name: str, task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        print(f"{name} server task error: cancelled", file=sys.stderr)
        return
    error = task.exception()
    if error is None:
        print(f"{name} server exited successfully")
    else:
        print(f"{name} server error: {error}", file=sys.stderr)


async def serve(
    executor: CommandExecutor,
    http_host: str = "127.0.0.1",
    http_port: int = 8080,
    resp_host: str = "127.0.0.1",
    resp_port: int = 6379,
) -> None:
    """Run both servers; return as soon as either of them stops."""

    async def run_http() -> None:
        print(f"Starting HTTP API server on http://{http_host}:{http_port}")
        await http_api.run(executor, http_host, http_port)

    async def run_resp() -> None:
        print(f"Starting RESP server on {resp_host}:{resp_port}")
        await RespServer(executor).run(resp_host, resp_port)

    tasks = {
        asyncio.ensure_future(run_http()): "HTTP",
        asyncio.ensure_future(run_resp()): "RESP",
    }
    try:
        done, pending = await asyncio.wait(
            tasks, return_when=asyncio.FIRST_COMPLETED
        )
        first = next(iter(done))
        _report(tasks[first], first)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dashdotcache",
        description="In-memory cache served over HTTP and a line-based TCP port.",
    )
    parser.add_argument("--http-host", default="127.0.0.1")
    parser.add_argument("--http-port", type=int, default=8080)
    parser.add_argument("--resp-host", default="127.0.0.1")
    parser.add_argument("--resp-port", type=int, default=6379)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the cache and both servers; return the exit status."""
    args = _parse_args(argv)
    print("Starting Dashdotcache!")

    executor = CommandExecutor(Cache(Config()))
    print(f"Cache initialized. Memory usage: {executor.cache.memory_usage()}")

    asyncio.run(
        serve(
            executor,
            http_host=args.http_host,
            http_port=args.http_port,
            resp_host=args.resp_host,
            resp_port=args.resp_port,
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())