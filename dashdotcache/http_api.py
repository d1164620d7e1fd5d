"""HTTP front end: exposes cache commands as JSON and plain-text endpoints."""

from __future__ import annotations

import json
import re
from dataclasses import asdict
from typing import Any, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from dashdotcache.cache import SetOptions
from dashdotcache.executor import (
    CommandExecutor,
    CommandResponse,
    Del,
    Exists,
    Expire,
    FlushAll,
    Get,
    GetChildren,
    GetInfo,
    ListKeys,
    Persist,
    Ping,
    ResponseKind,
    Set,
    SetParent,
    TtlQuery,
)

_U64_MAX = 2**64 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")
_DASHBOARD_TEXT = "Dashboard is not available yet"


class ApiError(Exception):
    """An error answered to the client with a status code and a plain-text message."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(404, message)

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(400, message)

    @classmethod
    def internal(cls, message: str) -> "ApiError":
        return cls(500, message)


def _key_not_found() -> ApiError:
    return ApiError.not_found("Key not found")


def _unexpected(response: CommandResponse) -> ApiError:
    if response.kind is ResponseKind.ERROR:
        return ApiError.bad_request(response.data)
    return ApiError.internal("Unexpected response")


def _invalid_body(detail: str) -> ApiError:
    return ApiError(
        422, f"Failed to deserialize the JSON body into the target type: {detail}"
    )


async def _json_body(request: Request) -> Any:
    """Read the body as JSON, insisting on a JSON content type."""
    content_type = request.headers.get("content-type", "")
    mime = content_type.split(";", 1)[0].strip().lower()
    is_json = mime == "application/json" or (
        mime.startswith("application/") and mime.endswith("+json")
    )
    if not is_json:
        raise ApiError(415, "Expected request with `Content-Type: application/json`")
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ApiError.bad_request(
            f"Failed to parse the request body as JSON: {exc}"
        ) from exc


def _object(body: Any) -> dict:
    if not isinstance(body, dict):
        raise _invalid_body("invalid type: expected a JSON object")
    return body


def _is_u64(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= _U64_MAX
    )


def _required_u64(body: dict, name: str) -> int:
    if name not in body:
        raise _invalid_body(f"missing field `{name}`")
    value = body[name]
    if not _is_u64(value):
        raise _invalid_body(f"`{name}` must be an unsigned integer")
    return value


def _optional_u64(body: dict, name: str) -> Optional[int]:
    value = body.get(name)
    if value is None:
        return None
    if not _is_u64(value):
        raise _invalid_body(f"`{name}` must be an unsigned integer")
    return value


def _required_str(body: dict, name: str) -> str:
    if name not in body:
        raise _invalid_body(f"missing field `{name}`")
    value = body[name]
    if not isinstance(value, str):
        raise _invalid_body(f"`{name}` must be a string")
    return value


def _optional_str(body: dict, name: str) -> Optional[str]:
    value = body.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _invalid_body(f"`{name}` must be a string")
    return value


def _flag(body: dict, name: str) -> bool:
    value = body.get(name, False)
    if not isinstance(value, bool):
        raise _invalid_body(f"`{name}` must be a boolean")
    return value


def _str_list(body: dict, name: str) -> list[str]:
    if name not in body:
        raise _invalid_body(f"missing field `{name}`")
    value = body[name]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _invalid_body(f"`{name}` must be a list of strings")
    return value


def _query_u64(raw: Optional[str], name: str) -> Optional[int]:
    if raw is None:
        return None
    if not _UNSIGNED.fullmatch(raw) or int(raw) > _U64_MAX:
        raise ApiError.bad_request(
            f"Failed to deserialize query string: `{name}` is not an unsigned integer"
        )
    return int(raw)


def create_app(executor: CommandExecutor) -> Starlette:
    """Build the web application that serves ``executor``."""

    def run(command: Any) -> CommandResponse:
        return executor.execute(command)

    async def get_metrics(request: Request) -> Response:
        return PlainTextResponse(executor.cache.stats.render())

    async def get_dashboard(request: Request) -> Response:
        return PlainTextResponse(_DASHBOARD_TEXT)

    async def get_key(request: Request) -> Response:
        response = run(Get(request.path_params["key"]))
        if response.kind is ResponseKind.VALUE:
            return JSONResponse(response.data)
        if response.kind is ResponseKind.NULL:
            raise _key_not_found()
        raise _unexpected(response)

    async def set_key(request: Request) -> Response:
        body = _object(await _json_body(request))
        value = _required_str(body, "value")
        ttl = _optional_u64(body, "ttl")
        options = SetOptions(
            ttl=None if ttl is None else float(ttl),
            parent=_optional_str(body, "parent"),
            nx=_flag(body, "nx"),
            xx=_flag(body, "xx"),
        )
        response = run(Set(request.path_params["key"], value, options))
        if response.kind is ResponseKind.OK:
            return PlainTextResponse("OK")
        if response.kind is ResponseKind.NULL:
            return PlainTextResponse("Key unchanged")
        raise _unexpected(response)

    async def delete_key(request: Request) -> Response:
        response = run(Del([request.path_params["key"]]))
        if response.kind is ResponseKind.INTEGER:
            if response.data == 0:
                raise _key_not_found()
            return PlainTextResponse(f"Deleted {response.data} key(s)")
        raise _unexpected(response)

    async def get_ttl(request: Request) -> Response:
        response = run(TtlQuery(request.path_params["key"]))
        if response.kind is ResponseKind.INTEGER:
            if response.data == -2:
                raise _key_not_found()
            return JSONResponse(response.data)
        raise _unexpected(response)

    async def get_key_info(request: Request) -> Response:
        response = run(GetInfo(request.path_params["key"]))
        if response.kind is ResponseKind.KEY_INFO:
            return JSONResponse(asdict(response.data))
        raise _unexpected(response)

    async def set_expire(request: Request) -> Response:
        body = _object(await _json_body(request))
        seconds = _required_u64(body, "seconds")
        response = run(Expire(request.path_params["key"], seconds))
        if response.kind is ResponseKind.INTEGER:
            if response.data == 1:
                return PlainTextResponse("Expiry set")
            if response.data == 0:
                raise _key_not_found()
        raise _unexpected(response)

    async def persist_key(request: Request) -> Response:
        response = run(Persist(request.path_params["key"]))
        if response.kind is ResponseKind.INTEGER:
            if response.data == 1:
                return PlainTextResponse("Key persisted")
            if response.data == 0:
                raise _key_not_found()
        raise _unexpected(response)

    async def set_parent(request: Request) -> Response:
        body = _object(await _json_body(request))
        parent = _required_str(body, "parent")
        response = run(SetParent(request.path_params["key"], parent))
        if response.kind is ResponseKind.INTEGER:
            if response.data == 1:
                return PlainTextResponse("Parent set")
            if response.data == 0:
                raise _key_not_found()
        raise _unexpected(response)

    async def get_children(request: Request) -> Response:
        body = _object(await _json_body(request))
        depth = _optional_u64(body, "depth")
        response = run(GetChildren(request.path_params["key"], depth))
        if response.kind is ResponseKind.ARRAY_WITH_DEPTH:
            return JSONResponse([key for key, _ in response.data])
        raise _unexpected(response)

    async def list_keys(request: Request) -> Response:
        pattern = request.query_params.get("pattern", "*")
        limit = _query_u64(request.query_params.get("limit"), "limit")
        response = run(ListKeys(pattern, limit))
        if response.kind is ResponseKind.ARRAY:
            return JSONResponse(response.data)
        raise _unexpected(response)

    async def delete_multiple(request: Request) -> Response:
        body = _object(await _json_body(request))
        response = run(Del(_str_list(body, "keys")))
        if response.kind is ResponseKind.INTEGER:
            return PlainTextResponse(f"Deleted {response.data} key(s)")
        raise _unexpected(response)

    async def check_exists(request: Request) -> Response:
        body = _object(await _json_body(request))
        response = run(Exists(_str_list(body, "keys")))
        if response.kind is ResponseKind.INTEGER:
            return JSONResponse(response.data)
        raise _unexpected(response)

    async def ping(request: Request) -> Response:
        body = await _json_body(request)
        message = None if body is None else _optional_str(_object(body), "message")
        response = run(Ping(message))
        if response.kind is ResponseKind.VALUE:
            return PlainTextResponse(response.data)
        raise _unexpected(response)

    async def flush_all(request: Request) -> Response:
        response = run(FlushAll())
        if response.kind is ResponseKind.OK:
            return PlainTextResponse("All keys flushed")
        raise _unexpected(response)

    async def handle_api_error(request: Request, exc: Exception) -> Response:
        assert isinstance(exc, ApiError)
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    routes = [
        Route("/metrics", get_metrics, methods=["GET"]),
        Route("/dash", get_dashboard, methods=["GET"]),
        Route("/keys/exists", check_exists, methods=["POST"]),
        Route("/keys", list_keys, methods=["GET"]),
        Route("/keys", delete_multiple, methods=["DELETE"]),
        Route("/keys/{key}/ttl", get_ttl, methods=["GET"]),
        Route("/keys/{key}/info", get_key_info, methods=["GET"]),
        Route("/keys/{key}/expire", set_expire, methods=["POST"]),
        Route("/keys/{key}/persist", persist_key, methods=["POST"]),
        Route("/keys/{key}/parent", set_parent, methods=["POST"]),
        Route("/keys/{key}/children", get_children, methods=["GET"]),
        Route("/keys/{key}", get_key, methods=["GET"]),
        Route("/keys/{key}", set_key, methods=["POST"]),
        Route("/keys/{key}", delete_key, methods=["DELETE"]),
        Route("/ping", ping, methods=["POST"]),
        Route("/flush", flush_all, methods=["POST"]),
    ]
    return Starlette(routes=routes, exception_handlers={ApiError: handle_api_error})


async def run(
    executor: CommandExecutor, host: str = "127.0.0.1", port: int = 8080
) -> None:
    """Serve the HTTP API on ``host``:``port`` until stopped."""
    config = uvicorn.Config(create_app(executor), host=host, port=port)
    await uvicorn.Server(config).serve()