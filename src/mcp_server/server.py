"""MCP protocol server and its HTTP transports.

The MCP SDK's low-level Server speaks the protocol. Its ``tools/list`` and
``tools/call`` handlers delegate to the ToolRegistry and ToolDispatcher, so
every call still goes through validation, normalization and audit.

Two SDK transports carry it, both mounted behind the TransportRouter:

- ``SseServerTransport``: ``GET /sse`` opens the stream, ``POST /sse/message``
  delivers messages to it
- ``StreamableHTTPSessionManager`` (stateless, JSON responses): ``POST /`` and
  ``POST /mcp``
"""

import json
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional
from urllib.parse import urlencode

from fastapi import FastAPI
from mcp import types
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from shared.logging import get_logger
from shared.models import ToolCallRequest
from mcp_server.auth import API_KEY_QUERY_PARAM
from mcp_server.dispatcher import ToolDispatcher
from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)

STREAM_PATH = "/sse"
MESSAGE_PATH = "/sse/message"
DIRECT_ROUTES = ("/", "/mcp")

_ENDPOINT_DATA_RE = re.compile(rb"data: [^\r\n]*session_id=[0-9a-f]+")


def build_server(
    registry: ToolRegistry,
    dispatcher: ToolDispatcher,
    name: str,
    version: str
) -> Server:
    """
    Build the MCP server over a populated registry.

    Args:
        registry: Frozen tool registry
        dispatcher: Dispatcher executing tool calls
        name: Server name reported in ``initialize``
        version: Server version reported in ``initialize``
    """
    server: Server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [types.Tool.model_validate(tool) for tool in registry.list_for_mcp()]

    # The dispatcher validates arguments so that failures come back as tool text
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        envelope = await dispatcher.dispatch(
            ToolCallRequest(tool_name=name, arguments=arguments)
        )
        return [types.TextContent(type="text", text=item.text) for item in envelope.content]

    return server


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not a valid JSON value")


def json_body_error(body: bytes) -> Optional[str]:
    """
    Check that a request body is strict JSON.

    Python's json module accepts ``NaN``, ``Infinity`` and ``-Infinity``;
    they are not JSON and are refused here.

    Returns:
        A description of the problem, or None for a well-formed body
    """
    try:
        json.loads(body, parse_constant=_reject_constant)
    except ValueError as e:
        return str(e)
    return None


def direct_parse_error(reason: str) -> Response:
    return JSONResponse(
        {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": types.PARSE_ERROR, "message": f"Parse error: {reason}"},
        },
        status_code=400,
    )


def stream_parse_error(reason: str) -> Response:
    return PlainTextResponse("Could not parse message", status_code=400)


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields an already-read body, then defers to the client."""
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def carry_query_key(send: Send, api_key: str) -> Send:
    """
    Append the query-string API key to the stream's ``endpoint`` event.

    A client that authenticated ``GET /sse`` with ``?api_key=`` can then
    post to the announced message URL as is.
    """
    suffix = ("&" + urlencode({API_KEY_QUERY_PARAM: api_key})).encode()
    pending = True

    async def wrapped(message: Message) -> None:
        nonlocal pending
        if pending and message["type"] == "http.response.body":
            body = message.get("body", b"")
            if b"event: endpoint" in body:
                pending = False
                body = _ENDPOINT_DATA_RE.sub(lambda m: m.group(0) + suffix, body, count=1)
                message = {**message, "body": body}
        await send(message)

    return wrapped


class AsgiEndpoint:
    """Route endpoint calling an ASGI callable directly."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)


class StrictJsonEndpoint(AsgiEndpoint):
    """Route endpoint refusing request bodies that are not strict JSON."""

    def __init__(self, app: ASGIApp, reject: Callable[[str], Response]) -> None:
        super().__init__(app)
        self.reject = reject

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        body = await _read_body(receive)
        error = json_body_error(body)
        if error is not None:
            logger.info("Malformed message rejected", path=scope["path"], error=error)
            await self.reject(error)(scope, receive, send)
            return

        await self.app(scope, _replay(body, receive), send)


class McpTransports:
    """
    The SDK transports serving one MCP server.

    The streamable HTTP manager owns a task group, so run() must be entered
    for the application's lifetime before direct requests are served.
    """

    def __init__(self, server: Server) -> None:
        self.server = server
        self.sse = SseServerTransport(MESSAGE_PATH)
        self.http = StreamableHTTPSessionManager(
            app=server,
            json_response=True,
            stateless=True,
        )
        self.open_streams = 0

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        async with self.http.run():
            yield

    async def handle_stream(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve one SSE stream until the client disconnects."""
        api_key = Request(scope).query_params.get(API_KEY_QUERY_PARAM)
        if api_key:
            send = carry_query_key(send, api_key)

        self.open_streams += 1
        logger.info("Stream opened", open_streams=self.open_streams)
        try:
            async with self.sse.connect_sse(scope, receive, send) as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            self.open_streams -= 1
            logger.info("Stream closed", open_streams=self.open_streams)

    def mount(self, app: FastAPI) -> None:
        """Add the transport routes to the application."""
        app.add_route(STREAM_PATH, AsgiEndpoint(self.handle_stream), methods=["GET"])
        app.add_route(
            MESSAGE_PATH,
            StrictJsonEndpoint(self.sse.handle_post_message, stream_parse_error),
            methods=["POST"],
        )
        for path in DIRECT_ROUTES:
            app.add_route(
                path,
                StrictJsonEndpoint(self.http.handle_request, direct_parse_error),
                methods=["POST"],
            )
