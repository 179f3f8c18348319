"""Transport routing and authentication gate.

Every HTTP request passes through TransportRouter before reaching the
application routes. The request target selects the transport:

- ``/sse``, ``/sse/message``: streaming (HTTP+SSE) transport
- ``/``, ``/mcp``: direct JSON-RPC request/response transport
- anything else: 404, without consulting the gate

Both transports are protected by the API key gate.
"""

from enum import Enum
from typing import Optional

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from shared.errors import ConfigurationError
from shared.logging import get_logger
from mcp_server.auth import ApiKeyGate

logger = get_logger(__name__)

STREAMING_PATHS = frozenset({"/sse", "/sse/message"})
DIRECT_PATHS = frozenset({"/", "/mcp"})


class Transport(str, Enum):
    """Transport selected for a request target."""
    STREAMING = "streaming"
    DIRECT = "direct"
    UNMATCHED = "unmatched"


def classify(path: str) -> Transport:
    """Select the transport for a request path."""
    if path in STREAMING_PATHS:
        return Transport.STREAMING
    if path in DIRECT_PATHS:
        return Transport.DIRECT
    return Transport.UNMATCHED


class TransportRouter:
    """
    ASGI middleware selecting the transport and enforcing authentication.

    Rejections carry a ``WWW-Authenticate`` challenge. A wrong or missing key
    yields 401; a server without a configured key yields 500 so operators
    can tell misconfiguration from a bad client.
    """

    def __init__(self, app: ASGIApp, gate: ApiKeyGate, realm: str = "MCP Server") -> None:
        self.app = app
        self.gate = gate
        self.challenge = f'Bearer realm="{realm}"'

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response = self.route(Request(scope))
        if response is not None:
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

    def route(self, request: Request) -> Optional[Response]:
        """
        Decide what happens to a request.

        Returns:
            A rejection or not-found response, or None to hand the request
            to the selected transport
        """
        path = request.url.path
        transport = classify(path)

        if transport is Transport.UNMATCHED:
            return PlainTextResponse("Not found", status_code=404)

        try:
            authenticated = self.gate.authenticate(request)
        except ConfigurationError as e:
            logger.error("Authentication gate misconfigured", error=str(e))
            return self._reject(500, f"Server misconfigured: {e}")

        if not authenticated:
            logger.info("Request rejected", path=path, transport=transport.value)
            return self._reject(401, "Unauthorized: Invalid or missing API key")

        request.scope.setdefault("state", {})["transport"] = transport
        return None

    def _reject(self, status_code: int, message: str) -> Response:
        return PlainTextResponse(
            message,
            status_code=status_code,
            headers={"WWW-Authenticate": self.challenge},
        )
