"""MCP Client for the gateway's direct transport.

Speaks MCP streamable HTTP with JSON responses over ``POST /mcp``, using
the shared API key. Handles authentication, request framing and error
mapping.
"""

import itertools
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shared.logging import get_logger
from shared.models import ResponseEnvelope

logger = get_logger(__name__)

CLIENT_PROTOCOL_VERSION = "2025-03-26"
SESSION_HEADER = "Mcp-Session-Id"
PROTOCOL_VERSION_HEADER = "MCP-Protocol-Version"


class MCPClientError(Exception):
    """Base exception for MCP Client errors."""
    pass


class MCPConnectionError(MCPClientError):
    """Connection to MCP Server failed."""
    pass


class MCPAuthError(MCPClientError):
    """Authentication failed."""
    pass


class MCPProtocolError(MCPClientError):
    """The server answered with a JSON-RPC error."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(f"{message} (code {code})")


class MCPClient:
    """
    Client for the MCP gateway.

    Provides methods for:
    - Initializing a session
    - Listing tools
    - Calling tools

    Use as an async context manager, or call close() when done.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8787",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        endpoint: str = "/mcp",
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize MCP Client.

        Args:
            server_url: Gateway base URL
            api_key: Shared API key, sent as a bearer token
            timeout: Request timeout in seconds
            endpoint: Path of the direct JSON-RPC endpoint
            transport: Optional httpx transport (e.g. for in-process testing)
        """
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.endpoint = endpoint
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)
        self._session_headers: dict[str, str] = {}

    def _get_headers(self) -> dict[str, str]:
        """Get request headers including authentication."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.server_url,
                timeout=self.timeout,
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
        self._session_headers.clear()

    async def __aenter__(self) -> "MCPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _post(self, payload: dict[str, Any]) -> Optional[dict[str, Any]]:
        try:
            client = await self._get_client()
            response = await client.post(self.endpoint, json=payload, headers=self._session_headers)
        except httpx.ConnectError as e:
            raise MCPConnectionError(f"Cannot connect to MCP Server: {e}")

        if response.status_code == 401:
            raise MCPAuthError(response.text or "Authentication required")
        if response.status_code == 202:
            return None

        session_id = response.headers.get(SESSION_HEADER)
        if session_id:
            self._session_headers[SESSION_HEADER] = session_id

        # Framing errors come back as 4xx with a JSON-RPC error body
        if response.headers.get("content-type", "").startswith("application/json"):
            data = response.json()
            if response.is_success or (isinstance(data, dict) and "error" in data):
                return data

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MCPClientError(f"Request failed: {e}")

        raise MCPClientError(
            f"Unexpected response content type: {response.headers.get('content-type')}"
        )

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Send a JSON-RPC request and return its result.

        Raises:
            MCPConnectionError: If server is unreachable
            MCPAuthError: If the API key is rejected
            MCPProtocolError: If the server returns a JSON-RPC error
        """
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            payload["params"] = params

        data = await self._post(payload)
        if data is None:
            raise MCPClientError(f"No response to {method}")
        if "error" in data:
            error = data["error"] or {}
            raise MCPProtocolError(error.get("code", 0), error.get("message", "Unknown error"))
        return data.get("result")

    async def notify(self, method: str, params: Optional[dict[str, Any]] = None) -> None:
        """Send a JSON-RPC notification."""
        payload: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        await self._post(payload)

    @retry(
        retry=retry_if_exception_type(MCPConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True
    )
    async def ping(self) -> bool:
        """Check the server is reachable and the key is accepted."""
        await self.request("ping")
        return True

    async def initialize(self, client_name: str = "mcp-client", client_version: str = "1.0.0") -> dict[str, Any]:
        """
        Perform the MCP initialize handshake.

        Returns:
            The server's initialize result (protocol version, server info)
        """
        result = await self.request("initialize", {
            "protocolVersion": CLIENT_PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {"name": client_name, "version": client_version},
        })
        version = (result or {}).get("protocolVersion")
        if version:
            self._session_headers[PROTOCOL_VERSION_HEADER] = version
        await self.notify("notifications/initialized")
        return result

    async def list_tools(self) -> list[dict[str, Any]]:
        """List available tools."""
        result = await self.request("tools/list")
        return (result or {}).get("tools", [])

    async def call_tool(self, name: str, arguments: Optional[dict[str, Any]] = None) -> ResponseEnvelope:
        """
        Call a tool.

        Tool failures are not raised; they come back as envelope text.
        """
        logger.debug("Calling tool", tool=name)
        result = await self.request("tools/call", {"name": name, "arguments": arguments or {}})
        return ResponseEnvelope.model_validate(result or {})
