"""MCP Client - calls the gateway's direct transport.

Used by scripts, services and tests that want to call tools over HTTP.
"""

from mcp_client.client import (
    MCPAuthError,
    MCPClient,
    MCPClientError,
    MCPConnectionError,
    MCPProtocolError,
)

__all__ = [
    "MCPClient",
    "MCPClientError",
    "MCPConnectionError",
    "MCPAuthError",
    "MCPProtocolError",
]
