"""MCP Server - tool registry, dispatch, authentication and transports.

The MCP Server is the authoritative component for tool execution. It
registers tools, authenticates requests, routes them to a transport and
normalizes every tool outcome into a response envelope.
"""

from mcp_server.registry import ToolRegistry
from mcp_server.dispatcher import ToolDispatcher
from mcp_server.auth import ApiKeyGate, extract_credential
from mcp_server.audit import AuditLogger
from mcp_server.normalizer import normalize
from mcp_server.transport import Transport, TransportRouter, classify
from mcp_server.server import McpTransports, build_server

__all__ = [
    "ToolRegistry",
    "ToolDispatcher",
    "ApiKeyGate",
    "extract_credential",
    "AuditLogger",
    "normalize",
    "Transport",
    "TransportRouter",
    "classify",
    "McpTransports",
    "build_server",
]
