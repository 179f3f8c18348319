"""Shared models, errors, configuration and logging for the MCP gateway."""

from shared.models import (
    ResponseEnvelope,
    TextContent,
    ToolCallContext,
    ToolCallRequest,
    ToolDefinition,
    ToolFailed,
    ToolOk,
    ToolOutcome,
)
from shared.config import Settings, load_settings
from shared.errors import (
    ArgumentValidationError,
    ConfigurationError,
    DuplicateToolError,
    GatewayError,
    ToolFailure,
    UnknownToolError,
)
from shared.logging import get_logger, setup_logging

__all__ = [
    "ResponseEnvelope",
    "TextContent",
    "ToolCallContext",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolFailed",
    "ToolOk",
    "ToolOutcome",
    "Settings",
    "load_settings",
    "ArgumentValidationError",
    "ConfigurationError",
    "DuplicateToolError",
    "GatewayError",
    "ToolFailure",
    "UnknownToolError",
    "get_logger",
    "setup_logging",
]
