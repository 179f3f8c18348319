"""Error taxonomy for the MCP gateway.

Configuration errors are fatal and raised before serving. Registry and
validation errors are per-call and end up as text in a response envelope.
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""
    pass


class ConfigurationError(GatewayError):
    """Required configuration is missing or invalid."""
    pass


class DuplicateToolError(GatewayError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class UnknownToolError(GatewayError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' not found")


class ArgumentValidationError(GatewayError):
    """Tool arguments do not satisfy the tool's input schema."""

    def __init__(self, field: Optional[str], reason: str, tool_name: Optional[str] = None) -> None:
        self.field = field
        self.reason = reason
        self.tool_name = tool_name
        super().__init__(self._format())

    def _format(self) -> str:
        detail = f"{self.field}: {self.reason}" if self.field else self.reason
        if self.tool_name:
            return f"Invalid arguments for tool '{self.tool_name}': {detail}"
        return f"Invalid arguments: {detail}"

    def for_tool(self, tool_name: str) -> "ArgumentValidationError":
        """Return a copy of this error attributed to a tool."""
        return ArgumentValidationError(self.field, self.reason, tool_name=tool_name)


class ToolFailure(GatewayError):
    """
    Business-level failure raised from inside a handler.

    The message is shown to the caller verbatim, without the
    "Error <context>:" prefix used for unexpected faults.
    """
    pass
