"""Tool Registry for the MCP gateway.

Holds tool definitions by exact name. The registry is populated once when
the application is built and frozen before serving; lookups are read-only
and safe to share across concurrent requests.
"""

from typing import Any, Iterator, Optional

from jsonschema.exceptions import SchemaError

from shared.errors import DuplicateToolError, UnknownToolError
from shared.logging import get_logger
from shared.models import ToolDefinition
from shared.schema import check_schema

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for all tools.

    Responsibilities:
    - Register tools with a validated input schema
    - Resolve tools by exact, case-sensitive name
    - Render the MCP tools/list payload
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._frozen = False

    def register(self, tool: ToolDefinition) -> None:
        """
        Register a tool in the registry.

        Args:
            tool: Tool definition to register

        Raises:
            DuplicateToolError: If the tool name is already registered
            ValueError: If the input schema is not a valid JSON Schema
            RuntimeError: If the registry has been frozen
        """
        if self._frozen:
            raise RuntimeError("Tool registry is frozen")

        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)

        try:
            check_schema(tool.input_schema)
        except SchemaError as e:
            raise ValueError(f"Tool '{tool.name}' has an invalid input schema: {e.message}") from e

        self._tools[tool.name] = tool

        logger.info(
            "Tool registered",
            tool=tool.name,
            uses_resource=tool.resource_factory is not None
        )

    def register_many(self, tools: list[ToolDefinition]) -> None:
        """Register multiple tools at once."""
        for tool in tools:
            self.register(tool)

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, tool_name: str) -> Optional[ToolDefinition]:
        """
        Get a tool by its name.

        Returns:
            ToolDefinition if found, None otherwise
        """
        return self._tools.get(tool_name)

    def resolve(self, tool_name: str) -> ToolDefinition:
        """
        Resolve a tool by its name.

        Raises:
            UnknownToolError: If no tool is registered under the name
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            raise UnknownToolError(tool_name)
        return tool

    def list_for_mcp(self) -> list[dict[str, Any]]:
        """Get tool definitions formatted for an MCP tools/list result."""
        return [tool.to_mcp() for tool in self._tools.values()]

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)
