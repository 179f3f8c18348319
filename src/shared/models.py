"""Core data models for the MCP gateway.

Tool definitions, call requests, handler outcomes and the response
envelope returned to every caller.
"""

import copy
import uuid
from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TextContent(BaseModel):
    """A single text content item."""
    type: Literal["text"] = "text"
    text: str


class ToolOk(BaseModel):
    """Successful handler outcome."""
    kind: Literal["ok"] = "ok"
    content: list[TextContent] = Field(default_factory=list)

    @classmethod
    def text(cls, text: str) -> "ToolOk":
        """Build an outcome holding one text item."""
        return cls(content=[TextContent(text=text)])


class ToolFailed(BaseModel):
    """Business-level failure reported by a handler."""
    kind: Literal["failed"] = "failed"
    message: str


ToolOutcome = Annotated[Union[ToolOk, ToolFailed], Field(discriminator="kind")]


class ResponseEnvelope(BaseModel):
    """
    Uniform response shape for every tool call.

    Failures are carried as the text of a content item, never as a
    different envelope shape.
    """
    content: list[TextContent] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> "ResponseEnvelope":
        return cls(content=[TextContent(text=text)])

    @property
    def text(self) -> str:
        """All text items joined by newlines."""
        return "\n".join(item.text for item in self.content)


class ToolDefinition(BaseModel):
    """
    Complete definition of a tool.

    Immutable once built. The handler receives the validated arguments and
    a ToolCallContext and returns a ToolOutcome (sync or async). When
    resource_factory is set, the dispatcher enters a fresh resource from it
    for every call and hands it to the handler via the context.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Exact, case-sensitive tool name")
    description: str = Field(default="")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for input validation"
    )
    handler: Callable[..., Any]
    error_context: Optional[str] = Field(
        default=None,
        description="Operation named in fault messages, formatted with the arguments"
    )
    resource_factory: Optional[Callable[[], Any]] = None

    @field_validator("input_schema")
    @classmethod
    def own_schema(cls, value: dict[str, Any]) -> dict[str, Any]:
        """Keep a private copy so the caller's dict cannot change the tool."""
        return copy.deepcopy(value)

    def to_mcp(self) -> dict[str, Any]:
        """Render the definition as an MCP tools/list entry."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
        }


class ToolCallRequest(BaseModel):
    """A request to execute a tool. Arguments are validated later."""
    tool_name: str
    arguments: Any = None
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)


class ToolCallContext(BaseModel):
    """Per-call context handed to a handler."""
    request_id: str
    tool_name: str
    resource: Any = None


class CallStatus(str, Enum):
    """How a dispatch ended, for auditing."""
    OK = "ok"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    ERROR = "error"
