"""Base classes for tool domains.

All domains must:
- Declare their tools as ToolDefinitions with a JSON input schema
- Return ToolOk/ToolFailed outcomes from handlers
- Acquire external clients only through a per-call resource factory
- Never share state between calls
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import httpx

from shared.config import Settings
from shared.models import ToolDefinition, ToolFailed, ToolOk


class BaseDomain(ABC):
    """
    Base class for tool domains.

    Each domain:
    - Groups related tools
    - Is configured once from Settings at startup
    - Is stateless across calls
    """

    name: str = "base"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    @abstractmethod
    def tools(self) -> list[ToolDefinition]:
        """Return all tool definitions for this domain."""
        pass

    def _tool(
        self,
        name: str,
        description: str,
        properties: dict[str, Any],
        handler: Callable[..., Any],
        required: Optional[list[str]] = None,
        error_context: Optional[str] = None,
        resource_factory: Optional[Callable[[], Any]] = None
    ) -> ToolDefinition:
        """Build a tool definition with an object input schema."""
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        schema["required"] = required if required is not None else [
            key for key, prop in properties.items() if "default" not in prop
        ]
        return ToolDefinition(
            name=name,
            description=description,
            input_schema=schema,
            handler=handler,
            error_context=error_context,
            resource_factory=resource_factory,
        )

    @staticmethod
    def _ok(text: str) -> ToolOk:
        """Create a success outcome."""
        return ToolOk.text(text)

    @staticmethod
    def _failed(message: str) -> ToolFailed:
        """Create a business failure outcome."""
        return ToolFailed(message=message)


class HTTPDomain(BaseDomain):
    """
    Base domain for tools that fetch over HTTP.

    Every call gets its own httpx.AsyncClient, closed when the call ends.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        super().__init__(settings)
        self.timeout = settings.scraper.timeout_seconds
        self.follow_redirects = settings.scraper.follow_redirects
        self._transport = transport

    def new_client(self) -> httpx.AsyncClient:
        """Create an HTTP client for a single call."""
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=self.follow_redirects,
            transport=self._transport,
        )
