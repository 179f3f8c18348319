"""Tool Dispatcher for the MCP gateway.

Resolves a tool call to its definition, validates the arguments, invokes
the handler under a per-call resource scope and normalizes the result.
"""

import asyncio
import functools
import inspect
import time
from contextlib import AsyncExitStack
from typing import Any, Optional

from structlog.contextvars import bound_contextvars

from shared.errors import ToolFailure, UnknownToolError
from shared.logging import get_logger
from shared.models import (
    CallStatus,
    ResponseEnvelope,
    ToolCallContext,
    ToolCallRequest,
    ToolDefinition,
    ToolFailed,
    ToolOk,
)
from shared.schema import validate_arguments
from mcp_server.audit import AuditLogger
from mcp_server.normalizer import format_context, normalize
from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)


class ToolDispatcher:
    """
    Dispatches tool calls to their handlers.

    Responsibilities:
    - Resolve the tool by name
    - Validate arguments against the tool's input schema
    - Acquire and release per-call resources around the handler
    - Normalize every outcome into a ResponseEnvelope
    - Audit all executions

    The dispatcher holds no per-call state; concurrent dispatches share only
    the read-only registry.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        audit_logger: Optional[AuditLogger] = None
    ) -> None:
        self.registry = registry
        self.audit_logger = audit_logger or AuditLogger()

    async def dispatch(self, call: ToolCallRequest) -> ResponseEnvelope:
        """
        Execute a tool call.

        Always returns exactly one envelope. Unknown tools, invalid
        arguments and handler faults are reported as envelope text.

        Args:
            call: Tool call request

        Returns:
            The response envelope for the caller
        """
        start_time = time.perf_counter()

        with bound_contextvars(request_id=call.request_id, tool=call.tool_name):
            logger.debug("Dispatching tool call")
            envelope, status = await self._dispatch(call)

        self.audit_logger.log(call, status, (time.perf_counter() - start_time) * 1000)
        return envelope

    async def _dispatch(self, call: ToolCallRequest) -> tuple[ResponseEnvelope, CallStatus]:
        try:
            tool = self.registry.resolve(call.tool_name)
        except UnknownToolError as e:
            return normalize(e), CallStatus.NOT_FOUND

        arguments, error = validate_arguments(call.arguments, tool.input_schema)
        if error is not None:
            return normalize(error.for_tool(tool.name)), CallStatus.VALIDATION_ERROR

        context = format_context(tool.error_context, arguments)

        try:
            outcome = await self._invoke(tool, arguments, call)
        except ToolFailure as e:
            return normalize(e, context), CallStatus.FAILED
        except Exception as e:
            return normalize(e, context), CallStatus.ERROR

        if isinstance(outcome, ToolFailed):
            status = CallStatus.FAILED
        elif isinstance(outcome, (ToolOk, str)):
            status = CallStatus.OK
        else:
            status = CallStatus.ERROR
        return normalize(outcome, context), status

    async def _invoke(
        self,
        tool: ToolDefinition,
        arguments: dict[str, Any],
        call: ToolCallRequest
    ) -> Any:
        """Run the handler inside the scope of its per-call resource."""
        async with AsyncExitStack() as stack:
            resource = None
            if tool.resource_factory is not None:
                resource = await stack.enter_async_context(tool.resource_factory())

            context = ToolCallContext(
                request_id=call.request_id,
                tool_name=tool.name,
                resource=resource
            )

            if inspect.iscoroutinefunction(tool.handler):
                return await tool.handler(arguments, context)

            # Run sync handlers in the thread pool
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None, functools.partial(tool.handler, arguments, context)
            )
            if inspect.isawaitable(result):
                result = await result
            return result
