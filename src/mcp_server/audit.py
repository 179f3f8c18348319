"""Audit logging for tool calls.

Every dispatch produces one structured "Tool executed" event carrying the
tool, request id, outcome status, elapsed time and redacted arguments.
Entries are emitted through structlog only; nothing is written to disk.
"""

from typing import Any

from shared.logging import get_logger
from shared.models import CallStatus, ToolCallRequest

logger = get_logger(__name__)


class AuditLogger:
    """
    Audit logger for tool executions.

    Arguments are redacted recursively for sensitive keys before they are
    logged.
    """

    SENSITIVE_PARAMS = {"password", "token", "secret", "api_key", "apikey", "credential"}

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def _redact_sensitive(self, params: Any) -> Any:
        """Redact sensitive parameters from audit logs."""
        if not isinstance(params, dict):
            return params
        redacted = {}
        for key, value in params.items():
            if str(key).lower() in self.SENSITIVE_PARAMS:
                redacted[key] = "[REDACTED]"
            elif isinstance(value, dict):
                redacted[key] = self._redact_sensitive(value)
            else:
                redacted[key] = value
        return redacted

    def create_entry(
        self,
        call: ToolCallRequest,
        status: CallStatus,
        execution_time_ms: float
    ) -> dict[str, Any]:
        """Build the audit fields for a call."""
        return {
            "request_id": call.request_id,
            "tool": call.tool_name,
            "status": status.value,
            "arguments": self._redact_sensitive(call.arguments),
            "execution_time_ms": round(execution_time_ms, 2),
        }

    def log(
        self,
        call: ToolCallRequest,
        status: CallStatus,
        execution_time_ms: float
    ) -> None:
        """Log a tool execution."""
        if not self.enabled:
            return

        entry = self.create_entry(call, status, execution_time_ms)
        if status in (CallStatus.OK, CallStatus.FAILED):
            logger.info("Tool executed", **entry)
        else:
            logger.warning("Tool executed", **entry)
