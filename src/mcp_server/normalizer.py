"""Response normalization.

Folds every handler outcome, or any exception raised on the way to one,
into a ResponseEnvelope. This is the last line of defense between a
failing tool and the transport, so nothing here may raise.
"""

from typing import Any, Optional

from shared.errors import ArgumentValidationError, ToolFailure, UnknownToolError
from shared.logging import get_logger
from shared.models import ResponseEnvelope, TextContent, ToolFailed, ToolOk

logger = get_logger(__name__)

FALLBACK_TEXT = "Error: internal error while building the response"


def _describe(exc: BaseException) -> str:
    message = str(exc)
    return message or exc.__class__.__name__


def _fault_text(exc: BaseException, context: Optional[str]) -> str:
    if isinstance(exc, ToolFailure):
        return _describe(exc)
    if isinstance(exc, (UnknownToolError, ArgumentValidationError)) or not context:
        return f"Error: {_describe(exc)}"
    return f"Error {context}: {_describe(exc)}"


def format_context(template: Optional[str], arguments: Optional[dict[str, Any]]) -> Optional[str]:
    """Fill an error-context template from call arguments, if possible."""
    if not template:
        return None
    try:
        return template.format(**(arguments or {}))
    except (KeyError, IndexError, ValueError, AttributeError):
        return template


def _normalize(result: Any, context: Optional[str]) -> ResponseEnvelope:
    if isinstance(result, BaseException):
        if not isinstance(result, (ToolFailure, UnknownToolError, ArgumentValidationError)):
            logger.error(
                "Tool raised",
                context=context,
                error=_describe(result),
                exc_info=result
            )
        return ResponseEnvelope.from_text(_fault_text(result, context))

    if isinstance(result, ToolOk):
        return ResponseEnvelope(content=list(result.content))

    if isinstance(result, ToolFailed):
        return ResponseEnvelope.from_text(result.message)

    if isinstance(result, ResponseEnvelope):
        return result

    if isinstance(result, str):
        return ResponseEnvelope(content=[TextContent(text=result)])

    fault = TypeError(f"handler returned unsupported result {type(result).__name__}")
    return ResponseEnvelope.from_text(_fault_text(fault, context))


def normalize(result: Any, context: Optional[str] = None) -> ResponseEnvelope:
    """
    Wrap a handler outcome or exception into a ResponseEnvelope.

    Args:
        result: A ToolOk/ToolFailed outcome, a raised exception, or a
            plain string returned by a lenient handler
        context: Operation name used in fault messages, e.g. "scraping <url>"

    Returns:
        The envelope to send to the caller; never raises
    """
    try:
        return _normalize(result, context)
    except Exception as e:
        logger.error("Response normalization failed", error=repr(e))
        return ResponseEnvelope.from_text(FALLBACK_TEXT)
