"""JSON Schema validation utilities."""

import copy
from collections.abc import Mapping
from typing import Any, Optional
from urllib.parse import urlsplit

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import SchemaError, best_match

from shared.errors import ArgumentValidationError

format_checker = FormatChecker()


@format_checker.checks("uri", raises=ValueError)
def is_http_url(value: object) -> bool:
    """Accept absolute http(s) URLs with a host."""
    if not isinstance(value, str):
        return True
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError("must be an absolute http(s) URL")
    return True


def check_schema(schema: dict[str, Any]) -> None:
    """
    Check that a tool input schema is itself a valid Draft 7 schema.

    Raises:
        SchemaError: If the schema is malformed
    """
    Draft7Validator.check_schema(schema)


def _error_field(error) -> Optional[str]:
    path = [str(p) for p in error.absolute_path]
    if error.validator == "required" and isinstance(error.instance, Mapping):
        missing = [f for f in error.validator_value if f not in error.instance]
        if missing:
            path.append(missing[0])
    return ".".join(path) or None


def _error_reason(error) -> str:
    if error.validator == "required":
        return "required field is missing"
    if error.validator == "format" and error.cause is not None:
        return str(error.cause)
    return error.message


def apply_defaults(data: dict[str, Any], schema: dict[str, Any]) -> dict[str, Any]:
    """
    Return declared properties of data with schema defaults filled in.

    Undeclared keys are dropped unless the schema declares no properties.
    """
    properties = schema.get("properties")
    if not properties:
        return dict(data)

    result: dict[str, Any] = {}
    for name, prop in properties.items():
        if name in data:
            value = data[name]
            if isinstance(value, dict) and prop.get("type") == "object":
                value = apply_defaults(value, prop)
            result[name] = value
        elif "default" in prop:
            result[name] = copy.deepcopy(prop["default"])
    return result


def validate_arguments(
    arguments: Any,
    schema: dict[str, Any]
) -> tuple[Optional[dict[str, Any]], Optional[ArgumentValidationError]]:
    """
    Validate tool arguments against an input schema.

    Never raises and never mutates the input. None is treated as an empty
    object. Unknown fields are ignored and left out of the result.

    Args:
        arguments: Raw arguments from the caller
        schema: JSON Schema describing accepted fields

    Returns:
        Tuple of (validated arguments, None) or (None, error)
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        return None, ArgumentValidationError("arguments", "must be an object")

    data = dict(arguments)
    if not schema:
        return data, None

    try:
        validator = Draft7Validator(schema, format_checker=format_checker)
        error = best_match(validator.iter_errors(data))
    except SchemaError as e:
        return None, ArgumentValidationError(None, f"invalid schema: {e.message}")
    except Exception as e:
        return None, ArgumentValidationError(None, str(e))

    if error is not None:
        return None, ArgumentValidationError(_error_field(error), _error_reason(error))

    return apply_defaults(data, schema), None

