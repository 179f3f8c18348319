"""Arithmetic Domain - calculator tools.

Provides ``add`` and ``calculate``. Results are rendered the way a
JavaScript client prints numbers, so ``10 / 2`` reads ``5`` rather than
``5.0``.
"""

import math
from typing import Any

from shared.models import ToolCallContext, ToolDefinition, ToolFailed, ToolOk
from domains.base import BaseDomain

OPERATIONS = ("add", "subtract", "multiply", "divide")
DIVIDE_BY_ZERO = "Error: Cannot divide by zero"


def format_number(value: float | int) -> str:
    """Render a number like JavaScript's String(n)."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


class ArithmeticDomain(BaseDomain):
    """Arithmetic tools. No external resources."""

    name = "arithmetic"

    @property
    def tools(self) -> list[ToolDefinition]:
        number = {"type": "number"}
        return [
            self._tool(
                name="add",
                description="Add two numbers.",
                properties={
                    "a": {**number, "description": "First addend"},
                    "b": {**number, "description": "Second addend"},
                },
                handler=self.add,
            ),
            self._tool(
                name="calculate",
                description="Apply add, subtract, multiply or divide to two numbers.",
                properties={
                    "operation": {
                        "type": "string",
                        "enum": list(OPERATIONS),
                        "description": "Arithmetic operation",
                    },
                    "a": {**number, "description": "Left operand"},
                    "b": {**number, "description": "Right operand"},
                },
                handler=self.calculate,
                error_context="calculating",
            ),
        ]

    def add(self, arguments: dict[str, Any], context: ToolCallContext) -> ToolOk:
        return self._ok(format_number(arguments["a"] + arguments["b"]))

    def calculate(self, arguments: dict[str, Any], context: ToolCallContext) -> ToolOk | ToolFailed:
        operation = arguments["operation"]
        a, b = arguments["a"], arguments["b"]

        if operation == "add":
            result = a + b
        elif operation == "subtract":
            result = a - b
        elif operation == "multiply":
            result = a * b
        elif operation == "divide":
            if b == 0:
                return self._failed(DIVIDE_BY_ZERO)
            result = a / b
        else:
            return self._failed(f"Error: Unknown operation '{operation}'")

        return self._ok(format_number(result))
