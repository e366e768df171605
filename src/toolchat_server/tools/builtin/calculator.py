"""Calculator tool: basic arithmetic for the model.

Supports two calling styles: an explicit ``operation`` with ``operands``, or a
single binary ``expression`` such as ``5 + 3``, ``10*2``, ``√16`` or ``10% of 50``.
"""

import math
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from toolchat_server.errors import ArgumentOutOfDomain, ArityMismatch, MissingArgument
from toolchat_server.tools.types import ToolSpec

Operation = Literal["add", "subtract", "multiply", "divide", "power", "sqrt", "percentage"]

_ARITY: dict[str, int] = {
    "add": 2,
    "subtract": 2,
    "multiply": 2,
    "divide": 2,
    "power": 2,
    "sqrt": 1,
    "percentage": 2,
}

_LABELS = {
    "add": "Addition",
    "subtract": "Subtraction",
    "multiply": "Multiplication",
    "divide": "Division",
    "power": "Power operation",
    "sqrt": "Square root",
    "percentage": "Percentage calculation",
}

_NUMBER = r"(-?\d+(?:\.\d+)?)"

_EXPRESSION_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("add", re.compile(rf"^{_NUMBER}\+{_NUMBER}$")),
    ("subtract", re.compile(rf"^{_NUMBER}-{_NUMBER}$")),
    ("multiply", re.compile(rf"^{_NUMBER}[×*]{_NUMBER}$")),
    ("divide", re.compile(rf"^{_NUMBER}[÷/]{_NUMBER}$")),
    ("power", re.compile(rf"^{_NUMBER}\^{_NUMBER}$")),
    ("sqrt", re.compile(rf"^√{_NUMBER}$")),
    ("percentage", re.compile(rf"^{_NUMBER}%of{_NUMBER}$", re.IGNORECASE)),
]


class CalculatorArguments(BaseModel):
    """Arguments accepted by the calculator tool."""

    model_config = ConfigDict(strict=True, extra="forbid")

    operation: Operation | None = Field(
        default=None, description="The arithmetic operation to perform"
    )
    operands: list[float] | None = Field(
        default=None,
        description="The numbers to operate on (required when using operation)",
    )
    expression: str | None = Field(
        default=None,
        description="Alternative: a mathematical expression string (e.g., '5 + 3', '10 * 2', '√16')",
    )


class CalculationResult(BaseModel):
    """Outcome of a calculation."""

    operation: str
    operands: list[float]
    result: float
    expression: str


def format_number(value: float) -> str:
    """Format a number without a trailing ``.0`` for integral values."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _apply(operation: str, operands: list[float]) -> tuple[float, str]:
    a = operands[0]
    if operation == "sqrt":
        if a < 0:
            raise ArgumentOutOfDomain("Cannot calculate square root of negative number")
        return math.sqrt(a), f"√{format_number(a)}"

    b = operands[1]
    if operation == "add":
        return a + b, f"{format_number(a)} + {format_number(b)}"
    if operation == "subtract":
        return a - b, f"{format_number(a)} - {format_number(b)}"
    if operation == "multiply":
        return a * b, f"{format_number(a)} × {format_number(b)}"
    if operation == "divide":
        if b == 0:
            raise ArgumentOutOfDomain("Division by zero is not allowed")
        return a / b, f"{format_number(a)} ÷ {format_number(b)}"
    if operation == "power":
        try:
            result = math.pow(a, b)
        except (OverflowError, ValueError) as e:
            raise ArgumentOutOfDomain(f"Cannot raise {a} to the power {b}: {e}")
        return result, f"{format_number(a)} ^ {format_number(b)}"
    # percentage
    return (a * b) / 100, f"{format_number(b)}% of {format_number(a)}"


def execute(operation: str, operands: list[float]) -> CalculationResult:
    """Execute a calculator operation.

    Raises:
        ArityMismatch: If the operand count does not match the operation
        ArgumentOutOfDomain: For division by zero, negative square roots and overflow
    """
    if operation not in _ARITY:
        raise ArgumentOutOfDomain(f"Unsupported operation: {operation}")

    expected = _ARITY[operation]
    if len(operands) != expected:
        noun = "operand" if expected == 1 else "operands"
        raise ArityMismatch(
            f"{_LABELS[operation]} requires exactly {expected} {noun}, got {len(operands)}"
        )

    result, expression = _apply(operation, operands)
    return CalculationResult(
        operation=operation,
        operands=list(operands),
        result=result,
        expression=expression,
    )


def parse_expression(expression: str) -> CalculationResult:
    """Parse and execute a single binary expression string.

    Raises:
        ArgumentOutOfDomain: If the expression is not understood
    """
    clean = re.sub(r"\s+", "", expression)
    for operation, pattern in _EXPRESSION_PATTERNS:
        match = pattern.match(clean)
        if match:
            operands = [float(group) for group in match.groups()]
            if operation == "percentage":
                # "P% of V" is percentage(V, P)
                operands.reverse()
            return execute(operation, operands)
    raise ArgumentOutOfDomain(f"Unable to parse expression: {expression}")


def handle_calculator(arguments: CalculatorArguments) -> CalculationResult:
    """Handle calculator tool calls."""
    if arguments.expression:
        return parse_expression(arguments.expression)
    if arguments.operation is not None and arguments.operands is not None:
        return execute(arguments.operation, arguments.operands)
    raise MissingArgument("Either expression or (operation + operands) must be provided")


def render_calculation(result: CalculationResult) -> str:
    return f"{result.expression} = {format_number(result.result)}"


calculator_tool = ToolSpec(
    name="calculator",
    description=(
        "Perform basic arithmetic calculations including addition, subtraction, "
        "multiplication, division, power, square root, and percentage calculations"
    ),
    arguments=CalculatorArguments,
    handler=handle_calculator,
    render=render_calculation,
)
