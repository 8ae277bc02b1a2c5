"""
Decimal arithmetic and display formatting for the calculator.
"""
import logging
from decimal import Decimal, Context, InvalidOperation, ROUND_HALF_EVEN
from typing import Optional

from .config import (
    DECIMAL_PRECISION, MAX_FRACTION_DIGITS,
    GROUP_SEPARATOR, DECIMAL_SEPARATOR, ERROR_TEXT,
)

logger = logging.getLogger(__name__)

ADD = "+"
SUBTRACT = "-"
MULTIPLY = "×"
DIVIDE = "÷"
EQUALS = "="

OPERATORS = (ADD, SUBTRACT, MULTIPLY, DIVIDE)

_CONTEXT = Context(prec=DECIMAL_PRECISION, rounding=ROUND_HALF_EVEN)


def apply(op: str, a: Decimal, b: Decimal) -> Decimal:
    """
    Apply a binary operator to two operands.

    Division by zero yields 0 rather than raising, so the display
    never ends up in an error state after "÷ 0".

    Args:
        op: One of "+", "-", "×", "÷"
        a: Left operand
        b: Right operand

    Returns:
        The result as a Decimal

    Raises:
        ValueError: If op is not a supported operator
    """
    if op == ADD:
        return _CONTEXT.add(a, b)
    if op == SUBTRACT:
        return _CONTEXT.subtract(a, b)
    if op == MULTIPLY:
        return _CONTEXT.multiply(a, b)
    if op == DIVIDE:
        if b == 0:
            logger.debug(f"Division by zero ({a} ÷ {b}), returning 0")
            return Decimal(0)
        return _CONTEXT.divide(a, b)
    raise ValueError(f"Unsupported operator: {op!r}")


def parse_decimal(text: str) -> Optional[Decimal]:
    """Parse an input buffer, returning None if it is not a finite number."""
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def format_decimal(
    value: Decimal,
    max_fraction_digits: int = MAX_FRACTION_DIGITS,
    group_separator: str = GROUP_SEPARATOR,
    decimal_separator: str = DECIMAL_SEPARATOR
) -> str:
    """
    Render a value for display.

    Rounds half-even at the last allowed fraction digit, drops trailing
    fractional zeros and groups the integer part in thousands.

    Args:
        value: Value to render
        max_fraction_digits: Maximum digits after the decimal separator
        group_separator: Thousands separator
        decimal_separator: Decimal separator

    Returns:
        Display string, or "Error" if the value cannot be rendered
    """
    try:
        if not value.is_finite():
            return ERROR_TEXT

        rounded = value
        if value.as_tuple().exponent < -max_fraction_digits:
            quantum = Decimal(1).scaleb(-max_fraction_digits)
            # Integer digits, a carry digit from rounding, then the fraction digits
            context = Context(
                prec=max(value.adjusted(), 0) + 2 + max_fraction_digits,
                rounding=ROUND_HALF_EVEN
            )
            rounded = value.quantize(quantum, context=context)

        text = f"{rounded:,f}"
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        if text in ("", "-0"):
            text = "0"

        return text.translate(str.maketrans({
            ",": group_separator,
            ".": decimal_separator,
        }))
    except (InvalidOperation, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Failed to format {value!r}: {e}")
        return ERROR_TEXT
