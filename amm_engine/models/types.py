"""Shared type definitions for serialised engine values."""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from amm_engine.math.context import format_decimal, to_decimal


def validate_decimal_string(value: Any) -> str:
    """Validate and normalise a base-10 decimal value to a plain string.

    Args:
        value: Decimal, int or decimal string

    Returns:
        Plain decimal string without exponent (e.g. "0.0001", "-12")

    Raises:
        ValueError: If value is not a finite decimal number
    """
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, str)):
        raise ValueError(f"Decimal string must be Decimal, int or str, got {type(value).__name__}")
    try:
        parsed = to_decimal(value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Not a decimal number: '{value}'") from err
    if not parsed.is_finite():
        raise ValueError(f"Not a finite decimal number: '{value}'")
    return format_decimal(parsed)


# Signed decimal number as base-10 string (validated, exponent-free)
DecimalString = Annotated[
    str,
    BeforeValidator(validate_decimal_string),
    Field(description="Decimal number as base-10 string"),
]

__all__ = ["DecimalString", "validate_decimal_string"]
