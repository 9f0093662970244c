"""Explicit decimal arithmetic context.

Every math entry point takes an ArithmeticContext (or None for the default)
and evaluates inside decimal.localcontext(), so precision and rounding never
leak between interleaved computations through the interpreter-wide decimal
context.

Rounding modes are restricted to the two the settlement contract uses:
ROUND_DOWN (toward zero) and ROUND_UP (away from zero).
"""

from __future__ import annotations

import decimal
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from decimal import ROUND_DOWN, ROUND_UP, Decimal

DecimalLike = Decimal | int | str | float

_ALLOWED_ROUNDING = (ROUND_DOWN, ROUND_UP)

# Wide enough for exact scaling of uint256 values at 28 decimals
_SCALING_PRECISION = 160


@dataclass(frozen=True)
class ArithmeticContext:
    """Precision and rounding for one computation.

    Attributes:
        precision: Significant digits kept by every intermediate result
        rounding: decimal.ROUND_DOWN or decimal.ROUND_UP
    """

    precision: int = 76
    rounding: str = ROUND_DOWN

    def __post_init__(self) -> None:
        if self.precision <= 0:
            raise ValueError(f"Precision must be positive, got {self.precision}")
        if self.rounding not in _ALLOWED_ROUNDING:
            raise ValueError(f"Rounding must be ROUND_DOWN or ROUND_UP, got {self.rounding}")

    @property
    def round_up(self) -> bool:
        return self.rounding == ROUND_UP

    def with_rounding(self, round_up: bool) -> ArithmeticContext:
        """Same precision, rounding away from zero if round_up else toward zero."""
        return replace(self, rounding=ROUND_UP if round_up else ROUND_DOWN)

    def decimal_context(self) -> decimal.Context:
        """Build a fresh decimal.Context for this configuration."""
        return decimal.Context(
            prec=self.precision,
            rounding=self.rounding,
            Emax=decimal.MAX_EMAX,
            Emin=decimal.MIN_EMIN,
            traps=[decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow],
        )

    @contextmanager
    def local(self) -> Iterator[decimal.Context]:
        """Evaluate a block under this context without touching the caller's."""
        with decimal.localcontext(self.decimal_context()) as ctx:
            yield ctx


DEFAULT_CONTEXT = ArithmeticContext()

# Used for exponent ladders and logarithms, which must not be the weakest link
HIGH_PRECISION_CONTEXT = ArithmeticContext(precision=100)

# Sums and differences of fixed-scale values (fee factors) are exact here
EXACT_CONTEXT = ArithmeticContext(precision=_SCALING_PRECISION)


def resolve(ctx: ArithmeticContext | None) -> ArithmeticContext:
    """Return ctx, or the default context when None."""
    return DEFAULT_CONTEXT if ctx is None else ctx


def to_decimal(value: DecimalLike) -> Decimal:
    """Convert a numeric input to Decimal without binary float artifacts.

    Floats are converted through their shortest repr, so 0.003 becomes
    Decimal("0.003") rather than its binary expansion.

    Raises:
        TypeError: If value is not a Decimal, int, str or float
        ValueError: If a string is not a valid decimal number
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a numeric amount")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except decimal.InvalidOperation as err:
            raise ValueError(f"Not a decimal number: '{value}'") from err
        if not result.is_finite():
            raise ValueError(f"Not a finite decimal number: '{value}'")
        return result
    raise TypeError(f"Expected Decimal, int, str or float, got {type(value).__name__}")


def to_fixed_point(value: DecimalLike, decimals: int, round_up: bool = False) -> int:
    """Scale a decimal to an integer at 10**decimals.

    Args:
        value: Value to scale
        decimals: Number of decimal places in the fixed-point representation
        round_up: Round away from zero if True, toward zero otherwise

    Returns:
        Integer representation, e.g. to_fixed_point("1.5", 18) == 15 * 10**17
    """
    ctx = decimal.Context(prec=_SCALING_PRECISION, rounding=ROUND_UP if round_up else ROUND_DOWN)
    scaled = to_decimal(value).scaleb(decimals, context=ctx)
    return int(scaled.to_integral_value(context=ctx))


def from_fixed_point(value: int, decimals: int) -> Decimal:
    """Inverse of to_fixed_point (exact)."""
    ctx = decimal.Context(prec=_SCALING_PRECISION)
    return Decimal(value).scaleb(-decimals, context=ctx)


def round_amount(value: DecimalLike, round_up: bool = False) -> Decimal:
    """Round to a whole number, away from zero if round_up else toward zero."""
    ctx = decimal.Context(prec=_SCALING_PRECISION, rounding=ROUND_UP if round_up else ROUND_DOWN)
    return to_decimal(value).to_integral_value(context=ctx)


def format_decimal(value: Decimal) -> str:
    """Render a Decimal as a plain base-10 string (no exponent)."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


__all__ = [
    "DecimalLike",
    "ArithmeticContext",
    "DEFAULT_CONTEXT",
    "HIGH_PRECISION_CONTEXT",
    "EXACT_CONTEXT",
    "resolve",
    "to_decimal",
    "to_fixed_point",
    "from_fixed_point",
    "round_amount",
    "format_decimal",
]
