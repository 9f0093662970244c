"""Conversion between limits (ticks) and sqrt prices.

Each limit moves the price by a constant ratio PRICE_BASE, so the sqrt price
at unshifted limit n is sqrt(PRICE_BASE) ** n. The power is evaluated by bit
decomposition of n over a ladder of sqrt(PRICE_BASE) ** (2 ** i), computed once
at import at high precision, keeping each conversion to O(log n)
multiplications.

Limits passed to and returned by this module are shifted (internal,
non-negative). Use shift_limit / unshift_limit at the boundary with signed
external limits.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from functools import lru_cache

from amm_engine.constants import MAX_LIMIT, MIN_LIMIT, OFFSET, PRICE_BASE
from amm_engine.errors import OutOfBounds

from .context import (
    HIGH_PRECISION_CONTEXT,
    ArithmeticContext,
    DecimalLike,
    resolve,
    to_decimal,
)

__all__ = [
    "offset",
    "max_limit",
    "min_limit",
    "shift_limit",
    "unshift_limit",
    "validate_width",
    "limit_to_sqrt_price",
    "sqrt_price_to_limit",
    "price_to_limit",
    "min_sqrt_price",
    "max_sqrt_price",
    "MIN_SQRT_PRICE",
    "MAX_SQRT_PRICE",
]


def _build_ladder() -> tuple[Decimal, ...]:
    """sqrt(PRICE_BASE) ** (2 ** i) for every bit of the largest exponent."""
    with HIGH_PRECISION_CONTEXT.local():
        step = PRICE_BASE.sqrt()
        ladder = []
        for _ in range(OFFSET.bit_length()):
            ladder.append(step)
            step = step * step
    return tuple(ladder)


def _build_ln_price_base() -> Decimal:
    with HIGH_PRECISION_CONTEXT.local():
        return PRICE_BASE.ln()


_SQRT_PRICE_LADDER = _build_ladder()
_LN_PRICE_BASE = _build_ln_price_base()


# =============================================================================
# Width helpers
# =============================================================================


def validate_width(width: int) -> None:
    """Check a limit width is usable.

    Raises:
        OutOfBounds: If width is not in [1, OFFSET]
    """
    if not isinstance(width, int) or width < 1 or width > OFFSET:
        raise OutOfBounds(f"Width must be an integer in [1, {OFFSET}], got {width}")


def offset(width: int) -> int:
    """Offset added to signed limits of the given width.

    The largest multiple of width not exceeding OFFSET, so shifted limits
    stay aligned to width.
    """
    validate_width(width)
    return (OFFSET // width) * width


def max_limit(width: int) -> int:
    """Highest addressable shifted limit for the given width."""
    return 2 * offset(width)


def min_limit(width: int) -> int:
    """Lowest addressable shifted limit for the given width.

    The offset is a whole number of widths, so this is always zero.
    """
    validate_width(width)
    return 0


def shift_limit(limit: int, width: int) -> int:
    """Convert a signed external limit to its shifted internal value."""
    return limit + offset(width)


def unshift_limit(limit: int, width: int) -> int:
    """Convert a shifted internal limit to its signed external value."""
    return limit - offset(width)


# =============================================================================
# Limit <-> sqrt price
# =============================================================================


def _sqrt_price_at(exponent: int, ctx: ArithmeticContext) -> Decimal:
    """sqrt(PRICE_BASE) ** exponent by bit decomposition over the ladder."""
    n = abs(exponent)
    with ctx.local():
        result = Decimal(1)
        for i, step in enumerate(_SQRT_PRICE_LADDER):
            if (n >> i) & 1:
                result = result * step
        if exponent < 0:
            result = Decimal(1) / result
        return +result


@lru_cache(maxsize=None)
def _sqrt_price_bounds(ctx: ArithmeticContext) -> tuple[Decimal, Decimal]:
    return _sqrt_price_at(MIN_LIMIT, ctx), _sqrt_price_at(MAX_LIMIT, ctx)


@lru_cache(maxsize=None)
def _price_bounds(ctx: ArithmeticContext) -> tuple[Decimal, Decimal]:
    lower, upper = _sqrt_price_bounds(ctx)
    with ctx.local():
        return lower * lower, upper * upper


def min_sqrt_price(ctx: ArithmeticContext | None = None) -> Decimal:
    """Sqrt price at MIN_LIMIT under the given context."""
    return _sqrt_price_bounds(resolve(ctx))[0]


def max_sqrt_price(ctx: ArithmeticContext | None = None) -> Decimal:
    """Sqrt price at MAX_LIMIT under the given context."""
    return _sqrt_price_bounds(resolve(ctx))[1]


def limit_to_sqrt_price(limit: int, width: int, ctx: ArithmeticContext | None = None) -> Decimal:
    """Sqrt price at a shifted limit.

    Args:
        limit: Shifted limit in [0, max_limit(width)]
        width: Limit width
        ctx: Arithmetic context

    Returns:
        sqrt(PRICE_BASE) ** unshift_limit(limit, width)

    Raises:
        OutOfBounds: If limit is outside [0, max_limit(width)] or width is invalid
    """
    upper = max_limit(width)
    if limit < 0 or limit > upper:
        raise OutOfBounds(f"Limit {limit} outside [0, {upper}] for width {width}")
    return _sqrt_price_at(unshift_limit(limit, width), resolve(ctx))


def _floor_exponent(target: Decimal, squared: bool, ctx: ArithmeticContext) -> int:
    """Largest unshifted limit whose (sqrt) price does not exceed target.

    The logarithm gives an estimate; it is then corrected against the ladder
    itself so lattice points map back to their own limit exactly.
    """
    with HIGH_PRECISION_CONTEXT.local():
        step = _LN_PRICE_BASE if squared else _LN_PRICE_BASE / 2
        estimate = (target.ln() / step).to_integral_value(rounding=ROUND_FLOOR)
    exponent = max(min(int(estimate), MAX_LIMIT), MIN_LIMIT)

    def value_at(k: int) -> Decimal:
        sqrt_price = _sqrt_price_at(k, ctx)
        if not squared:
            return sqrt_price
        with ctx.local():
            return sqrt_price * sqrt_price

    while exponent < MAX_LIMIT and value_at(exponent + 1) <= target:
        exponent += 1
    while exponent > MIN_LIMIT and value_at(exponent) > target:
        exponent -= 1
    return exponent


def _to_width(exponent: int, width: int) -> int:
    """Floor an unshifted limit to a multiple of width and shift it."""
    aligned = (exponent // width) * width
    limit = shift_limit(aligned, width)
    if limit < 0:
        raise OutOfBounds(f"Limit {aligned} is below the lowest limit addressable at width {width}")
    return limit


def sqrt_price_to_limit(sqrt_price: DecimalLike, width: int, ctx: ArithmeticContext | None = None) -> int:
    """Shifted limit at or below a sqrt price (floor), aligned to width.

    Raises:
        OutOfBounds: If sqrt_price is outside [MIN_SQRT_PRICE, MAX_SQRT_PRICE]
    """
    validate_width(width)
    active = resolve(ctx)
    value = to_decimal(sqrt_price)
    lower, upper = _sqrt_price_bounds(active)
    if value < lower or value > upper:
        raise OutOfBounds(f"Sqrt price {value} outside [{lower}, {upper}]")
    return _to_width(_floor_exponent(value, squared=False, ctx=active), width)


def price_to_limit(price: DecimalLike, width: int, ctx: ArithmeticContext | None = None) -> int:
    """Shifted limit at or below a price (not sqrt price), aligned to width.

    Raises:
        OutOfBounds: If price is outside [MIN_SQRT_PRICE ** 2, MAX_SQRT_PRICE ** 2]
    """
    validate_width(width)
    active = resolve(ctx)
    value = to_decimal(price)
    lower, upper = _price_bounds(active)
    if value < lower or value > upper:
        raise OutOfBounds(f"Price {value} outside [{lower}, {upper}]")
    return _to_width(_floor_exponent(value, squared=True, ctx=active), width)


MIN_SQRT_PRICE = min_sqrt_price()
MAX_SQRT_PRICE = max_sqrt_price()
