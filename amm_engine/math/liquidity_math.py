"""Conversion between liquidity and token amounts over a sqrt price range.

For liquidity L over [lower, upper] (sqrt prices):

    quote = L * (upper - lower)
    base  = L * (upper - lower) / (upper * lower)

A position's holdings depend on where the current price sits:
- range at or below the current price: quote only (fully converted)
- range straddling the current price: quote below it, base above it
- range above the current price: base only (untouched)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from amm_engine.errors import InvalidRange, OutOfBounds, Underflow

from .context import ArithmeticContext, DecimalLike, resolve, to_decimal
from .price_math import limit_to_sqrt_price

__all__ = [
    "TokenAmounts",
    "add_delta",
    "liquidity_to_quote",
    "liquidity_to_base",
    "quote_to_liquidity",
    "base_to_liquidity",
    "liquidity_to_amounts",
    "sqrt_prices_to_amounts",
]


@dataclass(frozen=True)
class TokenAmounts:
    """Base and quote amounts for a liquidity change.

    Positive amounts are owed by the caller; negative amounts are paid out.
    """

    base_amount: Decimal
    quote_amount: Decimal


def add_delta(liquidity: DecimalLike, delta: DecimalLike, ctx: ArithmeticContext | None = None) -> Decimal:
    """Apply a signed delta to a non-negative liquidity.

    Raises:
        Underflow: If the result would be negative
    """
    current = to_decimal(liquidity)
    with resolve(ctx).local():
        result = current + to_decimal(delta)
    if result < 0:
        raise Underflow(f"Liquidity underflow: {current} + {delta} = {result}")
    return result


def _check_range(lower_sqrt_price: Decimal, upper_sqrt_price: Decimal) -> None:
    if lower_sqrt_price > upper_sqrt_price:
        raise InvalidRange(f"Lower sqrt price {lower_sqrt_price} above upper {upper_sqrt_price}")


def liquidity_to_quote(
    lower_sqrt_price: DecimalLike,
    upper_sqrt_price: DecimalLike,
    liquidity_delta: DecimalLike,
    round_up: bool = False,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Quote amount for liquidity_delta over [lower, upper].

    Raises:
        InvalidRange: If lower_sqrt_price > upper_sqrt_price
    """
    lower = to_decimal(lower_sqrt_price)
    upper = to_decimal(upper_sqrt_price)
    _check_range(lower, upper)
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(liquidity_delta) * (upper - lower)


def liquidity_to_base(
    lower_sqrt_price: DecimalLike,
    upper_sqrt_price: DecimalLike,
    liquidity_delta: DecimalLike,
    round_up: bool = False,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Base amount for liquidity_delta over [lower, upper].

    A zero-width range holds no base, whatever its liquidity.

    Raises:
        InvalidRange: If lower_sqrt_price > upper_sqrt_price
        OutOfBounds: If lower_sqrt_price is not positive
    """
    lower = to_decimal(lower_sqrt_price)
    upper = to_decimal(upper_sqrt_price)
    _check_range(lower, upper)
    if lower == upper:
        return Decimal(0)
    if lower <= 0:
        raise OutOfBounds(f"Sqrt price must be positive, got {lower}")
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(liquidity_delta) * (upper - lower) / (upper * lower)


def quote_to_liquidity(
    lower_sqrt_price: DecimalLike,
    upper_sqrt_price: DecimalLike,
    quote_amount: DecimalLike,
    round_up: bool = False,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Liquidity provided by quote_amount over [lower, upper].

    Raises:
        InvalidRange: If the range is empty or inverted
    """
    lower = to_decimal(lower_sqrt_price)
    upper = to_decimal(upper_sqrt_price)
    if lower >= upper:
        raise InvalidRange(f"Empty sqrt price range [{lower}, {upper}]")
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(quote_amount) / (upper - lower)


def base_to_liquidity(
    lower_sqrt_price: DecimalLike,
    upper_sqrt_price: DecimalLike,
    base_amount: DecimalLike,
    round_up: bool = False,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Liquidity provided by base_amount over [lower, upper].

    Raises:
        InvalidRange: If the range is empty or inverted
    """
    lower = to_decimal(lower_sqrt_price)
    upper = to_decimal(upper_sqrt_price)
    if lower >= upper:
        raise InvalidRange(f"Empty sqrt price range [{lower}, {upper}]")
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(base_amount) * (upper * lower) / (upper - lower)


def sqrt_prices_to_amounts(
    liquidity_delta: DecimalLike,
    curr_sqrt_price: DecimalLike,
    lower_sqrt_price: DecimalLike,
    upper_sqrt_price: DecimalLike,
    ctx: ArithmeticContext | None = None,
) -> TokenAmounts:
    """Three-region amount split, expressed directly in sqrt prices.

    Amounts owed (positive delta) round up; amounts paid out round toward zero.
    """
    delta = to_decimal(liquidity_delta)
    curr = to_decimal(curr_sqrt_price)
    lower = to_decimal(lower_sqrt_price)
    upper = to_decimal(upper_sqrt_price)
    round_up = delta > 0

    if upper <= curr:
        return TokenAmounts(
            base_amount=Decimal(0),
            quote_amount=liquidity_to_quote(lower, upper, delta, round_up, ctx),
        )
    if lower <= curr:
        return TokenAmounts(
            base_amount=liquidity_to_base(curr, upper, delta, round_up, ctx),
            quote_amount=liquidity_to_quote(lower, curr, delta, round_up, ctx),
        )
    return TokenAmounts(
        base_amount=liquidity_to_base(lower, upper, delta, round_up, ctx),
        quote_amount=Decimal(0),
    )


def liquidity_to_amounts(
    curr_limit: int,
    curr_sqrt_price: DecimalLike,
    liquidity_delta: DecimalLike,
    lower_limit: int,
    upper_limit: int,
    width: int,
    ctx: ArithmeticContext | None = None,
) -> TokenAmounts:
    """Base and quote amounts for a liquidity change on [lower_limit, upper_limit).

    Limits are shifted. The region is chosen from the limits rather than the
    prices, so a range whose upper limit equals the current limit is treated
    as fully below the price and holds no base.

    Args:
        curr_limit: Pool's current shifted limit
        curr_sqrt_price: Pool's current sqrt price
        liquidity_delta: Signed liquidity change
        lower_limit: Range lower shifted limit
        upper_limit: Range upper shifted limit
        width: Limit width
        ctx: Arithmetic context (precision)

    Returns:
        TokenAmounts, rounded up when owed and toward zero when paid out
    """
    delta = to_decimal(liquidity_delta)
    round_up = delta > 0
    lower_sqrt_price = limit_to_sqrt_price(lower_limit, width, ctx)
    upper_sqrt_price = limit_to_sqrt_price(upper_limit, width, ctx)

    if upper_limit <= curr_limit:
        return TokenAmounts(
            base_amount=Decimal(0),
            quote_amount=liquidity_to_quote(lower_sqrt_price, upper_sqrt_price, delta, round_up, ctx),
        )
    if lower_limit <= curr_limit:
        return TokenAmounts(
            base_amount=liquidity_to_base(curr_sqrt_price, upper_sqrt_price, delta, round_up, ctx),
            quote_amount=liquidity_to_quote(lower_sqrt_price, curr_sqrt_price, delta, round_up, ctx),
        )
    return TokenAmounts(
        base_amount=liquidity_to_base(lower_sqrt_price, upper_sqrt_price, delta, round_up, ctx),
        quote_amount=Decimal(0),
    )
