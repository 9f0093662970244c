"""Multiply-then-divide at the contract's fixed decimal scale."""

from __future__ import annotations

import decimal
from decimal import ROUND_DOWN, ROUND_UP, Decimal

from amm_engine.constants import SQRT_PRICE_DECIMALS

from .context import ArithmeticContext, DecimalLike, resolve, to_decimal

__all__ = ["mul_div"]


def mul_div(
    x: DecimalLike,
    y: DecimalLike,
    denominator: DecimalLike,
    round_up: bool = False,
    ctx: ArithmeticContext | None = None,
    decimals: int = SQRT_PRICE_DECIMALS,
) -> Decimal:
    """Compute x * y / denominator, rounded to a fixed number of decimals.

    The intermediate product is kept at full context precision; rounding
    happens once, at the final quantisation, in the requested direction.

    Args:
        x: First factor
        y: Second factor
        denominator: Divisor, must be non-zero
        round_up: Round away from zero if True, toward zero otherwise
        ctx: Arithmetic context (precision)
        decimals: Decimal places kept in the result (28 by default)

    Raises:
        ZeroDivisionError: If denominator is zero
    """
    d = to_decimal(denominator)
    if d == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    active = resolve(ctx).with_rounding(round_up)
    with active.local():
        result = to_decimal(x) * to_decimal(y) / d
    # Quantising can need more digits than the working precision
    wide = decimal.Context(prec=active.precision + decimals + 2)
    return result.quantize(
        Decimal(1).scaleb(-decimals),
        rounding=ROUND_UP if round_up else ROUND_DOWN,
        context=wide,
    )
