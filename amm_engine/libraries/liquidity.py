"""Per-limit liquidity cap."""

from __future__ import annotations

from decimal import Decimal

from amm_engine.constants import MAX, MAX_NUM_LIMITS
from amm_engine.math.context import ArithmeticContext, resolve
from amm_engine.math.price_math import validate_width

__all__ = ["max_liquidity_per_limit"]


def max_liquidity_per_limit(width: int, ctx: ArithmeticContext | None = None) -> Decimal:
    """Largest liquidity a single limit may reference.

    MAX spread evenly over the number of limits addressable at this width
    (rounded up), so that active liquidity summed over every limit can never
    exceed MAX.
    """
    validate_width(width)
    num_limits = -(-MAX_NUM_LIMITS // width)
    with resolve(ctx).local():
        return Decimal(MAX) / num_limits
