"""Replicating market-making strategy.

Places a bid range (quote liquidity) just below an oracle price and an ask
range (base liquidity) just above it. The spread on the side the inventory is
overweight in is widened in proportion to the imbalance, so the strategy
leans towards rebalancing.

All limits here are shifted.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from amm_engine.math.context import ArithmeticContext, DecimalLike, resolve, to_decimal
from amm_engine.math.liquidity_math import base_to_liquidity, quote_to_liquidity
from amm_engine.math.price_math import limit_to_sqrt_price, max_limit, validate_width

__all__ = ["Spreads", "RangeOrder", "BidAsk", "delta_spread", "calc_bid_ask", "get_bid_ask"]


@dataclass(frozen=True)
class Spreads:
    """Extra spread, in limits, applied to each side."""

    bid_spread: Decimal
    ask_spread: Decimal


@dataclass(frozen=True)
class RangeOrder:
    """Liquidity to place over [lower_limit, upper_limit) (shifted limits)."""

    lower_limit: int
    upper_limit: int
    liquidity: Decimal


@dataclass(frozen=True)
class BidAsk:
    """Bid and ask ranges; a side is None when it cannot be placed in bounds."""

    bid: RangeOrder | None
    ask: RangeOrder | None


def delta_spread(
    max_delta: DecimalLike,
    base_amount: DecimalLike,
    quote_amount: DecimalLike,
    price: DecimalLike,
    ctx: ArithmeticContext | None = None,
) -> Spreads:
    """Inventory-skew spread.

    imbalance = |quote - base * price| / (quote + base * price), and
    spread = max_delta * imbalance is applied to the bid when the base
    inventory is worth less than the quote inventory, to the ask otherwise.
    """
    base = to_decimal(base_amount)
    quote = to_decimal(quote_amount)
    with resolve(ctx).local():
        base_in_quote = base * to_decimal(price)
        total = quote + base_in_quote
        if total == 0:
            return Spreads(bid_spread=Decimal(0), ask_spread=Decimal(0))
        imbalance = abs((quote - base_in_quote) / total)
        spread = to_decimal(max_delta) * imbalance
    if base_in_quote < quote:
        return Spreads(bid_spread=spread, ask_spread=Decimal(0))
    return Spreads(bid_spread=Decimal(0), ask_spread=spread)


def _whole_limits(spread: DecimalLike) -> int:
    return int(to_decimal(spread).to_integral_value(rounding=ROUND_FLOOR))


def calc_bid_ask(
    curr_limit: int,
    new_limit: int,
    bid_delta: DecimalLike,
    ask_delta: DecimalLike,
    min_spread: int,
    width: int,
) -> tuple[int, int]:
    """Bid upper limit and ask lower limit around new_limit.

    The bid never sits above the current limit and the ask never at or below
    it. Fractional spreads are floored to whole limits.

    Args:
        curr_limit: Market's current shifted limit
        new_limit: Shifted limit of the oracle price
        bid_delta: Extra bid spread from delta_spread
        ask_delta: Extra ask spread from delta_spread
        min_spread: Minimum spread on both sides, in limits
        width: Limit width

    Returns:
        (bid_limit, ask_limit), both multiples of width
    """
    validate_width(width)
    bid_spread = min_spread + _whole_limits(bid_delta)
    ask_spread = min_spread + _whole_limits(ask_delta)

    if bid_spread > new_limit or curr_limit < width:
        raw_bid = 0
    else:
        raw_bid = min(curr_limit, new_limit - bid_spread)
    raw_ask = min(max(new_limit + width + ask_spread, curr_limit + width), max_limit(width))

    bid_limit = raw_bid - raw_bid % width
    ask_limit = raw_ask - raw_ask % width + width
    return bid_limit, ask_limit


def get_bid_ask(
    max_delta: DecimalLike,
    base_amount: DecimalLike,
    quote_amount: DecimalLike,
    price: DecimalLike,
    width: int,
    curr_limit: int,
    new_limit: int,
    min_spread: int,
    range_size: int,
    ctx: ArithmeticContext | None = None,
) -> BidAsk:
    """Size the bid and ask ranges for the given inventory.

    The bid covers [bid - range_size, bid] and is funded with the quote
    inventory; the ask covers [ask, ask + range_size] and is funded with the
    base inventory. Ranges are clipped to the addressable limits.
    """
    spreads = delta_spread(max_delta, base_amount, quote_amount, price, ctx)
    bid_upper, ask_lower = calc_bid_ask(
        curr_limit,
        new_limit,
        spreads.bid_spread,
        spreads.ask_spread,
        min_spread,
        width,
    )
    top = max_limit(width)

    bid = None
    bid_lower = max(bid_upper - range_size, 0)
    if bid_lower < bid_upper:
        bid = RangeOrder(
            lower_limit=bid_lower,
            upper_limit=bid_upper,
            liquidity=quote_to_liquidity(
                limit_to_sqrt_price(bid_lower, width, ctx),
                limit_to_sqrt_price(bid_upper, width, ctx),
                quote_amount,
                ctx=ctx,
            ),
        )

    ask = None
    ask_upper = min(ask_lower + range_size, top)
    if ask_lower < ask_upper:
        ask = RangeOrder(
            lower_limit=ask_lower,
            upper_limit=ask_upper,
            liquidity=base_to_liquidity(
                limit_to_sqrt_price(ask_lower, width, ctx),
                limit_to_sqrt_price(ask_upper, width, ctx),
                base_amount,
                ctx=ctx,
            ),
        )

    return BidAsk(bid=bid, ask=ask)
