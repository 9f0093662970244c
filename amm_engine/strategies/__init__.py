"""Liquidity placement strategies."""

from amm_engine.strategies.replicating import (
    BidAsk,
    RangeOrder,
    Spreads,
    calc_bid_ask,
    delta_spread,
    get_bid_ask,
)

__all__ = ["Spreads", "RangeOrder", "BidAsk", "delta_spread", "calc_bid_ask", "get_bid_ask"]
