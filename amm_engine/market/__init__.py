"""Stateful market: limit and position ledgers plus the swap loop."""

from amm_engine.market.config import MarketConfig
from amm_engine.market.manager import DEFAULT_OWNER, MarketManager
from amm_engine.market.state import (
    LimitInfo,
    Position,
    PositionKey,
    PositionUpdate,
    SwapResult,
)

__all__ = [
    "MarketConfig",
    "MarketManager",
    "DEFAULT_OWNER",
    "LimitInfo",
    "Position",
    "PositionKey",
    "PositionUpdate",
    "SwapResult",
]
