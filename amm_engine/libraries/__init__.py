"""Engine libraries built on the pure math: swap steps, limit bitmap, liquidity caps."""

from amm_engine.libraries.bitmap import LimitBitmap
from amm_engine.libraries.liquidity import max_liquidity_per_limit
from amm_engine.libraries.swap import (
    SwapStep,
    compute_swap_amount,
    next_sqrt_price_amount_in,
    next_sqrt_price_amount_out,
)

__all__ = [
    "LimitBitmap",
    "max_liquidity_per_limit",
    "SwapStep",
    "compute_swap_amount",
    "next_sqrt_price_amount_in",
    "next_sqrt_price_amount_out",
]
