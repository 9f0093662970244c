"""Concentrated liquidity AMM pricing and accounting engine."""

from amm_engine.errors import (
    AmmEngineError,
    InsufficientLiquidity,
    InternalInconsistency,
    InvalidFeeRate,
    InvalidRange,
    OutOfBounds,
    StepLimitExceeded,
    Underflow,
)
from amm_engine.market import MarketConfig, MarketManager
from amm_engine.math.context import DEFAULT_CONTEXT, ArithmeticContext

__version__ = "0.1.0"
__all__ = [
    "MarketManager",
    "MarketConfig",
    "ArithmeticContext",
    "DEFAULT_CONTEXT",
    # Errors
    "AmmEngineError",
    "OutOfBounds",
    "InvalidFeeRate",
    "InvalidRange",
    "Underflow",
    "InsufficientLiquidity",
    "InternalInconsistency",
    "StepLimitExceeded",
    "__version__",
]
