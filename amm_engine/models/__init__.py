"""Serialisable models for engine results."""

from amm_engine.models.traces import MarketSnapshot, PositionTrace, SwapTrace
from amm_engine.models.types import DecimalString, validate_decimal_string

__all__ = [
    "DecimalString",
    "validate_decimal_string",
    "SwapTrace",
    "PositionTrace",
    "MarketSnapshot",
]
