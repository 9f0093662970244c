"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Market parameters and comparison tolerances
- factories: Market factory and price helpers
"""

from tests.helpers.constants import PROTOCOL_SHARE, SWAP_FEE_RATE, TOLERANCE
from tests.helpers.factories import active_liquidity_from_ledger, make_market, sqrt_price_at

__all__ = [
    "PROTOCOL_SHARE",
    "SWAP_FEE_RATE",
    "TOLERANCE",
    "active_liquidity_from_ledger",
    "make_market",
    "sqrt_price_at",
]
