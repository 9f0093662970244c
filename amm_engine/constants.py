"""Lattice and bounds constants for the concentrated liquidity engine.

Limits (ticks) are stored offset-encoded so that every internal value is
non-negative. External limit = internal limit - offset(width).
"""

from decimal import Decimal

# Price ratio between two adjacent limits (price space, not sqrt price space)
PRICE_BASE = Decimal("1.00001")

# Offset applied to signed limits so the internal representation is unsigned
OFFSET = 7_906_625

# External (signed) limit bounds at width 1
MIN_LIMIT = -OFFSET
MAX_LIMIT = OFFSET

# Largest internal (shifted) limit at width 1
MAX_LIMIT_SHIFTED = 2 * OFFSET

# Number of addressable limits at width 1
MAX_NUM_LIMITS = MAX_LIMIT_SHIFTED + 1

# Largest representable unsigned amount on-chain
MAX = 2**256 - 1

# Fixed-point scales used when reporting values to the settlement contract
AMOUNT_DECIMALS = 18
SQRT_PRICE_DECIMALS = 28

# Fee factors are held at this fixed scale so the ledger adds and subtracts
# them without rounding
FEE_FACTOR_DECIMALS = 60

__all__ = [
    "PRICE_BASE",
    "OFFSET",
    "MIN_LIMIT",
    "MAX_LIMIT",
    "MAX_LIMIT_SHIFTED",
    "MAX_NUM_LIMITS",
    "MAX",
    "AMOUNT_DECIMALS",
    "SQRT_PRICE_DECIMALS",
    "FEE_FACTOR_DECIMALS",
]
