"""Pure math for the engine.

This package provides the stateless building blocks:
- context: explicit Decimal precision and rounding
- price_math: limit <-> sqrt price conversion
- liquidity_math: liquidity <-> token amounts
- fee_math: fee conversions and fee growth inside a range
- full_math, bit_math: fixed-scale mul_div and bit scans
"""

from amm_engine.math.bit_math import lsb, msb
from amm_engine.math.context import (
    DEFAULT_CONTEXT,
    ArithmeticContext,
    from_fixed_point,
    to_decimal,
    to_fixed_point,
)
from amm_engine.math.fee_math import (
    FeeFactors,
    calc_fee,
    fee_growth,
    get_fee_inside,
    gross_to_net,
    net_to_fee,
    net_to_gross,
)
from amm_engine.math.full_math import mul_div
from amm_engine.math.liquidity_math import (
    TokenAmounts,
    base_to_liquidity,
    liquidity_to_amounts,
    liquidity_to_base,
    liquidity_to_quote,
    quote_to_liquidity,
)
from amm_engine.math.price_math import (
    limit_to_sqrt_price,
    price_to_limit,
    shift_limit,
    sqrt_price_to_limit,
    unshift_limit,
)

__all__ = [
    "ArithmeticContext",
    "DEFAULT_CONTEXT",
    "to_decimal",
    "to_fixed_point",
    "from_fixed_point",
    # Price
    "limit_to_sqrt_price",
    "sqrt_price_to_limit",
    "price_to_limit",
    "shift_limit",
    "unshift_limit",
    # Liquidity
    "TokenAmounts",
    "liquidity_to_quote",
    "liquidity_to_base",
    "quote_to_liquidity",
    "base_to_liquidity",
    "liquidity_to_amounts",
    # Fees
    "FeeFactors",
    "calc_fee",
    "gross_to_net",
    "net_to_gross",
    "net_to_fee",
    "fee_growth",
    "get_fee_inside",
    # Bits
    "mul_div",
    "msb",
    "lsb",
]
