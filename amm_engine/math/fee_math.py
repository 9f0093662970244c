"""Swap fee conversions and fee growth inside a limit range.

Gross amounts include the fee, net amounts exclude it:

    gross = net + fee,  fee = gross * rate

Rounding is an explicit argument on every conversion. The protocol-favouring
choice is to round fees up and net proceeds down, which are the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from amm_engine.constants import FEE_FACTOR_DECIMALS
from amm_engine.errors import InternalInconsistency, InvalidFeeRate

from .context import EXACT_CONTEXT, ArithmeticContext, DecimalLike, resolve, to_decimal

__all__ = [
    "FeeFactors",
    "validate_fee_rate",
    "calc_fee",
    "gross_to_net",
    "net_to_gross",
    "net_to_fee",
    "fee_growth",
    "get_fee_inside",
]

_FEE_FACTOR_QUANTUM = Decimal(1).scaleb(-FEE_FACTOR_DECIMALS)


@dataclass(frozen=True)
class FeeFactors:
    """Cumulative fee per unit of liquidity, per token."""

    base_fee_factor: Decimal
    quote_fee_factor: Decimal


def validate_fee_rate(fee_rate: DecimalLike, allow_one: bool = True) -> Decimal:
    """Parse and range-check a fee rate.

    Args:
        fee_rate: Rate as a decimal fraction (0.003 for 0.3%)
        allow_one: Whether a rate of exactly 1 is legal

    Returns:
        The rate as Decimal

    Raises:
        InvalidFeeRate: If the rate is negative, above 1, or equal to 1 when
            allow_one is False
    """
    rate = to_decimal(fee_rate)
    if rate < 0 or rate > 1 or (rate == 1 and not allow_one):
        bound = "1]" if allow_one else "1)"
        raise InvalidFeeRate(f"Fee rate must be in range [0, {bound}, got {rate}")
    return rate


def calc_fee(
    gross_amount: DecimalLike,
    fee_rate: DecimalLike,
    round_up: bool = True,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Fee charged on a gross amount: gross_amount * fee_rate."""
    rate = validate_fee_rate(fee_rate)
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(gross_amount) * rate


def gross_to_net(
    gross_amount: DecimalLike,
    fee_rate: DecimalLike,
    round_up: bool = False,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Amount left after the fee: gross_amount - calc_fee(gross_amount).

    The fee is rounded opposite to the net amount, so the two always sum
    back to the gross amount.
    """
    gross = to_decimal(gross_amount)
    fee = calc_fee(gross, fee_rate, not round_up, ctx)
    with resolve(ctx).with_rounding(round_up).local():
        return gross - fee


def net_to_gross(
    net_amount: DecimalLike,
    fee_rate: DecimalLike,
    round_up: bool = True,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Gross amount whose net is net_amount: net_amount / (1 - fee_rate).

    Raises:
        InvalidFeeRate: If fee_rate is not in [0, 1)
    """
    rate = validate_fee_rate(fee_rate, allow_one=False)
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(net_amount) / (1 - rate)


def net_to_fee(
    net_amount: DecimalLike,
    fee_rate: DecimalLike,
    round_up: bool = True,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Fee charged when net_amount is consumed: net_amount * fee_rate / (1 - fee_rate).

    Raises:
        InvalidFeeRate: If fee_rate is not in [0, 1)
    """
    rate = validate_fee_rate(fee_rate, allow_one=False)
    with resolve(ctx).with_rounding(round_up).local():
        return to_decimal(net_amount) * rate / (1 - rate)


def fee_growth(
    fee: DecimalLike,
    liquidity: DecimalLike,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Fee per unit of liquidity, truncated to the fee factor scale.

    Fee factors only ever change by values on this fixed scale, so the
    accumulators, limit snapshots and inside values derived from them are
    exact. The truncated remainder stays unallocated.

    Args:
        fee: Liquidity providers' share of a step fee
        liquidity: Active liquidity the fee is shared across
        ctx: Arithmetic context for the division

    Returns:
        Growth to add to the global fee factor (0 without liquidity)
    """
    fee = to_decimal(fee)
    liquidity = to_decimal(liquidity)
    if fee <= 0 or liquidity <= 0:
        return Decimal(0)
    with resolve(ctx).with_rounding(False).local():
        growth = fee / liquidity
    with EXACT_CONTEXT.local():
        return growth.quantize(_FEE_FACTOR_QUANTUM)


def _fee_inside(
    lower_factor: Decimal,
    upper_factor: Decimal,
    lower_limit: int,
    upper_limit: int,
    curr_limit: int,
    global_factor: Decimal,
) -> Decimal:
    # Limit snapshots hold growth on the side away from the current limit
    below = lower_factor if lower_limit <= curr_limit else global_factor - lower_factor
    above = upper_factor if upper_limit > curr_limit else global_factor - upper_factor
    return global_factor - below - above


def get_fee_inside(
    lower_base_fee_factor: DecimalLike,
    lower_quote_fee_factor: DecimalLike,
    upper_base_fee_factor: DecimalLike,
    upper_quote_fee_factor: DecimalLike,
    lower_limit: int,
    upper_limit: int,
    curr_limit: int,
    base_fee_factor: DecimalLike,
    quote_fee_factor: DecimalLike,
) -> FeeFactors:
    """Fee growth accrued inside [lower_limit, upper_limit).

    inside = global - below - above, where each limit's snapshot is taken as
    growth outside the range if the current limit is on the range side of
    it, and flipped (global - snapshot) otherwise. Base and quote are
    evaluated independently, without rounding.

    Args:
        lower_base_fee_factor: Base snapshot of the lower limit
        lower_quote_fee_factor: Quote snapshot of the lower limit
        upper_base_fee_factor: Base snapshot of the upper limit
        upper_quote_fee_factor: Quote snapshot of the upper limit
        lower_limit: Range lower limit
        upper_limit: Range upper limit
        curr_limit: Pool's current limit
        base_fee_factor: Global base fee factor
        quote_fee_factor: Global quote fee factor

    Returns:
        FeeFactors inside the range

    Raises:
        InternalInconsistency: If either inside value is negative
    """
    with EXACT_CONTEXT.local():
        base_inside = _fee_inside(
            to_decimal(lower_base_fee_factor),
            to_decimal(upper_base_fee_factor),
            lower_limit,
            upper_limit,
            curr_limit,
            to_decimal(base_fee_factor),
        )
        quote_inside = _fee_inside(
            to_decimal(lower_quote_fee_factor),
            to_decimal(upper_quote_fee_factor),
            lower_limit,
            upper_limit,
            curr_limit,
            to_decimal(quote_fee_factor),
        )
    if base_inside < 0 or quote_inside < 0:
        raise InternalInconsistency(
            f"Negative fee growth inside [{lower_limit}, {upper_limit}) at limit {curr_limit}: "
            f"base={base_inside}, quote={quote_inside}"
        )
    return FeeFactors(base_fee_factor=base_inside, quote_fee_factor=quote_inside)
