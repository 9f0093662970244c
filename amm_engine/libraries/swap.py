"""Single-step swap math at constant liquidity.

A step moves the sqrt price from curr towards target within one limit
interval. Buying (quote in, base out) raises the price; selling (base in,
quote out) lowers it. The direction of a step is implied by the order of
curr and target.

The fee is charged only on the input actually consumed by the step. When a
step stops short of its target, the unconsumed part of the remaining input
is not charged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from amm_engine.errors import InsufficientLiquidity, OutOfBounds
from amm_engine.math.context import ArithmeticContext, DecimalLike, resolve, to_decimal
from amm_engine.math.fee_math import calc_fee, gross_to_net, net_to_fee
from amm_engine.math.liquidity_math import liquidity_to_base, liquidity_to_quote

__all__ = [
    "SwapStep",
    "next_sqrt_price_amount_in",
    "next_sqrt_price_amount_out",
    "compute_swap_amount",
]


@dataclass(frozen=True)
class SwapStep:
    """Outcome of one constant-liquidity step.

    Attributes:
        next_sqrt_price: Sqrt price at the end of the step
        amount_in: Net input consumed (excluding fee)
        amount_out: Output produced
        fee: Fee charged on amount_in
        gross_amount_in: Input taken from the swapper, fee included; never
            more than the remaining amount of an exact-input swap
    """

    next_sqrt_price: Decimal
    amount_in: Decimal
    amount_out: Decimal
    fee: Decimal
    gross_amount_in: Decimal


def next_sqrt_price_amount_in(
    curr_sqrt_price: DecimalLike,
    liquidity: DecimalLike,
    amount_in: DecimalLike,
    is_buy: bool,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Sqrt price reached after consuming a net input amount.

    buy:  curr + amount_in / L
    sell: L * curr / (L + amount_in * curr)

    Raises:
        InsufficientLiquidity: If liquidity is zero
    """
    curr = to_decimal(curr_sqrt_price)
    liq = to_decimal(liquidity)
    amount = to_decimal(amount_in)
    if liq <= 0:
        raise InsufficientLiquidity("Cannot move price with zero liquidity")
    with resolve(ctx).local():
        if is_buy:
            return curr + amount / liq
        return liq * curr / (liq + amount * curr)


def next_sqrt_price_amount_out(
    curr_sqrt_price: DecimalLike,
    liquidity: DecimalLike,
    amount_out: DecimalLike,
    is_buy: bool,
    ctx: ArithmeticContext | None = None,
) -> Decimal:
    """Sqrt price reached after producing an output amount.

    buy:  L * curr / (L - amount_out * curr)
    sell: curr - amount_out / L

    Raises:
        InsufficientLiquidity: If the output cannot be produced at this liquidity
    """
    curr = to_decimal(curr_sqrt_price)
    liq = to_decimal(liquidity)
    amount = to_decimal(amount_out)
    if liq <= 0:
        raise InsufficientLiquidity("Cannot move price with zero liquidity")
    with resolve(ctx).local():
        if is_buy:
            denominator = liq - amount * curr
            if denominator <= 0:
                raise InsufficientLiquidity(f"Output {amount} exceeds base reserves at liquidity {liq}")
            return liq * curr / denominator
        result = curr - amount / liq
    if result <= 0:
        raise InsufficientLiquidity(f"Output {amount} exceeds quote reserves at liquidity {liq}")
    return result


def compute_swap_amount(
    curr_sqrt_price: DecimalLike,
    target_sqrt_price: DecimalLike,
    liquidity: DecimalLike,
    amount_remaining: DecimalLike,
    fee_rate: DecimalLike,
    exact_input: bool,
    ctx: ArithmeticContext | None = None,
) -> SwapStep:
    """Compute one swap step from curr towards target.

    If the remaining amount (net of fee, for exact input) covers the whole
    interval, the step ends exactly at target. Otherwise the end price is
    solved from the remaining amount and the other side is recomputed from
    that price. A partial exact-input step consumes exactly the remaining
    gross amount, so a swap is never charged more than it offered.

    Args:
        curr_sqrt_price: Sqrt price at the start of the step
        target_sqrt_price: Furthest sqrt price the step may reach
        liquidity: Active liquidity over the interval
        amount_remaining: Gross input (exact input) or output still wanted
        fee_rate: Swap fee rate in [0, 1)
        exact_input: True if amount_remaining is an input amount
        ctx: Arithmetic context (precision)

    Returns:
        SwapStep with end price, net input, output and fee

    Raises:
        OutOfBounds: If amount_remaining is negative
    """
    active = resolve(ctx)
    curr = to_decimal(curr_sqrt_price)
    target = to_decimal(target_sqrt_price)
    liq = to_decimal(liquidity)
    remaining = to_decimal(amount_remaining)
    if remaining < 0:
        raise OutOfBounds(f"Amount remaining must be non-negative, got {remaining}")
    is_buy = target >= curr

    def amount_in_between(start: Decimal, end: Decimal) -> Decimal:
        if is_buy:
            return liquidity_to_quote(start, end, liq, True, active)
        return liquidity_to_base(end, start, liq, True, active)

    def amount_out_between(start: Decimal, end: Decimal) -> Decimal:
        if is_buy:
            return liquidity_to_base(start, end, liq, False, active)
        return liquidity_to_quote(end, start, liq, False, active)

    if exact_input:
        remaining_less_fee = gross_to_net(remaining, fee_rate, False, active)
        amount_in = amount_in_between(curr, target)
        if remaining_less_fee >= amount_in:
            next_sqrt_price = target
        else:
            next_sqrt_price = next_sqrt_price_amount_in(curr, liq, remaining_less_fee, is_buy, active)
    else:
        amount_out = amount_out_between(curr, target)
        if remaining >= amount_out:
            next_sqrt_price = target
        else:
            next_sqrt_price = next_sqrt_price_amount_out(curr, liq, remaining, is_buy, active)

    full_step = next_sqrt_price == target

    if not exact_input:
        amount_in = amount_in_between(curr, next_sqrt_price)
    if not full_step or exact_input:
        amount_out = amount_out_between(curr, next_sqrt_price)

    if not exact_input and amount_out > remaining:
        amount_out = remaining

    if exact_input and not full_step:
        # The whole remaining input is consumed and the fee is carved out of it
        amount_in = remaining_less_fee
        fee = calc_fee(remaining, fee_rate, True, active)
        gross_amount_in = remaining
    else:
        fee = net_to_fee(amount_in, fee_rate, True, active)
        with active.with_rounding(True).local():
            gross_amount_in = amount_in + fee
        if exact_input and gross_amount_in > remaining:
            # Target reached with exactly the remaining input
            gross_amount_in = remaining
            with active.with_rounding(False).local():
                fee = remaining - amount_in

    return SwapStep(
        next_sqrt_price=next_sqrt_price,
        amount_in=amount_in,
        amount_out=amount_out,
        fee=fee,
        gross_amount_in=gross_amount_in,
    )
