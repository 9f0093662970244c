"""Ledger entries and operation results for the market manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

__all__ = [
    "LimitInfo",
    "PositionKey",
    "Position",
    "PositionUpdate",
    "SwapResult",
]


@dataclass
class LimitInfo:
    """Per-limit ledger entry.

    Attributes:
        liquidity: Total liquidity of positions using this limit as a boundary
        liquidity_delta: Net liquidity added to the active total when the price
            crosses this limit upwards
        base_fee_factor: Base fee growth on the side of this limit away from
            the current price, as of the last crossing
        quote_fee_factor: Quote counterpart of base_fee_factor
    """

    liquidity: Decimal = field(default_factory=Decimal)
    liquidity_delta: Decimal = field(default_factory=Decimal)
    base_fee_factor: Decimal = field(default_factory=Decimal)
    quote_fee_factor: Decimal = field(default_factory=Decimal)

    @property
    def initialised(self) -> bool:
        return self.liquidity != 0


@dataclass(frozen=True)
class PositionKey:
    """Identity of a position: owner plus signed external limits."""

    owner: str
    lower_limit: int
    upper_limit: int


@dataclass
class Position:
    """Liquidity held by one owner over [lower_limit, upper_limit).

    Fee factor snapshots record the range's inside fee growth at the last
    settlement; fees owed are the growth since then times liquidity.
    """

    lower_limit: int
    upper_limit: int
    liquidity: Decimal = field(default_factory=Decimal)
    base_fee_factor_last: Decimal = field(default_factory=Decimal)
    quote_fee_factor_last: Decimal = field(default_factory=Decimal)


@dataclass(frozen=True)
class PositionUpdate:
    """Result of modify_position.

    Amounts are positive when owed by the caller and negative when paid out.
    Fees are the position's accrued fees settled by this call.
    """

    base_amount: Decimal
    quote_amount: Decimal
    base_fees: Decimal
    quote_fees: Decimal


@dataclass(frozen=True)
class SwapResult:
    """Result of a swap.

    Attributes:
        amount_in: Gross input paid, fee included
        amount_out: Output received
        fees: Total swap fee charged
        protocol_fees: Part of fees kept by the protocol
        end_sqrt_price: Sqrt price after the swap
        end_limit: Signed external limit after the swap
        steps: Number of swap steps executed
        filled: False if the swap stopped early for lack of liquidity or at
            the threshold price
    """

    amount_in: Decimal
    amount_out: Decimal
    fees: Decimal
    protocol_fees: Decimal
    end_sqrt_price: Decimal
    end_limit: int
    steps: int
    filled: bool
