"""Pydantic models for diffing engine results against contract traces.

All numeric values are exchanged as base-10 decimal strings so no precision
is lost; to_fixed_point() converts a trace to the integer representation the
settlement contract uses (18 decimals for amounts, 28 for sqrt prices and fee
factors).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from amm_engine.constants import AMOUNT_DECIMALS, SQRT_PRICE_DECIMALS
from amm_engine.math.context import to_fixed_point
from amm_engine.models.types import DecimalString

if TYPE_CHECKING:
    from amm_engine.market.state import PositionUpdate, SwapResult


class SwapTrace(BaseModel):
    """Outcome of a swap."""

    amount_in: DecimalString = Field(alias="amountIn", description="Gross input paid, fee included")
    amount_out: DecimalString = Field(alias="amountOut")
    fees: DecimalString
    protocol_fees: DecimalString = Field(alias="protocolFees")
    end_sqrt_price: DecimalString = Field(alias="endSqrtPrice")
    end_limit: int = Field(alias="endLimit", description="Signed limit after the swap")
    steps: int = Field(ge=0)
    filled: bool

    model_config = {"populate_by_name": True}

    @classmethod
    def from_result(cls, result: SwapResult) -> SwapTrace:
        return cls(
            amount_in=result.amount_in,
            amount_out=result.amount_out,
            fees=result.fees,
            protocol_fees=result.protocol_fees,
            end_sqrt_price=result.end_sqrt_price,
            end_limit=result.end_limit,
            steps=result.steps,
            filled=result.filled,
        )

    def to_fixed_point(self) -> dict[str, int]:
        """Integer amounts at contract scale.

        Amounts paid in round up and amounts paid out round down.
        """
        return {
            "amountIn": to_fixed_point(self.amount_in, AMOUNT_DECIMALS, round_up=True),
            "amountOut": to_fixed_point(self.amount_out, AMOUNT_DECIMALS),
            "fees": to_fixed_point(self.fees, AMOUNT_DECIMALS, round_up=True),
            "protocolFees": to_fixed_point(self.protocol_fees, AMOUNT_DECIMALS, round_up=True),
            "endSqrtPrice": to_fixed_point(self.end_sqrt_price, SQRT_PRICE_DECIMALS),
        }


class PositionTrace(BaseModel):
    """Outcome of modify_position.

    Amounts are positive when owed by the caller, negative when paid out.
    """

    base_amount: DecimalString = Field(alias="baseAmount")
    quote_amount: DecimalString = Field(alias="quoteAmount")
    base_fees: DecimalString = Field(alias="baseFees")
    quote_fees: DecimalString = Field(alias="quoteFees")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_update(cls, update: PositionUpdate) -> PositionTrace:
        return cls(
            base_amount=update.base_amount,
            quote_amount=update.quote_amount,
            base_fees=update.base_fees,
            quote_fees=update.quote_fees,
        )

    def to_fixed_point(self) -> dict[str, int]:
        """Integer amounts at contract scale; owed amounts round up, payouts toward zero."""
        return {
            "baseAmount": _signed_amount(self.base_amount),
            "quoteAmount": _signed_amount(self.quote_amount),
            "baseFees": to_fixed_point(self.base_fees, AMOUNT_DECIMALS),
            "quoteFees": to_fixed_point(self.quote_fees, AMOUNT_DECIMALS),
        }


def _signed_amount(value: str) -> int:
    return to_fixed_point(value, AMOUNT_DECIMALS, round_up=not value.startswith("-"))


class MarketSnapshot(BaseModel):
    """Pool state at a quiescent point."""

    width: int = Field(ge=1)
    curr_limit: int = Field(alias="currLimit")
    curr_sqrt_price: DecimalString = Field(alias="currSqrtPrice")
    liquidity: DecimalString
    swap_fee_rate: DecimalString = Field(alias="swapFeeRate")
    protocol_share: DecimalString = Field(alias="protocolShare")
    base_fee_factor: DecimalString = Field(alias="baseFeeFactor")
    quote_fee_factor: DecimalString = Field(alias="quoteFeeFactor")
    protocol_base_fees: DecimalString = Field(alias="protocolBaseFees")
    protocol_quote_fees: DecimalString = Field(alias="protocolQuoteFees")
    initialised_limits: list[int] = Field(default_factory=list, alias="initialisedLimits")

    model_config = {"populate_by_name": True}

    def to_fixed_point(self) -> dict[str, int]:
        """Sqrt price and fee factors at 28 decimals, liquidity and fees at 18."""
        return {
            "currSqrtPrice": to_fixed_point(self.curr_sqrt_price, SQRT_PRICE_DECIMALS),
            "liquidity": to_fixed_point(self.liquidity, AMOUNT_DECIMALS),
            "baseFeeFactor": to_fixed_point(self.base_fee_factor, SQRT_PRICE_DECIMALS),
            "quoteFeeFactor": to_fixed_point(self.quote_fee_factor, SQRT_PRICE_DECIMALS),
            "protocolBaseFees": to_fixed_point(self.protocol_base_fees, AMOUNT_DECIMALS),
            "protocolQuoteFees": to_fixed_point(self.protocol_quote_fees, AMOUNT_DECIMALS),
        }


__all__ = ["SwapTrace", "PositionTrace", "MarketSnapshot"]
