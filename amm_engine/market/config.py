"""Market configuration."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from amm_engine.math.context import DEFAULT_CONTEXT, ArithmeticContext, DecimalLike
from amm_engine.math.fee_math import validate_fee_rate
from amm_engine.math.price_math import validate_width

__all__ = ["MarketConfig", "DEFAULT_MAX_SWAP_STEPS"]

DEFAULT_MAX_SWAP_STEPS = 10_000


@dataclass(frozen=True)
class MarketConfig:
    """Immutable parameters of one market.

    Rates are normalised to Decimal on construction, so floats and strings
    are accepted.

    Attributes:
        width: Spacing between addressable limits
        swap_fee_rate: Fee charged on swap input, in [0, 1)
        protocol_share: Share of each swap fee kept by the protocol, in [0, 1]
        max_swap_steps: Upper bound on swap loop iterations before failing fast
        context: Arithmetic context for every computation in the market
    """

    width: int = 1
    swap_fee_rate: DecimalLike = Decimal("0.003")
    protocol_share: DecimalLike = Decimal(0)
    max_swap_steps: int = DEFAULT_MAX_SWAP_STEPS
    context: ArithmeticContext = DEFAULT_CONTEXT

    def __post_init__(self) -> None:
        validate_width(self.width)
        object.__setattr__(self, "swap_fee_rate", validate_fee_rate(self.swap_fee_rate, allow_one=False))
        object.__setattr__(self, "protocol_share", validate_fee_rate(self.protocol_share))
        if self.max_swap_steps < 1:
            raise ValueError(f"max_swap_steps must be positive, got {self.max_swap_steps}")
