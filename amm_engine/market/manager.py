"""Stateful concentrated liquidity market.

MarketManager owns the limit ledger, the position ledger and the pool state
(current limit and sqrt price, active liquidity, global fee factors). It
orchestrates modify_position and swap on top of the pure math modules.

Limits are signed (external) at the public surface and shifted (internal,
non-negative) everywhere inside the manager.

Fee snapshot convention: a limit's fee factors hold the fee growth on the
side of the limit away from the current limit. When a limit becomes
initialised its snapshot is copied from the nearest initialised limit on that
far side (zero if there is none), so the fee growth between the two is
attributed to the near side. Every initialised snapshot then describes the
same distribution of fee growth over the price axis, and fee growth inside
any range is non-negative.

Fee factors only move by growth truncated to FEE_FACTOR_DECIMALS, and are
added, flipped and subtracted under EXACT_CONTEXT, so a snapshot taken at one
settlement is reproduced exactly at the next.
"""

from __future__ import annotations

import copy
from dataclasses import replace
from decimal import Decimal

import structlog

from amm_engine.constants import MAX
from amm_engine.errors import (
    InsufficientLiquidity,
    InternalInconsistency,
    InvalidRange,
    OutOfBounds,
    StepLimitExceeded,
    Underflow,
)
from amm_engine.libraries.bitmap import LimitBitmap
from amm_engine.libraries.liquidity import max_liquidity_per_limit
from amm_engine.libraries.swap import compute_swap_amount
from amm_engine.market.config import MarketConfig
from amm_engine.market.state import (
    LimitInfo,
    Position,
    PositionKey,
    PositionUpdate,
    SwapResult,
)
from amm_engine.math.context import EXACT_CONTEXT, DecimalLike, to_decimal
from amm_engine.math.fee_math import calc_fee, fee_growth, get_fee_inside
from amm_engine.math.liquidity_math import add_delta, liquidity_to_amounts
from amm_engine.math.price_math import (
    limit_to_sqrt_price,
    max_limit,
    max_sqrt_price,
    min_sqrt_price,
    shift_limit,
    sqrt_price_to_limit,
    unshift_limit,
)
from amm_engine.models.traces import MarketSnapshot

logger = structlog.get_logger()

DEFAULT_OWNER = ""

__all__ = ["MarketManager", "DEFAULT_OWNER"]


class MarketManager:
    """A single concentrated liquidity market.

    The pool is either quiescent or in the middle of a swap; ledger-changing
    calls are only accepted while quiescent. Every operation either completes
    or leaves the ledgers exactly as they were.

    Attributes:
        config: Immutable market parameters
        curr_sqrt_price: Current sqrt price
        liquidity: Active liquidity at the current limit
        base_fee_factor: Global base fee growth per unit of liquidity
        quote_fee_factor: Global quote fee growth per unit of liquidity
        protocol_base_fees: Base fees accrued to the protocol
        protocol_quote_fees: Quote fees accrued to the protocol
    """

    def __init__(self, config: MarketConfig, start_limit: int = 0) -> None:
        """Create an empty market.

        Args:
            config: Market parameters
            start_limit: Signed limit the price starts at

        Raises:
            OutOfBounds: If start_limit is outside the addressable range
        """
        self.config = config
        self._curr_limit = shift_limit(start_limit, config.width)
        self.curr_sqrt_price = limit_to_sqrt_price(self._curr_limit, config.width, config.context)
        self.liquidity = Decimal(0)
        self.base_fee_factor = Decimal(0)
        self.quote_fee_factor = Decimal(0)
        self.protocol_base_fees = Decimal(0)
        self.protocol_quote_fees = Decimal(0)
        self._limits: dict[int, LimitInfo] = {}
        self._positions: dict[PositionKey, Position] = {}
        self._bitmap = LimitBitmap(config.width)
        self._swapping = False

    def __repr__(self) -> str:
        return (
            f"MarketManager(width={self.width}, curr_limit={self.curr_limit}, "
            f"liquidity={self.liquidity}, initialised_limits={len(self._bitmap)})"
        )

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def curr_limit(self) -> int:
        """Current signed limit."""
        return unshift_limit(self._curr_limit, self.width)

    @property
    def swapping(self) -> bool:
        return self._swapping

    # =========================================================================
    # Reads
    # =========================================================================

    def position(self, lower_limit: int, upper_limit: int, owner: str = DEFAULT_OWNER) -> Position | None:
        """Copy of a position's ledger entry, or None if it was never created."""
        found = self._positions.get(PositionKey(owner, lower_limit, upper_limit))
        return replace(found) if found is not None else None

    def limit_info(self, limit: int) -> LimitInfo | None:
        """Copy of a signed limit's ledger entry, or None if never referenced."""
        found = self._limits.get(shift_limit(limit, self.width))
        return replace(found) if found is not None else None

    def initialised_limits(self) -> list[int]:
        """Signed initialised limits, ascending."""
        return [unshift_limit(limit, self.width) for limit in self._bitmap.limits()]

    def next_limit(self, limit: int, is_buy: bool) -> int | None:
        """Nearest signed initialised limit in the swap direction from limit."""
        found = self._bitmap.next_limit(shift_limit(limit, self.width), is_buy)
        return unshift_limit(found, self.width) if found is not None else None

    def snapshot(self) -> MarketSnapshot:
        """Serialisable view of the pool state."""
        return MarketSnapshot(
            width=self.width,
            curr_limit=self.curr_limit,
            curr_sqrt_price=self.curr_sqrt_price,
            liquidity=self.liquidity,
            swap_fee_rate=self.config.swap_fee_rate,
            protocol_share=self.config.protocol_share,
            base_fee_factor=self.base_fee_factor,
            quote_fee_factor=self.quote_fee_factor,
            protocol_base_fees=self.protocol_base_fees,
            protocol_quote_fees=self.protocol_quote_fees,
            initialised_limits=self.initialised_limits(),
        )

    # =========================================================================
    # Positions
    # =========================================================================

    def _require_quiescent(self, operation: str) -> None:
        if self._swapping:
            raise InternalInconsistency(f"{operation} called while a swap is in progress")

    def _validate_range(self, lower_limit: int, upper_limit: int) -> tuple[int, int]:
        """Shift and check a signed range.

        Raises:
            InvalidRange: If lower >= upper, a limit is not a multiple of
                width, or a limit is outside the addressable range
        """
        width = self.width
        if lower_limit >= upper_limit:
            raise InvalidRange(f"Lower limit {lower_limit} must be below upper limit {upper_limit}")
        if lower_limit % width or upper_limit % width:
            raise InvalidRange(f"Limits [{lower_limit}, {upper_limit}] must be multiples of width {width}")
        lower = shift_limit(lower_limit, width)
        upper = shift_limit(upper_limit, width)
        if lower < 0 or upper > max_limit(width):
            raise InvalidRange(f"Range [{lower_limit}, {upper_limit}] outside addressable limits for width {width}")
        return lower, upper

    def _initial_fee_factors(self, limit: int, staged: dict[int, LimitInfo]) -> tuple[Decimal, Decimal]:
        """Snapshot for a limit that is becoming initialised.

        Copied from the nearest initialised limit on the far side of the
        current limit, including limits staged in the same operation.
        """
        below = limit <= self._curr_limit
        if below:
            neighbour = self._bitmap.next_limit(limit - 1, is_buy=False)
        else:
            neighbour = self._bitmap.next_limit(limit, is_buy=True)
        for other, info in staged.items():
            if not info.initialised or other == limit:
                continue
            if below and other < limit and (neighbour is None or other > neighbour):
                neighbour = other
            elif not below and other > limit and (neighbour is None or other < neighbour):
                neighbour = other
        if neighbour is None:
            return Decimal(0), Decimal(0)
        source = staged.get(neighbour) or self._limits[neighbour]
        return source.base_fee_factor, source.quote_fee_factor

    def _stage_limit(
        self,
        limit: int,
        liquidity_delta: Decimal,
        net_delta: Decimal,
        cap: Decimal,
        staged: dict[int, LimitInfo],
    ) -> LimitInfo:
        """Updated copy of a boundary limit's entry; the ledger is not touched."""
        ctx = self.config.context
        existing = self._limits.get(limit)
        info = replace(existing) if existing is not None else LimitInfo()
        was_initialised = info.initialised
        info.liquidity = add_delta(info.liquidity, liquidity_delta, ctx)
        if info.liquidity > cap:
            raise OutOfBounds(
                f"Liquidity {info.liquidity} at limit {unshift_limit(limit, self.width)} exceeds maximum {cap}"
            )
        with ctx.local():
            info.liquidity_delta = info.liquidity_delta + net_delta
        if info.initialised and not was_initialised:
            info.base_fee_factor, info.quote_fee_factor = self._initial_fee_factors(limit, staged)
        return info

    def modify_position(
        self,
        lower_limit: int,
        upper_limit: int,
        liquidity_delta: DecimalLike,
        owner: str = DEFAULT_OWNER,
    ) -> PositionUpdate:
        """Add or remove liquidity over [lower_limit, upper_limit).

        Fees accrued since the position's last settlement are settled on the
        liquidity held before this change. A zero delta only settles fees.

        Args:
            lower_limit: Signed lower limit, a multiple of width
            upper_limit: Signed upper limit, a multiple of width
            liquidity_delta: Signed liquidity change
            owner: Position owner

        Returns:
            PositionUpdate with the amounts owed (positive) or paid out
            (negative) and the fees settled

        Raises:
            InvalidRange: If the range is empty, misaligned or out of bounds
            Underflow: If removing more liquidity than the position holds
            OutOfBounds: If a limit's liquidity would exceed the per-limit cap
        """
        self._require_quiescent("modify_position")
        ctx = self.config.context
        lower, upper = self._validate_range(lower_limit, upper_limit)
        delta = to_decimal(liquidity_delta)

        key = PositionKey(owner, lower_limit, upper_limit)
        existing = self._positions.get(key)
        position = replace(existing) if existing is not None else Position(lower_limit, upper_limit)
        liquidity_before = position.liquidity
        liquidity_after = add_delta(liquidity_before, delta, ctx)

        cap = max_liquidity_per_limit(self.width, ctx)
        staged: dict[int, LimitInfo] = {}
        staged[lower] = self._stage_limit(lower, delta, delta, cap, staged)
        staged[upper] = self._stage_limit(upper, delta, delta.copy_negate(), cap, staged)
        lower_info, upper_info = staged[lower], staged[upper]

        inside = get_fee_inside(
            lower_info.base_fee_factor,
            lower_info.quote_fee_factor,
            upper_info.base_fee_factor,
            upper_info.quote_fee_factor,
            lower,
            upper,
            self._curr_limit,
            self.base_fee_factor,
            self.quote_fee_factor,
        )
        if liquidity_before > 0:
            with EXACT_CONTEXT.local():
                base_growth = inside.base_fee_factor - position.base_fee_factor_last
                quote_growth = inside.quote_fee_factor - position.quote_fee_factor_last
            with ctx.local():
                base_fees = base_growth * liquidity_before
                quote_fees = quote_growth * liquidity_before
            if base_growth < 0 or quote_growth < 0:
                raise InternalInconsistency(
                    f"Fee growth inside [{lower_limit}, {upper_limit}) decreased for owner '{owner}'"
                )
        else:
            base_fees = quote_fees = Decimal(0)

        active = self.liquidity
        if lower <= self._curr_limit < upper:
            active = add_delta(active, delta, ctx)

        amounts = liquidity_to_amounts(
            self._curr_limit,
            self.curr_sqrt_price,
            delta,
            lower,
            upper,
            self.width,
            ctx,
        )

        self._limits[lower] = lower_info
        self._limits[upper] = upper_info
        self._bitmap.set(lower, lower_info.initialised)
        self._bitmap.set(upper, upper_info.initialised)
        self.liquidity = active
        position.liquidity = liquidity_after
        position.base_fee_factor_last = inside.base_fee_factor
        position.quote_fee_factor_last = inside.quote_fee_factor
        self._positions[key] = position

        logger.info(
            "market_position_modified",
            owner=owner,
            lower_limit=lower_limit,
            upper_limit=upper_limit,
            liquidity_delta=str(delta),
            position_liquidity=str(liquidity_after),
            base_amount=str(amounts.base_amount),
            quote_amount=str(amounts.quote_amount),
        )

        return PositionUpdate(
            base_amount=amounts.base_amount,
            quote_amount=amounts.quote_amount,
            base_fees=base_fees,
            quote_fees=quote_fees,
        )

    # =========================================================================
    # Swaps
    # =========================================================================

    def _validate_threshold(self, threshold: DecimalLike | None, is_buy: bool) -> Decimal | None:
        if threshold is None:
            return None
        ctx = self.config.context
        value = to_decimal(threshold)
        if value < min_sqrt_price(ctx) or value > max_sqrt_price(ctx):
            raise OutOfBounds(f"Threshold sqrt price {value} outside addressable prices")
        if (is_buy and value <= self.curr_sqrt_price) or (not is_buy and value >= self.curr_sqrt_price):
            side = "above" if is_buy else "below"
            raise OutOfBounds(
                f"Threshold sqrt price {value} must be {side} current sqrt price {self.curr_sqrt_price}"
            )
        return value

    def _cross(self, limit: int, is_buy: bool, crossed: dict[int, LimitInfo]) -> None:
        """Move the current limit across an initialised limit."""
        ctx = self.config.context
        info = self._limits.get(limit)
        if info is None or not info.initialised:
            raise InternalInconsistency(f"Bitmap marks limit {unshift_limit(limit, self.width)} but ledger does not")
        crossed.setdefault(limit, replace(info))

        with EXACT_CONTEXT.local():
            info.base_fee_factor = self.base_fee_factor - info.base_fee_factor
            info.quote_fee_factor = self.quote_fee_factor - info.quote_fee_factor
        delta = info.liquidity_delta if is_buy else info.liquidity_delta.copy_negate()
        try:
            self.liquidity = add_delta(self.liquidity, delta, ctx)
        except Underflow as err:
            raise InternalInconsistency(
                f"Active liquidity negative after crossing limit {unshift_limit(limit, self.width)}"
            ) from err
        self._curr_limit = limit if is_buy else limit - 1

        logger.debug(
            "market_limit_crossed",
            limit=unshift_limit(limit, self.width),
            is_buy=is_buy,
            liquidity=str(self.liquidity),
        )

    def _accrue_fee(self, fee: Decimal, is_buy: bool) -> Decimal:
        """Split a step fee between the protocol and liquidity providers.

        Returns:
            The protocol's part of the fee
        """
        ctx = self.config.context
        protocol_fee = calc_fee(fee, self.config.protocol_share, True, ctx)
        with ctx.local():
            lp_fee = fee - protocol_fee
        growth = fee_growth(lp_fee, self.liquidity, ctx)
        # Buys pay in quote, sells pay in base
        if is_buy:
            with EXACT_CONTEXT.local():
                self.quote_fee_factor += growth
            with ctx.local():
                self.protocol_quote_fees += protocol_fee
        else:
            with EXACT_CONTEXT.local():
                self.base_fee_factor += growth
            with ctx.local():
                self.protocol_base_fees += protocol_fee
        return protocol_fee

    def _run_swap(
        self,
        is_buy: bool,
        amount: Decimal,
        exact_input: bool,
        threshold: Decimal | None,
        require_full_fill: bool,
        crossed: dict[int, LimitInfo],
    ) -> SwapResult:
        ctx = self.config.context
        width = self.width
        remaining = amount
        amount_in = amount_out = fees = protocol_fees = Decimal(0)
        steps = 0
        out_of_limits = False

        while remaining > 0:
            if steps >= self.config.max_swap_steps:
                raise StepLimitExceeded(f"Swap exceeded {self.config.max_swap_steps} steps")

            target_limit = self._bitmap.next_limit(self._curr_limit, is_buy)
            if target_limit is None:
                if self.liquidity != 0:
                    raise InternalInconsistency(
                        f"Active liquidity {self.liquidity} with no initialised limit in swap direction"
                    )
                out_of_limits = True
                break

            limit_sqrt_price = limit_to_sqrt_price(target_limit, width, ctx)
            target = limit_sqrt_price
            if threshold is not None:
                target = min(target, threshold) if is_buy else max(target, threshold)

            step = compute_swap_amount(
                self.curr_sqrt_price,
                target,
                self.liquidity,
                remaining,
                self.config.swap_fee_rate,
                exact_input,
                ctx,
            )
            steps += 1
            protocol_fee = self._accrue_fee(step.fee, is_buy)

            with ctx.local():
                amount_in += step.gross_amount_in
                amount_out += step.amount_out
                fees += step.fee
                protocol_fees += protocol_fee
                remaining -= step.gross_amount_in if exact_input else step.amount_out
            remaining = max(remaining, Decimal(0))

            self.curr_sqrt_price = step.next_sqrt_price
            logger.debug(
                "market_swap_step",
                step=steps,
                is_buy=is_buy,
                target_limit=unshift_limit(target_limit, width),
                sqrt_price=str(step.next_sqrt_price),
                liquidity=str(self.liquidity),
                amount_in=str(step.amount_in),
                amount_out=str(step.amount_out),
                fee=str(step.fee),
            )

            if step.next_sqrt_price == limit_sqrt_price:
                self._cross(target_limit, is_buy, crossed)
            else:
                self._curr_limit = sqrt_price_to_limit(step.next_sqrt_price, width, ctx)

            if threshold is not None and step.next_sqrt_price == threshold:
                break
            if step.next_sqrt_price != target:
                # Partial step: whatever remains is rounding dust
                remaining = Decimal(0)

        filled = remaining == 0
        if not filled and out_of_limits and require_full_fill:
            raise InsufficientLiquidity(f"Swap ran out of liquidity with {remaining} of {amount} remaining")

        return SwapResult(
            amount_in=amount_in,
            amount_out=amount_out,
            fees=fees,
            protocol_fees=protocol_fees,
            end_sqrt_price=self.curr_sqrt_price,
            end_limit=self.curr_limit,
            steps=steps,
            filled=filled,
        )

    def swap(
        self,
        is_buy: bool,
        amount: DecimalLike,
        exact_input: bool = True,
        threshold_sqrt_price: DecimalLike | None = None,
        require_full_fill: bool = False,
    ) -> SwapResult:
        """Swap against the market, walking across initialised limits.

        Buying pays quote for base and moves the price up; selling pays base
        for quote and moves it down.

        Args:
            is_buy: Swap direction
            amount: Gross input (exact_input) or desired output
            exact_input: Whether amount is an input or an output amount
            threshold_sqrt_price: Sqrt price the swap must not move beyond
            require_full_fill: Raise instead of partially filling when the
                market runs out of liquidity

        Returns:
            SwapResult with totals and the end price

        Raises:
            OutOfBounds: If amount is not positive or the threshold is on the
                wrong side of the current price
            InsufficientLiquidity: If require_full_fill and the swap cannot be
                filled
            StepLimitExceeded: If the swap needs more than max_swap_steps steps
        """
        self._require_quiescent("swap")
        value = to_decimal(amount)
        if value <= 0 or value > MAX:
            raise OutOfBounds(f"Swap amount must be in (0, {MAX}], got {value}")
        threshold = self._validate_threshold(threshold_sqrt_price, is_buy)

        saved = (
            self._curr_limit,
            self.curr_sqrt_price,
            self.liquidity,
            self.base_fee_factor,
            self.quote_fee_factor,
            self.protocol_base_fees,
            self.protocol_quote_fees,
        )
        crossed: dict[int, LimitInfo] = {}
        self._swapping = True
        try:
            result = self._run_swap(is_buy, value, exact_input, threshold, require_full_fill, crossed)
        except Exception:
            (
                self._curr_limit,
                self.curr_sqrt_price,
                self.liquidity,
                self.base_fee_factor,
                self.quote_fee_factor,
                self.protocol_base_fees,
                self.protocol_quote_fees,
            ) = saved
            self._limits.update(crossed)
            raise
        finally:
            self._swapping = False

        logger.info(
            "market_swap",
            is_buy=is_buy,
            exact_input=exact_input,
            amount_in=str(result.amount_in),
            amount_out=str(result.amount_out),
            fees=str(result.fees),
            end_limit=result.end_limit,
            steps=result.steps,
            filled=result.filled,
        )
        return result

    def quote(
        self,
        is_buy: bool,
        amount: DecimalLike,
        exact_input: bool = True,
        threshold_sqrt_price: DecimalLike | None = None,
        require_full_fill: bool = False,
    ) -> SwapResult:
        """Result swap() would return, without changing this market."""
        return copy.deepcopy(self).swap(is_buy, amount, exact_input, threshold_sqrt_price, require_full_fill)
