"""Tests for single-limit range orders.

A range one limit wide below the price is a bid (it holds quote and buys
base as the price falls through it); one above the price is an ask.
"""

from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from amm_engine.libraries.swap import next_sqrt_price_amount_in
from amm_engine.math.context import DEFAULT_CONTEXT
from amm_engine.math.fee_math import gross_to_net
from amm_engine.math.liquidity_math import liquidity_to_base, liquidity_to_quote
from tests.conftest import BASE_LIQUIDITY
from tests.helpers import SWAP_FEE_RATE, TOLERANCE, sqrt_price_at

ORDER_LIQUIDITY = Decimal(1_500_000)


@pytest.fixture
def bid_market(market):
    market.modify_position(-1000, -999, ORDER_LIQUIDITY)
    return market


@pytest.fixture
def ask_market(market):
    market.modify_position(1000, 1001, ORDER_LIQUIDITY)
    return market


class TestPlaceOrders:
    """Tests for placing single-limit orders."""

    def test_bid_is_funded_with_quote(self, market):
        """A bid below the price only takes quote."""
        update = market.modify_position(-1000, -999, ORDER_LIQUIDITY)

        assert update.base_amount == 0
        assert update.quote_amount == liquidity_to_quote(
            sqrt_price_at(-1000), sqrt_price_at(-999), ORDER_LIQUIDITY, round_up=True
        )
        assert market.liquidity == 0

    def test_ask_is_funded_with_base(self, market):
        """An ask above the price only takes base."""
        update = market.modify_position(1000, 1001, ORDER_LIQUIDITY)

        assert update.quote_amount == 0
        assert update.base_amount == liquidity_to_base(
            sqrt_price_at(1000), sqrt_price_at(1001), ORDER_LIQUIDITY, round_up=True
        )

    def test_orders_on_same_range_aggregate(self, market):
        """Orders on the same range add up in one position."""
        first = market.modify_position(-1000, -999, 1)
        second = market.modify_position(-1000, -999, 2)

        assert market.position(-1000, -999).liquidity == 3
        assert second.quote_fees == 0
        assert second.base_fees == 0
        with DEFAULT_CONTEXT.local():
            assert abs(second.quote_amount - 2 * first.quote_amount) < TOLERANCE


class TestPartialFill:
    """Tests for swaps that stop inside an order."""

    def test_sell_lands_inside_bid(self, bid_market):
        """A sell ends inside the bid after crossing its upper limit."""
        result = bid_market.swap(False, 6)

        net_in = gross_to_net(6, SWAP_FEE_RATE)
        expected_price = next_sqrt_price_amount_in(sqrt_price_at(-999), ORDER_LIQUIDITY, net_in, False)

        assert net_in == Decimal("5.982")
        assert result.steps == 2
        assert result.filled
        assert result.end_sqrt_price == expected_price
        assert sqrt_price_at(-1000) < result.end_sqrt_price < sqrt_price_at(-999)
        assert result.amount_out == liquidity_to_quote(expected_price, sqrt_price_at(-999), ORDER_LIQUIDITY)
        assert bid_market.curr_limit == -1000
        assert bid_market.liquidity == ORDER_LIQUIDITY

    def test_first_crossing_activates_order(self, bid_market):
        """Only the upper limit of the bid is crossed."""
        with capture_logs() as logs:
            bid_market.swap(False, 6)
        crossed = [entry["limit"] for entry in logs if entry["event"] == "market_limit_crossed"]
        assert crossed == [-999]

    def test_collect_partially_filled_bid(self, bid_market):
        """Withdrawing a half-filled bid returns both tokens and the base fees."""
        result = bid_market.swap(False, 6)

        update = bid_market.modify_position(-1000, -999, -ORDER_LIQUIDITY)

        assert update.base_amount < 0
        assert update.quote_amount < 0
        assert update.quote_fees == 0
        assert abs(update.base_fees - result.fees) < TOLERANCE
        assert bid_market.liquidity == 0

    def test_partially_filled_bid_unfills(self, bid_market):
        """Buying back through the order restores its quote."""
        bid_market.swap(False, 6)
        result = bid_market.swap(True, 4)

        assert result.filled
        assert bid_market.curr_limit == -1000
        update = bid_market.modify_position(-1000, -999, -ORDER_LIQUIDITY)
        assert update.quote_fees > 0
        assert update.base_fees > 0

    def test_partially_filled_ask(self, ask_market):
        """A buy ends inside the ask and the order earns quote fees."""
        result = ask_market.swap(True, 6)

        assert result.steps == 2
        assert sqrt_price_at(1000) < result.end_sqrt_price < sqrt_price_at(1001)
        assert ask_market.curr_limit == 1000

        update = ask_market.modify_position(1000, 1001, -ORDER_LIQUIDITY)
        assert update.base_amount < 0
        assert update.quote_amount < 0
        assert update.base_fees == 0
        assert update.quote_fees > 0


class TestFullFill:
    """Tests for swaps that pass through an order."""

    def test_sell_through_bid(self, bid_market):
        """A sell through the bid leaves no active liquidity."""
        result = bid_market.swap(False, 100)

        assert result.steps == 2
        assert not result.filled
        assert result.end_sqrt_price == sqrt_price_at(-1000)
        assert bid_market.curr_limit == -1001
        assert bid_market.liquidity == 0

    def test_collect_filled_bid_pays_base(self, bid_market):
        """A filled bid pays out base only."""
        result = bid_market.swap(False, 100)

        update = bid_market.modify_position(-1000, -999, -ORDER_LIQUIDITY)

        assert update.quote_amount == 0
        assert update.base_amount < 0
        with DEFAULT_CONTEXT.local():
            assert abs(update.base_amount + result.amount_in - result.fees) < TOLERANCE
            assert abs(update.base_fees - result.fees) < TOLERANCE
        assert update.quote_fees == 0

    def test_buy_through_ask(self, ask_market):
        """A filled ask pays out quote only."""
        result = ask_market.swap(True, 100)

        assert result.steps == 2
        assert ask_market.curr_limit == 1001
        assert ask_market.liquidity == 0

        update = ask_market.modify_position(1000, 1001, -ORDER_LIQUIDITY)
        assert update.base_amount == 0
        assert update.quote_amount < 0
        assert update.quote_fees > 0

    def test_unfilled_order_returns_deposit(self, bid_market):
        """An untouched bid returns its quote deposit."""
        assert bid_market.position(-1000, -999).liquidity == ORDER_LIQUIDITY

        update = bid_market.modify_position(-1000, -999, -ORDER_LIQUIDITY)

        assert update.base_amount == 0
        assert update.quote_amount == liquidity_to_quote(
            sqrt_price_at(-1000), sqrt_price_at(-999), -ORDER_LIQUIDITY
        )
        assert update.quote_fees == 0


class TestSharedLimits:
    """Ranges sharing a limit initialised at different times."""

    @pytest.fixture
    def layered_market(self, funded_market):
        funded_market.modify_position(50, 60, 1000, owner="order")
        funded_market.swap(True, 1000, threshold_sqrt_price=sqrt_price_at(80))
        return funded_market

    def test_new_range_on_crossed_limit(self, layered_market):
        """A range added on an already crossed limit owes no fees."""
        update = layered_market.modify_position(50, 70, 1000, owner="late")

        assert update.base_fees == 0
        assert update.quote_fees == 0
        assert layered_market.initialised_limits() == [-100, 50, 60, 70, 100]

    def test_fees_stay_non_negative(self, layered_market):
        """Swaps back and forth across shared limits never settle negative fees."""
        layered_market.modify_position(50, 70, 1000, owner="late")
        layered_market.swap(False, 1000, threshold_sqrt_price=sqrt_price_at(55))
        layered_market.swap(True, 1000, threshold_sqrt_price=sqrt_price_at(90))
        layered_market.swap(False, 1000, threshold_sqrt_price=sqrt_price_at(-20))

        for lower, upper, owner in [(50, 70, "late"), (50, 60, "order"), (-100, 100, "")]:
            update = layered_market.modify_position(lower, upper, 0, owner=owner)
            assert update.base_fees >= 0
            assert update.quote_fees >= 0

    def test_late_range_earns_only_while_active(self, layered_market):
        """A range the price never enters earns nothing."""
        layered_market.modify_position(50, 70, 1000, owner="late")
        layered_market.swap(True, 100, threshold_sqrt_price=sqrt_price_at(95))

        update = layered_market.modify_position(50, 70, 0, owner="late")
        assert update.quote_fees == 0
        assert update.base_fees == 0

    def test_base_liquidity_unaffected(self, layered_market):
        """Active liquidity is unchanged by an inactive range."""
        layered_market.modify_position(50, 70, 1000, owner="late")
        assert layered_market.liquidity == BASE_LIQUIDITY
