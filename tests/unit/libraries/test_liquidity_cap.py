"""Tests for the per-limit liquidity cap."""

from decimal import Decimal

from amm_engine.constants import MAX, MAX_NUM_LIMITS
from amm_engine.libraries.liquidity import max_liquidity_per_limit
from amm_engine.math.context import DEFAULT_CONTEXT


class TestMaxLiquidityPerLimit:
    """Tests for max_liquidity_per_limit."""

    def test_width_one(self):
        """MAX is split across every limit at width 1."""
        with DEFAULT_CONTEXT.local():
            expected = Decimal(MAX) / MAX_NUM_LIMITS
        assert max_liquidity_per_limit(1) == expected

    def test_width_rounds_limit_count_up(self):
        """The number of limits at a wider width rounds up."""
        with DEFAULT_CONTEXT.local():
            expected = Decimal(MAX) / 1_581_326
        assert max_liquidity_per_limit(10) == expected

    def test_grows_with_width(self):
        """Wider markets allow more liquidity per limit."""
        assert max_liquidity_per_limit(1) < max_liquidity_per_limit(10) < max_liquidity_per_limit(100)
