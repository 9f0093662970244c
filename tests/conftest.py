"""Pytest configuration and fixtures."""

from decimal import Decimal

import pytest

from amm_engine.market import MarketManager
from tests.helpers import make_market

# Liquidity of the position most market tests start from
BASE_LIQUIDITY = Decimal(1_000_000)


@pytest.fixture
def market() -> MarketManager:
    """Empty width-1 market at limit 0 (sqrt price 1) with a 0.3% fee."""
    return make_market()


@pytest.fixture
def funded_market(market: MarketManager) -> MarketManager:
    """Market with one position of BASE_LIQUIDITY over [-100, 100)."""
    market.modify_position(-100, 100, BASE_LIQUIDITY)
    return market
