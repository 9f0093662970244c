"""Tests for limit <-> sqrt price conversion."""

import decimal
from decimal import Decimal

import pytest

from amm_engine.constants import MAX_LIMIT, MIN_LIMIT, OFFSET, PRICE_BASE, SQRT_PRICE_DECIMALS
from amm_engine.errors import OutOfBounds
from amm_engine.math.context import DEFAULT_CONTEXT, to_fixed_point
from amm_engine.math.price_math import (
    MAX_SQRT_PRICE,
    MIN_SQRT_PRICE,
    limit_to_sqrt_price,
    max_limit,
    min_limit,
    offset,
    price_to_limit,
    shift_limit,
    sqrt_price_to_limit,
    unshift_limit,
    validate_width,
)


# Reference sqrt prices at width 1, scaled by 1e28 and rounded up
SQRT_PRICE_VECTORS = [
    (MIN_LIMIT + 1, 67775070201),
    (-1150000, 31828723021629170035251312),
    (-950000, 86519006819519020213519911),
    (-250000, 2865065875088286000374254002),
    (-47500, 7885978274341976831474794041),
    (-22484, 8936693400839181505195305981),
    (-9999, 9512344184429357105567813281),
    (-1872, 9906837148119240093576097895),
    (-396, 9980219687872597169568506614),
    (-50, 9997500324970752047381250938),
    (-1, 9999950000374996875027343504),
    (0, 10000000000000000000000000000),
    (1, 10000049999875000624996093778),
    (25, 10001250071877515684747109447),
    (450, 10022525218742400856832334477),
    (2719, 10136877633151767879083939822),
    (14999, 10778783573025323312733842362),
    (55000, 13165288646512563030484384832),
    (249000, 34729131805291136927238747986),
    (888000, 847730597035592474894705542056),
    (1350000, 8540299387214792726855084583850),
    (4500000, 59098571711246800030041333323272877718),
    (5500000, 8770786455175854494079784255897072914655),
    (6500000, 1301667583747318151082988967463051234466449),
    (7500000, 193179768682968120670626619759297849997312135),
    (MAX_LIMIT - 1, 1475468777891786697833509843618285689088340037),
]


def close(a: Decimal, b: Decimal, tolerance: str = "1e-60") -> bool:
    with decimal.localcontext(decimal.Context(prec=100)):
        return abs(a - b) <= Decimal(tolerance) * max(abs(a), abs(b), Decimal(1))


class TestWidthHelpers:
    """Offset encoding of signed limits."""

    def test_offset(self):
        """The offset is the largest width multiple within the bound."""
        assert offset(1) == OFFSET
        assert offset(10) == 7_906_620
        assert offset(OFFSET) == OFFSET

    def test_offset_is_multiple_of_width(self):
        """Offsets are always width aligned."""
        for width in (1, 3, 7, 10, 60, 200):
            assert offset(width) % width == 0

    def test_max_and_min_limit(self):
        """Internal limit bounds follow from the offset."""
        assert max_limit(1) == 2 * OFFSET
        assert max_limit(10) == 15_813_240
        assert min_limit(5) == 0

    def test_shift_round_trip(self):
        """unshift_limit undoes shift_limit."""
        for width in (1, 10):
            for limit in (-offset(width), -50, 0, 50, offset(width)):
                assert unshift_limit(shift_limit(limit, width), width) == limit

    def test_shift_values(self):
        """Signed bounds map to the ends of the internal range."""
        assert shift_limit(0, 1) == OFFSET
        assert shift_limit(MIN_LIMIT, 1) == 0
        assert shift_limit(MAX_LIMIT, 1) == max_limit(1)

    @pytest.mark.parametrize("width", [0, -1, OFFSET + 1])
    def test_invalid_width(self, width):
        """Widths outside [1, OFFSET] are rejected."""
        with pytest.raises(OutOfBounds):
            validate_width(width)


class TestLimitToSqrtPrice:
    """sqrt(1.00001) ** limit."""

    @pytest.mark.parametrize("limit,expected", SQRT_PRICE_VECTORS)
    def test_reference_vectors(self, limit, expected):
        """Scaled sqrt prices match the reference ladder to within one unit."""
        sqrt_price = limit_to_sqrt_price(shift_limit(limit, 1), 1)
        assert abs(to_fixed_point(sqrt_price, SQRT_PRICE_DECIMALS, round_up=True) - expected) <= 1

    def test_limit_zero_is_one(self):
        """Limit 0 sits at sqrt price 1."""
        assert limit_to_sqrt_price(shift_limit(0, 1), 1) == 1

    def test_one_limit(self):
        """Limit 1 sits at sqrt(1.00001)."""
        with decimal.localcontext(decimal.Context(prec=80)):
            expected = PRICE_BASE.sqrt()
        assert close(limit_to_sqrt_price(shift_limit(1, 1), 1), expected)

    def test_price_ratio_between_limits(self):
        """Squared sqrt price at limit 100 is 1.00001 ** 100."""
        sqrt_price = limit_to_sqrt_price(shift_limit(100, 1), 1)
        with decimal.localcontext(decimal.Context(prec=80)):
            assert close(sqrt_price * sqrt_price, PRICE_BASE**100)

    def test_negative_limits_are_reciprocal(self):
        """Opposite limits have reciprocal sqrt prices."""
        up = limit_to_sqrt_price(shift_limit(12345, 1), 1)
        down = limit_to_sqrt_price(shift_limit(-12345, 1), 1)
        with decimal.localcontext(decimal.Context(prec=80)):
            assert close(up * down, Decimal(1))

    def test_strictly_increasing(self):
        """Consecutive limits have distinct, increasing prices."""
        prices = [limit_to_sqrt_price(limit, 1) for limit in range(OFFSET - 5, OFFSET + 5)]
        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_bounds(self):
        """The ends of the range give the sqrt price bounds."""
        assert limit_to_sqrt_price(0, 1) == MIN_SQRT_PRICE
        assert limit_to_sqrt_price(max_limit(1), 1) == MAX_SQRT_PRICE
        assert MIN_SQRT_PRICE < 1 < MAX_SQRT_PRICE

    def test_width_shares_the_price_lattice(self):
        """The same signed limit has the same price at any width."""
        assert limit_to_sqrt_price(shift_limit(120, 10), 10) == limit_to_sqrt_price(shift_limit(120, 1), 1)

    @pytest.mark.parametrize("limit", [-1, 2 * OFFSET + 1])
    def test_out_of_bounds(self, limit):
        """Limits outside the internal range are rejected."""
        with pytest.raises(OutOfBounds):
            limit_to_sqrt_price(limit, 1)


class TestSqrtPriceToLimit:
    """Floor conversion back to limits."""

    @pytest.mark.parametrize("width", [1, 10, 60])
    def test_round_trip(self, width):
        """Aligned limits survive a round trip at any width."""
        top = max_limit(width)
        for limit in (0, width, offset(width) - width, offset(width), offset(width) + 37 * width, top - width, top):
            assert sqrt_price_to_limit(limit_to_sqrt_price(limit, width), width) == limit

    def test_round_trip_consecutive_limits(self):
        """Every limit around zero survives a round trip."""
        for limit in range(OFFSET - 20, OFFSET + 20):
            assert sqrt_price_to_limit(limit_to_sqrt_price(limit, 1), 1) == limit

    def test_floor_between_limits(self):
        """A price between two limits floors to the lower one."""
        low = limit_to_sqrt_price(shift_limit(5, 1), 1)
        high = limit_to_sqrt_price(shift_limit(6, 1), 1)
        with DEFAULT_CONTEXT.local():
            middle = (low + high) / 2
        assert sqrt_price_to_limit(middle, 1) == shift_limit(5, 1)

    def test_just_below_limit(self):
        """A hair below a limit's price gives the limit below."""
        price = limit_to_sqrt_price(shift_limit(5, 1), 1)
        with DEFAULT_CONTEXT.local():
            below = price - Decimal("1e-70")
        assert sqrt_price_to_limit(below, 1) == shift_limit(4, 1)

    def test_floor_to_width(self):
        """Unaligned limits floor to the width multiple below, also for negative limits."""
        assert sqrt_price_to_limit(limit_to_sqrt_price(shift_limit(15, 1), 1), 10) == shift_limit(10, 10)
        assert sqrt_price_to_limit(limit_to_sqrt_price(shift_limit(-15, 1), 1), 10) == shift_limit(-20, 10)

    def test_one(self):
        """Sqrt price 1 is limit 0."""
        assert sqrt_price_to_limit(1, 1) == OFFSET

    @pytest.mark.parametrize("sqrt_price", [0, "1e-40", "1e40"])
    def test_out_of_bounds(self, sqrt_price):
        """Sqrt prices outside the bounds are rejected."""
        with pytest.raises(OutOfBounds):
            sqrt_price_to_limit(sqrt_price, 1)


class TestPriceToLimit:
    """Price (not sqrt price) input."""

    def test_one(self):
        """Price 1 is limit 0."""
        assert price_to_limit(1, 1) == OFFSET

    def test_price_base(self):
        """Price 1.00001 is limit 1."""
        assert price_to_limit(PRICE_BASE, 1) == shift_limit(1, 1)

    def test_round_trip(self):
        """Lattice prices convert back to their limit."""
        for limit in (shift_limit(-741930, 1), shift_limit(3, 1), shift_limit(741930, 1)):
            sqrt_price = limit_to_sqrt_price(limit, 1)
            with DEFAULT_CONTEXT.local():
                price = sqrt_price * sqrt_price
            assert price_to_limit(price, 1) == limit

    def test_width(self):
        """A price between lattice points floors to the width below."""
        sqrt_price = limit_to_sqrt_price(shift_limit(741935, 1), 1)
        with DEFAULT_CONTEXT.local():
            price = sqrt_price * sqrt_price
        assert price_to_limit(price, 10) == shift_limit(741930, 10)

    def test_out_of_bounds(self):
        """Prices outside the bounds are rejected."""
        with pytest.raises(OutOfBounds):
            price_to_limit("1e80", 1)
