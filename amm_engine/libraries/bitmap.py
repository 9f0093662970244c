"""Initialised-limit bitmap packed into 256-bit words.

Limits are compressed by width (limit // width) and stored one bit per
compressed limit, 256 per word. A sorted index of non-empty words lets a
nearest-initialised-limit query skip empty stretches in O(log words), and
within a word the nearest set bit is found with a single msb/lsb scan.

Adapted from the UniswapV3 TickBitmap layout (word = compressed >> 8,
bit = compressed & 0xff).
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right, insort

from amm_engine.errors import InvalidRange
from amm_engine.math.bit_math import lsb, msb
from amm_engine.math.price_math import validate_width

__all__ = ["LimitBitmap"]


class LimitBitmap:
    """Set of initialised shifted limits for one market.

    Attributes:
        width: Limit width; every stored limit is a multiple of it
    """

    def __init__(self, width: int) -> None:
        validate_width(width)
        self.width = width
        self._words: dict[int, int] = {}
        self._word_index: list[int] = []

    def __repr__(self) -> str:
        return f"LimitBitmap(width={self.width}, initialised={len(self)})"

    def __len__(self) -> int:
        return sum(word.bit_count() for word in self._words.values())

    def __contains__(self, limit: object) -> bool:
        if not isinstance(limit, int) or limit < 0 or limit % self.width:
            return False
        word, bit = self._position(limit // self.width)
        return bool((self._words.get(word, 0) >> bit) & 1)

    @staticmethod
    def _position(compressed: int) -> tuple[int, int]:
        return compressed >> 8, compressed & 0xFF

    def _decompress(self, word: int, bit: int) -> int:
        return ((word << 8) + bit) * self.width

    def set(self, limit: int, initialised: bool) -> None:
        """Mark a shifted limit as initialised or not.

        Raises:
            InvalidRange: If limit is negative or not a multiple of width
        """
        if limit < 0 or limit % self.width:
            raise InvalidRange(f"Limit {limit} is not a non-negative multiple of width {self.width}")
        word, bit = self._position(limit // self.width)
        before = self._words.get(word, 0)
        after = before | (1 << bit) if initialised else before & ~(1 << bit)
        if after == before:
            return
        if after:
            self._words[word] = after
            if not before:
                insort(self._word_index, word)
        else:
            del self._words[word]
            del self._word_index[bisect_left(self._word_index, word)]

    def next_limit(self, limit: int, is_buy: bool) -> int | None:
        """Nearest initialised limit in the swap direction.

        Buying searches strictly above limit; selling searches at or below
        it, so a limit the price is sitting on is crossed first when selling.

        Args:
            limit: Shifted limit to search from (need not be width-aligned)
            is_buy: Search direction

        Returns:
            The initialised shifted limit, or None if there is none
        """
        compressed = limit // self.width
        if is_buy:
            return self._next_above(compressed + 1)
        return self._next_at_or_below(compressed)

    def _next_above(self, start: int) -> int | None:
        start = max(start, 0)
        word, bit = self._position(start)
        masked = (self._words.get(word, 0) >> bit) << bit
        if masked:
            return self._decompress(word, lsb(masked))
        i = bisect_right(self._word_index, word)
        if i < len(self._word_index):
            next_word = self._word_index[i]
            return self._decompress(next_word, lsb(self._words[next_word]))
        return None

    def _next_at_or_below(self, start: int) -> int | None:
        if start < 0:
            return None
        word, bit = self._position(start)
        masked = self._words.get(word, 0) & ((1 << (bit + 1)) - 1)
        if masked:
            return self._decompress(word, msb(masked))
        i = bisect_left(self._word_index, word)
        if i > 0:
            prev_word = self._word_index[i - 1]
            return self._decompress(prev_word, msb(self._words[prev_word]))
        return None

    def limits(self) -> list[int]:
        """All initialised shifted limits, ascending."""
        result = []
        for word in self._word_index:
            bits = self._words[word]
            while bits:
                bit = lsb(bits)
                result.append(self._decompress(word, bit))
                bits &= bits - 1
        return result
