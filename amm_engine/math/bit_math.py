"""Bit scanning helpers for the word-level limit bitmap."""

from __future__ import annotations

__all__ = ["msb", "lsb"]


def msb(x: int) -> int:
    """Index of the most significant set bit of x.

    Args:
        x: Non-negative integer

    Returns:
        Bit index (0 for x == 1), or -1 if x == 0

    Raises:
        ValueError: If x is negative
    """
    if x < 0:
        raise ValueError(f"msb requires a non-negative integer, got {x}")
    return x.bit_length() - 1


def lsb(x: int) -> int:
    """Index of the least significant set bit of x, or -1 if x == 0.

    Raises:
        ValueError: If x is negative
    """
    if x < 0:
        raise ValueError(f"lsb requires a non-negative integer, got {x}")
    if x == 0:
        return -1
    return (x & -x).bit_length() - 1
