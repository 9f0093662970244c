"""Engine error classes.

Every error is fatal for the call that raised it: the engine never retries
and never clamps a value to hide a broken invariant. Callers map these to
user-facing errors or contract reverts.
"""


class AmmEngineError(Exception):
    """Base error for engine operations."""

    pass


class OutOfBounds(AmmEngineError):
    """Limit, price or amount outside its legal range."""

    pass


class InvalidFeeRate(OutOfBounds):
    """Fee rate or protocol share outside its legal range."""

    pass


class InvalidRange(AmmEngineError):
    """Lower limit not below upper limit, or limit not a multiple of width."""

    pass


class Underflow(AmmEngineError):
    """Liquidity or amount delta would go negative."""

    pass


class InsufficientLiquidity(AmmEngineError):
    """Swap could not be filled before running out of initialised limits."""

    pass


class InternalInconsistency(AmmEngineError):
    """A ledger invariant is broken (e.g. negative fee growth inside a range)."""

    pass


class StepLimitExceeded(AmmEngineError):
    """Swap loop exceeded the configured maximum number of steps."""

    pass


__all__ = [
    "AmmEngineError",
    "OutOfBounds",
    "InvalidFeeRate",
    "InvalidRange",
    "Underflow",
    "InsufficientLiquidity",
    "InternalInconsistency",
    "StepLimitExceeded",
]
