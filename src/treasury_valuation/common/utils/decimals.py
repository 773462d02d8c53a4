"""
Decimal Helpers
===============

On-chain integers are scaled by the token's decimals. All valuation math
runs on ``Decimal`` with a widened context so that Q64.96 prices and 18
decimal balances keep their precision.
"""

from decimal import Decimal, localcontext

ZERO = Decimal(0)
ONE = Decimal(1)

# sqrtPriceX96 squared is ~2^192, so 28 significant digits is not enough
VALUATION_PRECISION = 60


def to_decimal(value: int, decimals: int) -> Decimal:
    """
    Scale a raw on-chain integer by ``10 ** decimals``.

    Args:
        value: Raw integer returned by the contract
        decimals: Number of decimals of the token

    Returns:
        Decimal-adjusted amount
    """
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")

    with localcontext() as ctx:
        ctx.prec = VALUATION_PRECISION
        return Decimal(int(value)) / (Decimal(10) ** decimals)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero when the denominator is zero."""
    if denominator == ZERO:
        return ZERO

    with localcontext() as ctx:
        ctx.prec = VALUATION_PRECISION
        return numerator / denominator


def values_equal(first: Decimal, second: Decimal, tolerance: Decimal) -> bool:
    """True if the absolute difference is at most ``tolerance``."""
    return abs(first - second) <= tolerance
