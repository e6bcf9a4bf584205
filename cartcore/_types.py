"""
Core types for cartcore.

Re-exports from kungfu/combinators + money helpers.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Never

# Re-export from kungfu
from kungfu import Result, Ok, Error, Option, Some, Nothing, LazyCoroResult

# Re-export from combinators
from combinators import LCR, NoError

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Pure[T] = Lazy[T, Never]
"""Lazy computation that cannot fail."""

type Fallible[T, E] = Lazy[T, E]
"""Lazy computation that can fail with E."""

# ═══════════════════════════════════════════════════════════════════════════════
# Domain Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Exact currency amount. Never a float."""

type ProductId = int
type CategoryId = int

ZERO = Decimal("0")

# ═══════════════════════════════════════════════════════════════════════════════
# Money Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def to_money(value: object) -> Money:
    """
    Convert host value to Decimal.

    Note: floats go through str() so 10.1 stays 10.1, not its binary expansion.
    Raises ValueError for anything that is not a number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a money value: {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Not a money value: {value!r}") from e
    else:
        raise ValueError(f"Not a money value: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Not a finite money value: {value!r}")
    return result


def canonical(amount: Money) -> str:
    """
    Canonical text for an amount.

    Numerically equal decimals give equal text: 10, 10.0 and 10.00 → "10".
    """
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def quantize(amount: Money, places: int = 2) -> Money:
    """Round half-up to a fixed number of decimal places."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "Option",
    "Some",
    "Nothing",
    "LazyCoroResult",
    # Re-exports from combinators
    "LCR",
    "NoError",
    # Type aliases
    "Lazy",
    "Pure",
    "Fallible",
    "Money",
    "ProductId",
    "CategoryId",
    "ZERO",
    # Money
    "to_money",
    "canonical",
    "quantize",
)
