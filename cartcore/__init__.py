"""
cartcore — tiered pricing and idempotent cart fees.

    from cartcore import pricing as P    # Rule sources, resolver, tier evaluator
    from cartcore import fees as F       # Fingerprint, fee controller, surcharge
    from cartcore import discounts as D  # Bulk/VIP discount fees
    from cartcore import cart as C       # Cart types and gateway
"""

from cartcore import cart
from cartcore import discounts
from cartcore import fees
from cartcore import graph
from cartcore import pricing
from cartcore._types import (
    Lazy,
    Pure,
    Fallible,
    Money,
    LCR,
    NoError,
)

__version__ = "0.1.0"

__all__ = (
    "cart",
    "discounts",
    "fees",
    "graph",
    "pricing",
    "Lazy",
    "Pure",
    "Fallible",
    "Money",
    "LCR",
    "NoError",
)
