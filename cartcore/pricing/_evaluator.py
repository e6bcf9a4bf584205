"""
Quantity tier evaluator — pure, first match wins.

Rules are treated as one flat, ordered list of tiers. The first tier whose
band contains the quantity decides the price; nothing after it is looked at,
even a lower price further down.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from cartcore._types import Money
from cartcore.pricing._types import AppliedRule, PricingRule, PricingTier, ResolvedPriceResult


def iter_tiers(rules: Iterable[PricingRule]) -> Iterator[tuple[PricingRule, PricingTier]]:
    for rule in rules:
        for tier in rule.tiers:
            yield rule, tier


def evaluate(
    rules: Iterable[PricingRule],
    quantity: int,
    base_price: Money,
) -> ResolvedPriceResult:
    """
    Unit price for `quantity`.

    Quantity is not clamped here: the price lookup does that.
    """
    for rule, tier in iter_tiers(rules):
        if tier.matches(quantity):
            return ResolvedPriceResult(
                unit_price=tier.unit_price(base_price),
                base_price=base_price,
                rule_applied=AppliedRule(rule=rule, tier=tier),
            )
    return ResolvedPriceResult(unit_price=base_price, base_price=base_price)


__all__ = ("iter_tiers", "evaluate")
