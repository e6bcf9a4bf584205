"""Tier evaluator tests — pure, no I/O.

Invariants:
    - First matching tier wins across the flattened rule list
    - No match returns the base price with no rule applied
    - All arithmetic is Decimal
"""

from decimal import Decimal

import pytest

from cartcore import pricing as P


def fixed(from_qty, to_qty, amount):
    return P.PricingTier(from_qty, to_qty, P.TierKind.FIXED_PRICE, Decimal(amount))


def rule(*tiers, source=P.RuleSource.PRODUCT_META):
    return P.PricingRule(source=source, tiers=tiers)


TIERED = rule(fixed(1, 4, "10"), fixed(5, 9, "8"), fixed(10, None, "6"))


# -- tier selection -------------------------------------------------------------


@pytest.mark.parametrize(
    ("quantity", "expected"),
    [(1, "10"), (3, "10"), (4, "10"), (5, "8"), (7, "8"), (9, "8"), (10, "6"), (15, "6")],
)
def test_tier_selection(quantity, expected):
    result = P.evaluate([TIERED], quantity, Decimal("12.00"))
    assert result.unit_price == Decimal(expected)
    assert result.rule_applied is not None
    assert result.rule_applied.rule is TIERED


def test_percentage_tier_is_exact():
    """15% off 100.00 is exactly 85.00, no float drift."""
    pct = rule(P.PricingTier(1, None, P.TierKind.PERCENTAGE_OFF, Decimal("15")))
    result = P.evaluate([pct], 1, Decimal("100.00"))
    assert result.unit_price == Decimal("85.00")
    assert isinstance(result.unit_price, Decimal)


def test_raw_amount_tier_uses_amount():
    raw = rule(P.PricingTier(2, None, P.TierKind.RAW_AMOUNT, Decimal("7.25")))
    assert P.evaluate([raw], 2, Decimal("9.00")).unit_price == Decimal("7.25")


# -- no match -------------------------------------------------------------------


def test_no_rules_returns_base_price():
    result = P.evaluate([], 3, Decimal("12.00"))
    assert result.unit_price == Decimal("12.00")
    assert result.rule_applied is None
    assert not result.discounted


def test_quantity_outside_every_band_returns_base_price():
    bounded = rule(fixed(5, 9, "8"))
    result = P.evaluate([bounded], 2, Decimal("12.00"))
    assert result.unit_price == Decimal("12.00")
    assert result.rule_applied is None


def test_quantity_is_not_clamped():
    result = P.evaluate([TIERED], 0, Decimal("12.00"))
    assert result.unit_price == Decimal("12.00")


# -- first match wins -----------------------------------------------------------


def test_first_match_wins_across_sources():
    """Higher-precedence rule wins even when a later rule is cheaper."""
    first = rule(fixed(1, None, "9"), source=P.RuleSource.PRODUCT_META)
    second = rule(fixed(1, None, "5"), source=P.RuleSource.GLOBAL_MANAGER)
    result = P.evaluate([first, second], 3, Decimal("12.00"))
    assert result.unit_price == Decimal("9")
    assert result.rule_applied.rule is first


def test_first_match_wins_within_rule():
    overlapping = rule(fixed(1, 10, "9"), fixed(5, 10, "4"))
    assert P.evaluate([overlapping], 6, Decimal("12.00")).unit_price == Decimal("9")


def test_later_rule_used_when_earlier_does_not_match():
    first = rule(fixed(10, None, "6"))
    second = rule(fixed(1, None, "11"), source=P.RuleSource.SIMPLE_BULK)
    result = P.evaluate([first, second], 3, Decimal("12.00"))
    assert result.unit_price == Decimal("11")
    assert result.rule_applied.rule is second


def test_iter_tiers_flattens_in_order():
    a = rule(fixed(1, 1, "1"), fixed(2, 2, "2"))
    b = rule(fixed(3, 3, "3"))
    assert [t.amount for _, t in P.iter_tiers([a, b])] == [Decimal(1), Decimal(2), Decimal(3)]


# -- tier invariants ------------------------------------------------------------


def test_tier_rejects_negative_from():
    with pytest.raises(ValueError):
        fixed(-1, None, "1")


def test_tier_rejects_inverted_band():
    with pytest.raises(ValueError):
        fixed(5, 4, "1")


def test_unbounded_tier_matches_large_quantities():
    assert fixed(10, None, "1").matches(10_000)
    assert fixed(10, None, "1").band == "10+"
    assert fixed(1, 4, "1").band == "1-4"


def test_applied_rule_description():
    result = P.evaluate([TIERED], 3, Decimal("12.00"))
    assert result.rule_applied.describe(3) == "fixed price rule: 10 for quantity 3"
