"""
Discounts — role-aware bulk discounts that land in the cart as negative fees.

    from cartcore import discounts as D

    rules = [
        D.BulkDiscountRule(80, Decimal("5.00"), priority=1, min_quantity=5, name="Bulk Discount"),
        D.BulkDiscountRule(80, Decimal("8.00"), priority=2, min_quantity=5,
                           roles=frozenset({"vip"}), name="VIP Discount"),
    ]
    fees = (await D.apply_discounts(cart, rules, roles={"vip"})).unwrap()
"""

from cartcore.discounts._types import (
    BulkDiscountRule,
    MessageKind,
    QuantityNotice,
    ThresholdMessage,
)
from cartcore.discounts._rules import (
    select_rule,
    discount_fees,
    apply_discounts,
    threshold_messages,
)

__all__ = (
    # Types
    "BulkDiscountRule",
    "MessageKind",
    "QuantityNotice",
    "ThresholdMessage",
    # Rules
    "select_rule",
    "discount_fees",
    "apply_discounts",
    "threshold_messages",
)
