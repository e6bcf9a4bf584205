"""
Discount types — bulk/VIP discount rules and quantity notices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from cartcore._types import Money, ProductId


@dataclass(frozen=True, slots=True)
class BulkDiscountRule:
    """
    Per-item discount once a product reaches a quantity.

    roles: customer roles the rule is limited to. Empty = everyone.
    priority: highest wins when several rules match.
    """

    product_id: ProductId
    discount_amount: Money
    priority: int = 0
    min_quantity: int = 1
    roles: frozenset[str] = field(default_factory=frozenset)
    name: str = "Bulk Discount"
    threshold_message: str | None = None

    def __post_init__(self) -> None:
        if self.discount_amount < 0:
            raise ValueError(f"discount_amount must be >= 0, got {self.discount_amount}")
        if self.min_quantity < 1:
            raise ValueError(f"min_quantity must be >= 1, got {self.min_quantity}")

    def matches(self, product_id: ProductId, quantity: int, roles: frozenset[str]) -> bool:
        if product_id != self.product_id or quantity < self.min_quantity:
            return False
        return not self.roles or not self.roles.isdisjoint(roles)


class MessageKind(Enum):
    DISCOUNT = "discount"
    BILLING = "billing"
    SHIPPING = "shipping"


@dataclass(frozen=True, slots=True)
class QuantityNotice:
    """A product-specific notice shown once the quantity reaches threshold."""

    product_id: ProductId
    threshold: int
    kind: MessageKind
    message: str


@dataclass(frozen=True, slots=True)
class ThresholdMessage:
    kind: MessageKind
    message: str
    threshold: int
    rule_name: str | None = None


__all__ = (
    "BulkDiscountRule",
    "MessageKind",
    "QuantityNotice",
    "ThresholdMessage",
)
