"""
Cart types — fee lines and cart snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass

from cartcore._types import Money, ProductId, ZERO


@dataclass(frozen=True, slots=True)
class FeeRecord:
    """
    A named fee line. Negative amounts are discounts.

    Note: At most one fee per label is the controller's invariant,
    not the cart's. The cart accepts whatever it is given.
    """

    label: str
    amount: Money
    taxable: bool = True


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One cart line.

    parent_id: the parent product for variations, so discounts can group
    variations of one product together.
    """

    product_id: ProductId
    quantity: int
    parent_id: ProductId | None = None
    name: str = ""

    @property
    def group_id(self) -> ProductId:
        return self.parent_id or self.product_id


@dataclass(frozen=True, slots=True)
class CartState:
    """Snapshot of the fee-relevant parts of a cart."""

    subtotal: Money
    shipping_total: Money = ZERO
    fees: tuple[FeeRecord, ...] = ()
    chosen_payment_method: str | None = None
    lines: tuple[CartLine, ...] = ()

    def fees_labeled(self, label: str) -> tuple[FeeRecord, ...]:
        return tuple(f for f in self.fees if f.label == label)

    def has_fee(self, label: str) -> bool:
        return any(f.label == label for f in self.fees)


@dataclass(frozen=True, slots=True)
class CartError:
    """Cart gateway error."""

    message: str
    cause: Exception | None = None


__all__ = (
    "FeeRecord",
    "CartLine",
    "CartState",
    "CartError",
)
