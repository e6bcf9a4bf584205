"""
Pricing types — rules, tiers and resolved prices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from cartcore._types import Money, ProductId, CategoryId
from cartcore.cart import CartLine


# ═══════════════════════════════════════════════════════════════════════════════
# Rule Source — Precedence
# ═══════════════════════════════════════════════════════════════════════════════


class RuleSource(Enum):
    """
    Where a pricing rule came from.

    Note: Definition order IS the resolution precedence.
    Rules from an earlier source are tried before rules from a later one.
    """

    PRODUCT_META = auto()
    ADVANCED_PRODUCT = auto()
    ADVANCED_CATEGORY = auto()
    SIMPLE_BULK = auto()
    GLOBAL_MANAGER = auto()

    @property
    def precedence(self) -> int:
        return self.value


class TierKind(Enum):
    """How a tier's amount turns into a unit price."""

    FIXED_PRICE = auto()  # amount is the unit price
    PERCENTAGE_OFF = auto()  # base × (1 − amount/100)
    RAW_AMOUNT = auto()  # untyped legacy tier, amount is the unit price


# ═══════════════════════════════════════════════════════════════════════════════
# Tier & Rule
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricingTier:
    """
    One quantity band of a rule.

    to_qty=None means unbounded.
    """

    from_qty: int
    to_qty: int | None
    kind: TierKind
    amount: Money

    def __post_init__(self) -> None:
        if self.from_qty < 0:
            raise ValueError(f"from_qty must be >= 0, got {self.from_qty}")
        if self.to_qty is not None and self.to_qty < self.from_qty:
            raise ValueError(
                f"to_qty ({self.to_qty}) must be >= from_qty ({self.from_qty})"
            )

    def matches(self, quantity: int) -> bool:
        if quantity < self.from_qty:
            return False
        return self.to_qty is None or quantity <= self.to_qty

    def unit_price(self, base_price: Money) -> Money:
        match self.kind:
            case TierKind.PERCENTAGE_OFF:
                return base_price * (1 - self.amount / 100)
            case TierKind.FIXED_PRICE | TierKind.RAW_AMOUNT:
                return self.amount

    @property
    def band(self) -> str:
        if self.to_qty is None:
            return f"{self.from_qty}+"
        return f"{self.from_qty}-{self.to_qty}"


@dataclass(frozen=True, slots=True)
class PricingRule:
    """
    Normalized rule from any source.

    targets: product/category ids the rule is scoped to.
    Empty for sources that are already product-scoped.
    """

    source: RuleSource
    tiers: tuple[PricingTier, ...]
    targets: frozenset[int] = field(default_factory=frozenset)
    rule_id: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Resolved Price
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AppliedRule:
    """The (rule, tier) pair that produced a price."""

    rule: PricingRule
    tier: PricingTier

    def describe(self, quantity: int) -> str:
        match self.tier.kind:
            case TierKind.FIXED_PRICE:
                what = f"fixed price rule: {self.tier.amount}"
            case TierKind.PERCENTAGE_OFF:
                what = f"percentage rule: {self.tier.amount}% off"
            case TierKind.RAW_AMOUNT:
                what = f"price rule: {self.tier.amount}"
        return f"{what} for quantity {quantity}"


@dataclass(frozen=True, slots=True)
class ResolvedPriceResult:
    """Evaluation result. rule_applied is None when no tier matched."""

    unit_price: Money
    base_price: Money
    rule_applied: AppliedRule | None = None

    @property
    def discounted(self) -> bool:
        return self.rule_applied is not None


# ═══════════════════════════════════════════════════════════════════════════════
# Product Snapshot
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    """Catalog snapshot of a product, as the host reports it."""

    id: ProductId
    regular_price: Money
    sale_price: Money | None = None
    category_ids: frozenset[CategoryId] = field(default_factory=frozenset)
    name: str = ""

    @property
    def base_price(self) -> Money:
        """Active price: the sale price when it undercuts the regular price."""
        if self.sale_price is not None and self.sale_price < self.regular_price:
            return self.sale_price
        return self.regular_price


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """Answer to a price lookup for (product, quantity)."""

    product_id: ProductId
    quantity: int
    unit_price: Money
    total_price: Money
    base_price: Money
    rule_applied: str | None
    price_changed: bool


@dataclass(frozen=True, slots=True)
class LinePrice:
    """
    Price to charge for one cart line.

    repriced is False when the line keeps its catalog price: no rule applied,
    the difference is within the change threshold, or the rule price was not
    positive.
    """

    line: CartLine
    unit_price: Money
    base_price: Money
    rule_applied: str | None = None
    repriced: bool = False

    @property
    def total_price(self) -> Money:
        return self.unit_price * max(1, self.line.quantity)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class SourceErrorKind(Enum):
    """Kinds of rule source errors."""

    UNAVAILABLE = auto()  # Backing extension not installed
    MALFORMED = auto()  # Rule missing required tier fields
    FAILED = auto()  # Adapter raised while fetching
    CATEGORY_LOOKUP = auto()  # Could not read product categories


@dataclass(frozen=True, slots=True)
class SourceError:
    """
    Rule source error.

    Note: Never propagated to the caller. The resolver logs and records it,
    then continues with the next source.
    """

    kind: SourceErrorKind
    source: RuleSource
    message: str
    cause: Exception | None = None


class PriceLookupErrorKind(Enum):
    """Kinds of price lookup errors."""

    PRODUCT_NOT_FOUND = auto()
    INVALID_PRODUCT = auto()


@dataclass(frozen=True, slots=True)
class PriceLookupError:
    """Price lookup error."""

    kind: PriceLookupErrorKind
    message: str
    product_id: object = None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "RuleSource",
    "TierKind",
    "PricingTier",
    "PricingRule",
    "AppliedRule",
    "ResolvedPriceResult",
    "Product",
    "PriceQuote",
    "LinePrice",
    "SourceErrorKind",
    "SourceError",
    "PriceLookupErrorKind",
    "PriceLookupError",
)
