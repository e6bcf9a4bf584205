"""
Price lookup — the entry point a host's AJAX handler calls.

    lookup = PriceLookup(MemoryCatalog([product]), resolver)
    match await lookup.quote(product_id, quantity):
        case Ok(quote): ...
        case Error(err): ...
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol
from collections.abc import Iterable

import structlog

from cartcore._types import Result, Ok, Error, Money, ProductId, ZERO
from cartcore.cart import CartLine
from cartcore.pricing._types import (
    PriceLookupError,
    PriceLookupErrorKind,
    LinePrice,
    PriceQuote,
    Product,
)
from cartcore.pricing._resolver import PricingRuleResolver
from cartcore.pricing._evaluator import evaluate

log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Catalog(Protocol):
    """Product lookup. Returns None for unknown products."""

    async def get_product(self, product_id: ProductId) -> Product | None: ...


class MemoryCatalog:
    """In-memory catalog for tests and single-process hosts."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: dict[ProductId, Product] = {p.id: p for p in products}

    def add(self, product: Product) -> None:
        self._products[product.id] = product

    async def get_product(self, product_id: ProductId) -> Product | None:
        return self._products.get(product_id)


# ═══════════════════════════════════════════════════════════════════════════════
# Price Lookup
# ═══════════════════════════════════════════════════════════════════════════════


class PriceLookup:
    """
    Quotes unit and total price for (product, quantity).

    Note: A product without rules, or an inactive pricing extension,
    quotes the base price. Only an unknown product is an error.
    """

    def __init__(
        self,
        catalog: Catalog,
        resolver: PricingRuleResolver,
        *,
        change_threshold: Money = Decimal("0.01"),
    ) -> None:
        self._catalog = catalog
        self._resolver = resolver
        self._change_threshold = change_threshold

    async def quote(
        self, product_id: ProductId, quantity: int
    ) -> Result[PriceQuote, PriceLookupError]:
        if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id <= 0:
            return Error(
                PriceLookupError(
                    kind=PriceLookupErrorKind.INVALID_PRODUCT,
                    message=f"Invalid product id: {product_id!r}",
                    product_id=product_id,
                )
            )

        product = await self._catalog.get_product(product_id)
        if product is None:
            return Error(
                PriceLookupError(
                    kind=PriceLookupErrorKind.PRODUCT_NOT_FOUND,
                    message="Product not found",
                    product_id=product_id,
                )
            )

        quantity = max(1, quantity)
        resolution = await self._resolver.resolve(product_id)
        result = evaluate(resolution, quantity, product.base_price)

        applied = result.rule_applied
        quote = PriceQuote(
            product_id=product_id,
            quantity=quantity,
            unit_price=result.unit_price,
            total_price=result.unit_price * quantity,
            base_price=result.base_price,
            rule_applied=applied.describe(quantity) if applied is not None else None,
            price_changed=abs(result.unit_price - result.base_price) > self._change_threshold,
        )
        log.debug(
            "pricing.quoted",
            product_id=product_id,
            quantity=quantity,
            unit_price=str(quote.unit_price),
            rule=quote.rule_applied,
        )
        return Ok(quote)

    async def price_lines(self, lines: Iterable[CartLine]) -> tuple[LinePrice, ...]:
        """
        Unit price for each cart line, in cart order.

        Lines for unknown products are left out (the host keeps its own
        price for them). Identical (product, quantity) lines are quoted once.
        A rule price at or below zero is refused and the base price kept.
        """
        quotes: dict[tuple[ProductId, int], Result[PriceQuote, PriceLookupError]] = {}
        priced: list[LinePrice] = []

        for line in lines:
            key = (line.product_id, max(1, line.quantity))
            if key not in quotes:
                quotes[key] = await self.quote(*key)

            match quotes[key]:
                case Error(err):
                    log.warning(
                        "pricing.line_unpriced",
                        product_id=line.product_id,
                        kind=err.kind.name,
                    )
                case Ok(quote):
                    priced.append(_line_price(line, quote))

        return tuple(priced)


def _line_price(line: CartLine, quote: PriceQuote) -> LinePrice:
    if not quote.price_changed:
        return LinePrice(line=line, unit_price=quote.base_price, base_price=quote.base_price)
    if quote.unit_price <= ZERO:
        log.warning(
            "pricing.line_price_rejected",
            product_id=line.product_id,
            unit_price=str(quote.unit_price),
        )
        return LinePrice(line=line, unit_price=quote.base_price, base_price=quote.base_price)
    return LinePrice(
        line=line,
        unit_price=quote.unit_price,
        base_price=quote.base_price,
        rule_applied=quote.rule_applied,
        repriced=True,
    )


__all__ = (
    "Catalog",
    "MemoryCatalog",
    "PriceLookup",
)
