"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from decimal import Decimal

from cartcore import cart as C
from cartcore import pricing as P
from cartcore.config import configure_logging, get_settings


# Catalog
WIDGET = P.Product(80, Decimal("12.00"), category_ids=frozenset({5}), name="Widget")
GADGET = P.Product(81, Decimal("20.00"), sale_price=Decimal("18.00"), name="Gadget")

PRODUCT_META = {
    80: [
        {
            "rules": [
                {"from": 1, "to": 4, "type": "fixed_price", "amount": "10.00"},
                {"from": 5, "to": 9, "type": "fixed_price", "amount": "8.00"},
                {"from": 10, "to": "", "type": "fixed_price", "amount": "6.00"},
            ],
        },
    ],
}

CATEGORY_RULES = {
    "wholesale": {
        "targets": [5],
        "rules": [{"from": 20, "to": None, "type": "percentage", "amount": "40"}],
    },
}

GLOBAL_RULES = [
    {"rules": [{"from": 3, "to": 0, "type": "percentage", "amount": "5"}]},
]


def categories(product_id: int) -> frozenset[int]:
    return {80: WIDGET.category_ids}.get(product_id, frozenset())


def card_cart(subtotal: str = "100.00", shipping: str = "10.00") -> C.MemoryCart:
    return C.MemoryCart(
        Decimal(subtotal),
        Decimal(shipping),
        payment_method="intuit_payments_credit_card",
        lines=[C.CartLine(WIDGET.id, 5, name=WIDGET.name)],
    )


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    settings = get_settings()
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)
    asyncio.run(main())
