"""Root conftest — shared fixtures."""

from decimal import Decimal

import pytest

from cartcore import cart as C
from cartcore import fees as F
from cartcore.config import get_settings

CARD = "intuit_payments_credit_card"
SURCHARGE = "Credit Card Surcharge (3%)"


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def tiered_rule_set():
    """1–4 → 10.00, 5–9 → 8.00, 10+ → 6.00."""
    return {
        "rules": [
            {"from": "1", "to": "4", "type": "fixed_price", "amount": "10.00"},
            {"from": "5", "to": "9", "type": "fixed_price", "amount": "8.00"},
            {"from": "10", "to": "", "type": "fixed_price", "amount": "6.00"},
        ],
    }


@pytest.fixture
def session_store():
    return F.MemorySessionStore()


@pytest.fixture
def card_cart():
    return C.MemoryCart(Decimal("100.00"), payment_method=CARD)
