"""Fee policy tests."""

from decimal import Decimal

import pytest

from cartcore import fees as F
from cartcore.config import Settings


def test_defaults():
    policy = F.Policy()
    assert policy.taxable
    assert policy.places == 2
    assert policy.gateways is None
    assert policy.applies_to(None)
    assert policy.applies_to("cheque")
    assert policy.baseline_key("Fee") == "baseline:Fee"


def test_fluent_methods_return_new_policy():
    base = F.Policy()
    policy = (
        base
        .with_taxable(False)
        .with_places(3)
        .with_gateways("card", "wallet")
        .with_discount_labels("Loyalty")
        .with_keys(baseline_prefix="fee", marker_key="touched")
    )
    assert base == F.Policy()
    assert not policy.taxable
    assert policy.places == 3
    assert policy.gateways == frozenset({"card", "wallet"})
    assert policy.discount_labels == ("Loyalty",)
    assert policy.baseline_key("Fee") == "fee:Fee"
    assert policy.marker_key == "touched"


def test_gateway_restriction():
    policy = F.Policy().with_gateways("card")
    assert policy.applies_to("card")
    assert not policy.applies_to("cheque")
    assert not policy.applies_to(None)
    assert policy.with_gateways().gateways is None


def test_negative_places_rejected():
    with pytest.raises(ValueError):
        F.Policy().with_places(-1)


def test_from_settings():
    settings = Settings(
        surcharge_rate=Decimal("2.5"),
        surcharge_taxable=False,
        surcharge_gateways=("card",),
        money_places=3,
        discount_labels=("Loyalty",),
    )
    policy = F.Policy.from_settings(settings)
    assert not policy.taxable
    assert policy.gateways == frozenset({"card"})
    assert policy.places == 3
    assert policy.discount_labels == ("Loyalty",)


@pytest.mark.asyncio
async def test_places_round_half_up(session_store):
    from cartcore import cart as C

    controller = F.IdempotentFeeController(session_store, F.Policy().with_places(0))
    cart = C.MemoryCart(Decimal("50"), payment_method="card")
    fee = await controller.reconcile("s1", cart, "Fee", F.percentage(3))
    assert fee.amount == Decimal("2")  # 1.5 rounds up


@pytest.mark.asyncio
async def test_untaxable_fee(session_store, card_cart):
    controller = F.IdempotentFeeController(session_store, F.Policy().with_taxable(False))
    fee = await controller.reconcile("s1", card_cart, "Fee", F.percentage(3))
    assert fee.taxable is False
