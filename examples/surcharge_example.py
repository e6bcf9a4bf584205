"""
Surcharge Example — card surcharge recomputed once per cart change.

Run: uv run python examples/surcharge_example.py
"""

from decimal import Decimal

from kungfu import Ok, Error

from cartcore import discounts as D
from cartcore import fees as F
from cartcore.config import get_settings
from examples._infra import WIDGET, banner, card_cart, run


# ═══════════════════════════════════════════════════════════════════════════════
# Discounts
# ═══════════════════════════════════════════════════════════════════════════════

RULES = [
    D.BulkDiscountRule(WIDGET.id, Decimal("1.00"), priority=1, min_quantity=5),
]


# ═══════════════════════════════════════════════════════════════════════════════
# Demo
# ═══════════════════════════════════════════════════════════════════════════════


async def main() -> None:
    banner("Card Surcharge")

    session_factory, engine = await F.create_database()
    executor = F.SurchargeExecutor.from_settings(
        get_settings(), F.SQLAlchemySessionStore(session_factory)
    )
    cart = card_cart()

    async def show(step: str) -> None:
        match await executor.run("session-1", cart):
            case Ok(r):
                fee = r.fee.amount if r.fee else "-"
                print(f"   {step:<28} {r.action.name:<9} fee={fee} ({r.reason})")
            case Error(e):
                print(f"   {step:<28} error {e.kind.name}: {e.message}")

    print("\n1. Page loads recompute once:")
    await show("first load")
    await show("reload")
    await show("reload")

    print("\n2. Bulk discount lowers the base:")
    await D.apply_discounts(cart, RULES)
    await show("discount applied")

    print("\n3. Payment method switch removes the fee:")
    cart.choose_payment_method("cheque")
    await show("cheque chosen")
    cart.choose_payment_method("intuit_payments_credit_card")
    await show("card chosen again")

    print(f"\n   Fee lines: {[(f.label, str(f.amount)) for f in cart.fees]}")
    print(f"   Cart writes: {cart.writes}")

    await engine.dispose()


if __name__ == "__main__":
    run(main)
