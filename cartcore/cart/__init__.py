"""
Cart — fee lines, snapshots and the host cart gateway.

    from cartcore import cart as C

    cart = C.MemoryCart(Decimal("100.00"), payment_method="intuit_payments_credit_card")
    state = (await cart.get_state()).unwrap()
"""

from cartcore.cart._types import (
    FeeRecord,
    CartLine,
    CartState,
    CartError,
)
from cartcore.cart._gateway import (
    CartGateway,
    FunctionalCart,
    cart_from,
    MemoryCart,
)

__all__ = (
    # Types
    "FeeRecord",
    "CartLine",
    "CartState",
    "CartError",
    # Gateway
    "CartGateway",
    "FunctionalCart",
    "cart_from",
    "MemoryCart",
)
