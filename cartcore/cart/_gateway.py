"""
Cart gateway — typed access to the host cart.

All methods return Result for explicit error handling.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Protocol
from collections.abc import Awaitable, Callable, Iterable

from kungfu import Result, Ok, Error

from cartcore._types import Money, ZERO
from cartcore.cart._types import CartError, CartLine, CartState, FeeRecord


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Gateway Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class CartGateway(Protocol):
    """
    Host cart protocol.

    Example — adapter over a host cart object:

        class HostCart:
            def __init__(self, cart: WooCart) -> None:
                self.cart = cart

            async def get_state(self) -> Result[CartState, CartError]:
                try:
                    return Ok(CartState(
                        subtotal=Decimal(self.cart.subtotal),
                        shipping_total=Decimal(self.cart.shipping_total),
                        fees=tuple(FeeRecord(f.name, Decimal(f.amount)) for f in self.cart.fees),
                        chosen_payment_method=self.cart.session.payment_method,
                    ))
                except Exception as e:
                    return Error(CartError("Failed to read cart", e))

            # ... add_fee / remove_fee
    """

    async def get_state(self) -> Result[CartState, CartError]:
        """Current cart snapshot."""
        ...

    async def add_fee(self, fee: FeeRecord) -> Result[None, CartError]:
        """Append a fee line."""
        ...

    async def remove_fee(self, label: str) -> Result[int, CartError]:
        """Remove every fee with this label. Returns Ok(count removed)."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Function-based Cart Builder
# ═══════════════════════════════════════════════════════════════════════════════

type GetStateFn = Callable[[], Awaitable[Result[CartState, CartError]]]
type AddFeeFn = Callable[[FeeRecord], Awaitable[Result[None, CartError]]]
type RemoveFeeFn = Callable[[str], Awaitable[Result[int, CartError]]]


@dataclass(frozen=True)
class FunctionalCart:
    """
    Cart gateway built from functions.

    Example:
        cart = cart_from(
            get_state=host.snapshot,
            add_fee=host.add_fee,
            remove_fee=host.remove_fee,
        )
    """

    _get_state: GetStateFn
    _add_fee: AddFeeFn
    _remove_fee: RemoveFeeFn

    async def get_state(self) -> Result[CartState, CartError]:
        return await self._get_state()

    async def add_fee(self, fee: FeeRecord) -> Result[None, CartError]:
        return await self._add_fee(fee)

    async def remove_fee(self, label: str) -> Result[int, CartError]:
        return await self._remove_fee(label)


def cart_from(
    get_state: GetStateFn,
    add_fee: AddFeeFn,
    remove_fee: RemoveFeeFn,
) -> FunctionalCart:
    """Create CartGateway from functions."""
    return FunctionalCart(_get_state=get_state, _add_fee=add_fee, _remove_fee=remove_fee)


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Cart — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryCart:
    """
    In-memory cart.

    Note: `writes` counts fee-list mutations (each add, each non-empty remove).
    """

    def __init__(
        self,
        subtotal: Money,
        shipping_total: Money = ZERO,
        *,
        payment_method: str | None = None,
        fees: Iterable[FeeRecord] = (),
        lines: Iterable[CartLine] = (),
    ) -> None:
        self._state = CartState(
            subtotal=subtotal,
            shipping_total=shipping_total,
            fees=tuple(fees),
            chosen_payment_method=payment_method,
            lines=tuple(lines),
        )
        self._lock = asyncio.Lock()
        self.writes = 0

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def fees(self) -> tuple[FeeRecord, ...]:
        return self._state.fees

    # Host-side mutations (customer actions, not fee writes)

    def set_subtotal(self, subtotal: Money) -> None:
        self._state = replace(self._state, subtotal=subtotal)

    def set_shipping(self, shipping_total: Money) -> None:
        self._state = replace(self._state, shipping_total=shipping_total)

    def choose_payment_method(self, method: str | None) -> None:
        self._state = replace(self._state, chosen_payment_method=method)

    def set_lines(self, lines: Iterable[CartLine]) -> None:
        self._state = replace(self._state, lines=tuple(lines))

    # CartGateway

    async def get_state(self) -> Result[CartState, CartError]:
        async with self._lock:
            return Ok(self._state)

    async def add_fee(self, fee: FeeRecord) -> Result[None, CartError]:
        async with self._lock:
            self._state = replace(self._state, fees=(*self._state.fees, fee))
            self.writes += 1
            return Ok(None)

    async def remove_fee(self, label: str) -> Result[int, CartError]:
        async with self._lock:
            kept = tuple(f for f in self._state.fees if f.label != label)
            removed = len(self._state.fees) - len(kept)
            if removed:
                self._state = replace(self._state, fees=kept)
                self.writes += 1
            return Ok(removed)


__all__ = (
    "CartGateway",
    "FunctionalCart",
    "cart_from",
    "MemoryCart",
)
