"""
Surcharge builder — fluent API over the fee controller.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from cartcore._types import Money, ZERO, to_money
from cartcore.cart import CartGateway
from cartcore.fees._types import FeeError, ReconcileResult
from cartcore.fees._store import SessionStore, MemorySessionStore
from cartcore.fees._policy import Policy
from cartcore.fees._graph import ComputeFee
from cartcore.fees._controller import IdempotentFeeController

if TYPE_CHECKING:
    from cartcore.config import Settings

log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Fee Functions
# ═══════════════════════════════════════════════════════════════════════════════


def percentage(rate: Money | int | str) -> ComputeFee:
    """
    Fee as a percentage of the base amount. Never negative.

    Example:
        percentage(3)(Decimal("100.00"))  # Decimal("3.0000")
    """
    rate = to_money(rate)
    if rate < 0:
        raise ValueError(f"rate must be >= 0, got {rate}")

    def compute(base: Money) -> Money:
        return max(ZERO, base * rate / 100)

    return compute


# ═══════════════════════════════════════════════════════════════════════════════
# Surcharge Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Surcharge:
    """
    Fluent surcharge builder.
    """

    _compute: ComputeFee
    _label: str | None
    _store: SessionStore | None
    _policy: Policy

    def label(self, label: str) -> Surcharge:
        """Set fee line label."""
        return Surcharge(
            _compute=self._compute,
            _label=label,
            _store=self._store,
            _policy=self._policy,
        )

    def gateways(self, *gateways: str) -> Surcharge:
        """Only charge for these payment methods."""
        return Surcharge(
            _compute=self._compute,
            _label=self._label,
            _store=self._store,
            _policy=self._policy.with_gateways(*gateways),
        )

    def store(self, s: SessionStore) -> Surcharge:
        """Set session store for baselines and the updated marker."""
        return Surcharge(
            _compute=self._compute,
            _label=self._label,
            _store=s,
            _policy=self._policy,
        )

    def policy(self, p: Policy) -> Surcharge:
        """Set fee policy."""
        return Surcharge(
            _compute=self._compute,
            _label=self._label,
            _store=self._store,
            _policy=p,
        )

    def build(self) -> SurchargeExecutor:
        """Build executable."""
        if self._label is None or not self._label.strip():
            raise ValueError("label() is required")

        store: SessionStore = self._store if self._store is not None else MemorySessionStore()

        return SurchargeExecutor(
            controller=IdempotentFeeController(store, self._policy),
            label=self._label,
            compute=self._compute,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Surcharge Executor
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class SurchargeExecutor:
    """
    Compiled surcharge.

    Note: Thin wrapper over IdempotentFeeController. After every pass that
    rewrote the fee line it sets the session's "updated" marker (Unix time),
    which the frontend uses to refresh cached totals.
    """

    controller: IdempotentFeeController
    label: str
    compute: ComputeFee

    def run(
        self, session_id: str, cart: CartGateway
    ) -> LazyCoroResult[ReconcileResult, FeeError]:
        """Reconcile the surcharge for one cart."""
        controller = self.controller
        label = self.label
        compute = self.compute

        async def execute() -> Result[ReconcileResult, FeeError]:
            result = await controller.reconcile_detailed(session_id, cart, label, compute)
            match result:
                case Ok(outcome) if outcome.wrote:
                    await self._mark_updated(session_id)
                case _:
                    pass
            return result

        return LazyCoroResult(execute)

    async def _mark_updated(self, session_id: str) -> None:
        key = self.controller.policy.marker_key
        match await self.controller.store.set(session_id, key, time.time()):
            case Error(err):
                log.warning("fees.marker_failed", session_id=session_id, error=err.message)
            case Ok(_):
                pass

    async def marker(self, session_id: str) -> float | None:
        """When the surcharge line was last rewritten, if it was."""
        match await self.controller.store.get(session_id, self.controller.policy.marker_key):
            case Ok(value) if isinstance(value, (int, float)):
                return float(value)
            case _:
                return None

    async def clear_marker(self, session_id: str) -> bool:
        match await self.controller.store.delete(session_id, self.controller.policy.marker_key):
            case Ok(existed):
                return existed
            case _:
                return False

    async def force(self, session_id: str) -> bool:
        """Recompute on the next run regardless of the fingerprint."""
        return await self.controller.force_recalculation(session_id, self.label)

    @classmethod
    def from_settings(cls, settings: Settings, store: SessionStore) -> SurchargeExecutor:
        return (
            surcharge(settings.surcharge_rate)
            .label(settings.surcharge_label)
            .store(store)
            .policy(Policy.from_settings(settings))
            .build()
        )


# ═══════════════════════════════════════════════════════════════════════════════
# surcharge() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def surcharge(rate: Money | int | str) -> Surcharge:
    """
    Create a percentage surcharge.

    Example:
        executor = (
            F.surcharge(3)
            .label("Credit Card Surcharge (3%)")
            .gateways("intuit_payments_credit_card")
            .store(F.MemorySessionStore())
            .build()
        )

        result = await executor.run(session_id, cart)
    """
    return Surcharge(
        _compute=percentage(rate),
        _label=None,
        _store=None,
        _policy=Policy(),
    )


__all__ = (
    "percentage",
    "Surcharge",
    "SurchargeExecutor",
    "surcharge",
)
