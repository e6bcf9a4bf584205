"""
Idempotent fee controller — serialized, re-entrancy-safe reconcile.
"""

from __future__ import annotations

import asyncio
from contextvars import ContextVar

import structlog
from structlog.contextvars import bound_contextvars
from kungfu import Result, Ok, Error

from cartcore.cart import CartGateway, FeeRecord
from cartcore.fees._types import (
    FeeError,
    RecalcBaseline,
    ReconcileAction,
    ReconcileResult,
)
from cartcore.fees._store import SessionStore
from cartcore.fees._policy import Policy
from cartcore.fees._graph import ComputeFee, ReconcileSpec, run_reconcile

log = structlog.get_logger(__name__)

# Sessions being reconciled by the current task (and tasks it spawns).
_reconciling: ContextVar[frozenset[str]] = ContextVar(
    "cartcore_reconciling", default=frozenset()
)


class IdempotentFeeController:
    """
    Recomputes a named fee at most once per distinct cart fingerprint.

    Example:
        controller = IdempotentFeeController(MemorySessionStore())
        fee = await controller.reconcile(
            session_id, cart, "Credit Card Surcharge (3%)", percentage(3)
        )

    Note: One asyncio.Lock per session makes each pass a critical section.
    A nested call for the same session (a cart hook firing inside our own
    fee write) is detected via ContextVar and skipped instead of deadlocking.
    """

    def __init__(self, store: SessionStore, policy: Policy | None = None) -> None:
        self.store = store
        self.policy = policy if policy is not None else Policy()
        self._locks: dict[str, asyncio.Lock] = {}
        # Labels forced from inside a running pass, re-applied once it ends.
        self._forced_in_pass: dict[str, set[str]] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def reconcile_detailed(
        self,
        session_id: str,
        cart: CartGateway,
        fee_label: str,
        compute_fee: ComputeFee,
    ) -> Result[ReconcileResult, FeeError]:
        active = _reconciling.get()
        if session_id in active:
            log.debug("fees.reentrant_skip", session_id=session_id, fee_label=fee_label)
            return Ok(ReconcileResult(action=ReconcileAction.SKIPPED, reason="reentrant"))

        spec = ReconcileSpec(
            session_id=session_id,
            fee_label=fee_label,
            cart=cart,
            compute_fee=compute_fee,
            store=self.store,
            policy=self.policy,
        )

        token = _reconciling.set(active | {session_id})
        try:
            with bound_contextvars(session_id=session_id, fee_label=fee_label):
                async with self._lock_for(session_id):
                    result = await run_reconcile(spec)
                    for label in sorted(self._forced_in_pass.pop(session_id, ())):
                        await self._store_force(session_id, label)
        finally:
            _reconciling.reset(token)

        match result:
            case Error(err):
                log.warning(
                    "fees.reconcile_failed",
                    session_id=session_id,
                    fee_label=fee_label,
                    kind=err.kind.name,
                    error=err.message,
                )
            case Ok(_):
                pass
        return result

    async def reconcile(
        self,
        session_id: str,
        cart: CartGateway,
        fee_label: str,
        compute_fee: ComputeFee,
    ) -> FeeRecord | None:
        """The fee written by this call, or None (stable, removed, skipped or failed)."""
        match await self.reconcile_detailed(session_id, cart, fee_label, compute_fee):
            case Ok(ReconcileResult(action=ReconcileAction.APPLIED, fee=fee)):
                return fee
            case _:
                return None

    async def baseline(self, session_id: str, fee_label: str) -> RecalcBaseline | None:
        match await self.store.get(session_id, self.policy.baseline_key(fee_label)):
            case Ok(None) | Error(_):
                return None
            case Ok(raw):
                try:
                    return RecalcBaseline.from_dict(raw)
                except ValueError:
                    return None

    async def force_recalculation(self, session_id: str, fee_label: str) -> bool:
        """Make the next reconcile recompute regardless of the fingerprint."""
        if session_id in _reconciling.get():
            self._forced_in_pass.setdefault(session_id, set()).add(fee_label)
            return await self._store_force(session_id, fee_label)
        async with self._lock_for(session_id):
            return await self._store_force(session_id, fee_label)

    async def _store_force(self, session_id: str, fee_label: str) -> bool:
        current = await self.baseline(session_id, fee_label) or RecalcBaseline()
        key = self.policy.baseline_key(fee_label)
        match await self.store.set(session_id, key, current.with_force().to_dict()):
            case Ok(_):
                return True
            case Error(err):
                log.warning(
                    "fees.force_failed",
                    session_id=session_id,
                    fee_label=fee_label,
                    error=err.message,
                )
                return False

    async def clear_session(self, session_id: str) -> bool:
        """Forget everything stored for a session (session end)."""
        match await self.store.clear(session_id):
            case Ok(_):
                lock = self._locks.get(session_id)
                if lock is not None and not lock.locked():
                    del self._locks[session_id]
                return True
            case Error(err):
                log.warning("fees.clear_failed", session_id=session_id, error=err.message)
                return False


__all__ = ("IdempotentFeeController",)
