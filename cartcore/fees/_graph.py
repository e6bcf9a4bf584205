"""
Reconcile graph — ALL fee reconcile logic as nodnod nodes.

Architecture:
    ReconcileSpec (injected)
         │
         ▼
    SpecNode
         │
         ▼
    SnapshotNode (cart state + stored baseline + fingerprint F)
         │
         ├──────────────────┬──────────────────┐
         ▼                  ▼                  ▼
    SnapshotErrorNode   StableNode         DirtyNode
         │                  │                  │
         └──────────────────┼──────────────────┘
                            ▼
              ReconcileOutcome (@polymorphic)
                            │
                            ▼
                     FinalResultNode

Note: No 'from __future__ import annotations' here: nodnod reads the
type hints at runtime for dependency resolution.
"""

from dataclasses import dataclass
from typing import Any
from collections.abc import Callable

import structlog
from nodnod import NodeError, polymorphic, case

from kungfu import Result, Ok, Error

from cartcore import graph as G
from cartcore._types import Money, ZERO, quantize, to_money
from cartcore.cart import CartGateway, CartState, CartError, FeeRecord
from cartcore.fees._types import (
    CartFingerprint,
    FeeError,
    FeeErrorKind,
    FeeInputs,
    RecalcBaseline,
    ReconcileAction,
    ReconcileResult,
)
from cartcore.fees._hash import fee_inputs, fingerprint
from cartcore.fees._store import SessionStore
from cartcore.fees._policy import Policy

log = structlog.get_logger(__name__)

type ComputeFee = Callable[[Money], Money]


# ═══════════════════════════════════════════════════════════════════════════════
# Input — ReconcileSpec (injected)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ReconcileSpec:
    """
    Everything one reconcile pass needs.

    compute_fee: base amount → fee amount. Zero or negative means no fee.
    """

    session_id: str
    fee_label: str
    cart: CartGateway
    compute_fee: ComputeFee
    store: SessionStore
    policy: Policy


# ═══════════════════════════════════════════════════════════════════════════════
# Entry Node
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class SpecNode:
    """Wraps ReconcileSpec for graph."""

    def __init__(self, spec: ReconcileSpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, spec: ReconcileSpec) -> "SpecNode":
        return cls(spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Snapshot — cart state against the stored baseline
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class SnapshotNode:
    """Reads the cart and the stored baseline, computes F."""

    def __init__(
        self,
        spec: ReconcileSpec,
        state: CartState | None = None,
        inputs: FeeInputs | None = None,
        fingerprint: CartFingerprint | None = None,
        baseline: RecalcBaseline | None = None,
        error: FeeError | None = None,
    ) -> None:
        self.spec = spec
        self.state = state
        self.inputs = inputs
        self.fingerprint = fingerprint
        self.baseline = baseline
        self.error = error

    @property
    def fee_lines(self) -> int:
        if self.state is None:
            return 0
        return len(self.state.fees_labeled(self.spec.fee_label))

    @property
    def fee_present(self) -> bool:
        return self.fee_lines > 0

    @classmethod
    async def __compose__(cls, spec_node: SpecNode) -> "SnapshotNode":
        spec = spec_node.spec

        match await spec.cart.get_state():
            case Ok(state):
                pass
            case Error(err):
                return cls(
                    spec,
                    error=FeeError(FeeErrorKind.CART_ERROR, err.message, err.cause),
                )

        match await spec.store.get(spec.session_id, spec.policy.baseline_key(spec.fee_label)):
            case Ok(None):
                baseline = None
            case Ok(raw):
                try:
                    baseline = RecalcBaseline.from_dict(raw)
                except ValueError as e:
                    log.warning(
                        "fees.baseline_unreadable",
                        session_id=spec.session_id,
                        fee_label=spec.fee_label,
                        error=str(e),
                    )
                    baseline = None
            case Error(err):
                return cls(
                    spec,
                    error=FeeError(FeeErrorKind.STORE_ERROR, err.message, err.cause),
                )

        inputs = fee_inputs(state, spec.policy.discount_labels)
        return cls(
            spec,
            state=state,
            inputs=inputs,
            fingerprint=fingerprint(inputs),
            baseline=baseline,
        )


def _dirty_reason(snapshot: SnapshotNode) -> str | None:
    """Why the fee must be recomputed, or None when the cart is Stable."""
    baseline = snapshot.baseline
    if baseline is None or baseline.fingerprint is None:
        return "no baseline"
    if baseline.force:
        return "forced"
    if baseline.fingerprint != snapshot.fingerprint:
        return "fingerprint changed"
    if snapshot.fee_lines > 1:
        return "duplicate fee"
    if baseline.fee_applied and not snapshot.fee_present:
        return "fee missing"
    if not baseline.fee_applied and snapshot.fee_present:
        return "unexpected fee"
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# State Nodes — Each validates one reconcile state
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class SnapshotErrorNode:
    """Validates: cart or store read failed."""

    def __init__(self, error: FeeError, spec: ReconcileSpec) -> None:
        self.error = error
        self.spec = spec

    @classmethod
    def __compose__(cls, snapshot: SnapshotNode) -> "SnapshotErrorNode":
        if snapshot.error is None:
            raise NodeError("No snapshot error")
        return cls(snapshot.error, snapshot.spec)


@G.node
class StableNode:
    """Validates: baseline matches F, not forced, at most one fee line as recorded."""

    def __init__(self, snapshot: SnapshotNode) -> None:
        self.snapshot = snapshot

    @classmethod
    def __compose__(cls, snapshot: SnapshotNode) -> "StableNode":
        if snapshot.error is not None:
            raise NodeError("Snapshot error")
        if _dirty_reason(snapshot) is not None:
            raise NodeError("Dirty")
        return cls(snapshot)


@G.node
class DirtyNode:
    """Validates: fee must be recomputed. Carries the reason."""

    def __init__(self, snapshot: SnapshotNode, reason: str) -> None:
        self.snapshot = snapshot
        self.reason = reason

    @classmethod
    def __compose__(cls, snapshot: SnapshotNode) -> "DirtyNode":
        if snapshot.error is not None:
            raise NodeError("Snapshot error")
        reason = _dirty_reason(snapshot)
        if reason is None:
            raise NodeError("Stable")
        return cls(snapshot, reason)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OutcomeOk:
    """Successful outcome."""

    result: ReconcileResult


@dataclass(frozen=True)
class OutcomeError:
    """Error outcome."""

    kind: FeeErrorKind
    message: str
    cause: Any | None


type Outcome = OutcomeOk | OutcomeError


def _compute_amount(spec: ReconcileSpec, inputs: FeeInputs) -> Money:
    """Rounded fee amount. Zero when the policy excludes the payment method."""
    if not spec.policy.applies_to(inputs.payment_method):
        return ZERO
    amount = quantize(to_money(spec.compute_fee(inputs.base_amount)), spec.policy.places)
    return amount if amount > 0 else ZERO


async def _cart_write_failed(
    spec: ReconcileSpec,
    baseline: RecalcBaseline,
    err: CartError,
) -> Outcome:
    """Cart write failed after the baseline was stored: force the next pass."""
    key = spec.policy.baseline_key(spec.fee_label)
    match await spec.store.set(spec.session_id, key, baseline.with_force().to_dict()):
        case Error(store_err):
            log.error(
                "fees.force_flag_lost",
                session_id=spec.session_id,
                fee_label=spec.fee_label,
                error=store_err.message,
            )
        case Ok(_):
            pass
    return OutcomeError(kind=FeeErrorKind.CART_ERROR, message=err.message, cause=err.cause)


# ═══════════════════════════════════════════════════════════════════════════════
# Polymorphic Outcome — Each case uses a validated state node
# ═══════════════════════════════════════════════════════════════════════════════


@polymorphic[Outcome]
class ReconcileOutcome:
    """
    Polymorphic router — each @case depends on a validated state node.

    Note: Checks already happened in the state nodes, only logic here.
    """

    @case
    def snapshot_error(cls, node: SnapshotErrorNode) -> Outcome:
        """Cart or store unreadable: nothing is written."""
        return OutcomeError(
            kind=node.error.kind,
            message=node.error.message,
            cause=node.error.cause,
        )

    @case
    def unchanged(cls, node: StableNode) -> Outcome:
        """Stable: zero writes."""
        snapshot = node.snapshot
        return OutcomeOk(
            ReconcileResult(
                action=ReconcileAction.UNCHANGED,
                fingerprint=snapshot.fingerprint,
                baseline=snapshot.baseline,
                reason="stable",
            )
        )

    @case
    async def recompute(cls, node: DirtyNode) -> Outcome:
        """
        Dirty: compute, store baseline, then replace the fee line.

        Note: The baseline is written BEFORE the cart. A failed baseline
        write leaves the cart untouched.
        """
        snapshot = node.snapshot
        spec = snapshot.spec
        inputs = snapshot.inputs
        assert inputs is not None and snapshot.fingerprint is not None

        try:
            amount = _compute_amount(spec, inputs)
        except Exception as e:
            return OutcomeError(
                kind=FeeErrorKind.COMPUTE_ERROR,
                message=f"compute_fee failed: {e}",
                cause=e,
            )

        fee = FeeRecord(spec.fee_label, amount, spec.policy.taxable) if amount > 0 else None
        baseline = RecalcBaseline(
            fingerprint=snapshot.fingerprint,
            force=False,
            fee_applied=fee is not None,
        )

        key = spec.policy.baseline_key(spec.fee_label)
        match await spec.store.set(spec.session_id, key, baseline.to_dict()):
            case Error(err):
                return OutcomeError(
                    kind=FeeErrorKind.STORE_ERROR,
                    message=err.message,
                    cause=err.cause,
                )
            case Ok(_):
                pass

        if snapshot.fee_present:
            match await spec.cart.remove_fee(spec.fee_label):
                case Error(err):
                    return await _cart_write_failed(spec, baseline, err)
                case Ok(_):
                    pass

        if fee is not None:
            match await spec.cart.add_fee(fee):
                case Error(err):
                    return await _cart_write_failed(spec, baseline, err)
                case Ok(_):
                    pass
            action = ReconcileAction.APPLIED
        elif snapshot.fee_present:
            action = ReconcileAction.REMOVED
        else:
            action = ReconcileAction.UNCHANGED

        log.info(
            "fees.recomputed",
            session_id=spec.session_id,
            fee_label=spec.fee_label,
            reason=node.reason,
            action=action.name,
            amount=str(amount),
            base_amount=str(inputs.base_amount),
        )
        return OutcomeOk(
            ReconcileResult(
                action=action,
                fee=fee,
                fingerprint=snapshot.fingerprint,
                baseline=baseline,
                reason=node.reason,
            )
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Final Node
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FinalResultNode:
    """Converts Outcome to typed Result."""

    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome

    @classmethod
    def __compose__(cls, outcome: ReconcileOutcome) -> "FinalResultNode":
        return cls(outcome.value)

    def to_result(self) -> Result[ReconcileResult, FeeError]:
        match self.outcome:
            case OutcomeOk(result=result):
                return Ok(result)
            case OutcomeError(kind=kind, message=msg, cause=cause):
                return Error(FeeError(kind=kind, message=msg, cause=cause))


# ═══════════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════════

_reconcile_graph = G.graph(FinalResultNode)


async def run_reconcile(spec: ReconcileSpec) -> Result[ReconcileResult, FeeError]:
    """
    Run one reconcile pass via graph.

    Note: No locking here. IdempotentFeeController serializes passes per session.
    """
    node = await _reconcile_graph(spec)
    return node.to_result()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "ComputeFee",
    "ReconcileSpec",
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    "SpecNode",
    "SnapshotNode",
    "SnapshotErrorNode",
    "StableNode",
    "DirtyNode",
    "ReconcileOutcome",
    "FinalResultNode",
    "run_reconcile",
)
