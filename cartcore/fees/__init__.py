"""
Fees — idempotent derived fees via nodnod graphs.

    from cartcore import fees as F

    # Controller API
    controller = F.IdempotentFeeController(
        F.MemorySessionStore(),
        F.Policy().with_gateways("intuit_payments_credit_card"),
    )
    fee = await controller.reconcile(
        session_id, cart, "Credit Card Surcharge (3%)", F.percentage(3)
    )

    # Builder API
    executor = (
        F.surcharge(3)
        .label("Credit Card Surcharge (3%)")
        .gateways("intuit_payments_credit_card")
        .store(F.MemorySessionStore())
        .build()
    )
    result = await executor.run(session_id, cart)

Architecture — State nodes validate, polymorphic routes:

    ReconcileSpec
         │
         ▼
    SpecNode → SnapshotNode (F = sha256(subtotal, shipping, discounts, method))
                     │
         ┌───────────┼───────────────┐
         ▼           ▼               ▼
    SnapshotError  StableNode     DirtyNode
         │           │               │
         └───────────┼───────────────┘
                     ▼
         ReconcileOutcome (@polymorphic)
                     │
                     ▼
            FinalResultNode
"""

from cartcore.fees._types import (
    CartFingerprint,
    FeeInputs,
    RecalcBaseline,
    ReconcileAction,
    ReconcileResult,
    FeeErrorKind,
    FeeError,
)
from cartcore.fees._hash import (
    DEFAULT_DISCOUNT_LABELS,
    discount_total,
    fee_inputs,
    fingerprint,
    fingerprint_cart,
)
from cartcore.fees._store import (
    StoreError,
    SessionStore,
    FunctionalStore,
    store_from,
    MemorySessionStore,
)
from cartcore.fees._policy import Policy
from cartcore.fees._graph import (
    ComputeFee,
    ReconcileSpec,
    run_reconcile,
    Outcome,
    OutcomeOk,
    OutcomeError,
    SpecNode,
    SnapshotNode,
    SnapshotErrorNode,
    StableNode,
    DirtyNode,
    ReconcileOutcome,
    FinalResultNode,
)
from cartcore.fees._controller import IdempotentFeeController
from cartcore.fees._surcharge import (
    percentage,
    surcharge,
    Surcharge,
    SurchargeExecutor,
)
from cartcore.fees._sqlalchemy import (
    SessionStateRow,
    SQLAlchemySessionStore,
    create_database,
)

__all__ = (
    # Types
    "CartFingerprint",
    "FeeInputs",
    "RecalcBaseline",
    "ReconcileAction",
    "ReconcileResult",
    "FeeErrorKind",
    "FeeError",
    # Hasher
    "DEFAULT_DISCOUNT_LABELS",
    "discount_total",
    "fee_inputs",
    "fingerprint",
    "fingerprint_cart",
    # Store
    "StoreError",
    "SessionStore",
    "FunctionalStore",
    "store_from",
    "MemorySessionStore",
    # Policy
    "Policy",
    # Reconcile input & API
    "ComputeFee",
    "ReconcileSpec",
    "run_reconcile",
    "IdempotentFeeController",
    # Outcome
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    # Nodes
    "SpecNode",
    "SnapshotNode",
    "SnapshotErrorNode",
    "StableNode",
    "DirtyNode",
    "ReconcileOutcome",
    "FinalResultNode",
    # Builder
    "percentage",
    "surcharge",
    "Surcharge",
    "SurchargeExecutor",
    # SQLAlchemy
    "SessionStateRow",
    "SQLAlchemySessionStore",
    "create_database",
)
