"""
Fee types — fingerprint inputs, baselines and reconcile results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any
from collections.abc import Mapping

from cartcore._types import Money
from cartcore.cart import FeeRecord

type CartFingerprint = str
"""Hex SHA-256 over the fee-relevant cart inputs."""


# ═══════════════════════════════════════════════════════════════════════════════
# Fingerprint Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FeeInputs:
    """
    The only cart values a derived fee may depend on.

    Note: Anything not in here (line items, unrelated fees) can change
    without triggering a recomputation.
    """

    subtotal: Money
    shipping_total: Money
    discount_total: Money
    payment_method: str | None

    @property
    def base_amount(self) -> Money:
        """Amount the fee is computed from: subtotal + shipping − discounts."""
        return self.subtotal + self.shipping_total - self.discount_total


# ═══════════════════════════════════════════════════════════════════════════════
# Recalc Baseline — Stored State
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RecalcBaseline:
    """
    Session-scoped memory of the last recomputation.

    fingerprint: F at the last recomputation (None = never computed).
    force: next reconcile must recompute regardless of F.
    fee_applied: whether that recomputation left a fee line in the cart.
    Note: A fee that is absent because none was due is Stable, not missing.
    """

    fingerprint: CartFingerprint | None = None
    force: bool = False
    fee_applied: bool = False

    def with_force(self, force: bool = True) -> RecalcBaseline:
        return RecalcBaseline(
            fingerprint=self.fingerprint,
            force=force,
            fee_applied=self.fee_applied,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "force": self.force,
            "fee_applied": self.fee_applied,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RecalcBaseline:
        """Raises ValueError for data that is not a stored baseline."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Baseline must be a mapping, got {type(data).__name__}")
        fingerprint = data.get("fingerprint")
        if fingerprint is not None and not isinstance(fingerprint, str):
            raise ValueError(f"Baseline fingerprint must be str, got {fingerprint!r}")
        return cls(
            fingerprint=fingerprint,
            force=bool(data.get("force", False)),
            fee_applied=bool(data.get("fee_applied", False)),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


class ReconcileAction(Enum):
    """What a reconcile call did to the cart."""

    UNCHANGED = auto()  # Stable, or recomputed to the same "no fee"
    APPLIED = auto()  # Old fee (if any) removed, new fee added
    REMOVED = auto()  # Old fee removed, none due
    SKIPPED = auto()  # Nested call for a session already being reconciled


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """
    Successful reconcile result.

    fee: the fee written by THIS call, None when nothing was added.
    """

    action: ReconcileAction
    fee: FeeRecord | None = None
    fingerprint: CartFingerprint | None = None
    baseline: RecalcBaseline | None = None
    reason: str = ""

    @property
    def wrote(self) -> bool:
        return self.action in (ReconcileAction.APPLIED, ReconcileAction.REMOVED)


class FeeErrorKind(Enum):
    """Kinds of fee reconcile errors."""

    STORE_ERROR = auto()  # Session store read/write failed
    CART_ERROR = auto()  # Cart read/write failed
    COMPUTE_ERROR = auto()  # compute_fee raised or returned a non-number


@dataclass(frozen=True, slots=True)
class FeeError:
    """
    Fee reconcile error.

    Note: The cart is never left half-written for STORE_ERROR and
    COMPUTE_ERROR: both happen before any cart write.
    """

    kind: FeeErrorKind
    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "CartFingerprint",
    "FeeInputs",
    "RecalcBaseline",
    "ReconcileAction",
    "ReconcileResult",
    "FeeErrorKind",
    "FeeError",
)
