"""
Cart state hasher — deterministic fingerprint of fee-relevant inputs.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable

from cartcore._types import Money, ZERO, canonical
from cartcore.cart import CartState, FeeRecord
from cartcore.fees._types import CartFingerprint, FeeInputs

DEFAULT_DISCOUNT_LABELS: tuple[str, ...] = ("VIP Discount", "Bulk Discount")


def discount_total(
    fees: Iterable[FeeRecord],
    labels: Iterable[str] = DEFAULT_DISCOUNT_LABELS,
) -> Money:
    """Sum of |amount| over negative fees whose label contains a discount label."""
    labels = tuple(labels)
    total = ZERO
    for fee in fees:
        if fee.amount < 0 and any(label in fee.label for label in labels):
            total += abs(fee.amount)
    return total


def fee_inputs(
    state: CartState,
    labels: Iterable[str] = DEFAULT_DISCOUNT_LABELS,
) -> FeeInputs:
    return FeeInputs(
        subtotal=state.subtotal,
        shipping_total=state.shipping_total,
        discount_total=discount_total(state.fees, labels),
        payment_method=state.chosen_payment_method,
    )


def fingerprint(inputs: FeeInputs) -> CartFingerprint:
    """
    SHA-256 over canonical JSON of the four inputs.

    Equal numbers hash equal regardless of scale (10.0 == 10.00).
    """
    payload = json.dumps(
        {
            "subtotal": canonical(inputs.subtotal),
            "shipping": canonical(inputs.shipping_total),
            "discounts": canonical(inputs.discount_total),
            "payment_method": inputs.payment_method,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode()).hexdigest()


def fingerprint_cart(
    state: CartState,
    labels: Iterable[str] = DEFAULT_DISCOUNT_LABELS,
) -> CartFingerprint:
    return fingerprint(fee_inputs(state, labels))


__all__ = (
    "DEFAULT_DISCOUNT_LABELS",
    "discount_total",
    "fee_inputs",
    "fingerprint",
    "fingerprint_cart",
)
