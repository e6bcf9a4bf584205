"""
Bulk discounts — priority rule selection and discount fee lines.

Discount fees are negative FeeRecords labelled "<rule name> (<product name>)".
Their labels contain "Bulk Discount" / "VIP Discount", which is how the
fee fingerprint finds them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog
from kungfu import Result, Ok, Error

from cartcore._types import ProductId
from cartcore.cart import CartError, CartGateway, CartLine, FeeRecord
from cartcore.discounts._types import (
    BulkDiscountRule,
    MessageKind,
    QuantityNotice,
    ThresholdMessage,
)

log = structlog.get_logger(__name__)


def select_rule(
    rules: Iterable[BulkDiscountRule],
    product_id: ProductId,
    quantity: int,
    roles: Iterable[str] = (),
) -> BulkDiscountRule | None:
    """Highest-priority matching rule. Ties keep the earlier rule."""
    roles = frozenset(roles)
    best: BulkDiscountRule | None = None
    for rule in rules:
        if not rule.matches(product_id, quantity, roles):
            continue
        if best is None or rule.priority > best.priority:
            best = rule
    return best


def _group_quantities(lines: Iterable[CartLine]) -> dict[ProductId, tuple[int, str]]:
    """Quantity per parent product, variations folded together."""
    groups: dict[ProductId, tuple[int, str]] = {}
    for line in lines:
        quantity, name = groups.get(line.group_id, (0, line.name))
        groups[line.group_id] = (quantity + line.quantity, name or line.name)
    return groups


def discount_fees(
    lines: Iterable[CartLine],
    rules: Iterable[BulkDiscountRule],
    roles: Iterable[str] = (),
) -> tuple[FeeRecord, ...]:
    rules = tuple(rules)
    roles = frozenset(roles)
    fees: list[FeeRecord] = []
    for product_id, (quantity, name) in _group_quantities(lines).items():
        rule = select_rule(rules, product_id, quantity, roles)
        if rule is None or rule.discount_amount == 0:
            continue
        label = f"{rule.name} ({name or f'#{product_id}'})"
        fees.append(FeeRecord(label, -(rule.discount_amount * quantity), taxable=True))
    return tuple(fees)


async def apply_discounts(
    cart: CartGateway,
    rules: Iterable[BulkDiscountRule],
    roles: Iterable[str] = (),
) -> Result[tuple[FeeRecord, ...], CartError]:
    """
    Replace the cart's discount lines with freshly computed ones.

    Running it twice leaves the same fee list.
    """
    rules = tuple(rules)
    match await cart.get_state():
        case Ok(state):
            pass
        case Error(err):
            return Error(err)

    names = {rule.name for rule in rules}
    stale = {fee.label for fee in state.fees if any(fee.label.startswith(n) for n in names)}
    for label in sorted(stale):
        match await cart.remove_fee(label):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

    fees = discount_fees(state.lines, rules, roles)
    for fee in fees:
        match await cart.add_fee(fee):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

    log.debug("discounts.applied", count=len(fees), removed=len(stale))
    return Ok(fees)


def threshold_messages(
    product_id: ProductId,
    quantity: int,
    rules: Iterable[BulkDiscountRule] = (),
    roles: Iterable[str] = (),
    notices: Iterable[QuantityNotice] | Mapping[ProductId, Iterable[QuantityNotice]] = (),
) -> list[ThresholdMessage]:
    """
    Messages a customer would see for (product, quantity), without a cart.

    Example:
        threshold_messages(80, 5, rules, roles={"customer"}, notices=[
            QuantityNotice(80, 5, MessageKind.BILLING, "Billed monthly"),
        ])
    """
    messages: list[ThresholdMessage] = []

    rule = select_rule(rules, product_id, quantity, roles)
    if rule is not None:
        messages.append(
            ThresholdMessage(
                kind=MessageKind.DISCOUNT,
                message=rule.threshold_message or rule.name,
                threshold=rule.min_quantity,
                rule_name=rule.name,
            )
        )

    if isinstance(notices, Mapping):
        candidates: Iterable[QuantityNotice] = notices.get(product_id, ())
    else:
        candidates = notices
    for notice in candidates:
        if notice.product_id == product_id and quantity >= notice.threshold:
            messages.append(
                ThresholdMessage(
                    kind=notice.kind,
                    message=notice.message,
                    threshold=notice.threshold,
                )
            )

    return messages


__all__ = (
    "select_rule",
    "discount_fees",
    "apply_discounts",
    "threshold_messages",
)
