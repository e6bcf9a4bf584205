"""
Fee policy — reconcile behavior configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cartcore.fees._hash import DEFAULT_DISCOUNT_LABELS

if TYPE_CHECKING:
    from cartcore.config import Settings


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Fee policy configuration.

    Fluent builder pattern — chain methods to configure.

    Example:
        policy = (
            Policy()
            .with_gateways("intuit_payments_credit_card")
            .with_places(2)
            .with_discount_labels("VIP Discount", "Bulk Discount")
        )

    gateways: payment methods the fee applies to. None = every method.
    With another method chosen the fee is due as zero, so an existing
    line is removed.

    Note: Immutable — each method returns new Policy.
    """

    taxable: bool = True
    discount_labels: tuple[str, ...] = DEFAULT_DISCOUNT_LABELS
    places: int = 2
    gateways: frozenset[str] | None = None
    baseline_prefix: str = "baseline"
    marker_key: str = "surcharge_updated"

    def with_taxable(self, taxable: bool = True) -> Policy:
        return Policy(
            taxable=taxable,
            discount_labels=self.discount_labels,
            places=self.places,
            gateways=self.gateways,
            baseline_prefix=self.baseline_prefix,
            marker_key=self.marker_key,
        )

    def with_discount_labels(self, *labels: str) -> Policy:
        """Fee labels counted as discounts in the fingerprint."""
        return Policy(
            taxable=self.taxable,
            discount_labels=tuple(labels),
            places=self.places,
            gateways=self.gateways,
            baseline_prefix=self.baseline_prefix,
            marker_key=self.marker_key,
        )

    def with_places(self, places: int) -> Policy:
        """Decimal places fee amounts are rounded to (half-up)."""
        if places < 0:
            raise ValueError(f"places must be >= 0, got {places}")
        return Policy(
            taxable=self.taxable,
            discount_labels=self.discount_labels,
            places=places,
            gateways=self.gateways,
            baseline_prefix=self.baseline_prefix,
            marker_key=self.marker_key,
        )

    def with_gateways(self, *gateways: str) -> Policy:
        """
        Restrict the fee to these payment methods.

        Example:
            .with_gateways("intuit_payments_credit_card")
            .with_gateways()  # no restriction
        """
        return Policy(
            taxable=self.taxable,
            discount_labels=self.discount_labels,
            places=self.places,
            gateways=frozenset(gateways) if gateways else None,
            baseline_prefix=self.baseline_prefix,
            marker_key=self.marker_key,
        )

    def with_keys(
        self,
        *,
        baseline_prefix: str | None = None,
        marker_key: str | None = None,
    ) -> Policy:
        """Session keys used for the baseline and the updated marker."""
        return Policy(
            taxable=self.taxable,
            discount_labels=self.discount_labels,
            places=self.places,
            gateways=self.gateways,
            baseline_prefix=baseline_prefix or self.baseline_prefix,
            marker_key=marker_key or self.marker_key,
        )

    def baseline_key(self, fee_label: str) -> str:
        return f"{self.baseline_prefix}:{fee_label}"

    def applies_to(self, payment_method: str | None) -> bool:
        if self.gateways is None:
            return True
        return payment_method in self.gateways

    @classmethod
    def from_settings(cls, settings: Settings) -> Policy:
        return (
            cls()
            .with_taxable(settings.surcharge_taxable)
            .with_discount_labels(*settings.discount_labels)
            .with_places(settings.money_places)
            .with_gateways(*settings.surcharge_gateways)
        )


__all__ = ("Policy",)
