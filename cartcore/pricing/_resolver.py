"""
Pricing rule resolver — merges adapters in fixed precedence order.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable, Iterable, Iterator

import structlog

from cartcore._types import Result, Ok, Error, ProductId
from cartcore.pricing._types import PricingRule, SourceError, SourceErrorKind
from cartcore.pricing._sources import RuleSourceAdapter

log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Resolution
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Resolution:
    """
    Ordered rules for a product plus the source errors met on the way.

    Iterating yields the rules, in precedence order.
    """

    rules: tuple[PricingRule, ...] = ()
    errors: tuple[SourceError, ...] = ()

    def __iter__(self) -> Iterator[PricingRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __bool__(self) -> bool:
        return bool(self.rules)


EMPTY = Resolution()


# ═══════════════════════════════════════════════════════════════════════════════
# Resolver
# ═══════════════════════════════════════════════════════════════════════════════

type Active = bool | Callable[[], bool]


class PricingRuleResolver:
    """
    Queries every available adapter, highest precedence first.

    Example:
        resolver = PricingRuleResolver(
            [GlobalManagerSource(manager.find), ProductMetaSource(meta.get)],
            active=lambda: plugin.is_active("dynamic-pricing"),
        )
        resolution = await resolver.resolve(product_id)

    Note: Adapters are sorted by RuleSource precedence (stable), so the
    order they are passed in only matters between adapters of one source.
    No deduplication: the evaluator's first-match-wins does the picking.
    """

    def __init__(self, sources: Iterable[RuleSourceAdapter], *, active: Active = True) -> None:
        self._sources: tuple[RuleSourceAdapter, ...] = tuple(
            sorted(sources, key=lambda s: s.source.precedence)
        )
        self._active = active

    @property
    def sources(self) -> tuple[RuleSourceAdapter, ...]:
        return self._sources

    def with_source(self, adapter: RuleSourceAdapter) -> PricingRuleResolver:
        """New resolver with one more adapter."""
        return PricingRuleResolver((*self._sources, adapter), active=self._active)

    def is_active(self) -> bool:
        """A raising `active` callable counts as inactive."""
        active = self._active
        if not callable(active):
            return active
        try:
            return bool(active())
        except Exception as e:
            log.warning("pricing.active_check_failed", error=str(e))
            return False

    async def resolve(self, product_id: ProductId) -> Resolution:
        if not self.is_active():
            log.debug("pricing.extension_inactive", product_id=product_id)
            return EMPTY
        if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id <= 0:
            log.debug("pricing.invalid_product", product_id=product_id)
            return EMPTY

        rules: list[PricingRule] = []
        errors: list[SourceError] = []

        for adapter in self._sources:
            match await _query(adapter, product_id):
                case Ok(found):
                    rules.extend(found)
                case Error(err):
                    log.warning(
                        "pricing.source_failed",
                        product_id=product_id,
                        source=err.source.name,
                        kind=err.kind.name,
                        error=err.message,
                    )
                    errors.append(err)

        return Resolution(rules=tuple(rules), errors=tuple(errors))

    async def has_rules(self, product_id: ProductId) -> bool:
        return bool(await self.resolve(product_id))


async def _query(
    adapter: RuleSourceAdapter, product_id: ProductId
) -> Result[tuple[PricingRule, ...], SourceError]:
    """One adapter's rules. Unavailable adapters yield none; anything raised becomes FAILED."""
    try:
        if not adapter.is_available():
            return Ok(())
        return await adapter.fetch(product_id)
    except Exception as e:
        return Error(
            SourceError(
                kind=SourceErrorKind.FAILED,
                source=adapter.source,
                message=f"{type(e).__name__}: {e}",
                cause=e,
            )
        )


__all__ = (
    "Resolution",
    "PricingRuleResolver",
)
