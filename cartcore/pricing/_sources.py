"""
Rule sources — adapters that normalize host rule data into PricingRule.

Each adapter reports availability and fetches the rules it knows for a
product. fetch() never raises: failures come back as Error(SourceError).

Raw rule-set shape (as the host stores it):

    {
        "rules": [
            {"from": "1", "to": "4", "type": "fixed_price", "amount": "10.00"},
            {"from": "5", "to": "",  "type": "percentage",  "amount": "15"},
        ],
        "targets": [101, 102],   # product or category ids, source-dependent
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Protocol
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping, Sequence

import structlog
from combinators import lift as L

from cartcore._types import Result, Ok, Error, Fallible, ProductId, CategoryId, to_money
from cartcore.pricing._types import (
    PricingRule,
    PricingTier,
    RuleSource,
    SourceError,
    SourceErrorKind,
    TierKind,
)

log = structlog.get_logger(__name__)

type RawRuleSet = Mapping[str, Any]
type RawRuleSets = Mapping[str, RawRuleSet] | Sequence[RawRuleSet]
type RuleFinder = Callable[[ProductId], RawRuleSets | None]
type CategoryLookup = Callable[[ProductId], Iterable[CategoryId]]


# ═══════════════════════════════════════════════════════════════════════════════
# Normalization
# ═══════════════════════════════════════════════════════════════════════════════

_TIER_KINDS: Mapping[str, TierKind] = {
    "fixed_price": TierKind.FIXED_PRICE,
    "fixed": TierKind.FIXED_PRICE,
    "percentage": TierKind.PERCENTAGE_OFF,
    "percent": TierKind.PERCENTAGE_OFF,
}

_UNBOUNDED = (None, "", 0, "0")


def _is_list(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _parse_qty(value: object, name: str) -> int:
    qty = to_money(value)
    if qty != qty.to_integral_value():
        raise ValueError(f"'{name}' must be a whole number, got {value!r}")
    return int(qty)


def _parse_tier(raw: object) -> PricingTier:
    if not isinstance(raw, Mapping):
        raise ValueError(f"tier must be a mapping, got {type(raw).__name__}")
    if raw.get("from") in (None, ""):
        raise ValueError("tier missing 'from'")
    if raw.get("amount") in (None, ""):
        raise ValueError("tier missing 'amount'")

    from_qty = _parse_qty(raw["from"], "from")
    to_raw = raw.get("to")
    to_qty = None if to_raw in _UNBOUNDED else _parse_qty(to_raw, "to")
    kind = _TIER_KINDS.get(str(raw.get("type") or "").strip().lower(), TierKind.RAW_AMOUNT)

    amount = to_money(raw["amount"])
    if amount < 0:
        raise ValueError(f"tier amount must be >= 0, got {amount}")
    if kind is TierKind.PERCENTAGE_OFF and amount > 100:
        raise ValueError(f"percentage must be <= 100, got {amount}")

    return PricingTier(from_qty=from_qty, to_qty=to_qty, kind=kind, amount=amount)


def normalize_rule_set(
    raw: RawRuleSet,
    source: RuleSource,
    rule_id: str | None = None,
) -> Result[PricingRule, SourceError]:
    """
    Normalize one raw rule set.

    Any bad tier rejects the whole rule.
    """
    try:
        if not isinstance(raw, Mapping):
            raise ValueError(f"rule set must be a mapping, got {type(raw).__name__}")
        tiers_raw = raw.get("rules")
        if not _is_list(tiers_raw):
            raise ValueError("rule set missing 'rules' list")
        if not tiers_raw:
            raise ValueError("rule set has no tiers")
        tiers = tuple(_parse_tier(t) for t in tiers_raw)
        targets_raw = raw.get("targets") or ()
        if not _is_list(targets_raw):
            raise ValueError("'targets' must be a list of ids")
        targets = frozenset(_parse_qty(t, "targets") for t in targets_raw)
    except (ValueError, TypeError) as e:
        return Error(
            SourceError(
                kind=SourceErrorKind.MALFORMED,
                source=source,
                message=f"Malformed rule {rule_id!r}: {e}",
                cause=e,
            )
        )

    return Ok(PricingRule(source=source, tiers=tiers, targets=targets, rule_id=rule_id))


def _entries(rule_sets: RawRuleSets) -> Iterator[tuple[str, RawRuleSet]]:
    if isinstance(rule_sets, Mapping):
        for key, raw in rule_sets.items():
            yield str(key), raw
    else:
        for index, raw in enumerate(rule_sets):
            yield str(index), raw


def normalize_all(rule_sets: RawRuleSets, source: RuleSource) -> tuple[PricingRule, ...]:
    """Normalize every rule set, skipping (and logging) malformed ones."""
    rules: list[PricingRule] = []
    for rule_id, raw in _entries(rule_sets):
        match normalize_rule_set(raw, source, rule_id):
            case Ok(rule):
                rules.append(rule)
            case Error(err):
                log.warning(
                    "pricing.rule_skipped",
                    source=source.name,
                    rule_id=rule_id,
                    reason=err.message,
                )
    return tuple(rules)


# ═══════════════════════════════════════════════════════════════════════════════
# Adapter Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class RuleSourceAdapter(Protocol):
    """
    Rule source adapter protocol.

    Example — host-specific adapter:

        class LegacyTableSource:
            source = RuleSource.SIMPLE_BULK

            def is_available(self) -> bool:
                return self.table_exists

            def fetch(self, product_id: int) -> Fallible[tuple[PricingRule, ...], SourceError]:
                return L.catching(
                    lambda: normalize_all(self.rows_for(product_id), self.source),
                    on_error=lambda e: SourceError(SourceErrorKind.FAILED, self.source, str(e), e),
                )
    """

    @property
    def source(self) -> RuleSource: ...

    def is_available(self) -> bool: ...

    def fetch(self, product_id: ProductId) -> Fallible[tuple[PricingRule, ...], SourceError]: ...


class CategoryLookupFailed(Exception):
    """Raised inside an adapter when the product's categories cannot be read."""


# ═══════════════════════════════════════════════════════════════════════════════
# Concrete Adapters
# ═══════════════════════════════════════════════════════════════════════════════


class _RawRuleSource:
    """Adapter over raw host rule sets. Subclasses pick the rule sets for a product."""

    source: ClassVar[RuleSource]

    def is_available(self) -> bool:
        raise NotImplementedError

    def _rule_sets_for(self, product_id: ProductId) -> RawRuleSets:
        raise NotImplementedError

    def fetch(self, product_id: ProductId) -> Fallible[tuple[PricingRule, ...], SourceError]:
        if not self.is_available():
            return L.fail(
                SourceError(
                    kind=SourceErrorKind.UNAVAILABLE,
                    source=self.source,
                    message=f"{self.source.name} is not available",
                )
            )

        return L.catching(
            lambda: normalize_all(self._rule_sets_for(product_id), self.source),
            on_error=self._on_error,
        )

    def _on_error(self, exc: Exception) -> SourceError:
        kind = (
            SourceErrorKind.CATEGORY_LOOKUP
            if isinstance(exc, CategoryLookupFailed)
            else SourceErrorKind.FAILED
        )
        return SourceError(kind=kind, source=self.source, message=str(exc), cause=exc)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(available={self.is_available()})"


def _targeting(rule_sets: RawRuleSets, ids: frozenset[int]) -> list[RawRuleSet]:
    """Raw rule sets whose 'targets' list intersects ids. Anything unparseable never matches."""
    matched: list[RawRuleSet] = []
    for _, raw in _entries(rule_sets):
        targets = raw.get("targets") if isinstance(raw, Mapping) else None
        if not targets or not _is_list(targets):
            continue
        for target in targets:
            try:
                if int(target) in ids:
                    matched.append(raw)
                    break
            except (TypeError, ValueError):
                continue
    return matched


class ProductMetaSource(_RawRuleSource):
    """Rules stored on the product itself."""

    source = RuleSource.PRODUCT_META

    def __init__(self, lookup: RuleFinder | None) -> None:
        self._lookup = lookup

    def is_available(self) -> bool:
        return self._lookup is not None

    def _rule_sets_for(self, product_id: ProductId) -> RawRuleSets:
        assert self._lookup is not None
        return self._lookup(product_id) or ()


class AdvancedProductSource(_RawRuleSource):
    """
    Product rules from the advanced pricing extension.

    Note: Uses the extension's own finder when it has one,
    otherwise filters its rule table by target product id.
    """

    source = RuleSource.ADVANCED_PRODUCT

    def __init__(
        self,
        rules: RawRuleSets | None = None,
        finder: RuleFinder | None = None,
    ) -> None:
        self._rules = rules
        self._finder = finder

    def is_available(self) -> bool:
        return self._finder is not None or self._rules is not None

    def _rule_sets_for(self, product_id: ProductId) -> RawRuleSets:
        if self._finder is not None:
            return self._finder(product_id) or ()
        assert self._rules is not None
        return _targeting(self._rules, frozenset({product_id}))


class AdvancedCategorySource(_RawRuleSource):
    """Category rules from the advanced pricing extension."""

    source = RuleSource.ADVANCED_CATEGORY

    def __init__(self, rules: RawRuleSets | None, categories: CategoryLookup) -> None:
        self._rules = rules
        self._categories = categories

    def is_available(self) -> bool:
        return self._rules is not None

    def _rule_sets_for(self, product_id: ProductId) -> RawRuleSets:
        assert self._rules is not None
        try:
            category_ids = frozenset(int(c) for c in self._categories(product_id))
        except Exception as e:
            raise CategoryLookupFailed(
                f"Category lookup failed for product {product_id}: {e}"
            ) from e
        if not category_ids:
            return ()
        return _targeting(self._rules, category_ids)


class SimpleBulkSource(_RawRuleSource):
    """Rules from the simple bulk pricing extension, targeted by product id."""

    source = RuleSource.SIMPLE_BULK

    def __init__(self, rules: RawRuleSets | None) -> None:
        self._rules = rules

    def is_available(self) -> bool:
        return self._rules is not None

    def _rule_sets_for(self, product_id: ProductId) -> RawRuleSets:
        assert self._rules is not None
        return _targeting(self._rules, frozenset({product_id}))


class GlobalManagerSource(_RawRuleSource):
    """Catch-all rules from the global pricing manager."""

    source = RuleSource.GLOBAL_MANAGER

    def __init__(self, finder: RuleFinder | None) -> None:
        self._finder = finder

    def is_available(self) -> bool:
        return self._finder is not None

    def _rule_sets_for(self, product_id: ProductId) -> RawRuleSets:
        assert self._finder is not None
        return self._finder(product_id) or ()


# ═══════════════════════════════════════════════════════════════════════════════
# Function-based Adapter Builder
# ═══════════════════════════════════════════════════════════════════════════════

type FetchFn = Callable[[ProductId], Awaitable[Sequence[PricingRule]]]
type AvailableFn = Callable[[], bool]


@dataclass(frozen=True)
class FunctionalSource:
    """
    Adapter built from functions that already produce PricingRule values.

    Example:
        adapter = source_from(
            RuleSource.GLOBAL_MANAGER,
            fetch=manager.rules_for,
            available=manager.is_enabled,
        )
    """

    source: RuleSource
    _fetch: FetchFn
    _available: AvailableFn

    def is_available(self) -> bool:
        return self._available()

    def fetch(self, product_id: ProductId) -> Fallible[tuple[PricingRule, ...], SourceError]:
        async def fetch_rules() -> tuple[PricingRule, ...]:
            return tuple(await self._fetch(product_id))

        return L.catching_async(
            fetch_rules,
            on_error=lambda e: SourceError(
                kind=SourceErrorKind.FAILED,
                source=self.source,
                message=str(e),
                cause=e,
            ),
        )


def source_from(
    source: RuleSource,
    fetch: FetchFn,
    available: AvailableFn = lambda: True,
) -> FunctionalSource:
    """Create a RuleSourceAdapter from functions."""
    return FunctionalSource(source=source, _fetch=fetch, _available=available)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "RawRuleSet",
    "RawRuleSets",
    "normalize_rule_set",
    "normalize_all",
    "RuleSourceAdapter",
    "CategoryLookupFailed",
    "ProductMetaSource",
    "AdvancedProductSource",
    "AdvancedCategorySource",
    "SimpleBulkSource",
    "GlobalManagerSource",
    "FunctionalSource",
    "source_from",
)
