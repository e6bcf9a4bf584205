"""Rule source adapter tests.

Invariants:
    - fetch() never raises; failures are Error(SourceError)
    - A malformed rule set is skipped, valid siblings survive
    - Category lookup failure yields no rules (CATEGORY_LOOKUP)
"""

from decimal import Decimal

import pytest
from kungfu import Ok, Error
from structlog.testing import capture_logs

from cartcore import pricing as P


# -- normalization --------------------------------------------------------------


def test_normalize_maps_tier_kinds():
    raw = {
        "rules": [
            {"from": 1, "to": 4, "type": "fixed_price", "amount": "10"},
            {"from": 5, "to": 9, "type": "percentage", "amount": "15"},
            {"from": 10, "to": "", "amount": "6"},
        ],
        "targets": ["101", 102],
    }
    match P.normalize_rule_set(raw, P.RuleSource.SIMPLE_BULK, "r1"):
        case Ok(rule):
            assert [t.kind for t in rule.tiers] == [
                P.TierKind.FIXED_PRICE,
                P.TierKind.PERCENTAGE_OFF,
                P.TierKind.RAW_AMOUNT,
            ]
            assert rule.tiers[2].to_qty is None
            assert rule.targets == frozenset({101, 102})
            assert rule.rule_id == "r1"
            assert rule.source is P.RuleSource.SIMPLE_BULK
        case Error(err):
            pytest.fail(f"unexpected error: {err}")


def test_normalize_zero_to_means_unbounded():
    raw = {"rules": [{"from": "3", "to": "0", "type": "fixed_price", "amount": "1"}]}
    rule = P.normalize_rule_set(raw, P.RuleSource.PRODUCT_META).unwrap()
    assert rule.tiers[0].to_qty is None


def test_normalize_float_amount_is_exact():
    raw = {"rules": [{"from": 1, "amount": 10.1}]}
    rule = P.normalize_rule_set(raw, P.RuleSource.PRODUCT_META).unwrap()
    assert rule.tiers[0].amount == Decimal("10.1")


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"rules": []},
        {"rules": "not a list"},
        {"rules": [{"to": "4", "amount": "10"}]},
        {"rules": [{"from": "1", "to": "4"}]},
        {"rules": [{"from": "abc", "amount": "10"}]},
        {"rules": [{"from": "5", "to": "4", "amount": "10"}]},
        {"rules": [{"from": "1", "amount": "-3"}]},
        {"rules": [{"from": "1", "type": "percentage", "amount": "150"}]},
        {"rules": [{"from": "1", "amount": "1"}], "targets": 5},
        {"rules": [{"from": "1", "amount": "1"}], "targets": "101"},
        "not a mapping",
    ],
)
def test_normalize_rejects_malformed(raw):
    match P.normalize_rule_set(raw, P.RuleSource.PRODUCT_META, "bad"):
        case Error(err):
            assert err.kind is P.SourceErrorKind.MALFORMED
            assert err.source is P.RuleSource.PRODUCT_META
        case Ok(rule):
            pytest.fail(f"expected MALFORMED, got {rule}")


def test_one_bad_tier_rejects_whole_rule():
    raw = {"rules": [{"from": "1", "to": "4", "amount": "10"}, {"from": "5"}]}
    assert isinstance(P.normalize_rule_set(raw, P.RuleSource.PRODUCT_META), Error)


def test_normalize_all_skips_malformed_and_logs(tiered_rule_set):
    with capture_logs() as logs:
        rules = P.normalize_all(
            {"good": tiered_rule_set, "bad": {"rules": [{"to": "3"}]}},
            P.RuleSource.GLOBAL_MANAGER,
        )
    assert [r.rule_id for r in rules] == ["good"]
    skipped = [e for e in logs if e["event"] == "pricing.rule_skipped"]
    assert len(skipped) == 1
    assert skipped[0]["rule_id"] == "bad"
    assert skipped[0]["log_level"] == "warning"


# -- concrete adapters ----------------------------------------------------------


@pytest.mark.asyncio
async def test_product_meta_source(tiered_rule_set):
    source = P.ProductMetaSource(lambda pid: [tiered_rule_set] if pid == 7 else None)
    assert (await source.fetch(7)).unwrap()[0].source is P.RuleSource.PRODUCT_META
    assert (await source.fetch(8)).unwrap() == ()


@pytest.mark.asyncio
async def test_simple_bulk_filters_by_target(tiered_rule_set):
    rules = {
        "a": {**tiered_rule_set, "targets": [101]},
        "b": {**tiered_rule_set, "targets": [202]},
        "c": tiered_rule_set,
    }
    found = (await P.SimpleBulkSource(rules).fetch(101)).unwrap()
    assert [r.rule_id for r in found] == ["a"]


@pytest.mark.asyncio
async def test_string_targets_never_match_by_character(tiered_rule_set):
    rules = {"s": {**tiered_rule_set, "targets": "101"}}
    source = P.SimpleBulkSource(rules)
    for pid in (1, 0, 10, 101):
        assert (await source.fetch(pid)).unwrap() == ()


@pytest.mark.asyncio
async def test_advanced_product_prefers_finder(tiered_rule_set):
    table = [{**tiered_rule_set, "targets": [5]}]
    finder_calls = []

    def finder(pid):
        finder_calls.append(pid)
        return []

    source = P.AdvancedProductSource(rules=table, finder=finder)
    assert (await source.fetch(5)).unwrap() == ()
    assert finder_calls == [5]

    fallback = P.AdvancedProductSource(rules=table)
    assert len((await fallback.fetch(5)).unwrap()) == 1


@pytest.mark.asyncio
async def test_advanced_category_intersects_categories(tiered_rule_set):
    rules = [
        {**tiered_rule_set, "targets": [30]},
        {**tiered_rule_set, "targets": [40, 50]},
    ]
    source = P.AdvancedCategorySource(rules, categories=lambda pid: [50, 60])
    found = (await source.fetch(1)).unwrap()
    assert [r.rule_id for r in found] == ["1"]


@pytest.mark.asyncio
async def test_category_lookup_failure_yields_no_rules(tiered_rule_set):
    def broken(pid):
        raise RuntimeError("taxonomy offline")

    source = P.AdvancedCategorySource([tiered_rule_set], categories=broken)
    match await source.fetch(1):
        case Error(err):
            assert err.kind is P.SourceErrorKind.CATEGORY_LOOKUP
            assert "taxonomy offline" in err.message
        case Ok(rules):
            pytest.fail(f"expected error, got {rules}")


@pytest.mark.asyncio
async def test_unavailable_source_fails_without_calling_backend():
    source = P.GlobalManagerSource(None)
    assert not source.is_available()
    match await source.fetch(1):
        case Error(err):
            assert err.kind is P.SourceErrorKind.UNAVAILABLE
        case Ok(_):
            pytest.fail("expected UNAVAILABLE")


@pytest.mark.asyncio
async def test_raising_backend_becomes_failed_error():
    def explode(pid):
        raise KeyError("boom")

    match await P.GlobalManagerSource(explode).fetch(1):
        case Error(err):
            assert err.kind is P.SourceErrorKind.FAILED
            assert isinstance(err.cause, KeyError)
        case Ok(_):
            pytest.fail("expected FAILED")


@pytest.mark.asyncio
async def test_functional_source():
    tier = P.PricingTier(1, None, P.TierKind.FIXED_PRICE, Decimal("3"))
    expected = P.PricingRule(P.RuleSource.GLOBAL_MANAGER, (tier,))

    async def fetch(pid):
        return [expected]

    source = P.source_from(P.RuleSource.GLOBAL_MANAGER, fetch)
    assert source.is_available()
    assert (await source.fetch(1)).unwrap() == (expected,)


@pytest.mark.asyncio
async def test_functional_source_exception_is_captured():
    async def fetch(pid):
        raise ConnectionError("db down")

    source = P.source_from(P.RuleSource.ADVANCED_PRODUCT, fetch, available=lambda: True)
    match await source.fetch(1):
        case Error(err):
            assert err.kind is P.SourceErrorKind.FAILED
            assert err.source is P.RuleSource.ADVANCED_PRODUCT
        case Ok(_):
            pytest.fail("expected FAILED")
