"""Price lookup tests — catalog + resolver + evaluator."""

from decimal import Decimal

import pytest
from kungfu import Ok, Error
from structlog.testing import capture_logs

from cartcore import cart as C
from cartcore import pricing as P

WIDGET = P.Product(id=1, regular_price=Decimal("12.00"), name="Widget")
ON_SALE = P.Product(id=2, regular_price=Decimal("12.00"), sale_price=Decimal("9.00"))


@pytest.fixture
def lookup(tiered_rule_set):
    resolver = P.PricingRuleResolver([
        P.ProductMetaSource(lambda pid: [tiered_rule_set] if pid == 1 else None),
    ])
    return P.PriceLookup(P.MemoryCatalog([WIDGET, ON_SALE]), resolver)


@pytest.mark.asyncio
async def test_quote_applies_tier(lookup):
    quote = (await lookup.quote(1, 7)).unwrap()
    assert quote.unit_price == Decimal("8.00")
    assert quote.total_price == Decimal("56.00")
    assert quote.base_price == Decimal("12.00")
    assert quote.price_changed
    assert quote.rule_applied == "fixed price rule: 8.00 for quantity 7"


@pytest.mark.asyncio
async def test_quantity_below_one_is_clamped(lookup):
    quote = (await lookup.quote(1, 0)).unwrap()
    assert quote.quantity == 1
    assert quote.unit_price == Decimal("10.00")
    assert quote.total_price == Decimal("10.00")


@pytest.mark.asyncio
async def test_product_without_rules_quotes_base_price(lookup):
    quote = (await lookup.quote(2, 5)).unwrap()
    assert quote.unit_price == Decimal("9.00")
    assert quote.total_price == Decimal("45.00")
    assert quote.rule_applied is None
    assert not quote.price_changed


@pytest.mark.asyncio
async def test_unknown_product_is_an_error(lookup):
    match await lookup.quote(999, 1):
        case Error(err):
            assert err.kind is P.PriceLookupErrorKind.PRODUCT_NOT_FOUND
            assert err.product_id == 999
        case Ok(quote):
            pytest.fail(f"expected error, got {quote}")


@pytest.mark.asyncio
async def test_invalid_product_id_is_an_error(lookup):
    match await lookup.quote(0, 1):
        case Error(err):
            assert err.kind is P.PriceLookupErrorKind.INVALID_PRODUCT
        case Ok(_):
            pytest.fail("expected INVALID_PRODUCT")


@pytest.mark.asyncio
async def test_inactive_extension_quotes_base_price(tiered_rule_set):
    resolver = P.PricingRuleResolver(
        [P.ProductMetaSource(lambda pid: [tiered_rule_set])],
        active=False,
    )
    lookup = P.PriceLookup(P.MemoryCatalog([WIDGET]), resolver)
    quote = (await lookup.quote(1, 7)).unwrap()
    assert quote.unit_price == Decimal("12.00")
    assert quote.rule_applied is None


@pytest.mark.asyncio
async def test_tiny_difference_is_not_a_price_change():
    rules = [{"rules": [{"from": 1, "type": "fixed_price", "amount": "11.995"}]}]
    resolver = P.PricingRuleResolver([P.ProductMetaSource(lambda pid: rules)])
    lookup = P.PriceLookup(P.MemoryCatalog([WIDGET]), resolver)
    quote = (await lookup.quote(1, 1)).unwrap()
    assert quote.unit_price == Decimal("11.995")
    assert not quote.price_changed


def test_sale_price_only_counts_when_lower():
    higher_sale = P.Product(id=3, regular_price=Decimal("5"), sale_price=Decimal("6"))
    assert higher_sale.base_price == Decimal("5")
    assert ON_SALE.base_price == Decimal("9.00")


@pytest.mark.asyncio
async def test_raising_availability_check_falls_through_to_next_source(tiered_rule_set):
    def broken():
        raise RuntimeError("extension half-loaded")

    async def meta(pid):
        return ()

    bulk = {"bulk": {"rules": [{"from": 1, "type": "fixed_price", "amount": "7.00"}], "targets": [1]}}
    resolver = P.PricingRuleResolver([
        P.source_from(P.RuleSource.PRODUCT_META, meta, available=broken),
        P.SimpleBulkSource(bulk),
    ])
    lookup = P.PriceLookup(P.MemoryCatalog([WIDGET]), resolver)

    quote = (await lookup.quote(1, 3)).unwrap()
    assert quote.unit_price == Decimal("7.00")


# -- cart lines -----------------------------------------------------------------


@pytest.mark.asyncio
async def test_price_lines_reprices_only_ruled_lines(lookup):
    lines = [C.CartLine(1, 7), C.CartLine(2, 2), C.CartLine(999, 1)]

    priced = await lookup.price_lines(lines)

    assert [p.line.product_id for p in priced] == [1, 2]
    widget, on_sale = priced
    assert widget.repriced
    assert widget.unit_price == Decimal("8.00")
    assert widget.total_price == Decimal("56.00")
    assert widget.rule_applied == "fixed price rule: 8.00 for quantity 7"
    assert not on_sale.repriced
    assert on_sale.unit_price == Decimal("9.00")
    assert on_sale.rule_applied is None


@pytest.mark.asyncio
async def test_price_lines_clamps_quantity(lookup):
    (line,) = await lookup.price_lines([C.CartLine(1, 0)])
    assert line.unit_price == Decimal("10.00")
    assert line.total_price == Decimal("10.00")


@pytest.mark.asyncio
async def test_price_lines_quotes_identical_lines_once(tiered_rule_set):
    calls = []

    def meta(pid):
        calls.append(pid)
        return [tiered_rule_set]

    resolver = P.PricingRuleResolver([P.ProductMetaSource(meta)])
    lookup = P.PriceLookup(P.MemoryCatalog([WIDGET]), resolver)

    priced = await lookup.price_lines([C.CartLine(1, 5), C.CartLine(1, 5), C.CartLine(1, 10)])

    assert [p.unit_price for p in priced] == [Decimal("8.00"), Decimal("8.00"), Decimal("6.00")]
    assert calls == [1, 1]


@pytest.mark.asyncio
async def test_price_lines_refuses_non_positive_rule_price():
    free = [{"rules": [{"from": 1, "type": "percentage", "amount": "100"}]}]
    resolver = P.PricingRuleResolver([P.ProductMetaSource(lambda pid: free)])
    lookup = P.PriceLookup(P.MemoryCatalog([WIDGET]), resolver)

    with capture_logs() as logs:
        (line,) = await lookup.price_lines([C.CartLine(1, 3)])

    assert line.unit_price == Decimal("12.00")
    assert not line.repriced
    assert [e["event"] for e in logs if e["log_level"] == "warning"] == [
        "pricing.line_price_rejected"
    ]


@pytest.mark.asyncio
async def test_price_lines_within_threshold_keeps_base_price():
    rules = [{"rules": [{"from": 1, "type": "fixed_price", "amount": "11.995"}]}]
    resolver = P.PricingRuleResolver([P.ProductMetaSource(lambda pid: rules)])
    lookup = P.PriceLookup(P.MemoryCatalog([WIDGET]), resolver)

    (line,) = await lookup.price_lines([C.CartLine(1, 1)])
    assert line.unit_price == Decimal("12.00")
    assert not line.repriced
