"""
Pricing Example — tiered unit prices from several rule sources.

Run: uv run python examples/pricing_example.py
"""

from kungfu import Ok, Error

from cartcore import pricing as P
from examples._infra import (
    CATEGORY_RULES,
    GADGET,
    GLOBAL_RULES,
    PRODUCT_META,
    WIDGET,
    banner,
    categories,
    run,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Resolver
# ═══════════════════════════════════════════════════════════════════════════════

resolver = P.PricingRuleResolver([
    P.GlobalManagerSource(lambda product_id: GLOBAL_RULES),
    P.AdvancedCategorySource(CATEGORY_RULES, categories=categories),
    P.ProductMetaSource(PRODUCT_META.get),
    P.SimpleBulkSource(None),  # extension not installed
])

lookup = P.PriceLookup(P.MemoryCatalog([WIDGET, GADGET]), resolver)


# ═══════════════════════════════════════════════════════════════════════════════
# Demo
# ═══════════════════════════════════════════════════════════════════════════════


async def main() -> None:
    banner("Tiered Pricing")

    # 1. Precedence: product meta first, then category, then global
    print("\n1. Rules for Widget (in precedence order):")
    for rule in await resolver.resolve(WIDGET.id):
        bands = ", ".join(tier.band for tier in rule.tiers)
        print(f"   {rule.source.name:<18} {bands}")

    # 2. Quotes across the tiers
    print("\n2. Widget quotes:")
    for quantity in (1, 5, 12, 25):
        match await lookup.quote(WIDGET.id, quantity):
            case Ok(q):
                print(f"   x{q.quantity:<3} unit={q.unit_price} total={q.total_price}  {q.rule_applied}")
            case Error(e):
                print(f"   error: {e.message}")

    # 3. Sale price is the base, global rule applies from 3 units
    print("\n3. Gadget (on sale) quotes:")
    for quantity in (1, 3):
        q = (await lookup.quote(GADGET.id, quantity)).unwrap()
        print(f"   x{q.quantity:<3} unit={q.unit_price} changed={q.price_changed}")

    # 4. Unknown product
    print("\n4. Unknown product:")
    match await lookup.quote(999, 1):
        case Ok(q):
            print(f"   unexpected quote: {q}")
        case Error(e):
            print(f"   {e.kind.name}: {e.message}")


if __name__ == "__main__":
    run(main)
