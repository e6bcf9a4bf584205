"""
Pricing — tiered quantity pricing from multiple rule sources.

    from cartcore import pricing as P

    resolver = P.PricingRuleResolver([
        P.ProductMetaSource(meta.get),
        P.AdvancedCategorySource(category_rules, categories=catalog.category_ids),
        P.GlobalManagerSource(manager.find),
    ])

    # Rules → price
    resolution = await resolver.resolve(product_id)
    result = P.evaluate(resolution, quantity=5, base_price=Decimal("12.00"))

    # Catalog-backed quote
    lookup = P.PriceLookup(P.MemoryCatalog(products), resolver)
    quote = (await lookup.quote(product_id, 5)).unwrap()

    # Cart lines, repriced where a rule applies
    prices = await lookup.price_lines(cart_state.lines)

Precedence (first match wins across the flattened tier list):

    PRODUCT_META → ADVANCED_PRODUCT → ADVANCED_CATEGORY → SIMPLE_BULK → GLOBAL_MANAGER
"""

from cartcore.pricing._types import (
    RuleSource,
    TierKind,
    PricingTier,
    PricingRule,
    AppliedRule,
    ResolvedPriceResult,
    Product,
    PriceQuote,
    LinePrice,
    SourceErrorKind,
    SourceError,
    PriceLookupErrorKind,
    PriceLookupError,
)
from cartcore.pricing._sources import (
    RawRuleSet,
    RawRuleSets,
    normalize_rule_set,
    normalize_all,
    RuleSourceAdapter,
    CategoryLookupFailed,
    ProductMetaSource,
    AdvancedProductSource,
    AdvancedCategorySource,
    SimpleBulkSource,
    GlobalManagerSource,
    FunctionalSource,
    source_from,
)
from cartcore.pricing._resolver import (
    Resolution,
    PricingRuleResolver,
)
from cartcore.pricing._evaluator import (
    iter_tiers,
    evaluate,
)
from cartcore.pricing._lookup import (
    Catalog,
    MemoryCatalog,
    PriceLookup,
)

__all__ = (
    # Types
    "RuleSource",
    "TierKind",
    "PricingTier",
    "PricingRule",
    "AppliedRule",
    "ResolvedPriceResult",
    "Product",
    "PriceQuote",
    "LinePrice",
    "SourceErrorKind",
    "SourceError",
    "PriceLookupErrorKind",
    "PriceLookupError",
    # Sources
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
    # Resolver
    "Resolution",
    "PricingRuleResolver",
    # Evaluator
    "iter_tiers",
    "evaluate",
    # Lookup
    "Catalog",
    "MemoryCatalog",
    "PriceLookup",
)
