"""Extraction policy tables, one per source kind.

Adding a store family means adding a SourceKind and a row here; the
extractor's control flow does not change.
"""
import re
from dataclasses import dataclass

from pricewatch.fetch.sources import SourceKind

# $-prefixed token with exactly two decimals: "$19.99", "$ 1,049.00"
CURRENCY_RE = re.compile(r"\$\s*(\d[\d,]*\.\d{2})(?!\d)")
# $ amount inside selector text, cents optional: "$24", "From $1,049.5"
CURRENCY_TEXT_RE = re.compile(r"\$\s*(\d[\d,]*(?:\.\d+)?)")


@dataclass(frozen=True)
class ExtractionPolicy:
    """Ordered strategies for one source kind."""

    selectors: tuple[str, ...]
    # First currency token in the raw markup
    regex_fallback: bool = True
    # Lowest currency token strictly inside the range (low, high)
    min_in_range: tuple[float, float] | None = None
    # Selector text must carry a $ amount ("Save 20%" is not a price)
    require_currency: bool = False


POLICIES: dict[SourceKind, ExtractionPolicy] = {
    SourceKind.MARKETPLACE: ExtractionPolicy(
        selectors=(
            "#corePrice_feature_div .a-price .a-offscreen",
            ".a-price .a-offscreen",
            ".a-price-whole",
            ".a-color-price",
            "[data-a-color='price'] .a-offscreen",
        ),
    ),
    SourceKind.SEEED: ExtractionPolicy(
        selectors=(
            ".product-price .price",
            ".pro-price",
            "#product_price",
            "[data-product-price]",
            ".price--main .money",
            ".product__price",
        ),
    ),
    SourceKind.SHOPIFY: ExtractionPolicy(
        selectors=(
            ".price-item--sale",
            ".price-item--regular",
            ".price--main .money",
            ".product__price",
            "[data-product-price]",
            ".product-price",
            ".money",
        ),
        regex_fallback=False,
        min_in_range=(5.0, 500.0),
        require_currency=True,
    ),
    SourceKind.GENERIC: ExtractionPolicy(
        selectors=(
            ".price",
            ".product-price",
            ".current-price",
            ".sale-price",
            "[data-product-price]",
            ".money",
            ".ProductPrice",
            ".price--main",
            ".price-item--regular",
            ".price-item--sale",
        ),
        regex_fallback=False,
        min_in_range=(5.0, 500.0),
        require_currency=True,
    ),
}

missing = set(SourceKind) - set(POLICIES)
if missing:
    raise RuntimeError(f"No extraction policy for: {sorted(k.value for k in missing)}")
del missing


def policy_for(source: SourceKind) -> ExtractionPolicy:
    """Policy for a source kind."""
    return POLICIES[source]
