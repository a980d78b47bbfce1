"""Per-run worklist: catalog products merged with their last observed prices."""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from pricewatch.fetch.sources import (
    SourceKind,
    classify_source,
    is_fetchable_url,
    is_non_commerce,
    marketplace_listing_url,
)
from pricewatch.parse.prices import format_price_display, parse_price_text
from pricewatch.store.models import HistoryEntry, PriceHistory, Product

logger = logging.getLogger(__name__)

CONTACT_PRICING_RE = re.compile(
    r"^\s*(contact|call|inquire|enquire|ask|quote|request|tbd|n/?a)\b",
    re.IGNORECASE,
)

# Skip reasons
NO_IDENTIFIER = "no_identifier"
VARIANT_PRICING = "variant_pricing"
CONTACT_PRICING = "contact_pricing"
NON_COMMERCE_URL = "non_commerce_url"
NO_BASELINE_PRICE = "no_baseline_price"
DUPLICATE_KEY = "duplicate_key"


@dataclass
class WorklistEntry:
    """One product to check this run. Mutated in place as observations come in."""

    key: str
    name: str
    url: str
    source: SourceKind
    external_id: Optional[str]
    catalog_url: Optional[str]
    # Price the run compares against; stays fixed for the whole run
    baseline_price: float
    price: float
    price_display: str
    last_checked: Optional[str] = None
    last_changed: Optional[str] = None
    pct_change: Optional[float] = None

    @property
    def changed(self) -> bool:
        return self.pct_change is not None

    def to_history(self) -> HistoryEntry:
        return HistoryEntry(
            name=self.name,
            url=self.url,
            price=self.price,
            price_display=self.price_display,
            last_checked=self.last_checked,
            last_changed=self.last_changed,
        )


@dataclass
class SkippedProduct:
    key: str
    name: str
    reason: str


@dataclass
class Worklist:
    entries: list[WorklistEntry] = field(default_factory=list)
    skipped: list[SkippedProduct] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)


def skip_reason(product: Product, price_display: Optional[str]) -> Optional[str]:
    """Why a product cannot be checked, or None if it can."""
    if is_non_commerce(product.url):
        return NON_COMMERCE_URL
    if not product.external_id and not is_fetchable_url(product.url):
        return NO_IDENTIFIER
    display = (price_display or "").strip()
    if display.lower().startswith("from"):
        return VARIANT_PRICING
    if CONTACT_PRICING_RE.match(display):
        return CONTACT_PRICING
    return None


def build_entry(product: Product, observed: Optional[HistoryEntry]) -> WorklistEntry | SkippedProduct:
    """Merge one catalog product with its history; history wins for price and display."""
    key = product.product_key

    if observed is not None and observed.price:
        price = observed.price
        price_display = observed.price_display or format_price_display(price)
    else:
        price = product.price or parse_price_text(product.price_display)
        price_display = product.price_display or (format_price_display(price) if price else None)

    reason = skip_reason(product, product.price_display or price_display)
    if reason is None and not price:
        reason = NO_BASELINE_PRICE
    if reason is not None:
        return SkippedProduct(key=key, name=product.name, reason=reason)

    if is_fetchable_url(product.url):
        url = product.url
        source = classify_source(url, product.source)
    else:
        url = marketplace_listing_url(product.external_id)
        source = SourceKind.MARKETPLACE

    return WorklistEntry(
        key=key,
        name=product.name,
        url=url,
        source=source,
        external_id=product.external_id,
        catalog_url=product.url,
        baseline_price=price,
        price=price,
        price_display=price_display,
        last_checked=(observed.last_checked if observed else None) or product.last_checked,
        last_changed=(observed.last_changed if observed else None) or product.last_changed,
    )


def build_worklist(products: list[Product], history: PriceHistory) -> Worklist:
    """Build this run's worklist. Ineligible products are set aside silently, not treated as errors."""
    worklist = Worklist()
    seen: set[str] = set()
    for product in products:
        if product.product_key in seen:
            logger.debug(f"Duplicate catalog key {product.product_key!r}, checking it once")
            worklist.skipped.append(SkippedProduct(key=product.product_key, name=product.name, reason=DUPLICATE_KEY))
            continue
        seen.add(product.product_key)

        item = build_entry(product, history.products.get(product.product_key))
        if isinstance(item, SkippedProduct):
            logger.debug(f"Skipping {item.name}: {item.reason}")
            worklist.skipped.append(item)
        else:
            worklist.entries.append(item)
    return worklist
