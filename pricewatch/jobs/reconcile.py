"""Guarded write-back of observed price changes into the catalog."""
import logging
from dataclasses import dataclass, field
from typing import Optional

from pricewatch.config import config
from pricewatch.jobs.worklist import WorklistEntry
from pricewatch.parse.prices import format_price_display, pct_change
from pricewatch.store.models import Product

logger = logging.getLogger(__name__)


@dataclass
class RejectedChange:
    key: str
    name: str
    reason: str
    catalog_price: Optional[float] = None
    observed_price: Optional[float] = None


@dataclass
class ReconcileResult:
    updated_count: int = 0
    updated: list[str] = field(default_factory=list)
    rejected: list[RejectedChange] = field(default_factory=list)


class CatalogIndex:
    """Lookup of catalog products by external id, URL and name."""

    def __init__(self, products: list[Product]):
        self.by_id: dict[str, Product] = {}
        self.by_url: dict[str, Product] = {}
        self.by_name: dict[str, Product] = {}
        for product in products:
            if product.external_id:
                self.by_id.setdefault(product.external_id, product)
            if product.url:
                self.by_url.setdefault(product.url, product)
            self.by_name.setdefault(product.name, product)

    def find(self, entry: WorklistEntry) -> Optional[Product]:
        if entry.external_id and entry.external_id in self.by_id:
            return self.by_id[entry.external_id]
        for url in (entry.catalog_url, entry.url):
            if url and url in self.by_url:
                return self.by_url[url]
        return self.by_name.get(entry.name)


def reconcile(
    products: list[Product],
    changed: list[WorklistEntry],
    implausible_change: float | None = None,
) -> ReconcileResult:
    """
    Apply changed prices to catalog products in place.

    A change whose pct_change (relative to the price the run started from)
    exceeds `implausible_change` is treated as a bad scrape and dropped; the
    history file still records it.
    """
    cap = config.IMPLAUSIBLE_CHANGE if implausible_change is None else implausible_change
    index = CatalogIndex(products)
    result = ReconcileResult()

    for entry in changed:
        product = index.find(entry)
        if product is None:
            logger.warning(f"{entry.name}: no matching catalog entry, change not applied")
            result.rejected.append(RejectedChange(entry.key, entry.name, "not_in_catalog", observed_price=entry.price))
            continue

        baseline = entry.baseline_price
        delta = entry.pct_change
        if delta is None:
            delta = pct_change(baseline, entry.price)
        if delta > cap:
            logger.warning(
                f"{entry.name}: rejecting ${baseline} -> ${entry.price} "
                f"({delta * 100:.1f}% change exceeds {cap * 100:.0f}% sanity cap)"
            )
            result.rejected.append(
                RejectedChange(entry.key, entry.name, "implausible_change", product.price, entry.price)
            )
            continue

        if product.price == entry.price:
            continue

        product.price = entry.price
        product.price_display = format_price_display(entry.price)
        product.last_changed = entry.last_changed
        product.last_checked = entry.last_checked
        result.updated.append(entry.key)
        result.updated_count += 1
        logger.info(f"Catalog: {product.name} now {product.price_display}")

    return result
