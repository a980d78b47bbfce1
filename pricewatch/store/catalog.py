"""Catalog file store (the authoritative product list)."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from pricewatch.store.files import read_json, write_json_atomic
from pricewatch.store.models import Product

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Catalog file missing or unreadable. Fatal for a run."""


@dataclass
class Catalog:
    """Loaded catalog plus enough of the file's layout to write it back the same way."""

    products: list[Product]
    # Top-level keys other than "products"; None when the file is a bare list
    envelope: dict[str, Any] | None = field(default_factory=dict)

    def to_json(self) -> Any:
        items = [product.to_json() for product in self.products]
        if self.envelope is None:
            return items
        data = dict(self.envelope)
        data["products"] = items
        return data


class CatalogStore:
    """Reads and rewrites the catalog JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def load(self) -> Catalog:
        """Load the catalog. Raises CatalogError if it is missing or malformed."""
        try:
            data = await read_json(self.path)
        except FileNotFoundError as e:
            raise CatalogError(f"Catalog not found: {self.path}") from e
        except OSError as e:
            raise CatalogError(f"Catalog unreadable: {self.path}: {e}") from e
        except orjson.JSONDecodeError as e:
            raise CatalogError(f"Catalog is not valid JSON: {self.path}: {e}") from e

        if isinstance(data, list):
            envelope = None
            raw_products = data
        elif isinstance(data, dict) and isinstance(data.get("products"), list):
            envelope = {k: v for k, v in data.items() if k != "products"}
            raw_products = data["products"]
        else:
            raise CatalogError(f"Catalog must be a list or an object with a 'products' list: {self.path}")

        try:
            products = [Product.model_validate(item) for item in raw_products]
        except ValidationError as e:
            raise CatalogError(f"Catalog has invalid product records: {e}") from e

        logger.info(f"Loaded {len(products)} products from {self.path}")
        return Catalog(products=products, envelope=envelope)

    async def save(self, catalog: Catalog) -> None:
        """Rewrite the whole catalog file atomically."""
        await write_json_atomic(self.path, catalog.to_json())
        logger.info(f"Catalog written to {self.path}")
