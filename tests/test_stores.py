"""Tests for the catalog and price history files."""
import asyncio
import json

import pytest

from pricewatch.store.catalog import CatalogError, CatalogStore
from pricewatch.store.files import write_json_atomic
from pricewatch.store.history import HistoryStore
from pricewatch.store.models import HistoryEntry, PriceHistory, Product


def write(path, data):
    path.write_text(json.dumps(data, indent=2))


def test_catalog_envelope_and_extra_keys_survive(tmp_path):
    """Test unknown keys and the top-level layout are written back."""
    path = tmp_path / "prices.json"
    write(path, {
        "updated": "2026-10-01",
        "products": [
            {"name": "Widget", "price": 20.0, "asin": "X1", "category": "radios", "notes": "v3"},
        ],
    })
    store = CatalogStore(path)

    async def scenario():
        catalog = await store.load()
        catalog.products[0].price = 18.0
        await store.save(catalog)

    asyncio.run(scenario())
    data = json.loads(path.read_text())
    assert data["updated"] == "2026-10-01"
    product = data["products"][0]
    assert product == {"name": "Widget", "price": 18.0, "asin": "X1", "category": "radios", "notes": "v3"}


def test_catalog_bare_list(tmp_path):
    """Test catalogs stored as a plain list stay a plain list."""
    path = tmp_path / "prices.json"
    write(path, [{"name": "Widget", "priceDisplay": "~$20", "url": "https://example.com/w"}])
    store = CatalogStore(path)

    async def scenario():
        catalog = await store.load()
        await store.save(catalog)
        return catalog

    catalog = asyncio.run(scenario())
    assert catalog.envelope is None
    assert catalog.products[0].price_display == "~$20"
    assert json.loads(path.read_text()) == [{"name": "Widget", "priceDisplay": "~$20", "url": "https://example.com/w"}]


def test_catalog_price_string_becomes_display(tmp_path):
    """Test display strings found under `price`."""
    product = Product.model_validate({"name": "Kit", "price": "~$40"})
    assert product.price is None
    assert product.price_display == "~$40"
    assert Product.model_validate({"name": "Kit", "price": "12.5"}).price == 12.5


def test_product_key_prefers_external_id():
    """Test subscription key resolution."""
    assert Product.model_validate({"name": "Widget", "id": "X1"}).product_key == "X1"
    assert Product.model_validate({"name": "Widget", "externalId": " "}).product_key == "Widget"


def test_missing_catalog_is_fatal(tmp_path):
    """Test a missing catalog raises CatalogError."""
    with pytest.raises(CatalogError, match="not found"):
        asyncio.run(CatalogStore(tmp_path / "nope.json").load())


def test_corrupt_catalog_is_fatal(tmp_path):
    """Test unparseable and wrongly shaped catalogs."""
    path = tmp_path / "prices.json"
    path.write_text("{not json")
    with pytest.raises(CatalogError, match="not valid JSON"):
        asyncio.run(CatalogStore(path).load())

    write(path, {"items": []})
    with pytest.raises(CatalogError):
        asyncio.run(CatalogStore(path).load())

    write(path, [{"price": 3}])
    with pytest.raises(CatalogError, match="invalid product"):
        asyncio.run(CatalogStore(path).load())


def test_history_missing_is_empty(tmp_path):
    """Test an absent history file."""
    history = asyncio.run(HistoryStore(tmp_path / "history.json").load())
    assert history.products == {}
    assert history.last_run is None


def test_history_corrupt_is_empty(tmp_path):
    """Test an unreadable history file is replaced by an empty one."""
    path = tmp_path / "history.json"
    path.write_text("[[[")
    assert asyncio.run(HistoryStore(path).load()).products == {}


def test_history_round_trip_uses_file_keys(tmp_path):
    """Test history is saved with its on-disk key names."""
    path = tmp_path / "data" / "history.json"
    history = PriceHistory(
        last_run="2026-10-18T12:00:00.000Z",
        products={"X1": HistoryEntry(name="Widget", url="https://www.amazon.com/dp/X1", price=18.0, price_display="~$18")},
    )
    store = HistoryStore(path)

    async def scenario():
        await store.save(history)
        return await store.load()

    loaded = asyncio.run(scenario())
    data = json.loads(path.read_text())
    assert data["lastRun"] == "2026-10-18T12:00:00.000Z"
    assert data["products"]["X1"]["priceDisplay"] == "~$18"
    assert loaded.products["X1"].price == 18.0


def test_atomic_write_leaves_no_temp_files(tmp_path):
    """Test the target is replaced and no temporary file remains."""
    path = tmp_path / "out.json"
    path.write_text("old")
    asyncio.run(write_json_atomic(path, {"a": 1}))
    assert path.read_text() == '{\n  "a": 1\n}\n'
    assert [p.name for p in tmp_path.iterdir()] == ["out.json"]
