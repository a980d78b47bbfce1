"""Data models for the catalog, price history and alert subscriptions."""
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)


class Product(BaseModel):
    """Catalog entry. Keys this job does not own are kept as extras and written back untouched."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    price_display: Optional[str] = Field(default=None, alias="priceDisplay")
    price: Optional[float] = Field(default=None, description="Last known price, positive when present")
    url: Optional[str] = None
    source: Optional[str] = Field(default=None, description="Declared source label (amazon, seeed, ...)")
    external_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("externalId", "asin", "id"),
        serialization_alias="externalId",
    )
    last_checked: Optional[str] = Field(default=None, alias="lastChecked")
    last_changed: Optional[str] = Field(default=None, alias="lastChanged")

    # Key the external id was read from, so a rewrite keeps the file's naming
    _id_key: str = PrivateAttr(default="externalId")

    @model_validator(mode="before")
    @classmethod
    def _split_price_string(cls, data: Any) -> Any:
        # Older catalogs keep the display string ("~$40") under `price`
        if isinstance(data, dict) and isinstance(data.get("price"), str):
            data = dict(data)
            raw = data.pop("price")
            try:
                data["price"] = float(raw)
            except ValueError:
                data.setdefault("priceDisplay", raw)
        return data

    @model_validator(mode="wrap")
    @classmethod
    def _remember_id_key(cls, data: Any, handler: Any) -> "Product":
        product = handler(data)
        if isinstance(data, dict):
            for key in ("externalId", "asin", "id"):
                if data.get(key) is not None:
                    product._id_key = key
                    break
        return product

    @field_validator("price", mode="before")
    @classmethod
    def _positive_price(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value) if value > 0 else None

    @field_validator("external_id", mode="before")
    @classmethod
    def _blank_id(cls, value: Any) -> Any:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def product_key(self) -> str:
        """Identifier shared with alert subscriptions: external id, else name."""
        return self.external_id or self.name

    def to_json(self) -> dict[str, Any]:
        """Serialize with on-disk key names, leaving out unset optional fields."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if self._id_key != "externalId" and "externalId" in data:
            data[self._id_key] = data.pop("externalId")
        return data


class HistoryEntry(BaseModel):
    """Last observation for one product."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    url: Optional[str] = None
    price: Optional[float] = None
    price_display: Optional[str] = Field(default=None, alias="priceDisplay")
    last_checked: Optional[str] = Field(default=None, alias="lastChecked")
    last_changed: Optional[str] = Field(default=None, alias="lastChanged")


class PriceHistory(BaseModel):
    """Price history document."""

    model_config = ConfigDict(populate_by_name=True)

    last_run: Optional[str] = Field(default=None, alias="lastRun")
    products: dict[str, HistoryEntry] = Field(default_factory=dict)


class Subscription(BaseModel):
    """Price-drop alert subscription (row of `price_alerts`)."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    product_key: str = Field(alias="product_id")
    email: str
    threshold_pct: float = Field(default=5.0, gt=0)
    active: bool = True
    unsubscribe_token: str
    created_at: Optional[str] = None
    last_notified_at: Optional[str] = Field(default=None, alias="last_notified")
