"""Price history file store (what each product cost when last observed)."""
import logging
from pathlib import Path

import orjson
from pydantic import ValidationError

from pricewatch.store.files import read_json, write_json_atomic
from pricewatch.store.models import PriceHistory

logger = logging.getLogger(__name__)


class HistoryStore:
    """Reads and rewrites the price history JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def load(self) -> PriceHistory:
        """Load history; a missing or unreadable file yields an empty history."""
        try:
            data = await read_json(self.path)
        except FileNotFoundError:
            logger.info(f"No price history at {self.path}, starting fresh")
            return PriceHistory()
        except orjson.JSONDecodeError as e:
            logger.warning(f"Price history at {self.path} is not valid JSON ({e}), starting fresh")
            return PriceHistory()

        try:
            history = PriceHistory.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Price history at {self.path} has an unexpected layout ({e}), starting fresh")
            return PriceHistory()

        logger.info(f"Loaded price history for {len(history.products)} products (last run: {history.last_run})")
        return history

    async def save(self, history: PriceHistory) -> None:
        """Rewrite the whole history file atomically."""
        data = history.model_dump(mode="json", by_alias=True)
        await write_json_atomic(self.path, data)
        logger.info(f"Price history written to {self.path}")
