"""SQLite store for price-drop alert subscriptions."""
import logging
import secrets
from pathlib import Path
from typing import Optional

import aiosqlite

from pricewatch.store.models import Subscription

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS price_alerts (
    id INTEGER PRIMARY KEY,
    product_id TEXT NOT NULL,
    email TEXT NOT NULL,
    threshold_pct REAL DEFAULT 5.0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    last_notified DATETIME,
    active INTEGER DEFAULT 1,
    unsubscribe_token TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_alerts_product ON price_alerts(product_id, active);
CREATE INDEX IF NOT EXISTS idx_alerts_token ON price_alerts(unsubscribe_token);
"""

COLUMNS = "id, product_id, email, threshold_pct, active, unsubscribe_token, created_at, last_notified"

DEFAULT_THRESHOLD_PCT = 5.0


class SubscriptionStore:
    """
    Subscription lookups and updates over one connection.

    The web service may use the same database file concurrently, so every
    write is a single statement committed on its own.
    """

    def __init__(self, db: aiosqlite.Connection, db_path: Path):
        self.db = db
        self.db_path = db_path

    @classmethod
    async def connect(cls, db_path: Path, create: bool = False) -> "SubscriptionStore":
        """Open the database. With create=True the file and schema are created if needed."""
        db_path = Path(db_path)
        if not create and not db_path.exists():
            raise FileNotFoundError(f"Subscription database not found: {db_path}")
        db = await aiosqlite.connect(db_path)
        db.row_factory = aiosqlite.Row
        store = cls(db, db_path)
        if create:
            await store.init_schema()
        return store

    @classmethod
    async def open(cls, db_path: Path) -> Optional["SubscriptionStore"]:
        """Open an existing database, or return None (notifications disabled) if unavailable."""
        store = None
        try:
            store = await cls.connect(db_path)
            # Fails here if the file is not a database or the table is missing
            await store.db.execute("SELECT 1 FROM price_alerts LIMIT 1")
        except FileNotFoundError:
            logger.warning(f"Subscription database not found at {db_path} - notifications disabled")
            return None
        except Exception as e:
            logger.warning(f"Could not open subscription database {db_path}: {e} - notifications disabled")
            if store is not None:
                await store.close()
            return None
        logger.info(f"Opened alert subscriber database {db_path}")
        return store

    async def close(self) -> None:
        await self.db.close()

    async def __aenter__(self) -> "SubscriptionStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def init_schema(self) -> None:
        """Create tables if they don't exist."""
        await self.db.executescript(SCHEMA)
        await self.db.commit()

    async def add_subscription(
        self,
        product_key: str,
        email: str,
        threshold_pct: float | None = None,
    ) -> Subscription:
        """Create an active subscription with a fresh unsubscribe token."""
        pct = DEFAULT_THRESHOLD_PCT if threshold_pct is None else float(threshold_pct)
        if pct <= 0:
            raise ValueError(f"threshold_pct must be positive, got {pct}")
        if not product_key:
            raise ValueError("product_key is required")
        email = (email or "").strip()
        if "@" not in email or "." not in email:
            raise ValueError(f"Invalid email address: {email!r}")

        token = secrets.token_hex(16)
        cursor = await self.db.execute(
            """
            INSERT INTO price_alerts (product_id, email, threshold_pct, unsubscribe_token)
            VALUES (?, ?, ?, ?)
            """,
            (product_key, email, pct, token),
        )
        await self.db.commit()
        subscription = await self.get(cursor.lastrowid)
        if subscription is None:
            raise RuntimeError(f"Subscription {cursor.lastrowid} vanished right after insert")
        return subscription

    async def deactivate(self, unsubscribe_token: str) -> bool:
        """Soft-delete the active subscription holding this token. Returns False if none."""
        cursor = await self.db.execute(
            "UPDATE price_alerts SET active = 0 WHERE unsubscribe_token = ? AND active = 1",
            (unsubscribe_token,),
        )
        await self.db.commit()
        return cursor.rowcount > 0

    async def get(self, subscription_id: int) -> Optional[Subscription]:
        cursor = await self.db.execute(
            f"SELECT {COLUMNS} FROM price_alerts WHERE id = ?",
            (subscription_id,),
        )
        row = await cursor.fetchone()
        return Subscription.model_validate(dict(row)) if row else None

    async def find_matching(self, product_key: str, drop_pct: float) -> list[Subscription]:
        """Active subscriptions for a product whose threshold (percent) is met by `drop_pct` (percent)."""
        cursor = await self.db.execute(
            f"""
            SELECT {COLUMNS} FROM price_alerts
            WHERE product_id = ? AND active = 1 AND threshold_pct <= ?
            ORDER BY id
            """,
            (product_key, drop_pct),
        )
        rows = await cursor.fetchall()
        subscriptions = []
        for row in rows:
            try:
                subscriptions.append(Subscription.model_validate(dict(row)))
            except ValueError as e:
                logger.warning(f"Ignoring malformed subscription row {row['id']}: {e}")
        return subscriptions

    async def mark_notified(self, subscription_id: int) -> None:
        """Stamp last_notified after a successful send."""
        await self.db.execute(
            "UPDATE price_alerts SET last_notified = datetime('now') WHERE id = ?",
            (subscription_id,),
        )
        await self.db.commit()
