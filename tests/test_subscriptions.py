"""Tests for the alert subscription store."""
import asyncio

import pytest

from pricewatch.store.subscriptions import SubscriptionStore


async def seeded_store(db_path):
    store = await SubscriptionStore.connect(db_path, create=True)
    await store.add_subscription("X1", "five@example.com", 5)
    await store.add_subscription("X1", "fifteen@example.com", 15)
    await store.add_subscription("X2", "other@example.com", 1)
    return store


def test_add_subscription_defaults(tmp_path):
    """Test new subscriptions are active with a token and default threshold."""

    async def scenario():
        async with await SubscriptionStore.connect(tmp_path / "alerts.db", create=True) as store:
            return await store.add_subscription("X1", "a@example.com")

    subscription = asyncio.run(scenario())
    assert subscription.product_key == "X1"
    assert subscription.threshold_pct == 5.0
    assert subscription.active is True
    assert len(subscription.unsubscribe_token) == 32
    assert subscription.created_at is not None
    assert subscription.last_notified_at is None


def test_add_subscription_validation(tmp_path):
    """Test invalid thresholds and addresses are refused."""

    async def scenario():
        async with await SubscriptionStore.connect(tmp_path / "alerts.db", create=True) as store:
            with pytest.raises(ValueError):
                await store.add_subscription("X1", "a@example.com", 0)
            with pytest.raises(ValueError):
                await store.add_subscription("X1", "not-an-email")

    asyncio.run(scenario())


def test_find_matching_respects_threshold(tmp_path):
    """Test a 10% drop matches the 5% subscriber but not the 15% one."""

    async def scenario():
        async with await seeded_store(tmp_path / "alerts.db") as store:
            return await store.find_matching("X1", 10.0)

    matches = asyncio.run(scenario())
    assert [s.email for s in matches] == ["five@example.com"]


def test_threshold_equal_to_drop_matches(tmp_path):
    """Test the threshold comparison is inclusive."""

    async def scenario():
        async with await seeded_store(tmp_path / "alerts.db") as store:
            return await store.find_matching("X1", 15.0)

    matches = asyncio.run(scenario())
    assert [s.email for s in matches] == ["five@example.com", "fifteen@example.com"]


def test_deactivated_subscription_never_matches(tmp_path):
    """Test unsubscribe by token."""

    async def scenario():
        async with await seeded_store(tmp_path / "alerts.db") as store:
            target = (await store.find_matching("X1", 50.0))[0]
            assert await store.deactivate(target.unsubscribe_token) is True
            assert await store.deactivate(target.unsubscribe_token) is False
            return await store.find_matching("X1", 50.0)

    matches = asyncio.run(scenario())
    assert [s.email for s in matches] == ["fifteen@example.com"]


def test_mark_notified_sets_timestamp(tmp_path):
    """Test the notification timestamp is recorded."""

    async def scenario():
        async with await seeded_store(tmp_path / "alerts.db") as store:
            target = (await store.find_matching("X2", 2.0))[0]
            await store.mark_notified(target.id)
            return await store.get(target.id)

    subscription = asyncio.run(scenario())
    assert subscription.last_notified_at is not None


def test_open_missing_database_returns_none(tmp_path):
    """Test a missing database disables notifications instead of failing."""
    assert asyncio.run(SubscriptionStore.open(tmp_path / "missing.db")) is None
    assert not (tmp_path / "missing.db").exists()


def test_open_database_without_table_returns_none(tmp_path):
    """Test a database without the alerts table is treated as unavailable."""
    db_path = tmp_path / "empty.db"
    db_path.write_bytes(b"")
    assert asyncio.run(SubscriptionStore.open(db_path)) is None


def test_open_existing_database(tmp_path):
    """Test opening a database that has the schema."""
    db_path = tmp_path / "alerts.db"

    async def scenario():
        store = await seeded_store(db_path)
        await store.close()
        reopened = await SubscriptionStore.open(db_path)
        assert reopened is not None
        async with reopened:
            return await reopened.find_matching("X2", 1.0)

    matches = asyncio.run(scenario())
    assert [s.email for s in matches] == ["other@example.com"]


def test_add_subscription_raises_when_row_cannot_be_read_back(tmp_path, monkeypatch):
    """Test a missing row after insert is an error, not a silent None."""

    async def no_row(subscription_id):
        return None

    async def scenario():
        async with await SubscriptionStore.connect(tmp_path / "alerts.db", create=True) as store:
            monkeypatch.setattr(store, "get", no_row)
            with pytest.raises(RuntimeError, match="vanished"):
                await store.add_subscription("X1", "a@example.com")

    asyncio.run(scenario())
