"""Tests for subscriber notification fan-out."""
import asyncio
import logging

from pricewatch.jobs.worklist import build_worklist
from pricewatch.notify.email import DeliveryError
from pricewatch.notify.notifier import NotifyResult, SubscriberNotifier
from pricewatch.notify.templates import price_drop_subject, unsubscribe_url, with_affiliate_tag
from pricewatch.store.models import PriceHistory, Product
from pricewatch.store.subscriptions import SubscriptionStore


class FakeSender:
    """Records messages; addresses listed in `fail_for` raise DeliveryError."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    async def send(self, message):
        if message.to in self.fail_for:
            raise DeliveryError("HTTP 422: invalid recipient")
        self.sent.append(message)
        return f"msg-{len(self.sent)}"

    async def close(self):
        pass


def widget_entry(url="https://www.amazon.com/dp/X1"):
    products = [Product.model_validate({"name": "Widget", "price": 20.0, "externalId": "X1", "url": url})]
    return build_worklist(products, PriceHistory()).entries[0]


def make_notifier(store, sender):
    return SubscriberNotifier(
        store=store,
        sender=sender,
        from_address="Parts <alerts@example.com>",
        site_url="https://parts.example.com",
        affiliate_tag="tag-20",
    )


def test_only_qualifying_subscribers_are_emailed(tmp_path):
    """Test a 10% drop reaches the 5% subscriber and not the 15% one."""
    sender = FakeSender()

    async def scenario():
        async with await SubscriptionStore.connect(tmp_path / "alerts.db", create=True) as store:
            low = await store.add_subscription("X1", "five@example.com", 5)
            await store.add_subscription("X1", "fifteen@example.com", 15)
            inactive = await store.add_subscription("X1", "gone@example.com", 1)
            await store.deactivate(inactive.unsubscribe_token)

            result = await make_notifier(store, sender).notify(widget_entry(), 20.0, 18.0, 0.10)
            return result, await store.get(low.id)

    result, low = asyncio.run(scenario())
    assert result == NotifyResult(sent=1, attempted=1)
    assert [m.to for m in sender.sent] == ["five@example.com"]
    assert low.last_notified_at is not None

    message = sender.sent[0]
    assert message.sender == "Parts <alerts@example.com>"
    assert message.subject == "Price Drop: Widget ($20.00 → $18.00)"
    assert "https://www.amazon.com/dp/X1?tag=tag-20" in message.html
    assert f"https://parts.example.com/api/alerts/unsubscribe/{low.unsubscribe_token}" in message.html
    assert "10.0% off" in message.html


def test_failed_send_does_not_block_others(tmp_path):
    """Test one delivery failure is skipped and not marked notified."""
    sender = FakeSender(fail_for={"bad@example.com"})

    async def scenario():
        async with await SubscriptionStore.connect(tmp_path / "alerts.db", create=True) as store:
            bad = await store.add_subscription("X1", "bad@example.com", 5)
            await store.add_subscription("X1", "good@example.com", 5)
            result = await make_notifier(store, sender).notify(widget_entry(), 20.0, 18.0, 0.10)
            return result, await store.get(bad.id)

    result, bad = asyncio.run(scenario())
    assert result == NotifyResult(sent=1, attempted=2)
    assert [m.to for m in sender.sent] == ["good@example.com"]
    assert bad.last_notified_at is None


def test_no_credential_is_a_logged_noop(caplog):
    """Test notifications without a sender return (0, 0) with a warning."""
    notifier = make_notifier(store=None, sender=None)

    with caplog.at_level(logging.WARNING):
        result = asyncio.run(notifier.notify(widget_entry(), 20.0, 18.0, 0.10))

    assert result == NotifyResult(sent=0, attempted=0)
    assert "RESEND_API_KEY" in caplog.text


def test_no_store_is_a_noop():
    """Test notifications without a subscription database."""
    sender = FakeSender()
    result = asyncio.run(make_notifier(store=None, sender=sender).notify(widget_entry(), 20.0, 18.0, 0.10))
    assert result == NotifyResult()
    assert sender.sent == []


def test_purchase_link_prefers_catalog_url():
    """Test the catalog link is used and tagged."""
    notifier = make_notifier(store=None, sender=None)
    entry = widget_entry(url="https://amzn.to/abc")
    assert notifier.purchase_link(entry) == "https://amzn.to/abc?tag=tag-20"


def test_affiliate_tag_not_duplicated():
    """Test links that already carry a tag are left alone."""
    url = "https://www.amazon.com/dp/X1?tag=someone-20"
    assert with_affiliate_tag(url, "tag-20") == url
    assert with_affiliate_tag("https://www.amazon.com/dp/X1?th=1", "tag-20") == (
        "https://www.amazon.com/dp/X1?th=1&tag=tag-20"
    )


def test_unsubscribe_url_and_subject():
    """Test link and subject formats."""
    assert unsubscribe_url("https://parts.example.com/", "abc") == "https://parts.example.com/api/alerts/unsubscribe/abc"
    assert price_drop_subject("Widget", 20, 18) == "Price Drop: Widget ($20.00 → $18.00)"
