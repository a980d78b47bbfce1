"""Fan-out of price-drop alerts to matching subscribers."""
import logging
from dataclasses import dataclass
from typing import Optional

from pricewatch.config import config
from pricewatch.jobs.worklist import WorklistEntry
from pricewatch.notify.email import DeliveryError, EmailMessage, EmailSender
from pricewatch.notify.templates import (
    price_drop_subject,
    render_price_drop,
    unsubscribe_url,
    with_affiliate_tag,
)
from pricewatch.store.subscriptions import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifyResult:
    sent: int = 0
    attempted: int = 0


class SubscriberNotifier:
    """
    Emails every active subscriber whose threshold is met by a price drop.

    Without a delivery credential or a subscription store every call is a
    logged no-op, so price checking never depends on notifications.
    """

    def __init__(
        self,
        store: Optional[SubscriptionStore],
        sender: Optional[EmailSender],
        from_address: str | None = None,
        site_url: str | None = None,
        affiliate_tag: str | None = None,
    ):
        self.store = store
        self.sender = sender
        self.from_address = from_address or config.ALERT_FROM
        self.site_url = site_url or config.SITE_URL
        self.affiliate_tag = config.AFFILIATE_TAG if affiliate_tag is None else affiliate_tag

    @property
    def enabled(self) -> bool:
        return self.store is not None and self.sender is not None

    def purchase_link(self, entry: WorklistEntry) -> str:
        return with_affiliate_tag(entry.catalog_url or entry.url, self.affiliate_tag)

    def build_message(
        self,
        entry: WorklistEntry,
        email: str,
        token: str,
        old_price: float,
        new_price: float,
        drop_pct: float,
    ) -> EmailMessage:
        html = render_price_drop(
            name=entry.name,
            old_price=old_price,
            new_price=new_price,
            drop_pct=drop_pct,
            buy_url=self.purchase_link(entry),
            unsubscribe_link=unsubscribe_url(self.site_url, token),
            site_url=self.site_url,
        )
        return EmailMessage(
            sender=self.from_address,
            to=email,
            subject=price_drop_subject(entry.name, old_price, new_price),
            html=html,
        )

    async def notify(
        self,
        entry: WorklistEntry,
        old_price: float,
        new_price: float,
        pct_change: float,
    ) -> NotifyResult:
        """Alert subscribers of `entry` about a drop; `pct_change` is a fraction (0.1 == 10%)."""
        if self.sender is None:
            logger.warning(f"RESEND_API_KEY not set - skipping email notifications for {entry.name}")
            return NotifyResult()
        if self.store is None:
            logger.warning(f"No subscription database - skipping email notifications for {entry.name}")
            return NotifyResult()

        drop_pct = pct_change * 100
        try:
            subscriptions = await self.store.find_matching(entry.key, drop_pct)
        except Exception as e:
            logger.error(f"Subscriber lookup failed for {entry.name}: {e}")
            return NotifyResult()

        if not subscriptions:
            logger.info(f"No subscribers matched for {entry.name} ({drop_pct:.1f}% drop)")
            return NotifyResult()

        sent = 0
        for subscription in subscriptions:
            message = self.build_message(
                entry,
                subscription.email,
                subscription.unsubscribe_token,
                old_price,
                new_price,
                drop_pct,
            )
            try:
                await self.sender.send(message)
            except DeliveryError as e:
                logger.error(f"Failed to send price alert to {subscription.email}: {e}")
                continue
            except Exception as e:
                logger.error(f"Unexpected error sending price alert to {subscription.email}: {e}", exc_info=True)
                continue

            sent += 1
            try:
                await self.store.mark_notified(subscription.id)
            except Exception as e:
                logger.warning(f"Sent alert {subscription.id} but could not record it: {e}")

        logger.info(f"Sent {sent}/{len(subscriptions)} price alert notifications for {entry.name}")
        return NotifyResult(sent=sent, attempted=len(subscriptions))
