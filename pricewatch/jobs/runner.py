"""Batch price-check orchestrator."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from pricewatch.config import config
from pricewatch.fetch.client import FetchError
from pricewatch.fetch.rate_limit import RequestPacer
from pricewatch.fetch.sources import SourceKind
from pricewatch.jobs.report import CheckResult, Outcome, RunReport
from pricewatch.jobs.worklist import Worklist, WorklistEntry
from pricewatch.notify.notifier import NotifyResult
from pricewatch.parse.price_extractor import extract_price
from pricewatch.parse.prices import format_price_display, pct_change

logger = logging.getLogger(__name__)

Extractor = Callable[[str, SourceKind], Optional[float]]
Clock = Callable[[], datetime]


class Fetcher(Protocol):
    async def fetch(self, url: str) -> str:
        ...


class Notifier(Protocol):
    async def notify(
        self, entry: WorklistEntry, old_price: float, new_price: float, pct_change: float
    ) -> NotifyResult:
        ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    """UTC timestamp with millisecond precision, e.g. 2026-10-18T15:39:00.123Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PriceCheckRunner:
    """
    Checks every worklist entry in turn.

    One fetch at a time with a fixed pause after each; a failure on one
    product is recorded in the report and never stops the batch.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        notifier: Optional[Notifier] = None,
        pacer: Optional[RequestPacer] = None,
        extractor: Extractor = extract_price,
        clock: Clock = utc_now,
        change_threshold: float | None = None,
    ):
        self.fetcher = fetcher
        self.notifier = notifier
        self.pacer = pacer or RequestPacer()
        self.extractor = extractor
        self.clock = clock
        self.change_threshold = (
            config.CHANGE_THRESHOLD if change_threshold is None else change_threshold
        )

    async def run(self, worklist: Worklist) -> RunReport:
        """Check all entries; changed entries are collected on the report for reconciliation."""
        report = RunReport()
        for skipped in worklist.skipped:
            report.add(CheckResult(key=skipped.key, name=skipped.name, outcome=Outcome.SKIPPED, reason=skipped.reason))

        total = len(worklist.entries)
        logger.info(f"Checking {total} products ({len(worklist.skipped)} skipped)")

        for index, entry in enumerate(worklist.entries, start=1):
            logger.debug(f"[{index}/{total}] {entry.name} ({entry.source.value}) {entry.url}")
            result = await self._check_safely(entry)
            report.add(result)
            if result.outcome is Outcome.CHANGED:
                report.changed.append(entry)
            await self.pacer.wait_after(entry.source)

        report.finish()
        return report

    async def _check_safely(self, entry: WorklistEntry) -> CheckResult:
        try:
            return await self.check(entry)
        except Exception as e:
            logger.error(f"Error checking {entry.name}: {e}", exc_info=True)
            return CheckResult(
                key=entry.key,
                name=entry.name,
                outcome=Outcome.FETCH_FAILED,
                reason=f"unexpected error: {e}",
                old_price=entry.price,
            )

    async def check(self, entry: WorklistEntry) -> CheckResult:
        """Fetch, extract and compare one product, updating `entry` in place."""
        old_price = entry.price

        try:
            html_content = await self.fetcher.fetch(entry.url)
        except FetchError as e:
            logger.warning(f"{entry.name}: {e.reason} - keeping cached ${old_price}")
            return CheckResult(
                key=entry.key,
                name=entry.name,
                outcome=Outcome.FETCH_FAILED,
                reason=e.reason,
                old_price=old_price,
            )

        now = isoformat(self.clock())

        try:
            new_price = self.extractor(html_content, entry.source)
        except Exception as e:
            logger.warning(f"{entry.name}: extractor error {e}")
            new_price = None

        if new_price is None or new_price <= 0:
            logger.warning(f"{entry.name}: could not extract price, keeping cached ${old_price}")
            entry.last_checked = now
            return CheckResult(
                key=entry.key,
                name=entry.name,
                outcome=Outcome.NO_PRICE,
                reason="no price found",
                old_price=old_price,
            )

        change = pct_change(old_price, new_price)
        entry.last_checked = now

        if change <= self.change_threshold:
            logger.info(f"{entry.name}: ${old_price} (unchanged)")
            return CheckResult(
                key=entry.key,
                name=entry.name,
                outcome=Outcome.UNCHANGED,
                old_price=old_price,
                new_price=new_price,
                pct_change=change,
            )

        logger.info(f"{entry.name}: ${old_price} -> ${new_price} ({change * 100:.1f}% change)")
        entry.price = new_price
        entry.price_display = format_price_display(new_price)
        entry.last_changed = now
        entry.pct_change = change

        result = CheckResult(
            key=entry.key,
            name=entry.name,
            outcome=Outcome.CHANGED,
            old_price=old_price,
            new_price=new_price,
            pct_change=change,
        )
        if new_price < old_price:
            await self._notify_drop(entry, result)
        return result

    async def _notify_drop(self, entry: WorklistEntry, result: CheckResult) -> None:
        if self.notifier is None:
            return
        try:
            outcome = await self.notifier.notify(entry, result.old_price, result.new_price, result.pct_change)
        except Exception as e:
            logger.error(f"Notification fan-out failed for {entry.name}: {e}", exc_info=True)
            return
        result.notified = outcome.sent
        result.notify_attempted = outcome.attempted
