"""One full price-check job: load, check, reconcile, persist."""
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pricewatch.config import config
from pricewatch.fetch.client import PageFetcher
from pricewatch.fetch.rate_limit import RequestPacer
from pricewatch.jobs.reconcile import ReconcileResult, reconcile
from pricewatch.jobs.report import RunReport
from pricewatch.jobs.run_log import RunLogExporter
from pricewatch.jobs.runner import Clock, Extractor, Fetcher, PriceCheckRunner, isoformat, utc_now
from pricewatch.jobs.worklist import build_worklist
from pricewatch.notify.email import EmailSender, ResendSender
from pricewatch.notify.notifier import SubscriberNotifier
from pricewatch.parse.price_extractor import extract_price
from pricewatch.store.catalog import CatalogStore
from pricewatch.store.history import HistoryStore
from pricewatch.store.subscriptions import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class JobSettings:
    catalog_path: Path
    history_path: Path
    db_path: Path
    run_log_path: Optional[Path] = None
    dry_run: bool = False
    # Restrict the run to these product keys or names
    only: set[str] = field(default_factory=set)

    @classmethod
    def from_config(cls, **overrides) -> "JobSettings":
        settings = cls(
            catalog_path=config.CATALOG_PATH,
            history_path=config.HISTORY_PATH,
            db_path=config.DB_PATH,
            run_log_path=Path(config.RUN_LOG_PATH) if config.RUN_LOG_PATH else None,
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(settings, key, value)
        return settings


@dataclass
class JobOutcome:
    run_id: str
    report: RunReport
    reconciliation: ReconcileResult
    history_written: bool = False
    catalog_written: bool = False

    @property
    def reconciled(self) -> int:
        return self.reconciliation.updated_count

    @property
    def prices_changed(self) -> bool:
        """True when at least one catalog price was actually updated."""
        return self.reconciled > 0


async def run_job(
    settings: JobSettings,
    fetcher: Optional[Fetcher] = None,
    sender: Optional[EmailSender] = None,
    store: Optional[SubscriptionStore] = None,
    pacer: Optional[RequestPacer] = None,
    extractor: Extractor = extract_price,
    clock: Clock = utc_now,
) -> JobOutcome:
    """
    Run the whole job.

    Raises CatalogError before anything is fetched if the catalog cannot be
    loaded. Both JSON files are written once, at the very end; nothing is
    written in dry-run mode.
    """
    run_id = str(uuid.uuid4())
    logger.info("=" * 60)
    logger.info("Price check starting")
    logger.info(f"Run ID: {run_id}")
    logger.info(f"Catalog: {settings.catalog_path}")
    logger.info(f"History: {settings.history_path}")
    logger.info(f"Dry-run: {settings.dry_run}")
    logger.info("=" * 60)

    catalog_store = CatalogStore(settings.catalog_path)
    history_store = HistoryStore(settings.history_path)
    catalog = await catalog_store.load()
    history = await history_store.load()

    own_fetcher = fetcher is None
    own_sender = sender is None
    own_store = store is None
    if own_fetcher:
        fetcher = PageFetcher()
    if own_sender:
        sender = ResendSender.from_config()
    if sender is not None and own_store:
        store = await SubscriptionStore.open(settings.db_path)

    try:
        products = catalog.products
        if settings.only:
            products = [p for p in products if p.product_key in settings.only or p.name in settings.only]
            logger.info(f"Limiting run to {len(products)} of {len(catalog.products)} products")

        worklist = build_worklist(products, history)
        notifier = SubscriberNotifier(store=store, sender=sender)
        runner = PriceCheckRunner(
            fetcher=fetcher,
            notifier=notifier,
            pacer=pacer,
            extractor=extractor,
            clock=clock,
        )
        report = await runner.run(worklist)
    finally:
        if own_store and store is not None:
            await store.close()
        if own_sender and sender is not None:
            await sender.close()
        if own_fetcher:
            await fetcher.close()

    reconciliation = reconcile(catalog.products, report.changed)

    for entry in worklist.entries:
        history.products[entry.key] = entry.to_history()
    finished_at = isoformat(clock())
    history.last_run = finished_at

    outcome = JobOutcome(run_id=run_id, report=report, reconciliation=reconciliation)
    if settings.dry_run:
        logger.info("DRY-RUN: catalog and history left untouched")
    else:
        await history_store.save(history)
        outcome.history_written = True
        if reconciliation.updated_count:
            await catalog_store.save(catalog)
            outcome.catalog_written = True

    if settings.run_log_path and not settings.dry_run:
        exporter = RunLogExporter(run_id, settings.run_log_path)
        try:
            await exporter.export(
                finished_at,
                report.get_summary(),
                reconciled=reconciliation.updated_count,
                rejected=len(reconciliation.rejected),
            )
        except OSError as e:
            logger.warning(f"Could not append run log {settings.run_log_path}: {e}")

    log_final_report(outcome)
    return outcome


def log_final_report(outcome: JobOutcome) -> None:
    summary = outcome.report.get_summary()
    logger.info("=" * 60)
    logger.info("FINAL REPORT")
    logger.info(f"Run ID: {outcome.run_id}")
    logger.info(f"Elapsed: {summary['elapsed_seconds']:.1f}s")
    logger.info(f"Checked: {summary['checked']}/{summary['total']}")
    logger.info(f"Changed: {summary['changed']}")
    logger.info(f"Unchanged: {summary['unchanged']}")
    logger.info(f"No price found: {summary['no_price']}")
    logger.info(f"Fetch failed: {summary['fetch_failed']}")
    logger.info(f"Skipped: {summary['skipped']}")
    logger.info(f"Reconciled into catalog: {outcome.reconciled}")
    logger.info(f"Rejected changes: {len(outcome.reconciliation.rejected)}")
    logger.info(
        f"Notifications: {summary['notifications_sent']}/{summary['notifications_attempted']} sent"
    )
    logger.info("=" * 60)
