"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pricewatch.config import Config, config
from pricewatch.jobs.pipeline import JobSettings, run_job
from pricewatch.logging_conf import setup_logging
from pricewatch.store.catalog import CatalogError

logger = logging.getLogger(__name__)

# Printed on stdout when the catalog was updated; the deploy step watches for it
PRICES_CHANGED = "PRICES_CHANGED"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Parts catalog price checker")

    # Stores
    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help=f"Catalog JSON file (default: {config.CATALOG_PATH})",
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=None,
        help=f"Price history JSON file (default: {config.HISTORY_PATH})",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Subscription database (default: {config.DB_PATH})",
    )
    parser.add_argument(
        "--run-log",
        type=Path,
        default=None,
        help="Append a JSON summary line per run to this file",
    )

    # Mode flags
    parser.add_argument(
        "--only",
        action="append",
        default=None,
        metavar="KEY",
        help="Check only this product id or name (repeatable)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Check prices but write nothing",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run one price check. Returns the process exit code."""
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    settings = JobSettings.from_config(
        catalog_path=args.catalog,
        history_path=args.history,
        db_path=args.db,
        run_log_path=args.run_log,
        dry_run=args.dry_run,
        only=set(args.only) if args.only else None,
    )

    try:
        outcome = asyncio.run(run_job(settings))
    except CatalogError as e:
        logger.error(f"Cannot load catalog: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1

    if outcome.prices_changed and not settings.dry_run:
        print(PRICES_CHANGED)
    else:
        summary = outcome.report.get_summary()
        print(
            f"checked={summary['checked']} changed={summary['changed']} "
            f"reconciled={outcome.reconciled} failed={summary['fetch_failed']}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
