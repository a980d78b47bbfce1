"""Logging setup."""
import logging
import sys

from pricewatch.config import config


def setup_logging(level: str | None = None) -> None:
    """Configure root logging. Logs go to stderr; stdout is reserved for the job result line."""
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
