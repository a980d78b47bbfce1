"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"


class Config:
    """Application configuration."""

    # Stores
    CATALOG_PATH: Path = Path(os.getenv("CATALOG_PATH", str(PROJECT_ROOT / "prices.json")))
    HISTORY_PATH: Path = Path(os.getenv("HISTORY_PATH", str(DATA_DIR / "price_history.json")))
    DB_PATH: Path = Path(os.getenv("DB_PATH", str(DATA_DIR / "ncmesh.db")))
    RUN_LOG_PATH: str | None = os.getenv("RUN_LOG_PATH")

    # Fetching
    FETCH_TIMEOUT: float = float(os.getenv("FETCH_TIMEOUT", "15"))
    MARKETPLACE_DELAY: float = float(os.getenv("MARKETPLACE_DELAY", "3.0"))
    DEFAULT_DELAY: float = float(os.getenv("DEFAULT_DELAY", "1.5"))

    # Change detection (fractions, not percent)
    CHANGE_THRESHOLD: float = float(os.getenv("CHANGE_THRESHOLD", "0.05"))
    IMPLAUSIBLE_CHANGE: float = float(os.getenv("IMPLAUSIBLE_CHANGE", "0.80"))

    # Notifications
    RESEND_API_KEY: str | None = os.getenv("RESEND_API_KEY")
    ALERT_FROM: str = os.getenv("ALERT_FROM", "NC Mesh Parts <alerts@paschal.ai>")
    SITE_URL: str = os.getenv("SITE_URL", "https://node-parts.paschal.ai")
    AFFILIATE_TAG: str = os.getenv("AFFILIATE_TAG", "dpaschal26-20")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = []
        if cls.FETCH_TIMEOUT <= 0:
            errors.append("FETCH_TIMEOUT must be positive")
        if cls.MARKETPLACE_DELAY < 0 or cls.DEFAULT_DELAY < 0:
            errors.append("MARKETPLACE_DELAY and DEFAULT_DELAY must not be negative")
        if not 0 < cls.CHANGE_THRESHOLD < 1:
            errors.append("CHANGE_THRESHOLD must be between 0 and 1")
        if cls.IMPLAUSIBLE_CHANGE <= cls.CHANGE_THRESHOLD:
            errors.append("IMPLAUSIBLE_CHANGE must be greater than CHANGE_THRESHOLD")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
