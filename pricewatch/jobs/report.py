"""Per-product results and run-level summary."""
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pricewatch.jobs.worklist import WorklistEntry

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """What happened to one product in a run."""

    SKIPPED = "skipped"
    FETCH_FAILED = "fetch_failed"
    NO_PRICE = "no_price"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


@dataclass
class CheckResult:
    key: str
    name: str
    outcome: Outcome
    reason: Optional[str] = None
    old_price: Optional[float] = None
    new_price: Optional[float] = None
    pct_change: Optional[float] = None
    notified: int = 0
    notify_attempted: int = 0

    @property
    def is_drop(self) -> bool:
        return (
            self.outcome is Outcome.CHANGED
            and self.new_price is not None
            and self.old_price is not None
            and self.new_price < self.old_price
        )


@dataclass
class RunReport:
    """Results of one orchestrator pass."""

    results: list[CheckResult] = field(default_factory=list)
    changed: list[WorklistEntry] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None

    def add(self, result: CheckResult) -> None:
        self.results.append(result)

    def finish(self) -> None:
        self.end_time = time.monotonic()

    @property
    def counts(self) -> Counter:
        return Counter(result.outcome for result in self.results)

    @property
    def notifications_sent(self) -> int:
        return sum(result.notified for result in self.results)

    @property
    def notifications_attempted(self) -> int:
        return sum(result.notify_attempted for result in self.results)

    @property
    def elapsed_seconds(self) -> float:
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    def by_outcome(self, outcome: Outcome) -> list[CheckResult]:
        return [result for result in self.results if result.outcome is outcome]

    def get_summary(self) -> dict:
        """Summary statistics."""
        counts = self.counts
        return {
            "total": len(self.results),
            "checked": counts[Outcome.UNCHANGED] + counts[Outcome.CHANGED] + counts[Outcome.NO_PRICE],
            "changed": counts[Outcome.CHANGED],
            "unchanged": counts[Outcome.UNCHANGED],
            "no_price": counts[Outcome.NO_PRICE],
            "fetch_failed": counts[Outcome.FETCH_FAILED],
            "skipped": counts[Outcome.SKIPPED],
            "notifications_sent": self.notifications_sent,
            "notifications_attempted": self.notifications_attempted,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }
