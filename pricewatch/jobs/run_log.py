"""Run summary exporter for observability."""
from pathlib import Path
from typing import Any

import aiofiles
import orjson


class RunLogExporter:
    """Appends one JSON line per run to a JSONL file."""

    def __init__(self, run_id: str, path: Path):
        self.run_id = run_id
        self.path = Path(path)

    async def export(self, finished_at: str, summary: dict[str, Any], reconciled: int, rejected: int) -> None:
        """Append the run summary."""
        record = {
            "ts": finished_at,
            "run_id": self.run_id,
            **summary,
            "reconciled": reconciled,
            "rejected": rejected,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = orjson.dumps(record) + b"\n"
        async with aiofiles.open(self.path, "ab") as f:
            await f.write(line)
