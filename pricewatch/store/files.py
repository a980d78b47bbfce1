"""Whole-file JSON reads and atomic writes."""
import logging
import os
import uuid
from pathlib import Path
from typing import Any

import aiofiles
import orjson

logger = logging.getLogger(__name__)


async def read_json(path: Path) -> Any:
    """Read and decode a JSON file. Raises FileNotFoundError / orjson.JSONDecodeError."""
    async with aiofiles.open(path, "rb") as f:
        content = await f.read()
    return orjson.loads(content)


def dump_json(data: Any) -> bytes:
    """Two-space indented JSON with a trailing newline."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2) + b"\n"


async def write_json_atomic(path: Path, data: Any) -> None:
    """
    Replace `path` with the JSON encoding of `data`.

    The content goes to a temporary file in the same directory first and is
    then moved over the target, so readers never see a partial file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    payload = dump_json(data)
    try:
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(payload)
            await f.flush()
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    logger.debug(f"Wrote {len(payload)} bytes to {path}")
