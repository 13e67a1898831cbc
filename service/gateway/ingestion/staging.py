"""
Per-channel temporary storage for downloaded documents.

The directory is created once at worker startup ({temp}/{platform}_downloads).
Each staged file gets a unique name and is removed when its scope exits,
unless keep_files is set for debugging.
"""

import asyncio
import re
import tempfile
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from gateway.logging_config import get_logger

logger = get_logger("ingestion")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    name = _UNSAFE_CHARS.sub("_", Path(filename).name).strip("._")
    return name[:80] or "document"


class TempStorage:
    def __init__(self, platform: str, root: Optional[str] = None, keep_files: bool = False):
        base = Path(root) if root else Path(tempfile.gettempdir())
        self.directory = base / f"{platform}_downloads"
        self.keep_files = keep_files

    def ensure(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    def new_path(self, filename: str) -> Path:
        return self.directory / f"{uuid.uuid4().hex}_{safe_filename(filename)}"

    @asynccontextmanager
    async def staged(self, data: bytes, filename: str) -> AsyncIterator[Path]:
        """Write data to a fresh file and remove it when the block exits."""
        path = self.new_path(filename)
        await asyncio.to_thread(path.write_bytes, data)
        logger.debug(f"Staged {len(data)} bytes at {path}")
        try:
            yield path
        finally:
            if self.keep_files:
                logger.info(f"Keeping staged file {path}")
            else:
                path.unlink(missing_ok=True)
