"""Throw-away Chromium profile directory."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TempWorkspace:
    """A uniquely named user-data directory.

    Chromium creates the directory itself on first use; the runner only
    chooses the name and removes it afterwards.
    """

    path: Path

    @classmethod
    def allocate(cls, base_dir: Path | str, prefix: str) -> "TempWorkspace":
        """Pick a fresh path under ``base_dir`` without creating it."""
        name = f"{prefix}{time.strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:12]}"
        return cls(path=Path(base_dir) / name)

    async def remove(self) -> None:
        """Delete the directory tree. A directory that was never created is fine.

        Raises:
            OSError: If the tree exists but cannot be removed.
        """
        if not self.path.exists():
            return
        await asyncio.to_thread(shutil.rmtree, self.path)
        logger.debug("Removed %s", self.path)
