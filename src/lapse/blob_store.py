"""JSON file used as the durable snapshot of the mtime cache."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import aiofiles

logger = logging.getLogger(__name__)


class JsonBlobStore:
    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Dict[str, Any]:
        """Return the stored mapping; missing or corrupt files read as empty."""

        if not self._path.exists():
            return {}
        try:
            async with aiofiles.open(self._path, "r", encoding="utf-8") as handle:
                data = json.loads(await handle.read())
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    async def save(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as tmp_file:
            await tmp_file.write(json.dumps(data, ensure_ascii=False))
        os.replace(tmp_path, self._path)


__all__ = ["JsonBlobStore"]
