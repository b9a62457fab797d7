"""Async access to the Markdown documents of a vault directory."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os

from lapse.errors import DocumentNotFoundError
from lapse.glob_matcher import normalize_path

DOCUMENT_SUFFIX = ".md"


class Vault:
    """Documents are addressed by their vault-relative POSIX path."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def resolve(self, document_id: str) -> Path:
        return self.base_dir.joinpath(normalize_path(document_id))

    def document_id(self, path: Path) -> str:
        return path.relative_to(self.base_dir).as_posix()

    def list_documents(self) -> List[str]:
        if not self.base_dir.exists():
            return []
        return [
            self.document_id(path)
            for path in sorted(self.base_dir.rglob(f"*{DOCUMENT_SUFFIX}"))
            if path.is_file()
        ]

    async def exists(self, document_id: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolve(document_id))

    async def modified_at(self, document_id: str) -> Optional[float]:
        """Modification timestamp, or ``None`` when the document is gone."""

        try:
            stat_result = await aiofiles.os.stat(self.resolve(document_id))
        except (FileNotFoundError, NotADirectoryError):
            return None
        return stat_result.st_mtime

    async def read_text(self, document_id: str) -> str:
        target = self.resolve(document_id)
        try:
            async with aiofiles.open(target, "r", encoding="utf-8", newline="") as handle:
                return await handle.read()
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(document_id) from exc

    async def write_text(self, document_id: str, content: str) -> Path:
        target = self.resolve(document_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        await self._write_atomic(target, content)
        return target

    async def _write_atomic(self, target: Path, content: str) -> None:
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8", newline="") as tmp_file:
            await tmp_file.write(content)
        os.replace(tmp_path, target)


__all__ = ["DOCUMENT_SUFFIX", "Vault"]
