from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from core.domain.errors import PersistenceError
from core.repositories.snapshot_repository import SnapshotRepository


class SnapshotRepositoryFile(SnapshotRepository):
    """
    JSON file implementation for the pool snapshot.

    Writes go to a sibling temp file that is then renamed over the target, so a
    crash mid-write never leaves a truncated snapshot behind. File I/O runs in a
    worker thread to keep the event loop free.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def save(self, document: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, document)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Could not read snapshot {self._path}: {exc}") from exc

        if not isinstance(data, dict):
            raise PersistenceError(f"Snapshot {self._path} is not a JSON object")
        return data

    def _write(self, document: Dict[str, Any]) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(document, f)
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Could not write snapshot {self._path}: {exc}") from exc
