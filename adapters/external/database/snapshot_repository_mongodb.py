from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from core.domain.errors import PersistenceError
from core.repositories.snapshot_repository import SnapshotRepository


class SnapshotRepositoryMongoDB(SnapshotRepository):
    """
    MongoDB implementation for the pool snapshot.

    Uses a single document keyed by "key" (default "price_data"); the snapshot
    fields are stored at the top level next to updated_at/updated_at_iso.
    """

    COLLECTION = "price_snapshots"

    def __init__(self, db: AsyncIOMotorDatabase, *, key: str = "price_data"):
        """
        Args:
            db: Motor database handle.
            key: Snapshot document key, one per deployment/chain.
        """
        self._db = db
        self._key = key

    async def ensure_indexes(self) -> None:
        col = self._db[self.COLLECTION]
        try:
            await col.create_index([("key", 1)], unique=True)
        except PyMongoError as exc:
            raise PersistenceError(f"Could not create snapshot indexes: {exc}") from exc

    async def load(self) -> Optional[Dict[str, Any]]:
        col = self._db[self.COLLECTION]
        try:
            doc = await col.find_one({"key": self._key})
        except PyMongoError as exc:
            raise PersistenceError(f"Could not read snapshot {self._key}: {exc}") from exc

        if not doc:
            return None
        data = dict(doc)
        for meta in ("_id", "key", "updated_at", "updated_at_iso"):
            data.pop(meta, None)
        return data

    async def save(self, document: Dict[str, Any]) -> None:
        """
        Replace the snapshot document (upsert by key).
        """
        col = self._db[self.COLLECTION]

        now = datetime.now(tz=timezone.utc)
        payload = dict(document)
        payload["key"] = self._key
        payload["updated_at"] = int(now.timestamp() * 1000)
        payload["updated_at_iso"] = now.isoformat().replace("+00:00", "Z")

        try:
            await col.replace_one({"key": self._key}, payload, upsert=True)
        except PyMongoError as exc:
            raise PersistenceError(f"Could not write snapshot {self._key}: {exc}") from exc
