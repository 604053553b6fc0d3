from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class SnapshotRepository(ABC):
    """
    Storage contract for the versioned pool snapshot document.

    Implementations raise PersistenceError on any read/write failure.
    """

    @abstractmethod
    async def load(self) -> Optional[Dict[str, Any]]:
        """
        Return the raw stored document, or None if nothing was saved yet.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, document: Dict[str, Any]) -> None:
        """
        Replace the stored document.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """
        Release resources held by the backend.
        """
        return None
