# core/domain/entities/base_entity.py
from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict

E = TypeVar("E", bound="BaseEntity")


class BaseEntity(BaseModel):
    """
    Base entity for in-memory state that is also persisted in snapshots.

    - Fields may declare camelCase aliases matching the persisted document;
      both the alias and the Python name are accepted on input.
    - Unknown keys are ignored so older snapshot documents still load.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
    )

    @classmethod
    def from_document(cls: Type[E], doc: Optional[dict[str, Any]]) -> Optional[E]:
        """
        Convert a stored document (JSON file or MongoDB) into a typed entity.

        Args:
            doc: Raw dict, may include a Mongo `_id`.

        Returns:
            An entity instance or None if doc is falsy.
        """
        if not doc:
            return None
        data = dict(doc)
        data.pop("_id", None)
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-safe dict using the persisted (aliased) key names.
        """
        return self.model_dump(mode="json", by_alias=True)
