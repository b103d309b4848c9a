"""
Change Models

A ChangeEvent is one notification about one entity. It arrives either
from the backend change feed or from a local optimistic mutation; the
collection store treats both the same way.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChangeKind(str, Enum):
    """What happened to an entity."""
    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"


class ChangeEvent(BaseModel):
    """
    Tagged change notification.

    INSERTED and UPDATED carry the authoritative post-change value.
    DELETED carries only the id.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ChangeKind
    entity_id: str = Field(..., min_length=1)
    value: Optional[Any] = None

    @model_validator(mode='after')
    def validate_payload(self) -> 'ChangeEvent':
        if self.kind != ChangeKind.DELETED and self.value is None:
            raise ValueError(f"{self.kind.value} change requires a value")
        return self

    @classmethod
    def inserted(cls, value: Any) -> 'ChangeEvent':
        return cls(kind=ChangeKind.INSERTED, entity_id=value.id, value=value)

    @classmethod
    def updated(cls, value: Any) -> 'ChangeEvent':
        return cls(kind=ChangeKind.UPDATED, entity_id=value.id, value=value)

    @classmethod
    def deleted(cls, entity_id: str) -> 'ChangeEvent':
        return cls(kind=ChangeKind.DELETED, entity_id=entity_id)
