"""
Shared base for every entity kept in a collection.

Each stored entity has an opaque backend-assigned id and the owner it
belongs to. Both are absent until the backend has accepted the write.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OwnedEntity(BaseModel):
    """Base model for entities stored in an owner-scoped collection."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = Field(
        default=None,
        description="Opaque identifier assigned by the backend on creation"
    )
    owner_id: Optional[str] = Field(
        default=None,
        description="Backend-assigned owner identity"
    )

    def to_storage_dict(self) -> dict[str, Any]:
        """Serialize for a backend write (the backend owns the id)."""
        return self.model_dump(mode="json", exclude={"id"})
