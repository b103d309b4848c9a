"""
Collection Registry

Maps each backend collection name to the model used to decode its rows.
Decoding goes through a TypeAdapter so tagged unions (health records)
and plain models are handled the same way.
"""

from enum import Enum
from typing import Any

from pydantic import TypeAdapter

from pawplanner.models.entities import (
    Expense,
    Pet,
    ShoppingItem,
    health_record_adapter,
)
from pawplanner.models.event import EventRecord


class CollectionName(str, Enum):
    """Backend collections, one per entity kind."""
    EVENTS = "events"
    PETS = "pets"
    HEALTH_RECORDS = "health_records"
    SHOPPING_ITEMS = "shopping_items"
    EXPENSES = "expenses"


_ADAPTERS: dict[CollectionName, TypeAdapter] = {
    CollectionName.EVENTS: TypeAdapter(EventRecord),
    CollectionName.PETS: TypeAdapter(Pet),
    CollectionName.HEALTH_RECORDS: health_record_adapter,
    CollectionName.SHOPPING_ITEMS: TypeAdapter(ShoppingItem),
    CollectionName.EXPENSES: TypeAdapter(Expense),
}


def decode_row(collection: CollectionName, row: dict[str, Any]) -> Any:
    """
    Decode a backend row into the collection's model.

    Raises:
        pydantic.ValidationError: If the row doesn't fit the model
    """
    return _ADAPTERS[CollectionName(collection)].validate_python(row)
