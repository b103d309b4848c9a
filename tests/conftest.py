"""Shared fixtures and backend doubles."""

import asyncio
from typing import Optional

import pytest

from pawplanner.audit import AuditLogger
from pawplanner.services.storage import InMemoryAuditStorage, InMemoryCollectionService


def owner(owner_id: Optional[str] = "u1"):
    """Async owner provider returning a fixed id."""
    async def provider() -> Optional[str]:
        return owner_id
    return provider


def event_row(title: str = "Walk", day: str = "2025-01-01", at: str = "07:00", **extra) -> dict:
    row = {
        "owner_id": "u1",
        "title": title,
        "date": day,
        "time": at,
        "category": "Daily",
    }
    row.update(extra)
    return row


class GatedService(InMemoryCollectionService):
    """
    In-memory backend whose fetch can be held open.

    The fetch reads its rows first and then waits on `release`, like a
    response already in flight while the feed keeps delivering.
    """

    def __init__(self):
        super().__init__()
        self.fetch_started = asyncio.Event()
        self.release = asyncio.Event()
        self.fetch_calls = 0

    async def fetch_all(self, collection, owner_id):
        self.fetch_calls += 1
        rows = await super().fetch_all(collection, owner_id)
        self.fetch_started.set()
        await self.release.wait()
        return rows


@pytest.fixture
def service() -> InMemoryCollectionService:
    return InMemoryCollectionService()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)
