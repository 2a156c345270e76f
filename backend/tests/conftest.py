"""Pytest configuration and fixtures for trainer tests."""

import json
from datetime import datetime
from typing import Dict, List

import pytest

from trainer.models.activity import Activity
from trainer.services import (
    ActivityRepository,
    ActivityTypeStore,
    ExportImportCodec,
    WeeklyActivityStore,
)
from trainer.services.storage import InMemoryKeyValueStore


class RecordingKeyValueStore(InMemoryKeyValueStore):
    """In-memory store that counts calls per operation."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.calls: Dict[str, int] = {}
        self.keys_read: List[str] = []

    def _record(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1

    async def get(self, key):
        self._record("get")
        self.keys_read.append(key)
        return await super().get(key)

    async def set(self, key, value):
        self._record("set")
        await super().set(key, value)

    async def remove(self, key):
        self._record("remove")
        await super().remove(key)

    async def get_many(self, keys):
        self._record("get_many")
        return await super().get_many(keys)


def make_activity(when: datetime, activity_type_id: int = 1, amount: int = 1, notes: str = "", id: int = 0) -> Activity:
    """Build an activity with sensible defaults."""
    return Activity(id=id, activity_type_id=activity_type_id, when=when, amount=amount, notes=notes)


def encode(value) -> bytes:
    """Encode a JSON-compatible value the way the stores persist it."""
    return json.dumps(value).encode("utf-8")


def decode(raw: bytes):
    return json.loads(raw.decode("utf-8"))


@pytest.fixture
def kv() -> RecordingKeyValueStore:
    """Empty recording key-value store."""
    return RecordingKeyValueStore()


@pytest.fixture
def store(kv: RecordingKeyValueStore) -> WeeklyActivityStore:
    """Weekly activity store over the recording key-value store."""
    return WeeklyActivityStore(kv)


@pytest.fixture
def repository(store: WeeklyActivityStore) -> ActivityRepository:
    """Repository with the lenient not-found policy."""
    return ActivityRepository(store, strict_not_found=False)


@pytest.fixture
def type_store(store: WeeklyActivityStore) -> ActivityTypeStore:
    return ActivityTypeStore(store)


@pytest.fixture
def codec(store: WeeklyActivityStore, repository: ActivityRepository) -> ExportImportCodec:
    return ExportImportCodec(store, repository)
