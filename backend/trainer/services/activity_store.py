"""
Activity Store - Activity persistence over the key-value capability.

Two layouts exist:
- WeeklyActivityStore: one bucket per ISO week under activities-YYYY.WW
- FlatActivityStore: the legacy single list under the activities key

Persisted layout (all values UTF-8 JSON):
    activityTypes          -> [ActivityType, ...]
    activities-YYYY.WW     -> [Activity, ...] for that week
    activityNextId         -> int
    activities             -> [Activity, ...] (legacy, migrated away)
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from trainer.core.exceptions import StoreUnavailableError
from trainer.core.logging import get_logger
from trainer.models.activity import Activity, ActivityList, ActivityType, ActivityTypeList
from trainer.services.storage.base import KeyValueStore
from trainer.services.weeks import (
    STORAGE_KEY_PREFIX,
    parse_week_key,
    storage_key_of,
    week_key_from_storage_key,
    week_key_of,
)

logger = get_logger(__name__)

T = TypeVar("T")

ACTIVITIES_KEY = "activities"
ACTIVITY_TYPES_KEY = "activityTypes"
NEXT_ID_KEY = "activityNextId"

_INIT_CHECK_KEY = "__init_check__"
_NextId = TypeAdapter(int)


def group_by_week(activities: Iterable[Activity]) -> Dict[str, List[Activity]]:
    """Group activities by week key, preserving first-seen order."""
    groups: Dict[str, List[Activity]] = {}
    for activity in activities:
        groups.setdefault(week_key_of(activity.when), []).append(activity)
    return groups


class ActivityStore(ABC):
    """
    Base class for activity persistence.

    Every public operation first makes sure the store is initialized.
    Initialization runs at most once per instance, guarded by a lock so
    that concurrent first calls wait for the first one to finish.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def ensure_initialized(self) -> None:
        """Run one-time initialization if it has not run yet."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            await self._initialize()
            self._initialized = True

    async def _initialize(self) -> None:
        """Verify the key-value capability answers."""
        try:
            await self.kv.get(_INIT_CHECK_KEY)
        except StoreUnavailableError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Key-value store is not ready: {e}") from e

    # ========================================
    # Generic JSON items
    # ========================================

    async def get_item(self, key: str, adapter: TypeAdapter) -> Optional[T]:
        """Read and validate the JSON payload under a key."""
        await self.ensure_initialized()
        raw = await self.kv.get(key)
        if not raw:
            return None
        return adapter.validate_json(raw)

    async def set_item(self, key: str, value: T, adapter: TypeAdapter) -> None:
        """Serialize a value as JSON under a key."""
        await self.ensure_initialized()
        await self.kv.set(key, adapter.dump_json(value, by_alias=True))

    async def remove_item(self, key: str) -> None:
        await self.ensure_initialized()
        await self.kv.remove(key)

    async def clear(self) -> None:
        """Delete all stored data."""
        await self.ensure_initialized()
        await self.kv.clear()
        logger.info("Activity storage cleared")

    # ========================================
    # Activity types and id counter
    # ========================================

    async def get_activity_types(self) -> List[ActivityType]:
        """Activity types in storage order."""
        return await self.get_item(ACTIVITY_TYPES_KEY, ActivityTypeList) or []

    async def set_activity_types(self, activity_types: List[ActivityType]) -> None:
        await self.set_item(ACTIVITY_TYPES_KEY, activity_types, ActivityTypeList)

    async def get_next_id(self) -> Optional[int]:
        """Persisted next activity id, or None if absent or unreadable."""
        try:
            return await self.get_item(NEXT_ID_KEY, _NextId)
        except ValidationError:
            logger.warning("Ignoring unreadable activity id counter", key=NEXT_ID_KEY)
            return None

    async def set_next_id(self, next_id: int) -> None:
        await self.set_item(NEXT_ID_KEY, next_id, _NextId)

    # ========================================
    # Whole-collection access
    # ========================================

    @abstractmethod
    async def get_all_activities(self) -> List[Activity]:
        """Every stored activity."""
        pass

    @abstractmethod
    async def set_all_activities(self, activities: List[Activity]) -> None:
        """Replace the whole activity collection."""
        pass


class WeeklyCapableStore(ABC):
    """Capability interface for stores partitioned into week buckets."""

    @abstractmethod
    async def get_week(self, week_key: str) -> List[Activity]:
        pass

    @abstractmethod
    async def get_weeks(self, week_keys: Iterable[str]) -> List[Activity]:
        pass

    @abstractmethod
    async def set_week(self, week_key: str, activities: List[Activity]) -> None:
        pass

    @abstractmethod
    async def remove_week(self, week_key: str) -> None:
        pass

    @abstractmethod
    async def list_week_keys(self) -> List[str]:
        pass


class FlatActivityStore(ActivityStore):
    """Legacy layout: all activities in one list under the activities key."""

    async def get_all_activities(self) -> List[Activity]:
        return await self.get_item(ACTIVITIES_KEY, ActivityList) or []

    async def set_all_activities(self, activities: List[Activity]) -> None:
        await self.set_item(ACTIVITIES_KEY, list(activities), ActivityList)
        logger.debug("Stored flat activity list", count=len(activities))


class WeeklyActivityStore(ActivityStore, WeeklyCapableStore):
    """
    Activities partitioned into one bucket per ISO week.

    A bucket exists exactly when its week has at least one activity:
    writing an empty list removes the bucket, so a prefix scan over
    activities- lists only weeks with data.

    On first use the store migrates a legacy flat activity list (and,
    when a separate legacy store is given, the activity types) into the
    weekly layout.
    """

    def __init__(self, kv: KeyValueStore, legacy: Optional[KeyValueStore] = None):
        super().__init__(kv)
        self.legacy = legacy or kv

    async def _initialize(self) -> None:
        await super()._initialize()
        await self.migrate_legacy_flat_storage()

    # ========================================
    # Raw bucket access (no initialization check)
    # ========================================

    async def _read_bucket(self, week_key: str) -> List[Activity]:
        raw = await self.kv.get(storage_key_of(week_key))
        if not raw:
            return []
        return ActivityList.validate_json(raw)

    async def _write_bucket(self, week_key: str, activities: List[Activity]) -> None:
        parse_week_key(week_key)
        storage_key = storage_key_of(week_key)
        if activities:
            await self.kv.set(storage_key, ActivityList.dump_json(list(activities), by_alias=True))
        else:
            await self.kv.remove(storage_key)

    # ========================================
    # Week buckets
    # ========================================

    async def get_week(self, week_key: str) -> List[Activity]:
        """Activities in one week; a missing bucket is an empty week."""
        await self.ensure_initialized()
        return await self._read_bucket(week_key)

    async def get_weeks(self, week_keys: Iterable[str]) -> List[Activity]:
        """
        Activities across several weeks, fetched in one batched read.

        Args:
            week_keys: Weeks to read; missing buckets contribute nothing

        Returns:
            Flattened activities in week order
        """
        await self.ensure_initialized()
        storage_keys = [storage_key_of(k) for k in dict.fromkeys(week_keys)]
        if not storage_keys:
            return []

        items = await self.kv.get_many(storage_keys)

        activities: List[Activity] = []
        for raw in items.values():
            if raw:
                activities.extend(ActivityList.validate_json(raw))
        return activities

    async def set_week(self, week_key: str, activities: List[Activity]) -> None:
        """
        Replace a week's bucket with the given list.

        An empty list removes the bucket.

        Raises:
            FormatError: If week_key is not a valid week key
        """
        await self.ensure_initialized()
        await self._write_bucket(week_key, activities)

    async def remove_week(self, week_key: str) -> None:
        await self.ensure_initialized()
        await self.kv.remove(storage_key_of(week_key))

    async def list_week_keys(self) -> List[str]:
        """Week keys that currently have a bucket, ascending."""
        await self.ensure_initialized()
        storage_keys = await self.kv.list_keys_with_prefix(STORAGE_KEY_PREFIX)
        return sorted(week_key_from_storage_key(k) for k in storage_keys)

    # ========================================
    # Whole-collection access
    # ========================================

    async def get_all_activities(self) -> List[Activity]:
        return await self.get_weeks(await self.list_week_keys())

    async def set_all_activities(self, activities: List[Activity]) -> None:
        """
        Replace the whole collection.

        Writes one bucket per week present in the list and removes every
        other existing bucket.
        """
        existing = set(await self.list_week_keys())
        groups = group_by_week(activities)

        for week_key, week_activities in groups.items():
            await self._write_bucket(week_key, week_activities)
            existing.discard(week_key)

        for stale_week in sorted(existing):
            await self.kv.remove(storage_key_of(stale_week))

        logger.info(
            "Replaced all activities",
            count=len(activities),
            weeks=len(groups),
            removed_weeks=len(existing)
        )

    # ========================================
    # Legacy migration
    # ========================================

    async def migrate_legacy_flat_storage(self) -> int:
        """
        Move a legacy flat activity list into week buckets.

        Legacy entries are merged into any existing bucket, replacing
        entries with the same id, and the legacy key is removed once every
        bucket is written. Running it again is a no-op. Failures are logged
        and never raised.

        Returns:
            Number of migrated activities
        """
        migrated = 0
        try:
            raw = await self.legacy.get(ACTIVITIES_KEY)
            activities = ActivityList.validate_json(raw) if raw else []
            if activities:
                for week_key, group in group_by_week(activities).items():
                    legacy_ids = {a.id for a in group}
                    existing = await self._read_bucket(week_key)
                    merged = [a for a in existing if a.id not in legacy_ids] + group
                    await self._write_bucket(week_key, merged)

                await self.legacy.remove(ACTIVITIES_KEY)
                migrated = len(activities)
                logger.info("Migrated legacy activities to weekly storage", count=migrated)

            # With a single store the activity types are already in place
            if self.legacy is not self.kv:
                await self._migrate_legacy_activity_types()
        except Exception as e:
            logger.error(
                "Legacy storage migration failed",
                error_type=type(e).__name__,
                error=str(e)
            )

        return migrated

    async def _migrate_legacy_activity_types(self) -> None:
        raw = await self.legacy.get(ACTIVITY_TYPES_KEY)
        activity_types = ActivityTypeList.validate_json(raw) if raw else []
        if not activity_types:
            return

        if await self.kv.get(ACTIVITY_TYPES_KEY) is None:
            await self.kv.set(
                ACTIVITY_TYPES_KEY,
                ActivityTypeList.dump_json(activity_types, by_alias=True)
            )
        await self.legacy.remove(ACTIVITY_TYPES_KEY)
        logger.info("Migrated legacy activity types", count=len(activity_types))
