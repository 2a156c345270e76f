"""
Activity Repository - Add/update/delete/list semantics over an activity store.

Owns the activity id counter. The counter is persisted under
activityNextId and kept in memory once initialized, either lazily on
first use or through recalculate_next_id() after a bulk import.

Read-modify-write sequences on a week bucket are not locked: two
overlapping writes to the same week can lose the earlier change. The
store serves a single user in a single client, so this is accepted.
"""
import asyncio
from datetime import datetime
from typing import List, Optional

from trainer.core.config import settings
from trainer.core.exceptions import NotFoundError
from trainer.core.logging import get_logger
from trainer.models.activity import Activity, to_local_naive
from trainer.services.activity_store import ActivityStore, WeeklyCapableStore
from trainer.services.weeks import (
    week_end_date,
    week_key_of,
    week_keys_in_range,
    week_start_date,
)

logger = get_logger(__name__)


class ActivityRepository:
    """
    Activity operations with dataset-wide unique ids.

    Works on any ActivityStore. Whether the store is partitioned into
    week buckets is decided once here; on a flat store every write
    rewrites the whole list.
    """

    def __init__(self, store: ActivityStore, strict_not_found: Optional[bool] = None):
        self.store = store
        self.weekly: Optional[WeeklyCapableStore] = (
            store if isinstance(store, WeeklyCapableStore) else None
        )
        self.strict_not_found = (
            settings.STRICT_NOT_FOUND if strict_not_found is None else strict_not_found
        )
        self._next_id = 1
        self._next_id_initialized = False
        self._id_lock = asyncio.Lock()

    @property
    def next_id(self) -> int:
        """Id the next added activity will get (valid once initialized)."""
        return self._next_id

    @property
    def next_id_initialized(self) -> bool:
        return self._next_id_initialized

    # ========================================
    # Id counter
    # ========================================

    async def ensure_next_id_initialized(self) -> int:
        """
        Load the id counter if this session has not done so yet.

        Uses the persisted counter when it is positive, never going below
        one past the largest stored id, then persists the result.

        Returns:
            The next id to assign
        """
        if self._next_id_initialized:
            return self._next_id

        async with self._id_lock:
            if self._next_id_initialized:
                return self._next_id

            stored = await self.store.get_next_id()
            activities = await self.store.get_all_activities()
            scanned = max((a.id for a in activities), default=0) + 1

            if stored is not None and stored > 0:
                self._next_id = max(stored, scanned)
            else:
                self._next_id = scanned

            await self.store.set_next_id(self._next_id)
            self._next_id_initialized = True

        logger.debug(
            "Activity id counter initialized",
            next_id=self._next_id,
            stored=stored
        )
        return self._next_id

    async def recalculate_next_id(self) -> int:
        """
        Reset the counter to one past the largest stored id (1 if empty).

        Must run after any bulk write such as an import, since imported
        ids were never seen by this counter.

        Returns:
            The next id to assign
        """
        async with self._id_lock:
            activities = await self.store.get_all_activities()
            self._next_id = max((a.id for a in activities), default=0) + 1
            await self.store.set_next_id(self._next_id)
            self._next_id_initialized = True

        logger.info("Activity id counter recalculated", next_id=self._next_id)
        return self._next_id

    async def _take_next_id(self) -> int:
        await self.ensure_next_id_initialized()
        activity_id = self._next_id
        self._next_id += 1
        await self.store.set_next_id(self._next_id)
        return activity_id

    # ========================================
    # Queries
    # ========================================

    async def list_all(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Activity]:
        """
        List activities, newest first.

        With a date range only the weeks touched by the range are read,
        so results have week granularity. A missing bound is taken from
        the earliest or latest stored week.
        Offset-aware bounds are converted to local time first.

        Args:
            start_date: Range start (inclusive)
            end_date: Range end (inclusive)

        Returns:
            Activities sorted by when, descending
        """
        if start_date is None and end_date is None:
            activities = await self.store.get_all_activities()
        else:
            if start_date is not None:
                start_date = to_local_naive(start_date)
            if end_date is not None:
                end_date = to_local_naive(end_date)
            week_keys = await self._week_keys_for_range(start_date, end_date)
            if self.weekly:
                activities = await self.weekly.get_weeks(week_keys)
            else:
                wanted = set(week_keys)
                activities = [
                    a for a in await self.store.get_all_activities()
                    if week_key_of(a.when) in wanted
                ]

        await self.ensure_next_id_initialized()

        return sorted(activities, key=lambda a: a.when, reverse=True)

    async def _week_keys_for_range(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ) -> List[str]:
        if start_date is None or end_date is None:
            stored = await self.list_available_week_keys()
            if not stored:
                return []
            if start_date is None:
                start_date = week_start_date(stored[0])
            if end_date is None:
                end_date = week_end_date(stored[-1])

        return week_keys_in_range(start_date, end_date)

    async def get_by_id(self, activity_id: int) -> Optional[Activity]:
        """Find an activity by id, or None."""
        for activity in await self.list_all():
            if activity.id == activity_id:
                return activity
        return None

    async def list_by_type(self, activity_type_id: int) -> List[Activity]:
        """Activities of one type, newest first."""
        return [
            a for a in await self.list_all()
            if a.activity_type_id == activity_type_id
        ]

    async def list_available_week_keys(self) -> List[str]:
        """Weeks that have at least one activity, ascending."""
        if self.weekly:
            return await self.weekly.list_week_keys()

        activities = await self.store.get_all_activities()
        return sorted({week_key_of(a.when) for a in activities})

    # ========================================
    # Mutations
    # ========================================

    async def add(self, activity: Activity) -> Activity:
        """
        Store a new activity under a freshly assigned id.

        Args:
            activity: Activity to add; any id it carries is replaced

        Returns:
            Copy of the activity with its assigned id
        """
        activity = activity.model_copy(update={
            "id": await self._take_next_id(),
            "when": to_local_naive(activity.when),
        })
        week_key = week_key_of(activity.when)

        if self.weekly:
            week_activities = await self.weekly.get_week(week_key)
            week_activities.append(activity)
            await self.weekly.set_week(week_key, week_activities)
        else:
            activities = await self.store.get_all_activities()
            activities.append(activity)
            await self.store.set_all_activities(activities)

        logger.info(
            "Activity added",
            activity_id=activity.id,
            activity_type_id=activity.activity_type_id,
            week_key=week_key
        )
        return activity

    async def update(self, activity: Activity) -> Optional[Activity]:
        """
        Replace a stored activity, moving it between weeks if needed.

        Returns:
            The stored activity, or None if no activity has that id
        """
        activity = activity.model_copy(update={"when": to_local_naive(activity.when)})
        existing = await self.get_by_id(activity.id)
        if existing is None:
            return self._not_found(activity.id, "update")

        old_week = week_key_of(existing.when)
        new_week = week_key_of(activity.when)

        if not self.weekly:
            activities = await self.store.get_all_activities()
            activities = [activity if a.id == activity.id else a for a in activities]
            await self.store.set_all_activities(activities)
        elif old_week == new_week:
            week_activities = await self.weekly.get_week(old_week)
            week_activities = [a for a in week_activities if a.id != activity.id]
            week_activities.append(activity)
            await self.weekly.set_week(old_week, week_activities)
        else:
            # set_week removes the old bucket if this was its last entry
            old_activities = await self.weekly.get_week(old_week)
            await self.weekly.set_week(
                old_week,
                [a for a in old_activities if a.id != activity.id]
            )

            new_activities = await self.weekly.get_week(new_week)
            new_activities = [a for a in new_activities if a.id != activity.id]
            new_activities.append(activity)
            await self.weekly.set_week(new_week, new_activities)

        logger.info(
            "Activity updated",
            activity_id=activity.id,
            old_week=old_week,
            new_week=new_week
        )
        return activity

    async def delete(self, activity_id: int) -> bool:
        """
        Delete an activity by id.

        Returns:
            True if an activity was deleted
        """
        existing = await self.get_by_id(activity_id)
        if existing is None:
            self._not_found(activity_id, "delete")
            return False

        week_key = week_key_of(existing.when)

        if self.weekly:
            week_activities = await self.weekly.get_week(week_key)
            await self.weekly.set_week(
                week_key,
                [a for a in week_activities if a.id != activity_id]
            )
        else:
            activities = await self.store.get_all_activities()
            await self.store.set_all_activities(
                [a for a in activities if a.id != activity_id]
            )

        logger.info("Activity deleted", activity_id=activity_id, week_key=week_key)
        return True

    def _not_found(self, activity_id: int, operation: str) -> None:
        if self.strict_not_found:
            raise NotFoundError(activity_id)
        logger.debug("Activity not found, ignoring", activity_id=activity_id, operation=operation)
        return None
