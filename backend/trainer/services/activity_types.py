"""
Activity Type Store - CRUD over the flat activityTypes list.

Reads return types sorted by name; writes keep the stored insertion
order. The next id is re-derived from the stored list on every read.
"""
from typing import List, Optional

from trainer.core.logging import get_logger
from trainer.models.activity import ActivityType
from trainer.services.activity_store import ActivityStore

logger = get_logger(__name__)


class ActivityTypeStore:
    """Activity type categories, not partitioned."""
    
    def __init__(self, store: ActivityStore):
        self.store = store
        self._next_id = 1
    
    async def _load(self) -> List[ActivityType]:
        """Stored types in storage order; refreshes the next id."""
        types = await self.store.get_activity_types()
        self._next_id = max((t.id for t in types), default=0) + 1
        return types
    
    async def list_all(self) -> List[ActivityType]:
        """All types sorted by name (ordinal, stable)."""
        return sorted(await self._load(), key=lambda t: t.name)
    
    async def get_by_id(self, type_id: int) -> Optional[ActivityType]:
        for activity_type in await self._load():
            if activity_type.id == type_id:
                return activity_type
        return None
    
    async def add(self, activity_type: ActivityType) -> ActivityType:
        """Append a new type with the next id."""
        types = await self._load()
        activity_type = activity_type.model_copy(update={"id": self._next_id})
        types.append(activity_type)
        await self.store.set_activity_types(types)
        
        logger.info("Activity type added", type_id=activity_type.id, name=activity_type.name)
        return activity_type
    
    async def update(self, activity_type: ActivityType) -> Optional[ActivityType]:
        """Replace a type in place. Returns None if the id is unknown."""
        types = await self._load()
        for index, existing in enumerate(types):
            if existing.id == activity_type.id:
                types[index] = activity_type
                await self.store.set_activity_types(types)
                logger.info("Activity type updated", type_id=activity_type.id)
                return activity_type
        return None
    
    async def delete(self, type_id: int) -> bool:
        """Remove a type. Activities referencing it are left as they are."""
        types = await self._load()
        remaining = [t for t in types if t.id != type_id]
        if len(remaining) == len(types):
            return False
        
        await self.store.set_activity_types(remaining)
        logger.info("Activity type deleted", type_id=type_id)
        return True
