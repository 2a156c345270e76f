"""
Services module - Activity persistence and the operations built on it.

This module provides:
- Week key codec for ISO-week bucketing
- Weekly and flat activity stores over a key-value capability
- Activity repository with dataset-wide id management
- Activity type store
- Export/import of the whole dataset
- Goal lookups and progress
"""
from trainer.services.activity_store import (
    ActivityStore,
    WeeklyCapableStore,
    WeeklyActivityStore,
    FlatActivityStore,
)
from trainer.services.activity_repository import ActivityRepository
from trainer.services.activity_types import ActivityTypeStore
from trainer.services.export_import import ExportImportCodec, ImportResult
from trainer.services.goals import GoalService, GoalProgress

__all__ = [
    # Stores
    "ActivityStore",
    "WeeklyCapableStore",
    "WeeklyActivityStore",
    "FlatActivityStore",
    # Repositories
    "ActivityRepository",
    "ActivityTypeStore",
    # Transfer
    "ExportImportCodec",
    "ImportResult",
    # Goals
    "GoalService",
    "GoalProgress",
]
