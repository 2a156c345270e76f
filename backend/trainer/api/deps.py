"""
Service wiring for the API layer.
Services are built once per application and shared through app.state.
"""
from dataclasses import dataclass

from fastapi import Request

from trainer.core.config import settings
from trainer.services import (
    ActivityRepository,
    ActivityStore,
    ActivityTypeStore,
    ExportImportCodec,
    FlatActivityStore,
    GoalService,
    WeeklyActivityStore,
)
from trainer.services.storage import KeyValueStore


@dataclass
class TrainerServices:
    """Everything the routers need, sharing one store."""
    store: ActivityStore
    activities: ActivityRepository
    activity_types: ActivityTypeStore
    transfer: ExportImportCodec
    goals: GoalService


def build_services(kv: KeyValueStore) -> TrainerServices:
    """Build the service graph over a key-value store."""
    if settings.is_weekly_layout:
        store: ActivityStore = WeeklyActivityStore(kv)
    else:
        store = FlatActivityStore(kv)
    
    activities = ActivityRepository(store)
    return TrainerServices(
        store=store,
        activities=activities,
        activity_types=ActivityTypeStore(store),
        transfer=ExportImportCodec(store, activities),
        goals=GoalService(),
    )


def get_services(request: Request) -> TrainerServices:
    return request.app.state.services


def get_activity_repository(request: Request) -> ActivityRepository:
    return get_services(request).activities


def get_activity_type_store(request: Request) -> ActivityTypeStore:
    return get_services(request).activity_types


def get_transfer_codec(request: Request) -> ExportImportCodec:
    return get_services(request).transfer
