from trainer.models.activity import (
    Activity,
    ActivityType,
    NetBenefit,
    ActivityList,
    ActivityTypeList,
)
from trainer.models.kv import KeyValueItem

__all__ = [
    "Activity",
    "ActivityType",
    "NetBenefit",
    "ActivityList",
    "ActivityTypeList",
    "KeyValueItem",
]
