"""
Activity and ActivityType records.

Both serialize with camelCase field names. On input, PascalCase names
written by older exports are accepted as well.
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel


def to_local_naive(value: datetime) -> datetime:
    """
    Convert an offset-aware timestamp to naive local time.
    
    Activity times are wall-clock times without an offset, so every
    stored or compared timestamp goes through this. Naive values are
    returned unchanged.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _lower_first(key: str) -> str:
    return key[:1].lower() + key[1:]


class _Record(BaseModel):
    """Shared camelCase/PascalCase handling for stored records."""
    
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
    
    @model_validator(mode="before")
    @classmethod
    def _accept_pascal_case(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                _lower_first(k) if isinstance(k, str) else k: v
                for k, v in data.items()
            }
        return data
    
    def to_json_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class NetBenefit(str, Enum):
    """Whether doing more of an activity is good, bad or neutral."""
    NONE = "None"
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


class Activity(_Record):
    """A single logged event of some activity type."""
    
    id: int = 0
    activity_type_id: int = 0
    when: datetime
    amount: int = 0
    notes: str = ""
    
    @field_validator("notes", mode="before")
    @classmethod
    def _none_notes(cls, v: Any) -> Any:
        return "" if v is None else v
    
    @field_validator("when")
    @classmethod
    def _local_when(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class ActivityType(_Record):
    """A category of activity with optional daily/weekly goals."""
    
    id: int = 0
    name: str = ""
    net_benefit: NetBenefit = NetBenefit.NONE
    daily_amount: Optional[int] = None
    weekly_amount: Optional[int] = None
    unit: Optional[str] = None
    
    @field_validator("net_benefit", mode="before")
    @classmethod
    def _legacy_ordinal(cls, v: Any) -> Any:
        # Older exports wrote the enum as its ordinal
        if isinstance(v, int) and not isinstance(v, bool):
            members = list(NetBenefit)
            if 0 <= v < len(members):
                return members[v]
        return v


ActivityList = TypeAdapter(List[Activity])
ActivityTypeList = TypeAdapter(List[ActivityType])


__all__ = [
    "Activity",
    "ActivityType",
    "NetBenefit",
    "ActivityList",
    "ActivityTypeList",
    "to_local_naive",
]
