"""
Activity Types API endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from trainer.api.deps import TrainerServices, get_activity_type_store, get_services
from trainer.models.activity import ActivityType, NetBenefit
from trainer.services import ActivityTypeStore
from trainer.services.weeks import DurationOption

router = APIRouter()


class ActivityTypeRequest(BaseModel):
    """Request to create or update an activity type."""
    name: str = Field(..., description="Display name")
    netBenefit: NetBenefit = Field(NetBenefit.NONE, description="None, Positive or Negative")
    dailyAmount: Optional[int] = Field(None, description="Daily goal")
    weeklyAmount: Optional[int] = Field(None, description="Weekly goal")
    unit: Optional[str] = Field(None, description="Unit of the amount")
    
    def to_activity_type(self, type_id: int = 0) -> ActivityType:
        return ActivityType(
            id=type_id,
            name=self.name,
            net_benefit=self.netBenefit,
            daily_amount=self.dailyAmount,
            weekly_amount=self.weeklyAmount,
            unit=self.unit,
        )


@router.get("", response_model=list[ActivityType])
async def list_activity_types(
    store: ActivityTypeStore = Depends(get_activity_type_store),
):
    """
    List activity types sorted by name.
    """
    return await store.list_all()


@router.get("/{type_id}", response_model=ActivityType)
async def get_activity_type(
    type_id: int,
    store: ActivityTypeStore = Depends(get_activity_type_store),
):
    activity_type = await store.get_by_id(type_id)
    if not activity_type:
        raise HTTPException(status_code=404, detail="Activity type not found")
    return activity_type


@router.post("", response_model=ActivityType)
async def create_activity_type(
    request: ActivityTypeRequest,
    store: ActivityTypeStore = Depends(get_activity_type_store),
):
    return await store.add(request.to_activity_type())


@router.put("/{type_id}", response_model=ActivityType)
async def update_activity_type(
    type_id: int,
    request: ActivityTypeRequest,
    store: ActivityTypeStore = Depends(get_activity_type_store),
):
    activity_type = await store.update(request.to_activity_type(type_id))
    if not activity_type:
        raise HTTPException(status_code=404, detail="Activity type not found")
    return activity_type


@router.delete("/{type_id}")
async def delete_activity_type(
    type_id: int,
    store: ActivityTypeStore = Depends(get_activity_type_store),
):
    if not await store.delete(type_id):
        raise HTTPException(status_code=404, detail="Activity type not found")
    return {"message": "Activity type deleted"}


@router.get("/{type_id}/progress")
async def get_goal_progress(
    type_id: int,
    duration: DurationOption = DurationOption.WEEK,
    services: TrainerServices = Depends(get_services),
):
    """
    Total logged for a type within a window, against its goal.
    """
    activity_type = await services.activity_types.get_by_id(type_id)
    if not activity_type:
        raise HTTPException(status_code=404, detail="Activity type not found")
    
    progress = await services.goals.progress(services.activities, activity_type, duration)
    return {
        "activityTypeId": progress.activity_type_id,
        "duration": progress.duration.value,
        "start": progress.start.isoformat(),
        "end": progress.end.isoformat(),
        "total": progress.total,
        "goal": progress.goal,
        "met": progress.met,
    }
