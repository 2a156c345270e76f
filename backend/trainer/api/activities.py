"""
Activities API endpoints.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from trainer.api.deps import get_activity_repository
from trainer.core.logging import get_logger
from trainer.models.activity import Activity
from trainer.services import ActivityRepository

logger = get_logger(__name__)
router = APIRouter()


# ========================================
# Request Schemas
# ========================================

class ActivityRequest(BaseModel):
    """Request to create or update an activity."""
    activityTypeId: int = Field(..., description="Activity type ID")
    when: datetime = Field(..., description="When the activity happened")
    amount: int = Field(0, description="Quantity logged")
    notes: str = Field("", description="Free-form notes")
    
    def to_activity(self, activity_id: int = 0) -> Activity:
        return Activity(
            id=activity_id,
            activity_type_id=self.activityTypeId,
            when=self.when,
            amount=self.amount,
            notes=self.notes,
        )


# ========================================
# API Endpoints
# ========================================

@router.get("", response_model=list[Activity])
async def list_activities(
    start: Optional[datetime] = Query(None, description="Range start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Range end (inclusive)"),
    activityTypeId: Optional[int] = Query(None, description="Only this activity type"),
    repository: ActivityRepository = Depends(get_activity_repository),
):
    """
    List activities, newest first.
    """
    if activityTypeId is not None and start is None and end is None:
        return await repository.list_by_type(activityTypeId)
    
    activities = await repository.list_all(start, end)
    if activityTypeId is not None:
        activities = [a for a in activities if a.activity_type_id == activityTypeId]
    return activities


@router.get("/weeks", response_model=list[str])
async def list_weeks(
    repository: ActivityRepository = Depends(get_activity_repository),
):
    """
    Get the week keys that have activities.
    """
    return await repository.list_available_week_keys()


@router.get("/{activity_id}", response_model=Activity)
async def get_activity(
    activity_id: int,
    repository: ActivityRepository = Depends(get_activity_repository),
):
    """
    Get a specific activity by ID.
    """
    activity = await repository.get_by_id(activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    return activity


@router.post("", response_model=Activity)
async def create_activity(
    request: ActivityRequest,
    repository: ActivityRepository = Depends(get_activity_repository),
):
    """
    Log a new activity.
    """
    return await repository.add(request.to_activity())


@router.put("/{activity_id}", response_model=Activity)
async def update_activity(
    activity_id: int,
    request: ActivityRequest,
    repository: ActivityRepository = Depends(get_activity_repository),
):
    """
    Update an activity, moving it to another week if its time changed.
    """
    activity = await repository.update(request.to_activity(activity_id))
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    return activity


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: int,
    repository: ActivityRepository = Depends(get_activity_repository),
):
    """
    Delete an activity.
    """
    if not await repository.delete(activity_id):
        raise HTTPException(status_code=404, detail="Activity not found")
    return {"message": "Activity deleted"}
