"""
Goals - Goal amounts per reporting window and progress against them.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from trainer.models.activity import ActivityType, NetBenefit, to_local_naive
from trainer.services.activity_repository import ActivityRepository
from trainer.services.weeks import DurationOption, date_range_for


@dataclass
class GoalProgress:
    """Total logged for one activity type within a window, against its goal."""
    activity_type_id: int
    duration: DurationOption
    start: datetime
    end: datetime
    total: int
    goal: Optional[int]
    net_benefit: NetBenefit = NetBenefit.NONE
    
    @property
    def met(self) -> Optional[bool]:
        """
        Whether the goal is met, or None without a goal.
        
        For activities with a negative net benefit the goal is a ceiling.
        """
        if self.goal is None:
            return None
        if self.net_benefit == NetBenefit.NEGATIVE:
            return self.total <= self.goal
        return self.total >= self.goal


class GoalService:
    """Looks up goal amounts and measures progress."""
    
    def get_goal_amount(
        self,
        activity_type: ActivityType,
        duration: DurationOption
    ) -> Optional[int]:
        """Goal amount for a window, derived from the daily/weekly amounts."""
        if duration == DurationOption.LAST_24_HOURS:
            return activity_type.daily_amount
        if duration in (DurationOption.LAST_7_DAYS, DurationOption.WEEK):
            return activity_type.weekly_amount
        if duration == DurationOption.LAST_4_WEEKS:
            if activity_type.weekly_amount is not None:
                return activity_type.weekly_amount * 4
            if activity_type.daily_amount is not None:
                return activity_type.daily_amount * 28
        return None
    
    async def progress(
        self,
        repository: ActivityRepository,
        activity_type: ActivityType,
        duration: DurationOption,
        now: Optional[datetime] = None
    ) -> GoalProgress:
        """
        Sum the amounts logged for a type inside the window.
        
        Args:
            repository: Source of activities
            activity_type: Type to measure
            duration: Reporting window
            now: Reference time, converted to local time (defaults to now)
        """
        now = to_local_naive(now) if now else datetime.now()
        start, end = date_range_for(duration, now)
        
        activities = await repository.list_all(start, end)
        total = sum(
            a.amount for a in activities
            if a.activity_type_id == activity_type.id and start <= a.when <= end
        )
        
        return GoalProgress(
            activity_type_id=activity_type.id,
            duration=duration,
            start=start,
            end=end,
            total=total,
            goal=self.get_goal_amount(activity_type, duration),
            net_benefit=activity_type.net_benefit,
        )
