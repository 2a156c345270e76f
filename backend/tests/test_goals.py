"""
Tests for goal lookups and progress.
"""

from datetime import datetime, timedelta, timezone

import pytest

from trainer.models.activity import ActivityType, NetBenefit
from trainer.services import GoalService
from trainer.services.weeks import DurationOption

from tests.conftest import make_activity


NOW = datetime(2025, 1, 15, 12, 0)


@pytest.fixture
def goals() -> GoalService:
    return GoalService()


class TestGoalAmount:
    """Test goal amounts per window."""

    def test_daily_and_weekly(self, goals):
        water = ActivityType(id=1, name="Water", daily_amount=8, weekly_amount=50)

        assert goals.get_goal_amount(water, DurationOption.LAST_24_HOURS) == 8
        assert goals.get_goal_amount(water, DurationOption.LAST_7_DAYS) == 50
        assert goals.get_goal_amount(water, DurationOption.WEEK) == 50
        assert goals.get_goal_amount(water, DurationOption.LAST_4_WEEKS) == 200

    def test_four_weeks_falls_back_to_daily(self, goals):
        steps = ActivityType(id=1, name="Steps", daily_amount=10)
        assert goals.get_goal_amount(steps, DurationOption.LAST_4_WEEKS) == 280

    def test_no_goal(self, goals):
        notes = ActivityType(id=1, name="Notes")

        for duration in DurationOption:
            assert goals.get_goal_amount(notes, duration) is None


class TestProgress:
    """Test summing logged amounts against a goal."""

    async def test_week_progress(self, goals, repository):
        water = ActivityType(id=1, name="Water", net_benefit=NetBenefit.POSITIVE, weekly_amount=10)
        await repository.add(make_activity(datetime(2025, 1, 13, 8), activity_type_id=1, amount=4))
        await repository.add(make_activity(datetime(2025, 1, 18, 8), activity_type_id=1, amount=7))
        await repository.add(make_activity(datetime(2025, 1, 14, 8), activity_type_id=2, amount=100))
        await repository.add(make_activity(datetime(2025, 1, 12, 8), activity_type_id=1, amount=100))

        progress = await goals.progress(repository, water, DurationOption.WEEK, now=NOW)

        assert progress.total == 11
        assert progress.goal == 10
        assert progress.met is True

    async def test_relative_window_filters_exact_times(self, goals, repository):
        water = ActivityType(id=1, name="Water", daily_amount=8)
        await repository.add(make_activity(NOW - timedelta(hours=2), amount=3))
        await repository.add(make_activity(NOW - timedelta(hours=30), amount=5))

        progress = await goals.progress(repository, water, DurationOption.LAST_24_HOURS, now=NOW)

        assert progress.total == 3
        assert progress.met is False

    async def test_negative_benefit_goal_is_a_ceiling(self, goals, repository):
        coffee = ActivityType(id=1, name="Coffee", net_benefit=NetBenefit.NEGATIVE, daily_amount=2)
        await repository.add(make_activity(NOW - timedelta(hours=1), amount=1))

        progress = await goals.progress(repository, coffee, DurationOption.LAST_24_HOURS, now=NOW)

        assert progress.met is True

    async def test_without_goal_met_is_none(self, goals, repository):
        progress = await goals.progress(repository, ActivityType(id=1, name="Notes"), DurationOption.WEEK, now=NOW)

        assert progress.total == 0
        assert progress.met is None

    async def test_aware_times_are_compared_as_local_time(self, goals, repository):
        water = ActivityType(id=1, name="Water", daily_amount=8)
        now = datetime(2025, 1, 15, 12, tzinfo=timezone.utc)
        await repository.add(make_activity(now - timedelta(hours=2), amount=3))
        await repository.add(make_activity(NOW - timedelta(days=3), amount=5))

        progress = await goals.progress(repository, water, DurationOption.LAST_24_HOURS, now=now)

        assert progress.total == 3
        assert progress.start.tzinfo is None
