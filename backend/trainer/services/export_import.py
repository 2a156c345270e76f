"""
Export/Import - Whole-dataset transfer as a portable JSON document.

Document shape:
    {
        "activities": {"YYYY.WW": [Activity, ...], ...},
        "activityTypes": [ActivityType, ...],
        "exportDate": "<ISO-8601 UTC timestamp>"
    }

Imports also accept activities as a flat array (older exports) and the
capitalized field names Activities/ActivityTypes.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from trainer.core.config import settings
from trainer.core.exceptions import FormatError, ImportFormatError
from trainer.core.logging import get_logger
from trainer.models.activity import Activity, ActivityList, ActivityType, ActivityTypeList
from trainer.services.activity_repository import ActivityRepository
from trainer.services.activity_store import ActivityStore, WeeklyCapableStore, group_by_week
from trainer.services.weeks import parse_week_key

logger = get_logger(__name__)

WeeklyActivities = TypeAdapter(Dict[str, List[Activity]])


@dataclass
class ImportPlan:
    """A fully validated import document, ready to write."""
    flat_activities: Optional[List[Activity]] = None
    weekly_activities: Optional[Dict[str, List[Activity]]] = None
    activity_types: Optional[List[ActivityType]] = None

    @property
    def has_activities(self) -> bool:
        return self.flat_activities is not None or self.weekly_activities is not None

    def all_activities(self) -> List[Activity]:
        if self.flat_activities is not None:
            return list(self.flat_activities)
        if self.weekly_activities is not None:
            return [a for week in self.weekly_activities.values() for a in week]
        return []


@dataclass
class ImportResult:
    """Summary of what an import wrote."""
    activities_imported: int = 0
    activity_types_imported: Optional[int] = None
    weeks_written: List[str] = field(default_factory=list)
    next_id: Optional[int] = None


def _pick(root: Dict[str, Any], name: str) -> Any:
    """Field by camelCase name, falling back to PascalCase only if absent."""
    if name in root:
        return root[name]
    return root.get(name[:1].upper() + name[1:])


class ExportImportCodec:
    """
    Serializes the dataset to and from the transfer document.

    The whole document is parsed and validated before anything is
    written, so a malformed document leaves storage untouched.
    """

    def __init__(self, store: ActivityStore, repository: ActivityRepository):
        self.store = store
        self.repository = repository
        self.weekly: Optional[WeeklyCapableStore] = (
            store if isinstance(store, WeeklyCapableStore) else None
        )

    # ========================================
    # Export
    # ========================================

    async def export_data(self) -> Dict[str, Any]:
        """Build the export document, activities grouped by week."""
        activities = await self.store.get_all_activities()
        activity_types = await self.store.get_activity_types()

        by_week = group_by_week(activities)

        document = {
            "activities": {
                week_key: [a.to_json_dict() for a in by_week[week_key]]
                for week_key in sorted(by_week)
            },
            "activityTypes": [t.to_json_dict() for t in activity_types],
            "exportDate": datetime.now(timezone.utc).isoformat(),
        }

        logger.info(
            "Exported data",
            activities=len(activities),
            weeks=len(by_week),
            activity_types=len(activity_types)
        )
        return document

    async def export_json(self, indent: Optional[int] = None) -> str:
        """Export document as JSON text."""
        indent = settings.EXPORT_INDENT if indent is None else indent
        return json.dumps(await self.export_data(), indent=indent or None, ensure_ascii=False)

    # ========================================
    # Import
    # ========================================

    def parse(self, json_text: Union[str, bytes]) -> ImportPlan:
        """
        Parse and validate an import document without writing anything.

        Raises:
            ImportFormatError: If the text is not JSON or a field has the wrong shape
        """
        try:
            root = json.loads(json_text)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            raise ImportFormatError(f"Invalid import data format: {e}") from e

        if not isinstance(root, dict):
            raise ImportFormatError("Invalid import data format: document must be a JSON object")

        plan = ImportPlan()
        raw_activities = _pick(root, "activities")
        raw_types = _pick(root, "activityTypes")

        try:
            if isinstance(raw_activities, list):
                plan.flat_activities = ActivityList.validate_python(raw_activities)
            elif isinstance(raw_activities, dict):
                plan.weekly_activities = WeeklyActivities.validate_python(raw_activities)
                for week_key in plan.weekly_activities:
                    parse_week_key(week_key)
            elif raw_activities is not None:
                raise ImportFormatError(
                    "Invalid import data format: activities must be an array or an object"
                )

            if raw_types is not None:
                plan.activity_types = ActivityTypeList.validate_python(raw_types)
        except (ValidationError, FormatError) as e:
            raise ImportFormatError(f"Invalid import data format: {e}") from e

        ids = [a.id for a in plan.all_activities()]
        invalid = sorted({i for i in ids if i <= 0})
        if invalid:
            raise ImportFormatError(f"Invalid import data format: activity ids must be positive, got {invalid}")

        if len(ids) != len(set(ids)):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            raise ImportFormatError(f"Invalid import data format: duplicate activity ids {duplicates}")

        return plan

    async def import_data(self, json_text: Union[str, bytes]) -> ImportResult:
        """
        Import a transfer document.

        A flat activity array replaces the whole collection. A week-keyed
        object rewrites the weeks it names (activities are bucketed by their
        own timestamp) and leaves other weeks alone, except that stored
        activities reusing an imported id are dropped. Activity types are
        replaced only when present. The id counter is recalculated once
        if any activities were written.

        Raises:
            ImportFormatError: If the document is malformed; nothing is written
        """
        plan = self.parse(json_text)
        result = ImportResult()

        if plan.flat_activities is not None:
            await self.store.set_all_activities(plan.flat_activities)
            result.activities_imported = len(plan.flat_activities)
            result.weeks_written = sorted(group_by_week(plan.flat_activities))
        elif plan.weekly_activities is not None:
            imported = plan.all_activities()
            if self.weekly:
                result.weeks_written = await self._write_weeks(plan.weekly_activities, imported)
            else:
                await self.store.set_all_activities(imported)
                result.weeks_written = sorted(group_by_week(imported))
            result.activities_imported = len(imported)

        if plan.activity_types is not None:
            await self.store.set_activity_types(plan.activity_types)
            result.activity_types_imported = len(plan.activity_types)

        if plan.has_activities:
            result.next_id = await self.repository.recalculate_next_id()

        logger.info(
            "Imported data",
            activities=result.activities_imported,
            weeks=len(result.weeks_written),
            activity_types=result.activity_types_imported,
            next_id=result.next_id
        )
        return result

    async def _write_weeks(
        self,
        weekly_activities: Dict[str, List[Activity]],
        imported: List[Activity]
    ) -> List[str]:
        groups = group_by_week(imported)
        touched = list(dict.fromkeys(list(weekly_activities) + list(groups)))
        imported_ids = {a.id for a in imported}

        for week_key in await self.weekly.list_week_keys():
            if week_key in groups or week_key in weekly_activities:
                continue
            week = await self.weekly.get_week(week_key)
            kept = [a for a in week if a.id not in imported_ids]
            if len(kept) != len(week):
                await self.weekly.set_week(week_key, kept)
                logger.warning(
                    "Dropped stored activities whose ids were re-imported",
                    week_key=week_key,
                    count=len(week) - len(kept)
                )

        for week_key in touched:
            await self.weekly.set_week(week_key, groups.get(week_key, []))

        return sorted(touched)
