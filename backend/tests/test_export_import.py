"""
Tests for exporting and importing the whole dataset.
"""

import json
from datetime import datetime

import pytest

from trainer.core.exceptions import ImportFormatError
from trainer.models.activity import ActivityType, NetBenefit
from trainer.services import (
    ActivityRepository,
    ActivityTypeStore,
    ExportImportCodec,
    FlatActivityStore,
    WeeklyActivityStore,
)
from trainer.services.storage import InMemoryKeyValueStore

from tests.conftest import make_activity


JAN_15 = datetime(2025, 1, 15, 9, 0)     # 2025.03
MAR_05 = datetime(2025, 3, 5, 7, 0)      # 2025.10
JUL_22 = datetime(2025, 7, 22, 7, 0)     # 2025.30


def activity_json(id: int, when: datetime, type_id: int = 1, amount: int = 1, notes: str = "") -> dict:
    return {"id": id, "activityTypeId": type_id, "when": when.isoformat(), "amount": amount, "notes": notes}


class TestExport:
    """Test building the export document."""

    async def test_empty_export(self, codec):
        document = await codec.export_data()

        assert document["activities"] == {}
        assert document["activityTypes"] == []
        assert "exportDate" in document

    async def test_groups_activities_by_week(self, codec, repository, type_store):
        await type_store.add(ActivityType(name="Water", net_benefit=NetBenefit.POSITIVE))
        await repository.add(make_activity(MAR_05, amount=2))
        await repository.add(make_activity(JAN_15, amount=3, notes="morning"))

        document = await codec.export_data()

        assert list(document["activities"]) == ["2025.03", "2025.10"]
        assert document["activities"]["2025.03"] == [
            {"id": 2, "activityTypeId": 1, "when": "2025-01-15T09:00:00", "amount": 3, "notes": "morning"}
        ]
        assert document["activityTypes"][0]["netBenefit"] == "Positive"

    async def test_export_date_is_utc(self, codec):
        exported = datetime.fromisoformat((await codec.export_data())["exportDate"])
        assert exported.utcoffset().total_seconds() == 0

    async def test_export_json(self, codec, repository):
        await repository.add(make_activity(JAN_15))

        text = await codec.export_json(indent=0)
        assert "\n" not in text
        assert json.loads(text)["activities"]["2025.03"][0]["id"] == 1


class TestImport:
    """Test importing documents in their accepted shapes."""

    async def test_week_keyed_document(self, codec, store, type_store):
        document = {
            "activities": {
                "2025.03": [activity_json(1, JAN_15)],
                "2025.10": [activity_json(2, MAR_05)],
            },
            "activityTypes": [{"id": 1, "name": "Water", "netBenefit": "Positive", "dailyAmount": 8}],
        }

        result = await codec.import_data(json.dumps(document))

        assert result.activities_imported == 2
        assert result.weeks_written == ["2025.03", "2025.10"]
        assert await store.list_week_keys() == ["2025.03", "2025.10"]
        assert (await type_store.get_by_id(1)).daily_amount == 8

    async def test_flat_array_without_types_leaves_types_untouched(self, codec, store, type_store, kv):
        await type_store.add(ActivityType(name="Water"))
        types_before = kv.snapshot()["activityTypes"]

        await codec.import_data(json.dumps({"activities": [activity_json(1, JAN_15), activity_json(2, MAR_05)]}))

        assert kv.snapshot()["activityTypes"] == types_before
        assert await store.list_week_keys() == ["2025.03", "2025.10"]

    async def test_flat_array_replaces_everything(self, codec, repository, store):
        await repository.add(make_activity(JUL_22))

        await codec.import_data(json.dumps({"activities": [activity_json(5, JAN_15)]}))

        assert await store.list_week_keys() == ["2025.03"]

    async def test_week_keyed_import_keeps_other_weeks(self, codec, repository, store):
        await repository.add(make_activity(JUL_22))

        await codec.import_data(json.dumps({"activities": {"2025.03": [activity_json(5, JAN_15)]}}))

        assert await store.list_week_keys() == ["2025.03", "2025.30"]

    async def test_pascal_case_document(self, codec, store, type_store):
        document = {
            "Activities": {"2025.03": [{"Id": 4, "ActivityTypeId": 2, "When": JAN_15.isoformat(), "Amount": 6, "Notes": "x"}]},
            "ActivityTypes": [{"Id": 2, "Name": "Pushups", "NetBenefit": 1}],
            "ExportDate": "2025-01-20T10:00:00Z",
        }

        await codec.import_data(json.dumps(document))

        week = await store.get_week("2025.03")
        assert (week[0].id, week[0].activity_type_id, week[0].amount) == (4, 2, 6)
        assert (await type_store.get_by_id(2)).net_benefit == NetBenefit.POSITIVE

    async def test_lowercase_key_wins_over_pascal_case(self, codec, store):
        document = {
            "activities": [activity_json(1, JAN_15)],
            "Activities": [activity_json(2, MAR_05)],
        }

        await codec.import_data(json.dumps(document))

        assert [a.id for a in await store.get_all_activities()] == [1]

    async def test_types_only_import_does_not_touch_activities(self, codec, repository, store, monkeypatch):
        await repository.add(make_activity(JAN_15))
        calls = []
        monkeypatch.setattr(repository, "recalculate_next_id", lambda: calls.append(1))

        result = await codec.import_data(json.dumps({"activityTypes": [{"id": 1, "name": "Water"}]}))

        assert result.activity_types_imported == 1
        assert result.next_id is None
        assert calls == []
        assert await store.list_week_keys() == ["2025.03"]

    async def test_recalculates_next_id_once(self, codec, repository, monkeypatch):
        original = repository.recalculate_next_id
        calls = []

        async def counting():
            calls.append(1)
            return await original()

        monkeypatch.setattr(repository, "recalculate_next_id", counting)

        result = await codec.import_data(json.dumps({
            "activities": {"2025.03": [activity_json(1, JAN_15)], "2025.10": [activity_json(2, MAR_05)]},
        }))

        assert calls == [1]
        assert result.next_id == 3

    async def test_imported_ids_do_not_collide_with_new_adds(self, codec, repository):
        for _ in range(3):
            await repository.add(make_activity(JAN_15))

        await codec.import_data(json.dumps({
            "activities": {"2025.30": [activity_json(i, JUL_22, amount=i) for i in (20, 21, 22)]},
        }))
        await repository.recalculate_next_id()

        assert (await repository.add(make_activity(MAR_05))).id == 23
        ids = [a.id for a in await repository.list_all()]
        assert len(ids) == len(set(ids))

    async def test_colliding_ids_in_untouched_weeks_are_dropped(self, codec, repository, store):
        first = await repository.add(make_activity(JUL_22))

        await codec.import_data(json.dumps({"activities": {"2025.03": [activity_json(first.id, JAN_15)]}}))

        assert await store.list_week_keys() == ["2025.03"]
        assert [a.id for a in await repository.list_all()] == [first.id]

    async def test_mislabelled_week_is_rebucketed(self, codec, store):
        await codec.import_data(json.dumps({"activities": {"2025.04": [activity_json(1, JAN_15)]}}))

        assert await store.list_week_keys() == ["2025.03"]

    async def test_empty_week_in_document_clears_that_week(self, codec, repository, store):
        await repository.add(make_activity(JAN_15))

        await codec.import_data(json.dumps({"activities": {"2025.03": []}}))

        assert await store.list_week_keys() == []

    async def test_flat_store_flattens_weekly_document(self):
        kv = InMemoryKeyValueStore()
        store = FlatActivityStore(kv)
        codec = ExportImportCodec(store, ActivityRepository(store))

        await codec.import_data(json.dumps({
            "activities": {"2025.03": [activity_json(1, JAN_15)], "2025.10": [activity_json(2, MAR_05)]},
        }))

        assert set(kv.snapshot()) == {"activities", "activityNextId"}
        assert [a.id for a in await store.get_all_activities()] == [1, 2]

    async def test_export_then_import_into_fresh_store(self, codec, repository, type_store):
        await type_store.add(ActivityType(name="Water", weekly_amount=40, unit="glasses"))
        await repository.add(make_activity(JAN_15, amount=2, notes="a"))
        await repository.add(make_activity(MAR_05, amount=4, notes="b"))
        text = await codec.export_json()

        fresh_store = WeeklyActivityStore(InMemoryKeyValueStore())
        fresh_repository = ActivityRepository(fresh_store)
        await ExportImportCodec(fresh_store, fresh_repository).import_data(text)

        assert await fresh_repository.list_all() == await repository.list_all()
        assert await ActivityTypeStore(fresh_store).list_all() == await type_store.list_all()
        assert fresh_repository.next_id == 3


class TestMalformedImport:
    """Test that malformed documents fail without writing."""

    @pytest.fixture
    async def seeded(self, repository, type_store, kv):
        await type_store.add(ActivityType(name="Water"))
        await repository.add(make_activity(JAN_15))
        return kv.snapshot()

    @pytest.mark.parametrize(
        "text",
        [
            "{not json",
            "",
            "[1, 2, 3]",
            '{"activities": "yesterday"}',
            '{"activities": [{"id": 1, "activityTypeId": 1}]}',
            '{"activities": {"2025-03": []}}',
            '{"activities": [], "activityTypes": [{"id": "one", "name": "x"}]}',
            '{"activities": [], "activityTypes": {"id": 1}}',
            '{"activities": [{"id": -4, "activityTypeId": 1, "when": "2025-01-15T00:00:00"}]}',
            '{"activities": [{"activityTypeId": 1, "when": "2025-01-15T00:00:00"}]}',
            '{"activities": {"2025.03": [{"id": 0, "activityTypeId": 1, "when": "2025-01-15T00:00:00"}]}}',
        ],
    )
    async def test_rejected_and_storage_unchanged(self, codec, kv, seeded, text):
        with pytest.raises(ImportFormatError):
            await codec.import_data(text)

        assert kv.snapshot() == seeded

    async def test_duplicate_ids_rejected(self, codec, kv, seeded):
        document = {"activities": {"2025.03": [activity_json(1, JAN_15)], "2025.10": [activity_json(1, MAR_05)]}}

        with pytest.raises(ImportFormatError, match="duplicate"):
            await codec.import_data(json.dumps(document))
        assert kv.snapshot() == seeded

    async def test_non_positive_ids_rejected(self, codec, kv, seeded):
        document = {"activities": {"2025.03": [activity_json(0, JAN_15)], "2025.10": [activity_json(-1, MAR_05)]}}

        with pytest.raises(ImportFormatError, match="positive"):
            await codec.import_data(json.dumps(document))
        assert kv.snapshot() == seeded

    async def test_invalid_json_wraps_cause(self, codec):
        with pytest.raises(ImportFormatError) as exc_info:
            await codec.import_data("{not json")

        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)
