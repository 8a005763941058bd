import json
from datetime import date
from typing import Any

import pytest

from ritual.apps.api.services.routine import store as store_module
from ritual.apps.api.services.routine import sinks as sinks_module
from ritual.apps.api.services.routine.sinks import emit
from ritual.apps.api.services.routine.store import PostgresRoutineStore, completion_from_row, routine_from_row
from ritual.libs.schemas import Activity, DailyCompletionRecord, RoutineDefinition

DAY = date(2026, 3, 10)


def test_routine_row_accepts_text_or_decoded_jsonb():
    activities = [{"id": "a1", "name": "Stretch", "duration_minutes": 10}, {"id": "a2", "name": "Walk"}]
    base = {"user_id": "u1", "duration_minutes": None, "is_active": True, "version": 4}

    from_text = routine_from_row({**base, "activities": json.dumps(activities)})
    from_list = routine_from_row({**base, "activities": activities})

    assert from_text == from_list
    assert [a.name for a in from_text.activities] == ["Stretch", "Walk"]
    assert from_text.total_duration_minutes == 10
    assert from_text.version == 4


def test_garbage_jsonb_parses_to_empty():
    routine = routine_from_row({"user_id": "u1", "activities": "{not json", "version": 1})
    assert routine.activities == []


def test_completion_row_dedupes_ids():
    record = completion_from_row(
        {
            "user_id": "u1",
            "completion_date": DAY,
            "activities_completed": '["a1", "a2", "a1"]',
            "all_completed": False,
            "version": 2,
        }
    )
    assert record.completed_activity_ids == ["a1", "a2"]
    assert record.version == 2


@pytest.mark.asyncio
async def test_save_completion_inserts_new_and_cas_updates_existing(monkeypatch: pytest.MonkeyPatch):
    calls: list[tuple[str, tuple[Any, ...]]] = []
    statuses = iter(["INSERT 0 1", "UPDATE 0"])

    async def fake_execute(query: str, *args: Any) -> str:
        calls.append((query, args))
        return next(statuses)

    monkeypatch.setattr(store_module, "execute", fake_execute)
    pg = PostgresRoutineStore()

    fresh = DailyCompletionRecord(user_id="u1", day=DAY, completed_activity_ids=["a1"])
    assert await pg.save_completion(fresh) is True
    assert "ON CONFLICT (user_id, completion_date) DO NOTHING" in calls[0][0]
    assert calls[0][1] == ("u1", DAY, '["a1"]', False)

    stale = fresh.model_copy(update={"version": 3})
    assert await pg.save_completion(stale) is False
    assert "version = $3" in calls[1][0]
    assert calls[1][1][2] == 3


@pytest.mark.asyncio
async def test_save_routine_serialises_activities(monkeypatch: pytest.MonkeyPatch):
    captured: dict[str, Any] = {}

    async def fake_execute(query: str, *args: Any) -> str:
        captured["args"] = args
        return "UPDATE 1"

    monkeypatch.setattr(store_module, "execute", fake_execute)
    routine = RoutineDefinition(
        user_id="u1",
        activities=[Activity(id="a1", name="Stretch", duration_minutes=10)],
        total_duration_minutes=10,
        version=5,
    )

    assert await PostgresRoutineStore().save_routine(routine) is True
    user_id, version, payload, total = captured["args"]
    assert (user_id, version, total) == ("u1", 5, 10)
    assert json.loads(payload) == [{"id": "a1", "name": "Stretch", "duration_minutes": 10}]


@pytest.mark.asyncio
async def test_load_active_routine_missing(monkeypatch: pytest.MonkeyPatch):
    async def fake_fetch_one(query: str, *args: Any):
        return None

    monkeypatch.setattr(store_module, "fetch_one", fake_fetch_one)
    assert await PostgresRoutineStore().load_active_routine("u1") is None


@pytest.mark.asyncio
async def test_list_completed_days(monkeypatch: pytest.MonkeyPatch):
    async def fake_fetch_all(query: str, *args: Any):
        assert "all_completed = true" in query
        return [{"completion_date": DAY}]

    monkeypatch.setattr(store_module, "fetch_all", fake_fetch_all)
    assert await PostgresRoutineStore().list_completed_days("u1", since=DAY) == [DAY]


@pytest.mark.asyncio
async def test_list_completions_passes_optional_bounds(monkeypatch: pytest.MonkeyPatch):
    seen: list[tuple[Any, ...]] = []

    async def fake_fetch_all(query: str, *args: Any):
        assert "LIMIT $4" in query
        seen.append(args)
        return [
            {
                "user_id": "u1",
                "completion_date": DAY,
                "activities_completed": ["a1"],
                "all_completed": False,
                "version": 1,
            }
        ]

    monkeypatch.setattr(store_module, "fetch_all", fake_fetch_all)
    pg = PostgresRoutineStore()

    records = await pg.list_completions("u1", start=date(2026, 3, 1), limit=5)
    await pg.list_completions("u1", limit=None)

    assert seen == [("u1", date(2026, 3, 1), None, 5), ("u1", None, None, None)]
    assert records[0].completed_activity_ids == ["a1"]
    assert records[0].day == DAY


@pytest.mark.asyncio
async def test_emit_swallows_sink_errors(monkeypatch: pytest.MonkeyPatch, caplog):
    async def broken_execute(query: str, *args: Any) -> str:
        raise RuntimeError("relation does not exist")

    monkeypatch.setattr(sinks_module, "execute", broken_execute)
    journal = sinks_module.PostgresJournalSink()

    ok = await emit("journal", journal.log("u1", "activity_completed", "Completed Stretch"), user_id="u1")

    assert ok is False
    assert "non-critical" in caplog.text
