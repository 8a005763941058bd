from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Dict, Optional

import pytest

from ritual.apps.api.services.routine import (
    ActivityEditor,
    CompletionTracker,
    FixedClock,
    RoutineService,
    RoutineSinks,
    StreakAnalyzer,
)
from ritual.libs.schemas import Activity, AppSettings, DailyCompletionRecord, RoutineDefinition

TODAY = date(2026, 3, 10)


class InMemoryRoutineStore:
    """Compare-and-swap store with the same contract as PostgresRoutineStore.

    `load_completion` yields to the loop after reading so concurrent callers
    interleave the way they would against a real database.
    """

    def __init__(self) -> None:
        self.routines: Dict[str, RoutineDefinition] = {}
        self.completions: Dict[tuple[str, date], DailyCompletionRecord] = {}
        self.completion_writes = 0
        self.routine_writes = 0

    def put_routine(self, user_id: str, activities: list[Activity], **extra: Any) -> RoutineDefinition:
        routine = RoutineDefinition(
            user_id=user_id,
            activities=activities,
            total_duration_minutes=sum(a.duration_minutes or 0 for a in activities),
            version=1,
            **extra,
        )
        self.routines[user_id] = routine
        return routine

    def put_completion(self, user_id: str, day: date, ids: list[str], all_completed: bool) -> None:
        self.completions[(user_id, day)] = DailyCompletionRecord(
            user_id=user_id, day=day, completed_activity_ids=ids, all_completed=all_completed, version=1
        )

    async def load_active_routine(self, user_id: str) -> Optional[RoutineDefinition]:
        routine = self.routines.get(user_id)
        return routine if routine and routine.is_active else None

    async def save_routine(self, routine: RoutineDefinition) -> bool:
        stored = self.routines.get(routine.user_id)
        if stored is None or stored.version != routine.version:
            return False
        self.routines[routine.user_id] = routine.model_copy(update={"version": routine.version + 1})
        self.routine_writes += 1
        return True

    async def load_completion(self, user_id: str, day: date) -> Optional[DailyCompletionRecord]:
        record = self.completions.get((user_id, day))
        await asyncio.sleep(0)
        return record

    async def save_completion(self, record: DailyCompletionRecord) -> bool:
        key = (record.user_id, record.day)
        stored = self.completions.get(key)
        if record.version == 0:
            if stored is not None:
                return False
        elif stored is None or stored.version != record.version:
            return False
        self.completions[key] = record.model_copy(update={"version": record.version + 1})
        self.completion_writes += 1
        return True

    async def list_completed_days(self, user_id: str, since: Optional[date] = None) -> list[date]:
        return sorted(
            (
                day
                for (uid, day), record in self.completions.items()
                if uid == user_id and record.all_completed and (since is None or day >= since)
            ),
            reverse=True,
        )

    async def list_completions(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = 30,
    ) -> list[DailyCompletionRecord]:
        records = sorted(
            (
                record
                for (uid, day), record in self.completions.items()
                if uid == user_id and (start is None or day >= start) and (end is None or day <= end)
            ),
            key=lambda record: record.day,
            reverse=True,
        )
        return records if limit is None else records[:limit]


class RecordingJournal:
    def __init__(self) -> None:
        self.entries: list[Dict[str, Any]] = []

    async def log(self, user_id, entry_type, entry_text, activity_name=None, metadata=None) -> None:
        self.entries.append(
            {
                "user_id": user_id,
                "entry_type": entry_type,
                "entry_text": entry_text,
                "activity_name": activity_name,
                "metadata": metadata or {},
            }
        )


class RecordingMilestones:
    def __init__(self) -> None:
        self.awards: list[tuple[str, str]] = []

    async def award(self, user_id, milestone_id, increment=1) -> None:
        self.awards.append((user_id, milestone_id))


class RecordingMemory:
    def __init__(self) -> None:
        self.items: list[tuple[str, str, str]] = []

    async def remember(self, user_id, title, summary) -> None:
        self.items.append((user_id, title, summary))


class ExplodingSink:
    async def log(self, *args, **kwargs) -> None:
        raise RuntimeError("journal down")

    async def award(self, *args, **kwargs) -> None:
        raise RuntimeError("milestones down")

    async def remember(self, *args, **kwargs) -> None:
        raise RuntimeError("memory down")


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def store() -> InMemoryRoutineStore:
    return InMemoryRoutineStore()


@pytest.fixture
def sinks() -> RoutineSinks:
    return RoutineSinks(journal=RecordingJournal(), milestones=RecordingMilestones(), memory=RecordingMemory())


@pytest.fixture
def morning(store: InMemoryRoutineStore) -> RoutineDefinition:
    return store.put_routine(
        "user-1",
        [
            Activity(id="a1", name="Stretch", duration_minutes=10, icon="🧘"),
            Activity(id="a2", name="Gratitude journal", duration_minutes=5),
            Activity(id="a3", name="Drink water", duration_minutes=1),
        ],
        routine_name="Gentle start",
    )


@pytest.fixture
def tracker(store, sinks, clock, settings) -> CompletionTracker:
    return CompletionTracker(store, sinks, clock, settings)


@pytest.fixture
def editor(store, sinks, settings) -> ActivityEditor:
    return ActivityEditor(store, sinks, settings)


@pytest.fixture
def analyzer(store, clock, settings) -> StreakAnalyzer:
    return StreakAnalyzer(store, clock, settings)


@pytest.fixture
def service(store, sinks, clock, settings) -> RoutineService:
    return RoutineService(store=store, sinks=sinks, clock=clock, settings=settings)


@pytest.fixture
def exploding_sinks() -> RoutineSinks:
    broken = ExplodingSink()
    return RoutineSinks(journal=broken, milestones=broken, memory=broken)
