from __future__ import annotations

from datetime import date
from typing import Optional

from ritual.libs.schemas.routine import (
    Activity,
    ActivityChanges,
    BulkCompletionResult,
    CompletionResult,
    DailyCompletionRecord,
    MatchResult,
    RoutineDefinition,
    StreakResult,
    UpdateResult,
)
from ritual.libs.schemas.settings import AppSettings, get_settings

from .catalog import ActivityCatalog
from .clock import Clock, ZoneClock
from .completion import CompletionTracker, load_active_catalog
from .editor import ActivityEditor
from .matching import resolve_activity
from .sinks import RoutineSinks
from .store import PostgresRoutineStore, RoutineStore
from .streaks import StreakAnalyzer


class RoutineService:
    """Entry point used by chat handlers, scheduled jobs and the HTTP router."""

    def __init__(
        self,
        store: Optional[RoutineStore] = None,
        sinks: Optional[RoutineSinks] = None,
        clock: Optional[Clock] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.store = store or PostgresRoutineStore()
        self.sinks = sinks or RoutineSinks()
        self.clock = clock or ZoneClock(settings.timezone)
        self.tracker = CompletionTracker(self.store, self.sinks, self.clock, settings)
        self.editor = ActivityEditor(self.store, self.sinks, settings)
        self.analyzer = StreakAnalyzer(self.store, self.clock, settings)

    async def resolve_activity(self, user_id: str, query: str) -> MatchResult:
        _, catalog = await load_active_catalog(self.store, user_id)
        return resolve_activity(query, catalog)

    async def complete_activity(self, user_id: str, identifier: str) -> CompletionResult:
        return await self.tracker.complete_one(user_id, identifier)

    async def complete_all_activities(self, user_id: str) -> BulkCompletionResult:
        return await self.tracker.complete_all(user_id)

    async def update_activity(self, user_id: str, identifier: str, changes: ActivityChanges) -> UpdateResult:
        return await self.editor.update(user_id, identifier, changes)

    async def add_activity(self, user_id: str, activity: Activity) -> RoutineDefinition:
        return await self.editor.add(user_id, activity)

    async def list_activities(self, user_id: str) -> tuple[list[Activity], int, Optional[RoutineDefinition]]:
        routine = await self.editor.active_routine(user_id)
        if routine is None:
            return [], 0, None
        catalog = ActivityCatalog.from_routine(routine)
        return catalog.activities, routine.total_duration_minutes, routine

    async def today_completion(self, user_id: str) -> Optional[DailyCompletionRecord]:
        return await self.tracker.today_record(user_id)

    async def completion_history(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 30,
    ) -> list[DailyCompletionRecord]:
        if start is not None and end is not None and start > end:
            raise ValueError("start must not be after end")
        return await self.store.list_completions(user_id, start=start, end=end, limit=limit)

    async def compute_streak(self, user_id: str, window_days: Optional[int] = None) -> StreakResult:
        return await self.analyzer.compute(user_id, window_days)


__all__ = ["RoutineService"]
