"""Per-day completion tracking for a user's active routine."""

from __future__ import annotations

import logging
from typing import Optional

from ritual.libs.schemas.routine import (
    Activity,
    BulkCompletionResult,
    CompletionResult,
    DailyCompletionRecord,
    RoutineDefinition,
)
from ritual.libs.schemas.settings import AppSettings, get_settings

from .catalog import ActivityCatalog
from .clock import Clock, ZoneClock
from .errors import ConcurrentUpdateConflict, EmptyRoutineError, NoActiveRoutineError
from .matching import resolve_or_raise
from .sinks import RoutineSinks
from .store import RoutineStore

logger = logging.getLogger(__name__)


async def load_active_catalog(store: RoutineStore, user_id: str) -> tuple[RoutineDefinition, ActivityCatalog]:
    """Active routine and its catalog, or the error a caller should surface."""

    routine = await store.load_active_routine(user_id)
    if routine is None:
        raise NoActiveRoutineError(user_id)
    catalog = ActivityCatalog.from_routine(routine)
    if len(catalog) == 0:
        raise EmptyRoutineError(user_id)
    return routine, catalog


class CompletionTracker:
    """Marks activities done for today, idempotently and without lost updates.

    Every write is a compare-and-swap on the record version. A lost race
    reloads the record and reapplies the union, so two callers completing
    different activities on the same day both land.
    """

    def __init__(
        self,
        store: RoutineStore,
        sinks: Optional[RoutineSinks] = None,
        clock: Optional[Clock] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._store = store
        self._sinks = sinks or RoutineSinks()
        self._clock = clock or ZoneClock(settings.timezone)
        self._max_attempts = settings.max_update_attempts
        self._milestone_id = settings.milestone_id

    async def today_record(self, user_id: str) -> Optional[DailyCompletionRecord]:
        return await self._store.load_completion(user_id, self._clock.today())

    async def complete_one(self, user_id: str, identifier: str) -> CompletionResult:
        _, catalog = await load_active_catalog(self._store, user_id)
        match = resolve_or_raise(identifier, catalog).activity
        day = self._clock.today()
        total = len(catalog)

        for attempt in range(1, self._max_attempts + 1):
            current = await self._store.load_completion(user_id, day) or DailyCompletionRecord(user_id=user_id, day=day)
            if current.has(match.id):
                logger.info(
                    "Activity already complete today",
                    extra={"user_id": user_id, "activity_id": match.id},
                )
                return CompletionResult(
                    matched_activity_name=match.name,
                    completed_count_today=len(current.completed_activity_ids),
                    total_activities=total,
                    all_completed=current.all_completed,
                    already_complete=True,
                )
            updated = current.with_completed([match.id], catalog.ids)
            if await self._store.save_completion(updated):
                break
            logger.info(
                "Completion write conflicted, retrying",
                extra={"user_id": user_id, "attempt": attempt},
            )
        else:
            raise ConcurrentUpdateConflict(self._max_attempts)

        count = len(updated.completed_activity_ids)
        first_full = updated.all_completed and not current.all_completed
        logger.info(
            "Activity completed",
            extra={
                "user_id": user_id,
                "activity_id": match.id,
                "progress": f"{count}/{total}",
                "all_completed": updated.all_completed,
            },
        )
        self._after_single(user_id, match, updated, total, first_full)
        return CompletionResult(
            matched_activity_name=match.name,
            completed_count_today=count,
            total_activities=total,
            all_completed=updated.all_completed,
            already_complete=False,
        )

    async def complete_all(self, user_id: str) -> BulkCompletionResult:
        _, catalog = await load_active_catalog(self._store, user_id)
        day = self._clock.today()
        total = len(catalog)

        for attempt in range(1, self._max_attempts + 1):
            current = await self._store.load_completion(user_id, day) or DailyCompletionRecord(user_id=user_id, day=day)
            remaining = [activity_id for activity_id in catalog.ids if not current.has(activity_id)]
            if not remaining:
                return BulkCompletionResult(
                    newly_completed_count=0,
                    total_activities=total,
                    all_were_already_complete=True,
                    newly_completed_names=[],
                )
            updated = current.with_completed(remaining, catalog.ids)
            if await self._store.save_completion(updated):
                break
            logger.info(
                "Bulk completion write conflicted, retrying",
                extra={"user_id": user_id, "attempt": attempt},
            )
        else:
            raise ConcurrentUpdateConflict(self._max_attempts)

        names = catalog.names_for(remaining)
        logger.info(
            "Completed all remaining activities",
            extra={"user_id": user_id, "newly_completed": len(remaining), "total": total},
        )
        self._sinks.fire(
            "journal",
            self._sinks.journal.log(
                user_id,
                "all_activities_completed",
                f"Completed entire morning routine ({total} activities)",
                None,
                {
                    "newly_completed_activity_ids": remaining,
                    "newly_completed_activity_names": names,
                    "total_activities": total,
                    "completion_date": day.isoformat(),
                    "triggered_by": "complete_all_intent",
                    "source": "conversation",
                },
            ),
            user_id=user_id,
        )
        if not current.all_completed:
            self._sinks.fire("milestone", self._sinks.milestones.award(user_id, self._milestone_id), user_id=user_id)
        self._sinks.fire(
            "memory",
            self._sinks.memory.remember(
                user_id,
                "Completed all morning routine activities",
                f"Marked all {len(remaining)} remaining activities as complete ({total}/{total} done)",
            ),
            user_id=user_id,
        )
        return BulkCompletionResult(
            newly_completed_count=len(remaining),
            total_activities=total,
            all_were_already_complete=False,
            newly_completed_names=names,
        )

    def _after_single(
        self,
        user_id: str,
        activity: Activity,
        record: DailyCompletionRecord,
        total: int,
        first_full: bool,
    ) -> None:
        count = len(record.completed_activity_ids)
        self._sinks.fire(
            "journal",
            self._sinks.journal.log(
                user_id,
                "activity_completed",
                f"Completed {activity.name}",
                activity.name,
                {
                    "activity_id": activity.id,
                    "activities_completed_today": count,
                    "total_activities": total,
                    "all_completed": record.all_completed,
                    "source": "conversation",
                },
            ),
            user_id=user_id,
        )
        if first_full:
            self._sinks.fire(
                "journal",
                self._sinks.journal.log(
                    user_id,
                    "all_activities_completed",
                    f"Completed entire morning routine ({total} activities)",
                    None,
                    {
                        "total_activities": total,
                        "completion_date": record.day.isoformat(),
                        "source": "conversation",
                    },
                ),
                user_id=user_id,
            )
            self._sinks.fire("milestone", self._sinks.milestones.award(user_id, self._milestone_id), user_id=user_id)
        self._sinks.fire(
            "memory",
            self._sinks.memory.remember(
                user_id,
                f"Completed {activity.name}",
                f"Marked {activity.name} as complete ({count}/{total} activities done today)",
            ),
            user_id=user_id,
        )


__all__ = ["CompletionTracker", "load_active_catalog"]
