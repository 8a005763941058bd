"""Persistence boundary for routines and daily completion records.

Rows are parsed exactly once here into typed schemas; jsonb columns may come
back from asyncpg as text or as decoded lists depending on codec setup.

Writes are compare-and-swap on a `version` column so that a read-modify-write
cycle in the tracker or editor can detect that someone else wrote in between
and retry instead of silently overwriting.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional, Protocol

from ritual.libs.json_utils import dump_json, load_json_list
from ritual.libs.schemas.db import execute, fetch_all, fetch_one
from ritual.libs.schemas.routine import Activity, DailyCompletionRecord, RoutineDefinition

logger = logging.getLogger(__name__)


class RoutineStore(Protocol):
    async def load_active_routine(self, user_id: str) -> Optional[RoutineDefinition]: ...

    async def save_routine(self, routine: RoutineDefinition) -> bool:
        """Persist activities and total if the stored version still equals `routine.version`."""
        ...

    async def load_completion(self, user_id: str, day: date) -> Optional[DailyCompletionRecord]: ...

    async def save_completion(self, record: DailyCompletionRecord) -> bool:
        """Insert when `record.version == 0`, otherwise update iff the stored version matches."""
        ...

    async def list_completed_days(self, user_id: str, since: Optional[date] = None) -> list[date]: ...

    async def list_completions(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = 30,
    ) -> list[DailyCompletionRecord]:
        """Daily records in [start, end], newest first; `limit=None` returns all of them."""
        ...


def _affected(status: str) -> int:
    # asyncpg returns e.g. "UPDATE 1" / "INSERT 0 1"
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError, IndexError):
        return 0


def routine_from_row(row: Mapping[str, Any]) -> RoutineDefinition:
    activities = [Activity.model_validate(item) for item in load_json_list(row.get("activities"))]
    total = row.get("duration_minutes")
    return RoutineDefinition(
        user_id=str(row["user_id"]),
        routine_name=row.get("routine_name"),
        wake_time=row.get("wake_time"),
        activities=activities,
        total_duration_minutes=int(total) if total is not None else sum(a.duration_minutes or 0 for a in activities),
        is_active=bool(row.get("is_active", True)),
        version=int(row.get("version") or 0),
    )


def completion_from_row(row: Mapping[str, Any]) -> DailyCompletionRecord:
    ids: list[str] = []
    for item in load_json_list(row.get("activities_completed")):
        value = str(item)
        if value not in ids:
            ids.append(value)
    return DailyCompletionRecord(
        user_id=str(row["user_id"]),
        day=row["completion_date"],
        completed_activity_ids=ids,
        all_completed=bool(row.get("all_completed")),
        version=int(row.get("version") or 0),
    )


class PostgresRoutineStore:
    """asyncpg-backed store over the morning routine tables."""

    async def load_active_routine(self, user_id: str) -> Optional[RoutineDefinition]:
        row = await fetch_one(
            """
            SELECT user_id, routine_name, wake_time, activities, duration_minutes, is_active, version
            FROM morning_routine_preferences
            WHERE user_id = $1 AND is_active = true
            ORDER BY updated_at DESC
            LIMIT 1
            """,
            user_id,
        )
        return routine_from_row(dict(row)) if row else None

    async def save_routine(self, routine: RoutineDefinition) -> bool:
        status = await execute(
            """
            UPDATE morning_routine_preferences
            SET activities = $3::jsonb,
                duration_minutes = $4,
                version = version + 1,
                updated_at = now()
            WHERE user_id = $1 AND is_active = true AND version = $2
            """,
            routine.user_id,
            routine.version,
            dump_json([a.model_dump(exclude_none=True) for a in routine.activities]),
            routine.total_duration_minutes,
        )
        return _affected(status) == 1

    async def load_completion(self, user_id: str, day: date) -> Optional[DailyCompletionRecord]:
        row = await fetch_one(
            """
            SELECT user_id, completion_date, activities_completed, all_completed, version
            FROM morning_routine_completions
            WHERE user_id = $1 AND completion_date = $2
            """,
            user_id,
            day,
        )
        return completion_from_row(dict(row)) if row else None

    async def save_completion(self, record: DailyCompletionRecord) -> bool:
        payload = dump_json(record.completed_activity_ids)
        if record.version == 0:
            status = await execute(
                """
                INSERT INTO morning_routine_completions
                    (user_id, completion_date, activities_completed, all_completed, version)
                VALUES ($1, $2, $3::jsonb, $4, 1)
                ON CONFLICT (user_id, completion_date) DO NOTHING
                """,
                record.user_id,
                record.day,
                payload,
                record.all_completed,
            )
        else:
            status = await execute(
                """
                UPDATE morning_routine_completions
                SET activities_completed = $4::jsonb,
                    all_completed = $5,
                    version = version + 1
                WHERE user_id = $1 AND completion_date = $2 AND version = $3
                """,
                record.user_id,
                record.day,
                record.version,
                payload,
                record.all_completed,
            )
        saved = _affected(status) == 1
        if not saved:
            logger.debug(
                "Completion write lost a race",
                extra={"user_id": record.user_id, "day": record.day.isoformat(), "version": record.version},
            )
        return saved

    async def list_completed_days(self, user_id: str, since: Optional[date] = None) -> list[date]:
        rows = await fetch_all(
            """
            SELECT completion_date
            FROM morning_routine_completions
            WHERE user_id = $1
              AND all_completed = true
              AND ($2::date IS NULL OR completion_date >= $2::date)
            ORDER BY completion_date DESC
            """,
            user_id,
            since,
        )
        return [row["completion_date"] for row in rows]

    async def list_completions(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = 30,
    ) -> list[DailyCompletionRecord]:
        rows = await fetch_all(
            """
            SELECT user_id, completion_date, activities_completed, all_completed, version
            FROM morning_routine_completions
            WHERE user_id = $1
              AND ($2::date IS NULL OR completion_date >= $2::date)
              AND ($3::date IS NULL OR completion_date <= $3::date)
            ORDER BY completion_date DESC
            LIMIT $4
            """,
            user_id,
            start,
            end,
            limit,
        )
        return [completion_from_row(dict(row)) for row in rows]


__all__ = ["PostgresRoutineStore", "RoutineStore", "completion_from_row", "routine_from_row"]
