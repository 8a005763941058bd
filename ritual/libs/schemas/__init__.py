"""Pydantic models and schema utilities."""

from .db import close_async_pool, execute, fetch_all, fetch_one, get_async_pool
from .routine import (
    Activity,
    ActivityChanges,
    BulkCompletionResult,
    CompletionResult,
    Confidence,
    DailyCompletionRecord,
    MatchResult,
    MatchType,
    RoutineDefinition,
    ScoredActivity,
    StreakResult,
    UpdateResult,
)
from .settings import AppSettings, get_settings

__all__ = [
    "Activity",
    "ActivityChanges",
    "AppSettings",
    "BulkCompletionResult",
    "CompletionResult",
    "Confidence",
    "DailyCompletionRecord",
    "MatchResult",
    "MatchType",
    "RoutineDefinition",
    "ScoredActivity",
    "StreakResult",
    "UpdateResult",
    "close_async_pool",
    "execute",
    "fetch_all",
    "fetch_one",
    "get_async_pool",
    "get_settings",
]
