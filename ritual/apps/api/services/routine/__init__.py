"""Routine activity resolution, completion tracking, editing and streaks."""

from .catalog import ActivityCatalog, normalize_name
from .clock import Clock, FixedClock, ZoneClock
from .completion import CompletionTracker
from .editor import ActivityEditor
from .errors import (
    ActivityNotFoundError,
    AmbiguousMatchError,
    ConcurrentUpdateConflict,
    DuplicateActivityError,
    EmptyRoutineError,
    NoActiveRoutineError,
    NotFoundError,
    RoutineError,
)
from .matching import PENDING_CLARIFICATION_TIMEOUT, best_match_or_none, resolve_activity
from .service import RoutineService
from .sinks import RoutineSinks
from .store import PostgresRoutineStore, RoutineStore
from .streaks import StreakAnalyzer, compute_streak

__all__ = [
    "ActivityCatalog",
    "ActivityEditor",
    "ActivityNotFoundError",
    "AmbiguousMatchError",
    "Clock",
    "CompletionTracker",
    "ConcurrentUpdateConflict",
    "DuplicateActivityError",
    "EmptyRoutineError",
    "FixedClock",
    "NoActiveRoutineError",
    "NotFoundError",
    "PENDING_CLARIFICATION_TIMEOUT",
    "PostgresRoutineStore",
    "RoutineError",
    "RoutineService",
    "RoutineSinks",
    "RoutineStore",
    "StreakAnalyzer",
    "ZoneClock",
    "best_match_or_none",
    "compute_streak",
    "normalize_name",
    "resolve_activity",
]
