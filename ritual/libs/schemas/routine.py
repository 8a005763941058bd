"""Typed routine, completion, and result schemas shared by the routine engine."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Activity(BaseModel):
    """A single named, optionally timed step within a routine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    icon: Optional[str] = None
    description: Optional[str] = None


class RoutineDefinition(BaseModel):
    """The user's active routine. `version` is owned by the store."""

    user_id: str
    routine_name: Optional[str] = None
    wake_time: Optional[str] = None
    activities: list[Activity] = Field(default_factory=list)
    total_duration_minutes: int = 0
    is_active: bool = True
    version: int = 0


class DailyCompletionRecord(BaseModel):
    """Which activities a user finished on one calendar day.

    `completed_activity_ids` has set semantics but keeps insertion order so
    journal payloads stay readable. A `version` of 0 means not yet persisted.
    """

    user_id: str
    day: date
    completed_activity_ids: list[str] = Field(default_factory=list)
    all_completed: bool = False
    version: int = 0

    def has(self, activity_id: str) -> bool:
        return activity_id in self.completed_activity_ids

    def with_completed(self, activity_ids: list[str], all_ids: list[str]) -> "DailyCompletionRecord":
        """Return a copy with `activity_ids` unioned in and `all_completed` recomputed."""

        merged = list(self.completed_activity_ids)
        for activity_id in activity_ids:
            if activity_id not in merged:
                merged.append(activity_id)
        done = set(merged)
        return self.model_copy(
            update={
                "completed_activity_ids": merged,
                "all_completed": bool(all_ids) and all(aid in done for aid in all_ids),
            }
        )


class MatchType(str, Enum):
    EXACT = "exact"
    STARTS_WITH = "startsWith"
    CONTAINS = "contains"
    REVERSE_CONTAINS = "reverseContains"
    TOKEN_OVERLAP = "tokenOverlap"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    AMBIGUOUS = "ambiguous"
    LOW = "low"


class ScoredActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    activity: Activity
    index: int
    score: float
    match_type: MatchType


class MatchResult(BaseModel):
    best_match: Optional[Activity] = None
    candidates: list[ScoredActivity] = Field(default_factory=list)
    confidence: Confidence = Confidence.LOW


class CompletionResult(BaseModel):
    matched_activity_name: str
    completed_count_today: int
    total_activities: int
    all_completed: bool
    already_complete: bool


class BulkCompletionResult(BaseModel):
    newly_completed_count: int
    total_activities: int
    all_were_already_complete: bool
    newly_completed_names: list[str] = Field(default_factory=list)


class ActivityChanges(BaseModel):
    new_name: Optional[str] = Field(default=None, min_length=1)
    new_duration: Optional[int] = Field(default=None, ge=0)
    new_icon: Optional[str] = None


class UpdateResult(BaseModel):
    updated_activity: Activity
    matched_original_name: str
    changes_made: list[str]


class StreakResult(BaseModel):
    current_streak: int
    longest_streak: int
    completion_rate: float
    total_completions: int = 0
    days_with_activity: int = 0
    last_completion_date: Optional[date] = None
    window_days: int = 30


__all__ = [
    "Activity",
    "ActivityChanges",
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
]
