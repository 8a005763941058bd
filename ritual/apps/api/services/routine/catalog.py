"""Ordered, immutable view over the activities of a user's active routine."""

from __future__ import annotations

import re
from typing import Iterator, Optional, Sequence

from ritual.libs.schemas.routine import Activity, RoutineDefinition

from .errors import DuplicateActivityError

_WS = re.compile(r"\s+")


def normalize_name(text: str | None) -> str:
    """Lower-case, trim and collapse internal whitespace."""

    return _WS.sub(" ", (text or "").strip().lower())


class ActivityCatalog:
    def __init__(self, activities: Sequence[Activity]) -> None:
        self._activities: tuple[Activity, ...] = tuple(activities)

    @classmethod
    def from_routine(cls, routine: RoutineDefinition) -> "ActivityCatalog":
        return cls(routine.activities)

    def __len__(self) -> int:
        return len(self._activities)

    def __iter__(self) -> Iterator[Activity]:
        return iter(self._activities)

    def __getitem__(self, index: int) -> Activity:
        return self._activities[index]

    @property
    def activities(self) -> list[Activity]:
        return list(self._activities)

    @property
    def ids(self) -> list[str]:
        return [activity.id for activity in self._activities]

    @property
    def names(self) -> list[str]:
        return [activity.name for activity in self._activities]

    def index_of(self, activity_id: str) -> int:
        for index, activity in enumerate(self._activities):
            if activity.id == activity_id:
                return index
        return -1

    def get(self, activity_id: str) -> Optional[Activity]:
        index = self.index_of(activity_id)
        return self._activities[index] if index >= 0 else None

    def names_for(self, activity_ids: Sequence[str]) -> list[str]:
        """Names of the given ids, in catalog order."""

        wanted = set(activity_ids)
        return [activity.name for activity in self._activities if activity.id in wanted]

    def total_duration(self) -> int:
        return sum(activity.duration_minutes or 0 for activity in self._activities)

    def with_replaced(self, index: int, activity: Activity) -> "ActivityCatalog":
        items = list(self._activities)
        items[index] = activity
        return ActivityCatalog(items)

    def with_added(self, activity: Activity) -> "ActivityCatalog":
        key = normalize_name(activity.name)
        if any(
            existing.id == activity.id or normalize_name(existing.name) == key
            for existing in self._activities
        ):
            raise DuplicateActivityError(activity.name)
        return ActivityCatalog([*self._activities, activity])


__all__ = ["ActivityCatalog", "normalize_name"]
