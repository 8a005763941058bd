"""In-place edits to activities of the active routine."""

from __future__ import annotations

import logging
from typing import Optional

from ritual.libs.schemas.routine import Activity, ActivityChanges, RoutineDefinition, UpdateResult
from ritual.libs.schemas.settings import AppSettings, get_settings

from .catalog import ActivityCatalog, normalize_name
from .completion import load_active_catalog
from .errors import ConcurrentUpdateConflict, DuplicateActivityError, NoActiveRoutineError
from .matching import resolve_or_raise
from .sinks import RoutineSinks
from .store import RoutineStore

logger = logging.getLogger(__name__)

NO_CHANGES = "no changes"


def describe_changes(original: Activity, changes: ActivityChanges) -> tuple[Activity, list[str]]:
    """Apply `changes` to `original`; return the new activity and what actually differs."""

    new_name = changes.new_name.strip() if changes.new_name is not None else None
    made: list[str] = []
    update: dict[str, object] = {}
    if new_name and new_name != original.name:
        update["name"] = new_name
        made.append(f'renamed to "{new_name}"')
    if changes.new_duration is not None and changes.new_duration != original.duration_minutes:
        update["duration_minutes"] = changes.new_duration
        made.append(f"duration changed to {changes.new_duration} min")
    if changes.new_icon and changes.new_icon != original.icon:
        update["icon"] = changes.new_icon
        made.append(f"icon changed to {changes.new_icon}")
    return original.model_copy(update=update), made


class ActivityEditor:
    def __init__(
        self,
        store: RoutineStore,
        sinks: Optional[RoutineSinks] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._store = store
        self._sinks = sinks or RoutineSinks()
        self._max_attempts = settings.max_update_attempts

    async def active_routine(self, user_id: str) -> Optional[RoutineDefinition]:
        return await self._store.load_active_routine(user_id)

    async def update(self, user_id: str, identifier: str, changes: ActivityChanges) -> UpdateResult:
        for attempt in range(1, self._max_attempts + 1):
            routine, catalog = await load_active_catalog(self._store, user_id)
            scored = resolve_or_raise(identifier, catalog)
            original = scored.activity
            updated, made = describe_changes(original, changes)

            if not made:
                logger.info("No changes detected", extra={"user_id": user_id, "activity_id": original.id})
                return UpdateResult(
                    updated_activity=original,
                    matched_original_name=original.name,
                    changes_made=[NO_CHANGES],
                )

            if updated.name != original.name:
                key = normalize_name(updated.name)
                if any(normalize_name(a.name) == key for a in catalog if a.id != original.id):
                    raise DuplicateActivityError(updated.name)

            new_catalog = catalog.with_replaced(scored.index, updated)
            candidate = routine.model_copy(
                update={
                    "activities": new_catalog.activities,
                    "total_duration_minutes": new_catalog.total_duration(),
                }
            )
            if await self._store.save_routine(candidate):
                break
            logger.info("Routine write conflicted, retrying", extra={"user_id": user_id, "attempt": attempt})
        else:
            raise ConcurrentUpdateConflict(self._max_attempts)

        summary = ", ".join(made)
        logger.info(
            "Activity updated",
            extra={"user_id": user_id, "activity_id": original.id, "changes": made,
                   "total_duration_minutes": candidate.total_duration_minutes},
        )
        self._sinks.fire(
            "journal",
            self._sinks.journal.log(
                user_id,
                "activity_edited",
                f"Updated {original.name}: {summary}",
                updated.name,
                {
                    "old_name": original.name,
                    "old_duration": original.duration_minutes,
                    "new_name": updated.name,
                    "new_duration": updated.duration_minutes,
                    "changes": made,
                    "source": "conversation",
                },
            ),
            user_id=user_id,
        )
        self._sinks.fire(
            "memory",
            self._sinks.memory.remember(user_id, f"Updated {original.name}", f"Changed {original.name}: {summary}"),
            user_id=user_id,
        )
        return UpdateResult(updated_activity=updated, matched_original_name=original.name, changes_made=made)

    async def add(self, user_id: str, activity: Activity) -> RoutineDefinition:
        """Append an activity to the active routine, rejecting duplicate names."""

        for attempt in range(1, self._max_attempts + 1):
            routine = await self._store.load_active_routine(user_id)
            if routine is None:
                raise NoActiveRoutineError(user_id)
            catalog = ActivityCatalog.from_routine(routine).with_added(activity)
            candidate = routine.model_copy(
                update={
                    "activities": catalog.activities,
                    "total_duration_minutes": catalog.total_duration(),
                }
            )
            if await self._store.save_routine(candidate):
                logger.info("Activity added", extra={"user_id": user_id, "activity_id": activity.id})
                return candidate.model_copy(update={"version": routine.version + 1})
            logger.info("Routine write conflicted, retrying", extra={"user_id": user_id, "attempt": attempt})
        raise ConcurrentUpdateConflict(self._max_attempts)


__all__ = ["ActivityEditor", "NO_CHANGES", "describe_changes"]
