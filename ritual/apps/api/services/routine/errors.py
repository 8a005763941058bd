from __future__ import annotations

from typing import Sequence

from ritual.libs.schemas.routine import ScoredActivity


class RoutineError(Exception):
    """Base class for errors reported synchronously to routine callers."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoActiveRoutineError(RoutineError):
    status_code = 404

    def __init__(self, user_id: str) -> None:
        super().__init__("No active morning routine found.")
        self.user_id = user_id


class EmptyRoutineError(RoutineError):
    status_code = 422

    def __init__(self, user_id: str) -> None:
        super().__init__("Your routine has no activities.")
        self.user_id = user_id


class ActivityNotFoundError(RoutineError):
    status_code = 404

    def __init__(self, identifier: str) -> None:
        super().__init__(f'Activity "{identifier}" not found in your routine.')
        self.identifier = identifier


NotFoundError = ActivityNotFoundError


class AmbiguousMatchError(RoutineError):
    """Several activities matched closely; the caller should ask the user to pick."""

    status_code = 409

    def __init__(self, identifier: str, candidates: Sequence[ScoredActivity]) -> None:
        names = ", ".join(f'"{c.activity.name}"' for c in candidates)
        super().__init__(f'"{identifier}" could mean {names}.')
        self.identifier = identifier
        self.candidates = list(candidates)


class DuplicateActivityError(RoutineError):
    status_code = 422

    def __init__(self, name: str) -> None:
        super().__init__(f'Activity "{name}" is already in your routine.')
        self.name = name


class ConcurrentUpdateConflict(RoutineError):
    status_code = 409

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Routine was modified concurrently; gave up after {attempts} attempts.")
        self.attempts = attempts


__all__ = [
    "ActivityNotFoundError",
    "AmbiguousMatchError",
    "ConcurrentUpdateConflict",
    "DuplicateActivityError",
    "EmptyRoutineError",
    "NoActiveRoutineError",
    "NotFoundError",
    "RoutineError",
]
