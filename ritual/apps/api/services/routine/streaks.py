"""Streak and completion-rate analytics over fully completed days."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from ritual.libs.schemas.routine import StreakResult
from ritual.libs.schemas.settings import AppSettings, get_settings

from .clock import Clock, ZoneClock
from .store import RoutineStore

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def window_start(today: date, window_days: int) -> date:
    """Inclusive lower bound of the lookback window.

    The window runs from `today - window_days` through `today`, so it spans
    `window_days + 1` calendar days. The rate still divides by `window_days`
    and is capped at 100.
    """

    return today - timedelta(days=window_days)


def compute_streak(
    dates: Iterable[date],
    window_days: int,
    today: date,
    active_days: Optional[Iterable[date]] = None,
) -> StreakResult:
    """
    Current and longest runs of consecutive days plus the completion rate.

    The current streak counts only if its most recent day is today or
    yesterday; a user who has not checked in yet today keeps their streak.
    It is not bounded by the window. The longest streak considers runs that
    reach into the window, counted in full. Days after `today` are ignored.

    `active_days` are days with at least one completed activity; when omitted
    only the fully completed days count as active.
    """

    if window_days <= 0:
        raise ValueError("window_days must be positive")

    since = window_start(today, window_days)
    days = sorted({d for d in dates if d <= today}, reverse=True)
    active = {d for d in (active_days if active_days is not None else days) if since <= d <= today}
    active.update(d for d in days if d >= since)

    if not days:
        return StreakResult(
            current_streak=0,
            longest_streak=0,
            completion_rate=0.0,
            total_completions=0,
            days_with_activity=len(active),
            last_completion_date=None,
            window_days=window_days,
        )

    # (length, most recent day) per run, newest run first
    runs: list[tuple[int, date]] = []
    run, run_end = 1, days[0]
    for newer, older in zip(days, days[1:]):
        if newer - older == ONE_DAY:
            run += 1
        else:
            runs.append((run, run_end))
            run, run_end = 1, older
    runs.append((run, run_end))

    current = runs[0][0] if today - days[0] <= ONE_DAY else 0
    longest = max((length for length, end in runs if end >= since), default=0)

    in_window = sum(1 for d in days if d >= since)
    rate = min(100.0, round(100.0 * in_window / window_days, 1))

    return StreakResult(
        current_streak=current,
        longest_streak=longest,
        completion_rate=rate,
        total_completions=in_window,
        days_with_activity=len(active),
        last_completion_date=days[0],
        window_days=window_days,
    )


class StreakAnalyzer:
    def __init__(
        self,
        store: RoutineStore,
        clock: Optional[Clock] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._store = store
        self._clock = clock or ZoneClock(settings.timezone)
        self._default_window = settings.streak_window_days

    async def compute(self, user_id: str, window_days: Optional[int] = None) -> StreakResult:
        window = window_days if window_days is not None else self._default_window
        if window <= 0:
            raise ValueError("window_days must be positive")
        today = self._clock.today()
        since = window_start(today, window)
        # full history so a current run can extend past the window start
        days = await self._store.list_completed_days(user_id)
        records = await self._store.list_completions(user_id, start=since, end=today, limit=None)
        active = [r.day for r in records if r.completed_activity_ids]
        result = compute_streak(days, window, today, active_days=active)
        logger.debug(
            "Computed routine streak",
            extra={"user_id": user_id, "current": result.current_streak, "longest": result.longest_streak},
        )
        return result


__all__ = ["StreakAnalyzer", "compute_streak", "window_start"]
