"""Calendar-day sources injected into the tracker and streak analyzer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def today(self) -> date: ...


class ZoneClock:
    """Wall clock that cuts calendar days in a fixed IANA zone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self._tz = ZoneInfo(tz_name)

    def today(self) -> date:
        return datetime.now(self._tz).date()


class FixedClock:
    def __init__(self, day: date) -> None:
        self.day = day

    def today(self) -> date:
        return self.day


__all__ = ["Clock", "FixedClock", "ZoneClock"]
