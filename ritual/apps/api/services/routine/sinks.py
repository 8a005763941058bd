"""Best-effort side-effect sinks: journal, milestones, and memory.

None of these are part of the completion contract. `RoutineSinks.fire` schedules a
sink call in the background and `emit` logs any failure instead of raising it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Optional, Protocol, Set

from ritual.libs.json_utils import dump_json
from ritual.libs.schemas.db import execute

logger = logging.getLogger(__name__)


class JournalSink(Protocol):
    async def log(
        self,
        user_id: str,
        entry_type: str,
        entry_text: str,
        activity_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None: ...


class MilestoneSink(Protocol):
    async def award(self, user_id: str, milestone_id: str, increment: int = 1) -> None: ...


class MemorySink(Protocol):
    async def remember(self, user_id: str, title: str, summary: str) -> None: ...


class PostgresJournalSink:
    async def log(
        self,
        user_id: str,
        entry_type: str,
        entry_text: str,
        activity_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        await execute(
            """
            INSERT INTO morning_routine_journal (user_id, entry_type, entry_text, activity_name, metadata)
            VALUES ($1, $2, $3, $4, $5::jsonb)
            """,
            user_id,
            entry_type,
            entry_text,
            activity_name,
            dump_json(metadata or {}),
        )


class PostgresMilestoneSink:
    async def award(self, user_id: str, milestone_id: str, increment: int = 1) -> None:
        await execute(
            """
            INSERT INTO journey_progress (user_id, milestone_id, progress, updated_at)
            VALUES ($1, $2, $3, now())
            ON CONFLICT (user_id, milestone_id)
            DO UPDATE SET progress = journey_progress.progress + EXCLUDED.progress,
                          updated_at = now()
            """,
            user_id,
            milestone_id,
            increment,
        )


class PostgresMemorySink:
    async def remember(self, user_id: str, title: str, summary: str) -> None:
        await execute(
            """
            INSERT INTO user_memories (id, user_id, kind, summary, importance, metadata, created_at)
            VALUES (gen_random_uuid(), $1, 'routine_update', $2, 0.4, $3::jsonb, now())
            """,
            user_id,
            summary,
            dump_json({"title": title}),
        )


@dataclass
class RoutineSinks:
    """Sink bundle plus the background tasks it has scheduled.

    `fire` returns immediately; the sink call runs as a task so a slow insert
    never holds up the response. `drain` waits for whatever is still running.
    """

    journal: JournalSink = field(default_factory=PostgresJournalSink)
    milestones: MilestoneSink = field(default_factory=PostgresMilestoneSink)
    memory: MemorySink = field(default_factory=PostgresMemorySink)
    _pending: Set["asyncio.Task[bool]"] = field(default_factory=set, init=False, repr=False)

    def fire(self, kind: str, call: Awaitable[None], *, user_id: str) -> "asyncio.Task[bool]":
        task = asyncio.create_task(emit(kind, call, user_id=user_id))
        # the loop only keeps weak references to tasks
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        while self._pending:
            batch = list(self._pending)
            await asyncio.gather(*batch)
            self._pending.difference_update(batch)


async def emit(kind: str, call: Awaitable[None], *, user_id: str) -> bool:
    """Await a sink call; failures are logged and reported as False."""

    try:
        await call
    except Exception as exc:
        logger.warning(
            "Routine side effect failed (non-critical): %s",
            kind,
            extra={"user_id": user_id, "sink": kind, "error": repr(exc)},
        )
        return False
    return True


__all__ = [
    "JournalSink",
    "MemorySink",
    "MilestoneSink",
    "PostgresJournalSink",
    "PostgresMemorySink",
    "PostgresMilestoneSink",
    "RoutineSinks",
    "emit",
]
