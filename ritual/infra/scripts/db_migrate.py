"""Bootstrap the tables the routine engine reads and writes."""

from __future__ import annotations

import asyncio
import logging

import asyncpg

from ritual.libs.logging_utils import configure_logging
from ritual.libs.schemas import get_settings

logger = logging.getLogger(__name__)

MIGRATION_STATEMENTS = (
    'CREATE EXTENSION IF NOT EXISTS "pgcrypto";',
    """
    CREATE TABLE IF NOT EXISTS morning_routine_preferences (
        id serial PRIMARY KEY,
        user_id text NOT NULL,
        routine_name text,
        activities jsonb NOT NULL DEFAULT '[]'::jsonb,
        wake_time text,
        duration_minutes integer NOT NULL DEFAULT 0,
        is_active boolean NOT NULL DEFAULT true,
        version integer NOT NULL DEFAULT 1,
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS morning_routine_preferences_one_active
        ON morning_routine_preferences (user_id) WHERE is_active;
    """,
    """
    CREATE TABLE IF NOT EXISTS morning_routine_completions (
        id serial PRIMARY KEY,
        user_id text NOT NULL,
        completion_date date NOT NULL,
        activities_completed jsonb NOT NULL DEFAULT '[]'::jsonb,
        all_completed boolean NOT NULL DEFAULT false,
        version integer NOT NULL DEFAULT 1,
        created_at timestamptz NOT NULL DEFAULT now(),
        UNIQUE (user_id, completion_date)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS morning_routine_journal (
        id serial PRIMARY KEY,
        user_id text NOT NULL,
        entry_type text NOT NULL,
        entry_text text NOT NULL,
        activity_name text,
        metadata jsonb NOT NULL DEFAULT '{}'::jsonb,
        created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS journey_progress (
        user_id text NOT NULL,
        milestone_id text NOT NULL,
        progress integer NOT NULL DEFAULT 0,
        updated_at timestamptz NOT NULL DEFAULT now(),
        PRIMARY KEY (user_id, milestone_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_memories (
        id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id text NOT NULL,
        kind text NOT NULL,
        summary text NOT NULL,
        importance real NOT NULL DEFAULT 0,
        metadata jsonb NOT NULL DEFAULT '{}'::jsonb,
        created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
)


async def migrate() -> None:
    settings = get_settings()
    conn = await asyncpg.connect(settings.postgres_dsn, statement_cache_size=0)
    try:
        for statement in MIGRATION_STATEMENTS:
            await conn.execute(statement)
    finally:
        await conn.close()
    logger.info("Applied %d migration statements", len(MIGRATION_STATEMENTS))


def main() -> None:  # pragma: no cover - CLI entrypoint
    configure_logging()
    asyncio.run(migrate())


if __name__ == "__main__":  # pragma: no cover
    main()
