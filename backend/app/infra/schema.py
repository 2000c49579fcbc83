"""Idempotent table definitions applied at startup."""

from __future__ import annotations

import logging

import asyncpg

LOGGER = logging.getLogger(__name__)

STATEMENTS: tuple[str, ...] = (
	"""
	CREATE TABLE IF NOT EXISTS users (
		id UUID PRIMARY KEY,
		university_email TEXT NOT NULL UNIQUE,
		password_hash TEXT NOT NULL,
		full_name TEXT NOT NULL,
		first_name TEXT,
		last_name TEXT,
		date_of_birth DATE,
		gender TEXT,
		about TEXT,
		age INTEGER,
		location TEXT,
		field_of_studies TEXT,
		interests TEXT[] NOT NULL DEFAULT '{}',
		profile_image_url TEXT,
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS events (
		id UUID PRIMARY KEY,
		name TEXT NOT NULL,
		description TEXT NOT NULL,
		location TEXT NOT NULL,
		category TEXT NOT NULL,
		starts_at TIMESTAMPTZ NOT NULL,
		registration_deadline TIMESTAMPTZ NOT NULL,
		attendance_limit INTEGER NOT NULL CHECK (attendance_limit > 0),
		owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
		owner_name TEXT NOT NULL,
		images TEXT[] NOT NULL DEFAULT '{}',
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		CHECK (registration_deadline < starts_at)
	)
	""",
	"CREATE INDEX IF NOT EXISTS events_starts_at_idx ON events (starts_at, id)",
	"""
	CREATE TABLE IF NOT EXISTS event_registrations (
		id UUID PRIMARY KEY,
		event_id UUID NOT NULL REFERENCES events(id) ON DELETE CASCADE,
		user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		UNIQUE (event_id, user_id)
	)
	""",
)


async def ensure_schema(pool: asyncpg.pool.Pool) -> None:
	async with pool.acquire() as conn:
		async with conn.transaction():
			for statement in STATEMENTS:
				await conn.execute(statement)
	LOGGER.info("schema_ready", extra={"tables": 3})
