"""Async repository helpers for events and the registration ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Sequence, TypeVar
from uuid import UUID, uuid4

import asyncpg

from app.domain.events import models
from app.domain.exceptions import ConstraintViolation
from app.infra.postgres import get_pool

T = TypeVar("T")

_UPDATABLE_COLUMNS = frozenset(
	{
		"name",
		"description",
		"location",
		"category",
		"starts_at",
		"registration_deadline",
		"attendance_limit",
		"owner_name",
		"images",
	}
)

_STATS_SELECT = """
	SELECT e.*,
		COUNT(r.id) AS registration_count,
		COALESCE(BOOL_OR(r.user_id = $1::uuid), FALSE) AS is_registered
	FROM events e
	LEFT JOIN event_registrations r ON r.event_id = e.id
"""


async def _run(conn: asyncpg.Connection | None, func: Callable[[asyncpg.Connection], Awaitable[T]]) -> T:
	if conn is not None:
		return await func(conn)
	pool = await get_pool()
	async with pool.acquire() as pooled_conn:
		return await func(pooled_conn)


def _affected(status: str) -> int:
	# asyncpg returns command tags such as "DELETE 3"
	try:
		return int(status.rsplit(" ", 1)[-1])
	except (ValueError, AttributeError):
		return 0


def _row_to_stats(row: asyncpg.Record) -> models.EventStats:
	data = dict(row)
	return models.EventStats(
		registration_count=int(data.get("registration_count") or 0),
		is_registered=bool(data.get("is_registered") or False),
	)


class EventRepository:
	"""Event store: CRUD keyed by id with start-time ordering."""

	async def create(
		self,
		*,
		name: str,
		description: str,
		location: str,
		category: str,
		starts_at: datetime,
		registration_deadline: datetime,
		attendance_limit: int,
		owner_id: UUID,
		owner_name: str,
		images: Sequence[str],
		conn: asyncpg.Connection | None = None,
	) -> models.Event:
		async def _insert(connection: asyncpg.Connection) -> models.Event:
			record = await connection.fetchrow(
				"""
				INSERT INTO events (
					id,
					name,
					description,
					location,
					category,
					starts_at,
					registration_deadline,
					attendance_limit,
					owner_id,
					owner_name,
					images
				)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
				RETURNING *
				""",
				uuid4(),
				name,
				description,
				location,
				category,
				starts_at,
				registration_deadline,
				attendance_limit,
				owner_id,
				owner_name,
				list(images),
			)
			return models.Event.model_validate(dict(record))

		return await _run(conn, _insert)

	async def get(
		self,
		event_id: UUID,
		*,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.Event | None:
		query = "SELECT * FROM events WHERE id=$1"
		if for_update:
			query += " FOR UPDATE"

		async def _fetch(connection: asyncpg.Connection) -> models.Event | None:
			record = await connection.fetchrow(query, event_id)
			return models.Event.model_validate(dict(record)) if record else None

		return await _run(conn, _fetch)

	async def get_with_stats(
		self,
		event_id: UUID,
		*,
		viewer_id: UUID | None = None,
		conn: asyncpg.Connection | None = None,
	) -> tuple[models.Event, models.EventStats] | None:
		query = _STATS_SELECT + " WHERE e.id = $2 GROUP BY e.id"

		async def _fetch(connection: asyncpg.Connection):
			row = await connection.fetchrow(query, viewer_id, event_id)
			if not row:
				return None
			return models.Event.model_validate(dict(row)), _row_to_stats(row)

		return await _run(conn, _fetch)

	async def list_ordered(
		self,
		*,
		viewer_id: UUID | None = None,
		conn: asyncpg.Connection | None = None,
	) -> list[tuple[models.Event, models.EventStats]]:
		query = _STATS_SELECT + " GROUP BY e.id ORDER BY e.starts_at ASC, e.id ASC"

		async def _fetch(connection: asyncpg.Connection):
			rows = await connection.fetch(query, viewer_id)
			return [(models.Event.model_validate(dict(row)), _row_to_stats(row)) for row in rows]

		return await _run(conn, _fetch)

	async def update(
		self,
		event_id: UUID,
		payload: dict[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.Event | None:
		if not payload:
			return await self.get(event_id, conn=conn)
		set_clauses: list[str] = []
		params: list[object] = []
		for column, value in payload.items():
			if column not in _UPDATABLE_COLUMNS:
				raise ValueError(f"column_not_updatable:{column}")
			params.append(list(value) if column == "images" else value)
			set_clauses.append(f"{column}=${len(params)}")
		params.append(event_id)
		query = f"""
			UPDATE events
			SET {', '.join(set_clauses)}, updated_at = NOW()
			WHERE id=${len(params)}
			RETURNING *
		"""

		async def _update(connection: asyncpg.Connection) -> models.Event | None:
			record = await connection.fetchrow(query, *params)
			return models.Event.model_validate(dict(record)) if record else None

		return await _run(conn, _update)

	async def delete(self, event_id: UUID, *, conn: asyncpg.Connection | None = None) -> models.Event | None:
		async def _delete(connection: asyncpg.Connection) -> models.Event | None:
			record = await connection.fetchrow("DELETE FROM events WHERE id=$1 RETURNING *", event_id)
			return models.Event.model_validate(dict(record)) if record else None

		return await _run(conn, _delete)


class RegistrationLedger:
	"""Durable (user, event) pairs with per-event counts."""

	async def count(self, event_id: UUID, *, conn: asyncpg.Connection | None = None) -> int:
		async def _fetch(connection: asyncpg.Connection) -> int:
			value = await connection.fetchval(
				"SELECT COUNT(*) FROM event_registrations WHERE event_id=$1",
				event_id,
			)
			return int(value or 0)

		return await _run(conn, _fetch)

	async def exists(self, user_id: UUID, event_id: UUID, *, conn: asyncpg.Connection | None = None) -> bool:
		async def _fetch(connection: asyncpg.Connection) -> bool:
			value = await connection.fetchval(
				"SELECT 1 FROM event_registrations WHERE event_id=$1 AND user_id=$2",
				event_id,
				user_id,
			)
			return value is not None

		return await _run(conn, _fetch)

	async def insert(
		self,
		user_id: UUID,
		event_id: UUID,
		now: datetime,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.EventRegistration:
		async def _insert(connection: asyncpg.Connection) -> models.EventRegistration:
			try:
				record = await connection.fetchrow(
					"""
					INSERT INTO event_registrations (id, event_id, user_id, created_at)
					VALUES ($1, $2, $3, $4)
					RETURNING *
					""",
					uuid4(),
					event_id,
					user_id,
					now,
				)
			except asyncpg.UniqueViolationError as exc:
				raise ConstraintViolation("registration_exists") from exc
			return models.EventRegistration.model_validate(dict(record))

		return await _run(conn, _insert)

	async def delete_all_for_event(self, event_id: UUID, *, conn: asyncpg.Connection | None = None) -> int:
		async def _delete(connection: asyncpg.Connection) -> int:
			status = await connection.execute("DELETE FROM event_registrations WHERE event_id=$1", event_id)
			return _affected(status)

		return await _run(conn, _delete)
