"""User directory backed by the ``users`` table."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence
from uuid import UUID, uuid4

import asyncpg

from app.domain.exceptions import ConstraintViolation
from app.domain.identity import models
from app.infra.postgres import get_pool

_PROFILE_COLUMNS = frozenset(
	{
		"university_email",
		"full_name",
		"first_name",
		"last_name",
		"date_of_birth",
		"gender",
		"about",
		"age",
		"location",
		"field_of_studies",
		"interests",
		"profile_image_url",
		"password_hash",
	}
)


class UserDirectory:
	"""Lookup and persistence of user accounts."""

	async def get_by_id(self, user_id: UUID) -> Optional[models.User]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
		return models.User.from_record(row) if row else None

	async def get_by_email(self, email: str) -> Optional[models.User]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT * FROM users WHERE LOWER(university_email) = LOWER($1)", email)
		return models.User.from_record(row) if row else None

	async def email_exists(self, email: str, *, exclude_user_id: Optional[UUID] = None) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT 1 FROM users
				WHERE LOWER(university_email) = LOWER($1)
					AND ($2::uuid IS NULL OR id <> $2::uuid)
				""",
				email,
				exclude_user_id,
			)
		return value is not None

	async def create(
		self,
		*,
		university_email: str,
		password_hash: str,
		full_name: str,
		first_name: str,
		last_name: str,
		age: Optional[int] = None,
		location: Optional[str] = None,
		field_of_studies: Optional[str] = None,
		interests: Sequence[str] = (),
	) -> models.User:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					"""
					INSERT INTO users (
						id, university_email, password_hash, full_name, first_name, last_name,
						age, location, field_of_studies, interests
					)
					VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
					RETURNING *
					""",
					uuid4(),
					university_email,
					password_hash,
					full_name,
					first_name,
					last_name,
					age,
					location,
					field_of_studies,
					list(interests),
				)
			except asyncpg.UniqueViolationError as exc:
				raise ConstraintViolation("account_exists") from exc
		return models.User.from_record(row)

	async def update_profile(self, user_id: UUID, fields: dict[str, Any]) -> Optional[models.User]:
		if not fields:
			return await self.get_by_id(user_id)
		set_clauses: list[str] = []
		params: list[object] = []
		for column, value in fields.items():
			if column not in _PROFILE_COLUMNS:
				raise ValueError(f"column_not_updatable:{column}")
			if column == "interests":
				value = list(value or ())
			elif column == "date_of_birth" and value is not None and not isinstance(value, date):
				value = date.fromisoformat(str(value))
			params.append(value)
			set_clauses.append(f"{column} = ${len(params)}")
		params.append(user_id)
		query = f"""
			UPDATE users
			SET {', '.join(set_clauses)}, updated_at = NOW()
			WHERE id = ${len(params)}
			RETURNING *
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(query, *params)
			except asyncpg.UniqueViolationError as exc:
				raise ConstraintViolation("university_email_taken") from exc
		return models.User.from_record(row) if row else None
