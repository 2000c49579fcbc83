"""Domain models for events and registrations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
	"""Represents a stored event."""

	id: UUID
	name: str
	description: str
	location: str
	category: str
	starts_at: datetime
	registration_deadline: datetime
	attendance_limit: int
	owner_id: UUID
	owner_name: str
	images: list[str] = Field(default_factory=list)
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class EventStats(BaseModel):
	"""Registration aggregates for one event as seen by one viewer."""

	registration_count: int = 0
	is_registered: bool = False


class EventRegistration(BaseModel):
	"""Represents one user's registration for one event."""

	id: UUID
	event_id: UUID
	user_id: UUID
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)
