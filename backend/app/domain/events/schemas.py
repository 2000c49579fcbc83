"""Pydantic schemas for event input drafts and API responses."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Mapping, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.domain.events import models
from app.domain.events.policy import ensure_aware
from app.domain.exceptions import ValidationError, field_errors


class EventDraft(BaseModel):
	"""Validated event fields submitted on create and update."""

	model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

	name: Annotated[str, Field(min_length=1, max_length=200)]
	description: Annotated[str, Field(min_length=1, max_length=4000)]
	location: Annotated[str, Field(min_length=1, max_length=240)]
	category: Annotated[str, Field(min_length=1, max_length=200)]
	starts_at: datetime = Field(validation_alias=AliasChoices("time", "startsAt", "starts_at"))
	registration_deadline: datetime = Field(
		validation_alias=AliasChoices("registrationDeadline", "registration_deadline"),
	)
	attendance_limit: int = Field(gt=0, validation_alias=AliasChoices("attendanceLimit", "attendance_limit"))
	owner_name: str = Field(default="", max_length=200, validation_alias=AliasChoices("eventOwner", "ownerName", "owner_name"))

	@field_validator("starts_at", "registration_deadline")
	def _aware(cls, value: datetime) -> datetime:  # type: ignore[override]
		return ensure_aware(value)


def parse_event_form(raw: Mapping[str, Any]) -> EventDraft:
	"""Validate submitted form values into an EventDraft.

	Raises ValidationError carrying the per-field errors.
	"""
	try:
		return EventDraft.model_validate(dict(raw))
	except PydanticValidationError as exc:
		raise ValidationError("invalid_input", errors=field_errors(exc)) from None


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventView(_CamelModel):
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
	images: list[str]
	created_at: datetime
	updated_at: datetime
	registration_count: int = 0
	is_registered: bool = False

	@classmethod
	def from_event(cls, event: models.Event, stats: Optional[models.EventStats] = None) -> "EventView":
		stats = stats or models.EventStats()
		return cls(
			**event.model_dump(),
			registration_count=stats.registration_count,
			is_registered=stats.is_registered,
		)


class EventResponse(_CamelModel):
	event: EventView


class EventMutationResponse(_CamelModel):
	message: str
	event: EventView


class EventListResponse(_CamelModel):
	events: list[EventView]


class RegistrationResult(_CamelModel):
	event_id: UUID
	registration_count: int
	registered_at: datetime
