"""Pydantic schemas for identity and profile flows."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.domain.identity import models

Interest = Annotated[str, Field(min_length=1, max_length=40)]


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_CamelModel):
	full_name: Annotated[str, Field(min_length=2, max_length=120)]
	university_email: EmailStr
	password: Annotated[str, Field(min_length=8, max_length=256)]
	age: Optional[Annotated[int, Field(ge=1, le=120)]] = None
	location: Optional[Annotated[str, Field(max_length=240)]] = None
	field_of_studies: Optional[Annotated[str, Field(max_length=120)]] = None
	interests: Annotated[list[Interest], Field(max_length=10)] = Field(default_factory=list)


class LoginRequest(_CamelModel):
	university_email: EmailStr
	password: Annotated[str, Field(min_length=1)]


class ProfileUpdate(_CamelModel):
	"""Profile fields submitted with PUT /profile."""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

	first_name: Annotated[str, Field(min_length=1, max_length=120)]
	last_name: Annotated[str, Field(min_length=1, max_length=120)]
	date_of_birth: Optional[date] = None
	gender: Optional[Annotated[str, Field(max_length=60)]] = None
	about: Optional[Annotated[str, Field(max_length=600)]] = None
	age: Optional[Annotated[int, Field(ge=16, le=120)]] = None
	location: Optional[Annotated[str, Field(max_length=240)]] = None
	field_of_studies: Annotated[str, Field(min_length=1, max_length=180)]
	university_email: EmailStr
	interests: Annotated[list[Interest], Field(max_length=10)] = Field(default_factory=list)

	@field_validator("date_of_birth", "gender", "about", "age", "location", mode="before")
	def _blank_to_none(cls, value: Any) -> Any:  # type: ignore[override]
		if isinstance(value, str) and not value.strip():
			return None
		return value

	@field_validator("interests", mode="before")
	def _split_interests(cls, value: Any) -> Any:  # type: ignore[override]
		# Multipart forms send a comma-separated string or repeated fields
		if value is None:
			return []
		if isinstance(value, str):
			return [part.strip() for part in value.split(",") if part.strip()]
		if isinstance(value, (list, tuple)):
			items: list[str] = []
			for entry in value:
				items.extend(part.strip() for part in str(entry).split(",") if part.strip())
			return items
		return value


class PublicUser(_CamelModel):
	id: UUID
	university_email: str
	full_name: str
	first_name: str = ""
	last_name: str = ""
	date_of_birth: Optional[date] = None
	gender: Optional[str] = None
	about: Optional[str] = None
	age: Optional[int] = None
	location: Optional[str] = None
	field_of_studies: Optional[str] = None
	interests: list[str] = Field(default_factory=list)
	profile_image_url: Optional[str] = None
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_user(cls, user: models.User) -> "PublicUser":
		return cls(
			id=user.id,
			university_email=user.university_email,
			full_name=user.display_name,
			first_name=user.first_name,
			last_name=user.last_name,
			date_of_birth=user.date_of_birth,
			gender=user.gender,
			about=user.about,
			age=user.age,
			location=user.location,
			field_of_studies=user.field_of_studies,
			interests=list(user.interests),
			profile_image_url=user.profile_image_url,
			created_at=user.created_at,
			updated_at=user.updated_at,
		)


class AuthResponse(_CamelModel):
	user: PublicUser
	token: str


class ProfileResponse(_CamelModel):
	user: PublicUser
