"""Domain models for the identity and profile subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional
from uuid import UUID

RecordLike = Mapping[str, Any]


def _as_uuid(value: Any) -> UUID:
	if isinstance(value, UUID):
		return value
	return UUID(str(value))


def _as_optional_int(value: Any) -> Optional[int]:
	if value is None:
		return None
	return int(value)


def _as_text_list(value: Any) -> list[str]:
	if not value:
		return []
	return [str(item).strip() for item in value if item is not None and str(item).strip()]


@dataclass(slots=True)
class User:
	"""Core user record."""

	id: UUID
	university_email: str
	password_hash: str
	full_name: str
	created_at: datetime
	updated_at: datetime
	first_name: str = ""
	last_name: str = ""
	date_of_birth: Optional[date] = None
	gender: Optional[str] = None
	about: Optional[str] = None
	age: Optional[int] = None
	location: Optional[str] = None
	field_of_studies: Optional[str] = None
	interests: list[str] = field(default_factory=list)
	profile_image_url: Optional[str] = None

	@classmethod
	def from_record(cls, record: RecordLike) -> "User":
		return cls(
			id=_as_uuid(record["id"]),
			university_email=str(record.get("university_email", "")),
			password_hash=str(record.get("password_hash", "")),
			full_name=str(record.get("full_name") or ""),
			created_at=record.get("created_at"),
			updated_at=record.get("updated_at"),
			first_name=str(record.get("first_name") or ""),
			last_name=str(record.get("last_name") or ""),
			date_of_birth=record.get("date_of_birth"),
			gender=record.get("gender"),
			about=record.get("about"),
			age=_as_optional_int(record.get("age")),
			location=record.get("location"),
			field_of_studies=record.get("field_of_studies"),
			interests=_as_text_list(record.get("interests")),
			profile_image_url=record.get("profile_image_url"),
		)

	@property
	def display_name(self) -> str:
		if self.full_name:
			return self.full_name
		return " ".join(part for part in (self.first_name, self.last_name) if part)
