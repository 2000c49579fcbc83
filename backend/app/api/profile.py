"""Profile read and update endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from app.api._errors import to_http_error
from app.api.forms import read_uploads, text_fields
from app.domain.exceptions import DomainError, ValidationError, field_errors
from app.domain.identity import profile_service, schemas
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=schemas.ProfileResponse)
async def get_profile(auth_user: AuthenticatedUser = Depends(get_current_user)) -> schemas.ProfileResponse:
	try:
		return await profile_service.get_profile(auth_user)
	except DomainError as exc:
		raise to_http_error(exc) from exc


@router.put("/profile", response_model=schemas.ProfileResponse)
async def update_profile(
	request: Request,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ProfileResponse:
	form = await request.form()
	try:
		try:
			payload = schemas.ProfileUpdate.model_validate(text_fields(form, multi=("interests",)))
		except PydanticValidationError as exc:
			raise ValidationError("invalid_input", errors=field_errors(exc)) from None
		images = await read_uploads(form, "profileImage")
		if len(images) > 1:
			raise ValidationError("too_many_images")
		return await profile_service.update_profile(
			auth_user,
			payload,
			image=images[0] if images else None,
		)
	except DomainError as exc:
		raise to_http_error(exc) from exc
