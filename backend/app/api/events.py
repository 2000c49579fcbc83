"""Event CRUD and registration endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from app.api._errors import to_http_error
from app.api.forms import read_uploads, text_fields
from app.domain.events import schemas
from app.domain.events.service import EventsService
from app.domain.exceptions import DomainError
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["events"])
_service = EventsService()

IMAGES_FIELD = "images"


@router.post("/events", response_model=schemas.EventMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
	request: Request,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.EventMutationResponse:
	form = await request.form()
	try:
		draft = schemas.parse_event_form(text_fields(form))
		images = await read_uploads(form, IMAGES_FIELD)
		event = await _service.create_event(auth_user, draft, images)
	except DomainError as exc:
		raise to_http_error(exc) from exc
	return schemas.EventMutationResponse(message="Event created successfully", event=event)


@router.get("/events", response_model=schemas.EventListResponse)
async def list_events_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.EventListResponse:
	try:
		events = await _service.list_events(auth_user)
	except DomainError as exc:
		raise to_http_error(exc) from exc
	return schemas.EventListResponse(events=events)


@router.get("/events/{event_id}", response_model=schemas.EventResponse)
async def get_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.EventResponse:
	try:
		event = await _service.get_event(auth_user, event_id)
	except DomainError as exc:
		raise to_http_error(exc) from exc
	return schemas.EventResponse(event=event)


@router.put("/events/{event_id}", response_model=schemas.EventMutationResponse)
async def update_event_endpoint(
	event_id: UUID,
	request: Request,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.EventMutationResponse:
	form = await request.form()
	try:
		draft = schemas.parse_event_form(text_fields(form))
		images = await read_uploads(form, IMAGES_FIELD)
		event = await _service.update_event(auth_user, event_id, draft, images)
	except DomainError as exc:
		raise to_http_error(exc) from exc
	return schemas.EventMutationResponse(message="Event updated successfully", event=event)


@router.delete(
	"/events/{event_id}",
	status_code=status.HTTP_204_NO_CONTENT,
	response_class=Response,
	response_model=None,
)
async def delete_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
	try:
		await _service.delete_event(auth_user, event_id)
	except DomainError as exc:
		raise to_http_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
	"/events/{event_id}/register",
	response_model=schemas.RegistrationResult,
	status_code=status.HTTP_201_CREATED,
)
async def register_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.RegistrationResult:
	try:
		return await _service.register(auth_user, event_id)
	except DomainError as exc:
		raise to_http_error(exc) from exc
