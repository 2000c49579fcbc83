"""Account registration and login endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

from app.api._errors import to_http_error
from app.domain.exceptions import DomainError
from app.domain.identity import schemas, service

router = APIRouter(tags=["auth"])


def _client_ip(request: Request) -> str:
	client = request.client
	return client.host if client else "unknown"


@router.post("/auth/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_account(payload: schemas.RegisterRequest, request: Request) -> schemas.AuthResponse:
	try:
		return await service.register(payload, ip_address=_client_ip(request))
	except DomainError as exc:
		raise to_http_error(exc) from exc


@router.post("/auth/login", response_model=schemas.AuthResponse)
async def login(payload: schemas.LoginRequest, request: Request) -> schemas.AuthResponse:
	try:
		return await service.login(payload, ip_address=_client_ip(request))
	except DomainError as exc:
		raise to_http_error(exc) from exc
