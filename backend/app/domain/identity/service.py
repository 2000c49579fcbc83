"""Account registration and login."""

from __future__ import annotations

import logging

from app.domain.exceptions import AuthenticationError, ConstraintViolation, ValidationError
from app.domain.identity import policy, schemas
from app.domain.identity.repo import UserDirectory
from app.infra import jwt as jwt_helper
from app.infra.password import check_needs_rehash, hash_password, verify_password
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_directory = UserDirectory()


def _issue(user) -> schemas.AuthResponse:
	token = jwt_helper.encode_access(str(user.id), user.university_email, user.display_name)
	return schemas.AuthResponse(user=schemas.PublicUser.from_user(user), token=token)


async def register(payload: schemas.RegisterRequest, *, ip_address: str) -> schemas.AuthResponse:
	await policy.enforce_register_rate(ip_address)
	email = policy.normalise_email(payload.university_email)
	try:
		policy.guard_email_domain(email)
	except ValidationError:
		obs_metrics.inc_identity_reject("email_domain_not_allowed")
		raise
	interests = policy.normalise_interests(payload.interests)
	full_name = " ".join(payload.full_name.split())
	first_name, last_name = policy.split_full_name(full_name)

	if await _directory.email_exists(email):
		obs_metrics.inc_identity_reject("account_exists")
		raise ConstraintViolation("account_exists")

	user = await _directory.create(
		university_email=email,
		password_hash=hash_password(payload.password),
		full_name=full_name,
		first_name=first_name,
		last_name=last_name,
		age=payload.age,
		location=(payload.location or "").strip() or None,
		field_of_studies=(payload.field_of_studies or "").strip() or None,
		interests=interests,
	)
	obs_metrics.inc_identity_register()
	logger.info("account_registered", extra={"user_id": str(user.id)})
	return _issue(user)


async def login(payload: schemas.LoginRequest, *, ip_address: str) -> schemas.AuthResponse:
	await policy.enforce_login_rate(ip_address)
	email = policy.normalise_email(payload.university_email)
	user = await _directory.get_by_email(email)
	# Same error for unknown accounts and bad passwords
	if user is None or not user.password_hash:
		obs_metrics.inc_identity_reject("invalid_credentials")
		raise AuthenticationError("invalid_credentials")
	if not verify_password(user.password_hash, payload.password):
		obs_metrics.inc_identity_reject("invalid_credentials")
		raise AuthenticationError("invalid_credentials")
	if check_needs_rehash(user.password_hash):
		refreshed = await _directory.update_profile(user.id, {"password_hash": hash_password(payload.password)})
		user = refreshed or user
	obs_metrics.inc_identity_login()
	return _issue(user)
