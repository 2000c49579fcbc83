"""Profile management helpers for the identity subsystem."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from app.domain.exceptions import ConstraintViolation, NotFoundError
from app.domain.identity import policy, schemas
from app.domain.identity.repo import UserDirectory
from app.infra.auth import AuthenticatedUser
from app.infra.storage import (
	PROFILE_IMAGES_FOLDER,
	BlobStorage,
	LocalBlobStorage,
	StagedUploads,
	UploadedImage,
	validate_images,
)
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_directory = UserDirectory()
_storage: BlobStorage = LocalBlobStorage()


async def get_profile(auth_user: AuthenticatedUser) -> schemas.ProfileResponse:
	user = await _directory.get_by_id(UUID(auth_user.id))
	if user is None:
		raise NotFoundError("user_not_found")
	return schemas.ProfileResponse(user=schemas.PublicUser.from_user(user))


async def update_profile(
	auth_user: AuthenticatedUser,
	payload: schemas.ProfileUpdate,
	*,
	image: Optional[UploadedImage] = None,
) -> schemas.ProfileResponse:
	user_id = UUID(auth_user.id)
	current = await _directory.get_by_id(user_id)
	if current is None:
		raise NotFoundError("user_not_found")
	previous = current.profile_image_url

	email = policy.normalise_email(payload.university_email)
	policy.guard_email_domain(email)
	if await _directory.email_exists(email, exclude_user_id=user_id):
		obs_metrics.inc_identity_reject("university_email_taken")
		raise ConstraintViolation("university_email_taken")
	interests = policy.normalise_interests(payload.interests)
	if image is not None:
		validate_images([image], max_count=1)

	fields: dict[str, object] = {
		"first_name": payload.first_name,
		"last_name": payload.last_name,
		"full_name": f"{payload.first_name} {payload.last_name}".strip(),
		"date_of_birth": payload.date_of_birth,
		"gender": payload.gender,
		"about": payload.about,
		"age": payload.age,
		"location": payload.location,
		"field_of_studies": payload.field_of_studies,
		"university_email": email,
		"interests": interests,
	}
	async with StagedUploads(_storage, folder=PROFILE_IMAGES_FOLDER, owner_id=auth_user.id) as staged:
		references = await staged.stage([image] if image is not None else [])
		if references:
			fields["profile_image_url"] = references[0]
		updated = await _directory.update_profile(user_id, fields)
		if updated is None:
			raise NotFoundError("user_not_found")
		staged.commit()

	if references:
		if previous and previous != references[0]:
			await _storage.delete(previous)
		obs_metrics.inc_avatar_upload()
	obs_metrics.inc_profile_update()
	logger.info("profile_updated", extra={"user_id": auth_user.id, "image_replaced": bool(references)})
	return schemas.ProfileResponse(user=schemas.PublicUser.from_user(updated))
