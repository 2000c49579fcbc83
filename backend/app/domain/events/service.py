"""Event lifecycle service: CRUD, ownership, and capacity-limited registration."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

from app.domain.events import models, policy, repo as repo_module, schemas
from app.domain.exceptions import (
	CapacityExceededError,
	ConstraintViolation,
	DomainError,
	DuplicateRegistrationError,
	NotFoundError,
	RegistrationClosedError,
)
from app.infra.auth import AuthenticatedUser
from app.infra.postgres import get_pool
from app.infra.storage import (
	EVENT_IMAGES_FOLDER,
	BlobStorage,
	LocalBlobStorage,
	StagedUploads,
	UploadedImage,
	delete_all,
	validate_images,
)
from app.obs import logging as obs_logging
from app.obs import metrics as obs_metrics
from app.settings import settings

LOGGER = obs_logging.get_logger("campus.events")


def _now() -> datetime:
	return datetime.now(timezone.utc)


class EventsService:
	"""Business logic for event CRUD and registrations."""

	def __init__(
		self,
		repository: repo_module.EventRepository | None = None,
		ledger: repo_module.RegistrationLedger | None = None,
		storage: BlobStorage | None = None,
	) -> None:
		self.repo = repository or repo_module.EventRepository()
		self.ledger = ledger or repo_module.RegistrationLedger()
		self.storage = storage or LocalBlobStorage()

	async def create_event(
		self,
		user: AuthenticatedUser,
		draft: schemas.EventDraft,
		images: Sequence[UploadedImage] = (),
		*,
		now: datetime | None = None,
	) -> schemas.EventView:
		now = now or _now()
		self._validate_draft(draft, images, now)
		async with StagedUploads(self.storage, folder=EVENT_IMAGES_FOLDER, owner_id=user.id) as staged:
			references = await staged.stage(images)
			event = await self.repo.create(
				name=draft.name,
				description=draft.description,
				location=draft.location,
				category=draft.category,
				starts_at=draft.starts_at,
				registration_deadline=draft.registration_deadline,
				attendance_limit=draft.attendance_limit,
				owner_id=UUID(user.id),
				owner_name=policy.resolve_owner_name(draft.owner_name, user),
				images=references,
			)
			staged.commit()
		obs_metrics.inc_event_created()
		LOGGER.info("event_created", extra={"event_id": str(event.id), "images": len(references)})
		return schemas.EventView.from_event(event)

	async def list_events(self, user: AuthenticatedUser) -> list[schemas.EventView]:
		rows = await self.repo.list_ordered(viewer_id=UUID(user.id))
		return [schemas.EventView.from_event(event, stats) for event, stats in rows]

	async def get_event(self, user: AuthenticatedUser, event_id: UUID) -> schemas.EventView:
		result = await self.repo.get_with_stats(event_id, viewer_id=UUID(user.id))
		if result is None:
			raise NotFoundError("event_not_found")
		event, stats = result
		return schemas.EventView.from_event(event, stats)

	async def update_event(
		self,
		user: AuthenticatedUser,
		event_id: UUID,
		draft: schemas.EventDraft,
		images: Sequence[UploadedImage] = (),
		*,
		now: datetime | None = None,
	) -> schemas.EventView:
		now = now or _now()
		current = await self.repo.get(event_id)
		if current is None:
			raise NotFoundError("event_not_found")
		policy.assert_owner(current, user)
		self._validate_draft(draft, images, now)
		async with StagedUploads(self.storage, folder=EVENT_IMAGES_FOLDER, owner_id=user.id) as staged:
			new_references = await staged.stage(images)
			pool = await get_pool()
			async with pool.acquire() as conn:
				async with conn.transaction():
					# Locked against concurrent registrations while the count is checked
					existing = await self.repo.get(event_id, conn=conn, for_update=True)
					if existing is None:
						raise NotFoundError("event_not_found")
					policy.assert_owner(existing, user)
					count = await self.ledger.count(event_id, conn=conn)
					policy.validate_limit_covers_registrations(draft.attendance_limit, count)
					updates: dict[str, object] = {
						"name": draft.name,
						"description": draft.description,
						"location": draft.location,
						"category": draft.category,
						"starts_at": draft.starts_at,
						"registration_deadline": draft.registration_deadline,
						"attendance_limit": draft.attendance_limit,
						"owner_name": policy.resolve_owner_name(draft.owner_name, user, fallback=existing.owner_name),
					}
					# New uploads replace the whole image list; otherwise the stored list is kept
					if new_references:
						updates["images"] = new_references
					updated = await self.repo.update(event_id, updates, conn=conn)
					if updated is None:
						raise NotFoundError("event_not_found")
			staged.commit()
		if new_references:
			orphaned = [ref for ref in existing.images if ref not in new_references]
			await delete_all(self.storage, orphaned)
		obs_metrics.inc_event_updated()
		LOGGER.info("event_updated", extra={"event_id": str(event_id), "images_replaced": bool(new_references)})
		result = await self.repo.get_with_stats(event_id, viewer_id=UUID(user.id))
		if result is None:
			return schemas.EventView.from_event(updated)
		event, stats = result
		return schemas.EventView.from_event(event, stats)

	async def delete_event(self, user: AuthenticatedUser, event_id: UUID) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				event = await self.repo.get(event_id, conn=conn, for_update=True)
				if event is None:
					raise NotFoundError("event_not_found")
				policy.assert_owner(event, user)
				removed = await self.ledger.delete_all_for_event(event_id, conn=conn)
				await self.repo.delete(event_id, conn=conn)
		await delete_all(self.storage, event.images)
		obs_metrics.inc_event_deleted()
		LOGGER.info("event_deleted", extra={"event_id": str(event_id), "registrations_removed": removed})

	async def register(
		self,
		user: AuthenticatedUser,
		event_id: UUID,
		*,
		now: datetime | None = None,
	) -> schemas.RegistrationResult:
		now = now or _now()
		try:
			registration, count = await self._register_tx(UUID(user.id), event_id, now)
		except DomainError as exc:
			obs_metrics.inc_event_registration(exc.detail)
			raise
		obs_metrics.inc_event_registration("registered")
		LOGGER.info("event_registration", extra={"event_id": str(event_id), "registration_count": count})
		return schemas.RegistrationResult(
			event_id=event_id,
			registration_count=count,
			registered_at=registration.created_at,
		)

	# ------------------------------------------------------------------
	# Helpers

	async def _register_tx(
		self,
		user_id: UUID,
		event_id: UUID,
		now: datetime,
	) -> tuple[models.EventRegistration, int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				# The row lock serialises concurrent registrations for this event only
				event = await self.repo.get(event_id, conn=conn, for_update=True)
				if event is None:
					raise NotFoundError("event_not_found")
				if not policy.registration_open(event, now):
					raise RegistrationClosedError()
				# Duplicate is checked before capacity
				if await self.ledger.exists(user_id, event_id, conn=conn):
					raise DuplicateRegistrationError()
				count = await self.ledger.count(event_id, conn=conn)
				if count >= event.attendance_limit:
					raise CapacityExceededError()
				try:
					registration = await self.ledger.insert(user_id, event_id, now, conn=conn)
				except ConstraintViolation as exc:
					raise DuplicateRegistrationError() from exc
		return registration, count + 1

	@staticmethod
	def _validate_draft(
		draft: schemas.EventDraft,
		images: Sequence[UploadedImage],
		now: datetime,
	) -> None:
		policy.validate_attendance_limit(draft.attendance_limit)
		policy.validate_schedule(draft.starts_at, draft.registration_deadline, now)
		validate_images(images, max_count=settings.event_images_max)
