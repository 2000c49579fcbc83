from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from app.domain.events import models, schemas
from app.domain.events.service import EventsService
from app.domain.exceptions import (
	CapacityExceededError,
	ConstraintViolation,
	DuplicateRegistrationError,
	ForbiddenError,
	NotFoundError,
	RegistrationClosedError,
	ValidationError,
)
from app.infra.auth import AuthenticatedUser
from app.infra.storage import UploadedImage

NOW = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)
PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 32


class _FakeTransaction:
	"""Serialises transactions like the event row lock does."""

	def __init__(self, lock: asyncio.Lock):
		self._lock = lock

	async def __aenter__(self):
		await self._lock.acquire()
		return None

	async def __aexit__(self, exc_type, exc, tb):
		self._lock.release()
		return False


class _FakeAcquire:
	def __init__(self, conn):
		self._conn = conn

	async def __aenter__(self):
		return self._conn

	async def __aexit__(self, exc_type, exc, tb):
		return False


class _FakeConnection:
	def __init__(self):
		self.lock = asyncio.Lock()

	def transaction(self):
		return _FakeTransaction(self.lock)


class _FakePool:
	def __init__(self, conn):
		self._conn = conn

	def acquire(self):
		return _FakeAcquire(self._conn)


class _FakeEventRepo:
	def __init__(self):
		self.events: dict[UUID, models.Event] = {}
		self.ledger: _FakeLedger | None = None

	async def create(self, *, conn=None, **fields):
		event = models.Event(id=uuid4(), created_at=NOW, updated_at=NOW, **fields)
		self.events[event.id] = event
		return event

	async def get(self, event_id, *, conn=None, for_update=False):
		await asyncio.sleep(0)
		return self.events.get(event_id)

	def _stats(self, event_id, viewer_id):
		regs = self.ledger.rows if self.ledger else set()
		count = sum(1 for (_, ev) in regs if ev == event_id)
		return models.EventStats(registration_count=count, is_registered=(viewer_id, event_id) in regs)

	async def get_with_stats(self, event_id, *, viewer_id=None, conn=None):
		event = self.events.get(event_id)
		if event is None:
			return None
		return event, self._stats(event_id, viewer_id)

	async def list_ordered(self, *, viewer_id=None, conn=None):
		ordered = sorted(self.events.values(), key=lambda e: (e.starts_at, str(e.id)))
		return [(event, self._stats(event.id, viewer_id)) for event in ordered]

	async def update(self, event_id, payload, *, conn=None):
		event = self.events.get(event_id)
		if event is None:
			return None
		updated = event.model_copy(update={**payload, "updated_at": NOW})
		self.events[event_id] = updated
		return updated

	async def delete(self, event_id, *, conn=None):
		return self.events.pop(event_id, None)


class _FakeLedger:
	def __init__(self):
		self.rows: set[tuple[UUID, UUID]] = set()

	async def count(self, event_id, *, conn=None):
		await asyncio.sleep(0)
		return sum(1 for (_, ev) in self.rows if ev == event_id)

	async def exists(self, user_id, event_id, *, conn=None):
		return (user_id, event_id) in self.rows

	async def insert(self, user_id, event_id, now, *, conn=None):
		await asyncio.sleep(0)
		if (user_id, event_id) in self.rows:
			raise ConstraintViolation("registration_exists")
		self.rows.add((user_id, event_id))
		return models.EventRegistration(id=uuid4(), event_id=event_id, user_id=user_id, created_at=now)

	async def delete_all_for_event(self, event_id, *, conn=None):
		doomed = {row for row in self.rows if row[1] == event_id}
		self.rows -= doomed
		return len(doomed)


class _MemoryStorage:
	def __init__(self):
		self.blobs: dict[str, bytes] = {}
		self.fail_next_save = False

	async def save(self, data, *, folder, owner_id, content_type):
		if self.fail_next_save:
			raise OSError("disk full")
		reference = f"/uploads/{folder}/{owner_id}-{len(self.blobs)}-{uuid4().hex[:6]}.png"
		self.blobs[reference] = data
		return reference

	async def delete(self, reference):
		self.blobs.pop(reference, None)


def _user(name: str = "Ada Lovelace") -> AuthenticatedUser:
	return AuthenticatedUser(id=str(uuid4()), email=f"{uuid4().hex[:6]}@uzh.ch", full_name=name)


def _draft(**overrides) -> schemas.EventDraft:
	payload = {
		"name": "Board Games Night",
		"description": "Bring your favourite game",
		"location": "KOL-F-101",
		"category": "Social",
		"time": (NOW + timedelta(days=7)).isoformat(),
		"registrationDeadline": (NOW + timedelta(days=5)).isoformat(),
		"attendanceLimit": "10",
		"eventOwner": "",
	}
	payload.update(overrides)
	return schemas.parse_event_form(payload)


def _png(name: str = "cover.png") -> UploadedImage:
	return UploadedImage(filename=name, content_type="image/png", data=PNG)


@pytest.fixture
def service_env(monkeypatch):
	repo = _FakeEventRepo()
	ledger = _FakeLedger()
	repo.ledger = ledger
	storage = _MemoryStorage()
	conn = _FakeConnection()

	async def _get_pool():
		return _FakePool(conn)

	monkeypatch.setattr("app.domain.events.service.get_pool", _get_pool)
	service = EventsService(repository=repo, ledger=ledger, storage=storage)
	return service, repo, ledger, storage


@pytest.mark.asyncio
async def test_create_event_starts_with_zero_registrations(service_env):
	service, repo, _, storage = service_env
	owner = _user()

	view = await service.create_event(owner, _draft(), [_png()], now=NOW)

	assert view.registration_count == 0
	assert view.is_registered is False
	assert view.owner_id == UUID(owner.id)
	assert view.owner_name == "Ada Lovelace"
	assert len(view.images) == 1
	assert view.images[0] in storage.blobs
	assert view.id in repo.events


@pytest.mark.asyncio
async def test_create_event_with_deadline_after_start_is_rejected(service_env):
	service, repo, _, storage = service_env
	draft = _draft(registrationDeadline=(NOW + timedelta(days=8)).isoformat())

	with pytest.raises(ValidationError) as excinfo:
		await service.create_event(_user(), draft, [_png()], now=NOW)

	assert excinfo.value.detail == "deadline_after_start"
	assert repo.events == {}
	assert storage.blobs == {}


@pytest.mark.asyncio
async def test_create_event_in_the_past_is_rejected(service_env):
	service, repo, _, _ = service_env
	draft = _draft(time=(NOW - timedelta(hours=1)).isoformat(), registrationDeadline=(NOW - timedelta(hours=2)).isoformat())

	with pytest.raises(ValidationError) as excinfo:
		await service.create_event(_user(), draft, now=NOW)

	assert excinfo.value.detail == "starts_at_not_in_future"
	assert repo.events == {}


@pytest.mark.asyncio
async def test_staged_images_are_removed_when_persisting_fails(service_env):
	service, repo, _, storage = service_env

	async def _boom(**_fields):
		raise RuntimeError("database unavailable")

	repo.create = _boom  # type: ignore[assignment]

	with pytest.raises(RuntimeError):
		await service.create_event(_user(), _draft(), [_png("a.png"), _png("b.png")], now=NOW)

	assert storage.blobs == {}


@pytest.mark.asyncio
async def test_update_by_non_owner_is_forbidden_and_leaves_event_unchanged(service_env):
	service, repo, _, _ = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(), now=NOW)

	with pytest.raises(ForbiddenError):
		await service.update_event(_user("Mallory"), created.id, _draft(name="Hijacked"), now=NOW)

	assert repo.events[created.id].name == "Board Games Night"


@pytest.mark.asyncio
async def test_update_with_new_images_replaces_and_deletes_previous(service_env):
	service, repo, _, storage = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(), [_png("old.png")], now=NOW)
	old_reference = created.images[0]

	updated = await service.update_event(owner, created.id, _draft(name="Chess Night"), [_png("new.png")], now=NOW)

	assert updated.name == "Chess Night"
	assert len(updated.images) == 1
	assert updated.images[0] != old_reference
	assert old_reference not in storage.blobs
	assert updated.images[0] in storage.blobs


@pytest.mark.asyncio
async def test_update_without_images_keeps_previous_images(service_env):
	service, _, _, storage = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(), [_png()], now=NOW)

	updated = await service.update_event(owner, created.id, _draft(attendanceLimit="25"), now=NOW)

	assert updated.images == created.images
	assert updated.attendance_limit == 25
	assert created.images[0] in storage.blobs


@pytest.mark.asyncio
async def test_update_missing_event_raises_not_found(service_env):
	service, _, _, _ = service_env

	with pytest.raises(NotFoundError):
		await service.update_event(_user(), uuid4(), _draft(), now=NOW)


@pytest.mark.asyncio
async def test_update_cannot_lower_limit_below_current_registrations(service_env):
	service, repo, ledger, _ = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(attendanceLimit="3"), now=NOW)
	for name in ("Grace", "Alan", "Edsger"):
		await service.register(_user(name), created.id, now=NOW)

	with pytest.raises(ValidationError) as excinfo:
		await service.update_event(owner, created.id, _draft(attendanceLimit="1"), now=NOW)

	assert excinfo.value.detail == "attendance_limit_below_registrations"
	assert repo.events[created.id].attendance_limit == 3
	assert sum(1 for (_, ev) in ledger.rows if ev == created.id) == 3

	updated = await service.update_event(owner, created.id, _draft(attendanceLimit="3", name="Full House"), now=NOW)
	assert updated.attendance_limit == 3
	assert updated.registration_count == 3


@pytest.mark.asyncio
async def test_update_with_deadline_after_start_leaves_event_unchanged(service_env):
	service, repo, _, storage = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(), [_png("old.png")], now=NOW)
	before = repo.events[created.id]

	with pytest.raises(ValidationError) as excinfo:
		await service.update_event(
			owner,
			created.id,
			_draft(
				name="Rescheduled",
				time=(NOW + timedelta(days=2)).isoformat(),
				registrationDeadline=(NOW + timedelta(days=3)).isoformat(),
			),
			[_png("new.png")],
			now=NOW,
		)

	assert excinfo.value.detail == "deadline_after_start"
	assert repo.events[created.id] == before
	assert set(storage.blobs) == set(created.images)


@pytest.mark.asyncio
async def test_update_failing_to_persist_removes_new_images(service_env, monkeypatch):
	service, repo, _, storage = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(), [_png("old.png")], now=NOW)
	before = repo.events[created.id]

	async def _broken_update(event_id, payload, *, conn=None):
		raise RuntimeError("connection reset")

	monkeypatch.setattr(repo, "update", _broken_update)

	with pytest.raises(RuntimeError):
		await service.update_event(owner, created.id, _draft(name="Chess Night"), [_png("new.png")], now=NOW)

	assert repo.events[created.id] == before
	assert set(storage.blobs) == set(created.images)


@pytest.mark.asyncio
async def test_delete_removes_registrations_and_images(service_env):
	service, repo, ledger, storage = service_env
	owner = _user()
	created = await service.create_event(owner, _draft(), [_png()], now=NOW)
	await service.register(_user("Grace"), created.id, now=NOW)

	await service.delete_event(owner, created.id)

	assert created.id not in repo.events
	assert not any(ev == created.id for (_, ev) in ledger.rows)
	assert storage.blobs == {}
	with pytest.raises(NotFoundError):
		await service.get_event(owner, created.id)


@pytest.mark.asyncio
async def test_delete_by_non_owner_is_forbidden(service_env):
	service, repo, _, _ = service_env
	created = await service.create_event(_user(), _draft(), now=NOW)

	with pytest.raises(ForbiddenError):
		await service.delete_event(_user("Mallory"), created.id)

	assert created.id in repo.events


@pytest.mark.asyncio
async def test_register_returns_new_count_and_marks_caller(service_env):
	service, _, _, _ = service_env
	created = await service.create_event(_user(), _draft(), now=NOW)
	attendee = _user("Grace")

	result = await service.register(attendee, created.id, now=NOW)
	view = await service.get_event(attendee, created.id)

	assert result.event_id == created.id
	assert result.registration_count == 1
	assert view.registration_count == 1
	assert view.is_registered is True


@pytest.mark.asyncio
async def test_register_after_deadline_is_closed(service_env):
	service, _, ledger, _ = service_env
	created = await service.create_event(_user(), _draft(), now=NOW)

	with pytest.raises(RegistrationClosedError):
		await service.register(_user("Late"), created.id, now=NOW + timedelta(days=5))

	assert ledger.rows == set()


@pytest.mark.asyncio
async def test_register_twice_is_duplicate_and_count_unchanged(service_env):
	service, _, _, _ = service_env
	created = await service.create_event(_user(), _draft(), now=NOW)
	attendee = _user("Grace")
	await service.register(attendee, created.id, now=NOW)

	with pytest.raises(DuplicateRegistrationError):
		await service.register(attendee, created.id, now=NOW)

	view = await service.get_event(attendee, created.id)
	assert view.registration_count == 1


@pytest.mark.asyncio
async def test_duplicate_is_reported_before_capacity(service_env):
	service, _, _, _ = service_env
	created = await service.create_event(_user(), _draft(attendanceLimit="1"), now=NOW)
	attendee = _user("Grace")
	await service.register(attendee, created.id, now=NOW)

	with pytest.raises(DuplicateRegistrationError):
		await service.register(attendee, created.id, now=NOW)


@pytest.mark.asyncio
async def test_register_unknown_event_is_not_found(service_env):
	service, _, _, _ = service_env

	with pytest.raises(NotFoundError):
		await service.register(_user(), uuid4(), now=NOW)


@pytest.mark.asyncio
async def test_concurrent_registrations_never_exceed_capacity(service_env):
	service, _, ledger, _ = service_env
	created = await service.create_event(_user(), _draft(attendanceLimit="1"), now=NOW)

	results = await asyncio.gather(
		service.register(_user("First"), created.id, now=NOW),
		service.register(_user("Second"), created.id, now=NOW),
		return_exceptions=True,
	)

	successes = [r for r in results if isinstance(r, schemas.RegistrationResult)]
	failures = [r for r in results if isinstance(r, CapacityExceededError)]
	assert len(successes) == 1
	assert len(failures) == 1
	assert len(ledger.rows) == 1


@pytest.mark.asyncio
async def test_list_events_orders_by_start_time(service_env):
	service, _, _, _ = service_env
	owner = _user()
	later = await service.create_event(owner, _draft(name="Later"), now=NOW)
	sooner = await service.create_event(
		owner,
		_draft(
			name="Sooner",
			time=(NOW + timedelta(days=2)).isoformat(),
			registrationDeadline=(NOW + timedelta(days=1)).isoformat(),
		),
		now=NOW,
	)

	events = await service.list_events(owner)

	assert [event.id for event in events] == [sooner.id, later.id]
