"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"campus_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"campus_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

REDIS_UP = Gauge("campus_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("campus_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("campus_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("campus_postgres_latency_seconds", "Postgres ping latency (seconds)")

EVENTS_CREATED = Counter(
	"campus_events_created_total",
	"Events created",
)

EVENTS_UPDATED = Counter(
	"campus_events_updated_total",
	"Events updated by their owner",
)

EVENTS_DELETED = Counter(
	"campus_events_deleted_total",
	"Events deleted by their owner",
)

EVENT_REGISTRATIONS = Counter(
	"campus_event_registrations_total",
	"Event registration attempts by outcome",
	["outcome"],
)

IDENTITY_REGISTER = Counter(
	"campus_identity_register_total",
	"Successful user registrations",
)

IDENTITY_LOGIN = Counter(
	"campus_identity_login_total",
	"Logins issued",
)

PROFILE_UPDATE = Counter(
	"campus_profile_update_total",
	"Profile updates applied",
)

AVATAR_UPLOAD = Counter(
	"campus_avatar_upload_total",
	"Profile images committed",
)

IDENTITY_REJECTS = Counter(
	"campus_identity_rejects_total",
	"Identity operation rejects",
	["reason"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def inc_event_created() -> None:
	EVENTS_CREATED.inc()


def inc_event_updated() -> None:
	EVENTS_UPDATED.inc()


def inc_event_deleted() -> None:
	EVENTS_DELETED.inc()


def inc_event_registration(outcome: str) -> None:
	EVENT_REGISTRATIONS.labels(outcome=outcome).inc()


def inc_identity_register() -> None:
	IDENTITY_REGISTER.inc()


def inc_identity_login() -> None:
	IDENTITY_LOGIN.inc()


def inc_profile_update() -> None:
	PROFILE_UPDATE.inc()


def inc_avatar_upload() -> None:
	AVATAR_UPLOAD.inc()


def inc_identity_reject(reason: str) -> None:
	IDENTITY_REJECTS.labels(reason=reason).inc()
