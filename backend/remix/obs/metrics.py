"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

log = logging.getLogger(__name__)


REQUEST_COUNTER = Counter(
	"remix_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"remix_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"remix_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"remix_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

RATE_LIMITED_EVENTS = Counter(
	"remix_rate_limited_total",
	"Events dropped due to rate limiting",
	["kind"],
)

UNKNOWN_ERRORS = Counter(
	"remix_unknown_errors_total",
	"Unexpected failures masked by the request pipeline",
	["operation"],
)

USERS_REGISTERED = Counter(
	"remix_users_registered_total",
	"User accounts created",
)

USER_LOGINS = Counter(
	"remix_user_logins_total",
	"Login attempts",
	["method", "result"],
)

FRIEND_REQUESTS_SENT = Counter(
	"remix_friend_requests_sent_total",
	"Friend requests sent",
	["result"],
)

FRIEND_REQUESTS_REJECTED = Counter(
	"remix_friend_requests_rejected_total",
	"Friend requests rejected or cancelled",
)

FRIENDSHIPS_ACCEPTED = Counter(
	"remix_friendships_accepted_total",
	"Friendships accepted",
)

DM_GROUPS_CREATED = Counter(
	"remix_dm_groups_created_total",
	"Direct-message groups provisioned on friend acceptance",
)

GROUPS_CREATED = Counter(
	"remix_groups_created_total",
	"Groups created",
)

GROUP_REQUESTS = Counter(
	"remix_group_requests_total",
	"Group join requests and invitations",
	["kind", "action"],
)

MESSAGES_SENT = Counter(
	"remix_messages_sent_total",
	"Chat messages created",
	["mode"],
)

READ_POSITION_UPDATES = Counter(
	"remix_read_position_updates_total",
	"Read position updates",
	["result"],
)

FANOUT_PUBLISHED = Counter(
	"remix_fanout_published_total",
	"Events delivered to subscription queues",
	["stream"],
)

FANOUT_DROPPED = Counter(
	"remix_fanout_dropped_total",
	"Events dropped because a subscriber queue was full",
	["stream"],
)

FANOUT_SUBSCRIPTIONS = Gauge(
	"remix_fanout_subscriptions",
	"Active subscription registrations",
	["stream"],
)

DEPENDENCY_UP = Gauge(
	"remix_dependency_up",
	"Whether a backing dependency answered its last readiness probe",
	["dependency"],
)

DEPENDENCY_LATENCY = Histogram(
	"remix_dependency_probe_seconds",
	"Readiness probe latency per dependency",
	["dependency"],
	buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def inc_unknown_error(operation: str) -> None:
	UNKNOWN_ERRORS.labels(operation=operation).inc()


def inc_user_registered() -> None:
	USERS_REGISTERED.inc()


def inc_login(method: str, result: str) -> None:
	USER_LOGINS.labels(method=method, result=result).inc()


def inc_friend_request_sent(result: str) -> None:
	FRIEND_REQUESTS_SENT.labels(result=result).inc()


def inc_friend_request_rejected() -> None:
	FRIEND_REQUESTS_REJECTED.inc()


def inc_friendship_accepted(*, dm_created: bool) -> None:
	FRIENDSHIPS_ACCEPTED.inc()
	if dm_created:
		DM_GROUPS_CREATED.inc()


def inc_group_created() -> None:
	GROUPS_CREATED.inc()


def inc_group_request(kind: str, action: str) -> None:
	GROUP_REQUESTS.labels(kind=kind, action=action).inc()


def inc_message_sent(mode: str = "new") -> None:
	MESSAGES_SENT.labels(mode=mode).inc()


def inc_read_position(result: str) -> None:
	READ_POSITION_UPDATES.labels(result=result).inc()


def fanout_published(stream: str) -> None:
	FANOUT_PUBLISHED.labels(stream=stream).inc()


def fanout_dropped(stream: str) -> None:
	FANOUT_DROPPED.labels(stream=stream).inc()


def fanout_subscribed(stream: str) -> None:
	FANOUT_SUBSCRIPTIONS.labels(stream=stream).inc()


def fanout_released(stream: str) -> None:
	FANOUT_SUBSCRIPTIONS.labels(stream=stream).dec()


def mark_dependency(dependency: str, ok: bool, *, latency_seconds: float | None = None) -> None:
	DEPENDENCY_UP.labels(dependency=dependency).set(1 if ok else 0)
	if ok and latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency=dependency).observe(latency_seconds)
