"""Audit helpers for friend requests & friendships."""

from __future__ import annotations

import logging
from typing import Dict

from redis.exceptions import RedisError

from remix.infra.redis import redis_client
from remix.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

FRIEND_REQUEST_STREAM_KEY = "x:friend_requests.events"
FRIENDSHIP_STREAM_KEY = "x:friendships.events"


async def _append(stream: str, event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **{key: value for key, value in fields.items() if value is not None}}
	try:
		await redis_client.xadd(stream, payload, maxlen=10_000, approximate=True)
	except RedisError:
		# The mutation has already committed; losing an audit entry must not fail it.
		logger.warning("audit_append_failed", extra={"stream": stream, "event": event}, exc_info=True)


async def log_friend_request_event(event: str, fields: Dict[str, str]) -> None:
	await _append(FRIEND_REQUEST_STREAM_KEY, event, fields)


async def log_friend_event(event: str, fields: Dict[str, str]) -> None:
	await _append(FRIENDSHIP_STREAM_KEY, event, fields)


def inc_request_sent(result: str) -> None:
	obs_metrics.inc_friend_request_sent(result)


def inc_request_rejected() -> None:
	obs_metrics.inc_friend_request_rejected()


def inc_accept(*, dm_created: bool) -> None:
	obs_metrics.inc_friendship_accepted(dm_created=dm_created)
