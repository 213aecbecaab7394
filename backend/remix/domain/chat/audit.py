"""Audit stream for message creation."""

from __future__ import annotations

import logging

from redis.exceptions import RedisError

from remix.infra.redis import redis_client

from .models import Message

logger = logging.getLogger(__name__)

MESSAGE_STREAM_KEY = "x:messages.events"


async def log_message_event(event: str, message: Message) -> None:
	payload = {
		"event": event,
		"message_id": message.id,
		"chat_id": message.chat_id,
		"user_id": message.user_id,
		"content_id": message.content.id,
		"content_type": message.content.type,
	}
	try:
		await redis_client.xadd(MESSAGE_STREAM_KEY, payload, maxlen=10_000, approximate=True)
	except RedisError:
		logger.warning("audit_append_failed", extra={"stream": MESSAGE_STREAM_KEY, "event": event}, exc_info=True)
