"""Socket.IO namespace delivering live subscription events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import socketio

from remix.domain.chat.models import MESSAGE_STREAM
from remix.domain.social.models import FRIEND_REQUEST_STREAM
from remix.infra.auth import CredentialError, Principal, decode_bearer, parse_authorization
from remix.obs import metrics as obs_metrics

from .hub import FanoutHub, Subscription

logger = logging.getLogger(__name__)

STREAM_EVENTS: Dict[str, str] = {
	FRIEND_REQUEST_STREAM: "newFriendRequest",
	MESSAGE_STREAM: "newMessage",
}


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class SubscriptionsNamespace(socketio.AsyncNamespace):
	"""One forwarding task per (socket, stream), fed by the fan-out hub."""

	def __init__(self, hub: FanoutHub, namespace: str = "/subscriptions") -> None:
		super().__init__(namespace)
		self.hub = hub
		self.principals: Dict[str, Principal] = {}
		self._forwarders: Dict[str, Dict[str, Tuple[asyncio.Task, Subscription]]] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
		token = None
		if isinstance(auth_payload, dict):
			token = parse_authorization(auth_payload.get("token"))
		token = token or parse_authorization(_header(scope, "authorization"))
		if not token:
			raise ConnectionRefusedError("unauthorized")
		try:
			principal = Principal.from_claims(decode_bearer(token))
		except CredentialError as exc:
			raise ConnectionRefusedError("invalid_token") from exc
		if principal.is_expired():
			raise ConnectionRefusedError("token_expired")
		self.principals[sid] = principal
		obs_metrics.socket_connected(self.namespace)
		await self.emit("sys.ok", {"user_id": principal.id}, to=sid)

	async def on_disconnect(self, sid: str, reason: Any = None) -> None:
		principal = self.principals.pop(sid, None)
		forwarders = self._forwarders.pop(sid, {})
		for stream in list(forwarders):
			await self._stop_forwarder(forwarders.pop(stream))
		if principal is not None:
			obs_metrics.socket_disconnected(self.namespace)

	async def on_subscribe(self, sid: str, payload: Any = None) -> dict:
		obs_metrics.socket_event(self.namespace, "subscribe")
		principal = self.principals.get(sid)
		if principal is None:
			return {"ok": False, "error": "not_authenticated"}
		payload = payload if isinstance(payload, dict) else {}
		stream = payload.get("stream")
		event = STREAM_EVENTS.get(stream)
		if event is None:
			return {"ok": False, "error": "unknown_stream"}
		user_id = str(payload.get("user_id") or principal.id)
		if user_id != principal.id:
			return {"ok": False, "error": "forbidden"}
		forwarders = self._forwarders.setdefault(sid, {})
		if stream not in forwarders:
			subscription = self.hub.subscribe(stream, user_id)
			task = asyncio.create_task(self._forward(sid, subscription, event))
			forwarders[stream] = (task, subscription)
			logger.info(
				"stream_subscribed",
				extra={"stream": stream, "user_id": user_id, "subscribers": self.hub.subscriber_count(stream, user_id)},
			)
		return {"ok": True, "stream": stream}

	async def on_unsubscribe(self, sid: str, payload: Any = None) -> dict:
		obs_metrics.socket_event(self.namespace, "unsubscribe")
		stream = payload.get("stream") if isinstance(payload, dict) else None
		entry = self._forwarders.get(sid, {}).pop(stream, None)
		if entry is None:
			return {"ok": False, "error": "not_subscribed"}
		await self._stop_forwarder(entry)
		return {"ok": True, "stream": stream}

	def active_streams(self, sid: str) -> list[str]:
		return sorted(self._forwarders.get(sid, {}))

	async def _forward(self, sid: str, subscription: Subscription, event: str) -> None:
		async with subscription:
			async for payload in subscription:
				obs_metrics.socket_event(self.namespace, event)
				await self.emit(event, payload, to=sid)

	@staticmethod
	async def _stop_forwarder(entry: Tuple[asyncio.Task, Subscription]) -> None:
		task, subscription = entry
		subscription.close()
		task.cancel()
		await asyncio.gather(task, return_exceptions=True)
