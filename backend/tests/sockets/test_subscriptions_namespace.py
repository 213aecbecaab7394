import asyncio
from unittest.mock import AsyncMock

import pytest
import socketio

from remix.domain.chat.models import MESSAGE_STREAM
from remix.domain.realtime.hub import FanoutHub
from remix.domain.realtime.sockets import SubscriptionsNamespace
from remix.domain.social.models import FRIEND_REQUEST_STREAM
from remix.infra import jwt as jwt_helper
from remix.infra.auth import issue_access_token


def _scope_with_authorization(token: str) -> dict:
	return {
		"headers": [(b"authorization", f"Bearer {token}".encode())],
	}


def _namespace(hub: FanoutHub | None = None) -> SubscriptionsNamespace:
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = SubscriptionsNamespace(hub or FanoutHub(queue_size=8))
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	return namespace


async def _connect(namespace: SubscriptionsNamespace, user_id: str, sid: str = "sid-1") -> None:
	token = issue_access_token(user_id)
	await namespace.trigger_event("connect", sid, {"asgi.scope": _scope_with_authorization(token)})


@pytest.mark.asyncio
async def test_connect_requires_token():
	namespace = _namespace()
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})


@pytest.mark.asyncio
async def test_connect_rejects_invalid_and_expired_tokens():
	namespace = _namespace()
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization("garbage")})
	expired = jwt_helper.encode_access({"sub": "user-1"}, ttl_seconds=-3600)
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization(expired)})
	assert namespace.principals == {}


@pytest.mark.asyncio
async def test_connect_emits_ok():
	namespace = _namespace()
	await _connect(namespace, "user-1")

	assert namespace.principals["sid-1"].id == "user-1"
	namespace.emit.assert_awaited_with("sys.ok", {"user_id": "user-1"}, to="sid-1")


@pytest.mark.asyncio
async def test_connect_accepts_auth_payload_token():
	namespace = _namespace()
	token = issue_access_token("user-2")
	await namespace.trigger_event("connect", "sid-2", {"asgi.scope": {"headers": []}}, {"token": token})
	assert namespace.principals["sid-2"].id == "user-2"


@pytest.mark.asyncio
async def test_subscribe_forwards_published_events():
	hub = FanoutHub(queue_size=8)
	namespace = _namespace(hub)
	await _connect(namespace, "user-1")

	ack = await namespace.trigger_event("subscribe", "sid-1", {"stream": MESSAGE_STREAM, "user_id": "user-1"})
	assert ack == {"ok": True, "stream": MESSAGE_STREAM}
	assert hub.subscriber_count(MESSAGE_STREAM, "user-1") == 1

	hub.publish(MESSAGE_STREAM, "user-1", {"id": "m-1"})
	await asyncio.sleep(0.01)

	namespace.emit.assert_awaited_with("newMessage", {"id": "m-1"}, to="sid-1")


@pytest.mark.asyncio
async def test_subscribe_rejects_foreign_user_and_unknown_stream():
	hub = FanoutHub(queue_size=8)
	namespace = _namespace(hub)
	await _connect(namespace, "user-1")

	forbidden = await namespace.trigger_event(
		"subscribe", "sid-1", {"stream": FRIEND_REQUEST_STREAM, "user_id": "user-2"}
	)
	assert forbidden == {"ok": False, "error": "forbidden"}
	unknown = await namespace.trigger_event("subscribe", "sid-1", {"stream": "presence"})
	assert unknown == {"ok": False, "error": "unknown_stream"}
	anonymous = await namespace.trigger_event("subscribe", "sid-9", {"stream": MESSAGE_STREAM})
	assert anonymous == {"ok": False, "error": "not_authenticated"}
	assert hub.subscriber_count(FRIEND_REQUEST_STREAM, "user-2") == 0


@pytest.mark.asyncio
async def test_unsubscribe_and_disconnect_release_registrations():
	hub = FanoutHub(queue_size=8)
	namespace = _namespace(hub)
	await _connect(namespace, "user-1")
	await namespace.trigger_event("subscribe", "sid-1", {"stream": MESSAGE_STREAM})
	await namespace.trigger_event("subscribe", "sid-1", {"stream": FRIEND_REQUEST_STREAM})
	assert namespace.active_streams("sid-1") == [FRIEND_REQUEST_STREAM, MESSAGE_STREAM]

	ack = await namespace.trigger_event("unsubscribe", "sid-1", {"stream": MESSAGE_STREAM})
	assert ack == {"ok": True, "stream": MESSAGE_STREAM}
	assert hub.subscriber_count(MESSAGE_STREAM, "user-1") == 0

	await namespace.trigger_event("disconnect", "sid-1", "client disconnect")
	assert hub.subscriber_count(FRIEND_REQUEST_STREAM, "user-1") == 0
	assert "sid-1" not in namespace.principals
	assert namespace.active_streams("sid-1") == []


@pytest.mark.asyncio
async def test_friend_request_reaches_subscribed_socket(services, make_user, ctx_for):
	sender = await make_user()
	recipient = await make_user()
	namespace = _namespace(services.hub)
	await _connect(namespace, recipient.id)
	await namespace.trigger_event("subscribe", "sid-1", {"stream": FRIEND_REQUEST_STREAM})

	request = await services.social.create_friend_request(ctx_for(sender.id), sender.id, recipient.id, "hey")
	await asyncio.sleep(0.01)

	event, payload = namespace.emit.await_args.args
	assert event == "newFriendRequest"
	assert payload["id"] == request.id
	await namespace.trigger_event("disconnect", "sid-1", "client disconnect")
