"""Friend request lifecycle and the friendship relation it produces."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import ulid

from remix.domain.common.errors import AuthorizationError, ConflictError
from remix.domain.common.pipeline import Pipelines, RequestContext, operation
from remix.domain.groups.exceptions import GroupNotFound
from remix.domain.groups.models import Chat, Group
from remix.domain.realtime.hub import FanoutHub
from remix.domain.users.models import User
from remix.infra.store.base import AcceptOutcome, Store
from remix.settings import settings

from . import audit, policy
from .exceptions import FriendRequestNotFound, FriendRequestNotParticipant
from .models import FRIEND_REQUEST_STREAM, FriendRequest

logger = logging.getLogger(__name__)


class SocialService:
	def __init__(
		self,
		store: Store,
		pipelines: Pipelines,
		hub: FanoutHub,
		*,
		dm_group_name: Optional[str] = None,
		default_chat_name: Optional[str] = None,
	) -> None:
		self.store = store
		self.pipelines = pipelines
		self.hub = hub
		self.dm_group_name = dm_group_name or settings.dm_group_name
		self.default_chat_name = default_chat_name or settings.default_chat_name

	@operation()
	async def create_friend_request(
		self,
		ctx: RequestContext,
		from_user_id: str,
		to_user_id: str,
		message: Optional[str] = None,
	) -> FriendRequest:
		from_user_id, to_user_id = str(from_user_id), str(to_user_id)
		try:
			policy.guard_not_self(from_user_id, to_user_id)
			await policy.enforce_request_limits(ctx.user_id)
			request = await self.store.create_friend_request(
				FriendRequest(
					id=str(ulid.new()),
					from_user_id=from_user_id,
					to_user_id=to_user_id,
					message=message,
					created_at=datetime.now(timezone.utc),
				)
			)
		except ConflictError as exc:
			audit.inc_request_sent(exc.detail)
			raise
		audit.inc_request_sent("ok")
		await audit.log_friend_request_event(
			"created",
			{"request_id": request.id, "from": from_user_id, "to": to_user_id, "actor": ctx.user_id},
		)
		self.hub.publish(FRIEND_REQUEST_STREAM, request.to_user_id, request.to_dict())
		return request

	@operation()
	async def accept_friend_request(self, ctx: RequestContext, friend_request_id: str) -> AcceptOutcome:
		"""Consume the request, befriend both users and provision their DM group.

		Runs as one store transaction. The DM group is only created when the
		pair does not already have one.
		"""
		now = datetime.now(timezone.utc)
		group_id = str(ulid.new())
		outcome = await self.store.accept_friend_request(
			str(friend_request_id),
			recipient_id=ctx.user_id,
			dm_group=Group(
				id=group_id,
				name=self.dm_group_name,
				icon_url=None,
				description=None,
				is_direct_message=True,
				created_at=now,
			),
			dm_chat=Chat(id=str(ulid.new()), group_id=group_id, name=self.default_chat_name, created_at=now),
		)
		audit.inc_accept(dm_created=outcome.dm_created)
		request = outcome.request
		await audit.log_friend_event(
			"accepted",
			{
				"request_id": request.id,
				"user_id": request.from_user_id,
				"friend_id": request.to_user_id,
				"group_id": outcome.group.id,
			},
		)
		logger.info(
			"friend_request_accepted",
			extra={"request_id": request.id, "group_id": outcome.group.id, "dm_created": outcome.dm_created},
		)
		return outcome

	@operation()
	async def reject_friend_request(self, ctx: RequestContext, friend_request_id: str) -> FriendRequest:
		request = await self.store.delete_friend_request(str(friend_request_id), actor_id=ctx.user_id)
		event = "rejected" if request.to_user_id == ctx.user_id else "cancelled"
		audit.inc_request_rejected()
		await audit.log_friend_request_event(event, {"request_id": request.id, "actor": ctx.user_id})
		return request

	@operation()
	async def list_friend_requests(self, ctx: RequestContext, user_id: str) -> list[FriendRequest]:
		if str(user_id) != ctx.user_id:
			raise AuthorizationError()
		return await self.store.list_incoming_friend_requests(ctx.user_id)

	@operation()
	async def list_friends(self, ctx: RequestContext, user_id: str) -> list[User]:
		friend_ids = await self.store.list_friend_ids(str(user_id))
		return await self.store.get_users(friend_ids)

	@operation()
	async def are_friends(self, ctx: RequestContext, user_id: str, other_id: str) -> bool:
		return await self.store.are_friends(str(user_id), str(other_id))

	@operation()
	async def get_friend_request(self, ctx: RequestContext, friend_request_id: str) -> FriendRequest:
		request = await self.store.get_friend_request(str(friend_request_id))
		if request is None:
			raise FriendRequestNotFound()
		if not request.involves(ctx.user_id):
			raise FriendRequestNotParticipant()
		return request

	@operation()
	async def get_dm_group(self, ctx: RequestContext, other_id: str) -> Group:
		"""DM group shared by the principal and ``other_id``."""
		group = await self.store.find_dm_group(ctx.user_id, str(other_id))
		if group is None:
			raise GroupNotFound()
		return group
