"""Groups, their chats and membership, including join requests and invitations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

import ulid

from remix.domain.common.errors import AuthorizationError, ValidationFailedError
from remix.domain.common.pipeline import Pipelines, RequestContext, operation
from remix.domain.users.models import User
from remix.infra.store.base import Store
from remix.obs import metrics as obs_metrics
from remix.settings import settings

from .exceptions import AlreadyMember, ChatNotFound, DirectMessageGroup, GroupNotFound, GroupRequestNotFound, NotMember
from .models import Chat, Group, GroupRequest, GroupRequestKind

logger = logging.getLogger(__name__)


def _clean_name(name: Optional[str], *, field: str) -> str:
	value = (name or "").strip()
	if not value:
		raise ValidationFailedError(f"{field}_required")
	return value


class GroupService:
	def __init__(self, store: Store, pipelines: Pipelines, *, default_chat_name: Optional[str] = None) -> None:
		self.store = store
		self.pipelines = pipelines
		self.default_chat_name = default_chat_name or settings.default_chat_name

	# Helpers shared with the messaging engine; they assume an authenticated caller.

	async def load_group(self, group_id: str) -> Group:
		group = await self.store.get_group(str(group_id))
		if group is None:
			raise GroupNotFound()
		return group

	async def load_chat(self, chat_id: str) -> Chat:
		chat = await self.store.get_chat(str(chat_id))
		if chat is None:
			raise ChatNotFound()
		return chat

	async def require_member(self, group_id: str, user_id: str) -> None:
		if not await self.store.is_member(group_id, user_id):
			raise NotMember()

	# Operations

	@operation()
	async def create_group(
		self,
		ctx: RequestContext,
		name: Optional[str],
		icon_url: Optional[str] = None,
		description: Optional[str] = None,
	) -> Group:
		now = datetime.now(timezone.utc)
		group = Group(
			id=str(ulid.new()),
			name=_clean_name(name, field="group_name"),
			icon_url=icon_url,
			description=description,
			is_direct_message=False,
			created_at=now,
		)
		chat = Chat(id=str(ulid.new()), group_id=group.id, name=self.default_chat_name, created_at=now)
		group = await self.store.create_group(group, chat)
		obs_metrics.inc_group_created()
		logger.info("group_created", extra={"group_id": group.id})
		return group

	@operation()
	async def get_group(self, ctx: RequestContext, group_id: str) -> Group:
		return await self.load_group(group_id)

	@operation()
	async def get_chat(self, ctx: RequestContext, chat_id: str) -> Chat:
		return await self.load_chat(chat_id)

	@operation()
	async def get_chats(self, ctx: RequestContext, group_id: str) -> list[Chat]:
		group = await self.load_group(group_id)
		return await self.store.list_chats(group.id)

	@operation()
	async def get_members(self, ctx: RequestContext, group_id: str) -> list[User]:
		group = await self.load_group(group_id)
		return await self.store.get_users(await self.store.list_member_ids(group.id))

	@operation()
	async def list_groups(self, ctx: RequestContext, user_id: str) -> list[Group]:
		return await self.store.list_groups_for_user(str(user_id))

	@operation()
	async def add_member(self, ctx: RequestContext, group_id: str, user_id: str) -> bool:
		group = await self.load_group(group_id)
		if group.is_direct_message:
			raise DirectMessageGroup()
		members = await self.store.list_member_ids(group.id)
		# The first member of an empty group may be added by anyone.
		if members and ctx.user_id not in members:
			raise NotMember()
		return await self.store.add_member(group.id, str(user_id))

	@operation()
	async def remove_member(self, ctx: RequestContext, group_id: str, user_id: str) -> bool:
		group = await self.load_group(group_id)
		if group.is_direct_message:
			raise DirectMessageGroup()
		await self.require_member(group.id, ctx.user_id)
		return await self.store.remove_member(group.id, str(user_id))

	@operation()
	async def create_chat(self, ctx: RequestContext, group_id: str, name: Optional[str]) -> Chat:
		group = await self.load_group(group_id)
		await self.require_member(group.id, ctx.user_id)
		chat = Chat(
			id=str(ulid.new()),
			group_id=group.id,
			name=_clean_name(name, field="chat_name"),
			created_at=datetime.now(timezone.utc),
		)
		return await self.store.create_chat(chat)

	@operation()
	async def create_group_request(
		self,
		ctx: RequestContext,
		from_user_id: str,
		group_id: str,
		message: Optional[str] = None,
	) -> GroupRequest:
		if str(from_user_id) != ctx.user_id:
			raise AuthorizationError("not_requester")
		group = await self.load_group(group_id)
		if group.is_direct_message:
			raise DirectMessageGroup()
		if await self.store.is_member(group.id, ctx.user_id):
			raise AlreadyMember()
		record = await self.store.create_group_request(
			GroupRequest(
				id=str(ulid.new()),
				kind=GroupRequestKind.REQUEST,
				from_user_id=ctx.user_id,
				to_user_id=None,
				group_id=group.id,
				message=message,
				created_at=datetime.now(timezone.utc),
			)
		)
		obs_metrics.inc_group_request(record.kind.value, "created")
		return record

	@operation()
	async def create_group_invitation(
		self,
		ctx: RequestContext,
		from_user_id: str,
		to_user_id: str,
		group_id: str,
		message: Optional[str] = None,
	) -> GroupRequest:
		if str(from_user_id) != ctx.user_id:
			raise AuthorizationError("not_inviter")
		group = await self.load_group(group_id)
		if group.is_direct_message:
			raise DirectMessageGroup()
		await self.require_member(group.id, ctx.user_id)
		if await self.store.is_member(group.id, str(to_user_id)):
			raise AlreadyMember()
		record = await self.store.create_group_request(
			GroupRequest(
				id=str(ulid.new()),
				kind=GroupRequestKind.INVITATION,
				from_user_id=ctx.user_id,
				to_user_id=str(to_user_id),
				group_id=group.id,
				message=message,
				created_at=datetime.now(timezone.utc),
			)
		)
		obs_metrics.inc_group_request(record.kind.value, "created")
		return record

	@operation()
	async def accept_group_request(self, ctx: RequestContext, group_request_id: str) -> Tuple[GroupRequest, bool]:
		"""Add the joining user and consume the record in one transaction.

		Invitations are accepted by the invitee; join requests by any member.
		"""
		record = await self.store.get_group_request(str(group_request_id))
		if record is None:
			raise GroupRequestNotFound()
		if record.kind is GroupRequestKind.INVITATION:
			if record.to_user_id != ctx.user_id:
				raise AuthorizationError("not_invitee")
		else:
			await self.require_member(record.group_id, ctx.user_id)
		record, added = await self.store.accept_group_request(record.id)
		obs_metrics.inc_group_request(record.kind.value, "accepted")
		logger.info(
			"group_request_accepted",
			extra={"group_id": record.group_id, "member_id": record.joining_user_id, "added": added},
		)
		return record, added
