"""Message creation and ordered retrieval."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import ulid

from remix.domain.common.errors import AuthorizationError
from remix.domain.common.pipeline import Pipelines, RequestContext, operation
from remix.domain.groups.service import GroupService
from remix.domain.realtime.hub import FanoutHub
from remix.infra.store.base import Store
from remix.obs import metrics as obs_metrics
from remix.settings import settings

from . import audit
from .content import validate_content
from .exceptions import ContentNotFound
from .models import MESSAGE_STREAM, Content, Message

logger = logging.getLogger(__name__)


class ChatService:
	def __init__(
		self,
		store: Store,
		pipelines: Pipelines,
		hub: FanoutHub,
		groups: GroupService,
		*,
		echo_to_author: Optional[bool] = None,
	) -> None:
		self.store = store
		self.pipelines = pipelines
		self.hub = hub
		self.groups = groups
		self.echo_to_author = settings.fanout_echo_to_author if echo_to_author is None else echo_to_author

	async def _fan_out(self, message: Message, group_id: str) -> None:
		payload = message.to_dict()
		for member_id in await self.store.list_member_ids(group_id):
			if member_id == message.user_id and not self.echo_to_author:
				continue
			self.hub.publish(MESSAGE_STREAM, member_id, payload)

	async def _after_commit(self, message: Message, group_id: str, *, mode: str) -> None:
		obs_metrics.inc_message_sent(mode)
		await audit.log_message_event("created", message)
		await self._fan_out(message, group_id)

	@operation()
	async def create_message(self, ctx: RequestContext, chat_id: str, content_type: str, content_data: Any) -> Message:
		chat = await self.groups.load_chat(chat_id)
		await self.groups.require_member(chat.group_id, ctx.user_id)
		content = Content(
			id=str(ulid.new()),
			type=content_type,
			data=validate_content(content_type, content_data),
			created_at=datetime.now(timezone.utc),
		)
		message = await self.store.create_message(
			message_id=str(ulid.new()),
			chat_id=chat.id,
			user_id=ctx.user_id,
			content=content,
		)
		await self._after_commit(message, chat.group_id, mode="new")
		return message

	@operation()
	async def create_message_with_existing_content(
		self,
		ctx: RequestContext,
		content_id: str,
		to_chat_id: str,
	) -> Message:
		"""Send existing content (any author's) into ``to_chat_id`` under the caller's authorship."""
		chat = await self.groups.load_chat(to_chat_id)
		await self.groups.require_member(chat.group_id, ctx.user_id)
		if await self.store.get_content(str(content_id)) is None:
			raise ContentNotFound()
		message = await self.store.create_message_with_content(
			message_id=str(ulid.new()),
			chat_id=chat.id,
			user_id=ctx.user_id,
			content_id=str(content_id),
		)
		await self._after_commit(message, chat.group_id, mode="existing_content")
		return message

	@operation()
	async def get_messages(self, ctx: RequestContext, chat_id: str) -> list[Message]:
		chat = await self.groups.load_chat(chat_id)
		await self.groups.require_member(chat.group_id, ctx.user_id)
		return await self.store.list_chat_messages(chat.id)

	@operation()
	async def all_messages(self, ctx: RequestContext, user_id: str) -> list[Message]:
		if str(user_id) != ctx.user_id:
			raise AuthorizationError()
		return await self.store.list_user_messages(ctx.user_id)
