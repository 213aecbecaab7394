"""Per-user, per-chat last-read marker."""

from __future__ import annotations

from typing import Optional

from remix.domain.common.pipeline import Pipelines, RequestContext, operation
from remix.domain.groups.service import GroupService
from remix.infra.store.base import Store
from remix.obs import metrics as obs_metrics

from .exceptions import MessageNotFound
from .models import ReadPosition


class ReadPositionService:
	def __init__(self, store: Store, pipelines: Pipelines, groups: GroupService) -> None:
		self.store = store
		self.pipelines = pipelines
		self.groups = groups

	@operation()
	async def update_read_position(self, ctx: RequestContext, message_id: str) -> ReadPosition:
		# The marker only moves forward; an older message leaves it where it is.
		message = await self.store.get_message(str(message_id))
		if message is None:
			raise MessageNotFound()
		chat = await self.groups.load_chat(message.chat_id)
		await self.groups.require_member(chat.group_id, ctx.user_id)
		position, advanced = await self.store.upsert_read_position(ctx.user_id, message)
		obs_metrics.inc_read_position("advanced" if advanced else "unchanged")
		return position

	@operation()
	async def get_read_position(self, ctx: RequestContext, chat_id: str) -> Optional[ReadPosition]:
		chat = await self.groups.load_chat(chat_id)
		await self.groups.require_member(chat.group_id, ctx.user_id)
		return await self.store.get_read_position(ctx.user_id, chat.id)
