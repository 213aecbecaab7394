"""Candidate contact set for a user."""

from __future__ import annotations

from remix.domain.common.pipeline import Pipelines, RequestContext, operation
from remix.infra.store.base import Store

from .models import User


class RelevanceService:
	"""Friends first, then co-members of the principal's groups."""

	def __init__(self, store: Store, pipelines: Pipelines) -> None:
		self.store = store
		self.pipelines = pipelines

	async def relevant_user_ids(self, user_id: str) -> list[str]:
		seen = {user_id}
		ordered: list[str] = []

		def take(candidate: str) -> None:
			if candidate not in seen:
				seen.add(candidate)
				ordered.append(candidate)

		for friend_id in await self.store.list_friend_ids(user_id):
			take(friend_id)
		for group in await self.store.list_groups_for_user(user_id):
			for member_id in await self.store.list_member_ids(group.id):
				take(member_id)
		return ordered

	@operation()
	async def relevant_users(self, ctx: RequestContext) -> list[User]:
		return await self.store.get_users(await self.relevant_user_ids(ctx.user_id))
