"""Guard checks and quotas for friend requests."""

from __future__ import annotations

from remix.domain.social.exceptions import FriendRequestRateLimited, FriendRequestSelf
from remix.infra import rate_limit
from remix.obs import metrics as obs_metrics
from remix.settings import settings


async def enforce_request_limits(user_id: str) -> None:
	if not await rate_limit.allow(
		"friend_request:minute", user_id, limit=settings.friend_request_per_minute, window_seconds=60
	):
		obs_metrics.inc_rate_limited("friend_request")
		raise FriendRequestRateLimited("per_minute")
	if not await rate_limit.allow(
		"friend_request:day", user_id, limit=settings.friend_request_per_day, window_seconds=86_400
	):
		obs_metrics.inc_rate_limited("friend_request")
		raise FriendRequestRateLimited("per_day")


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise FriendRequestSelf()
