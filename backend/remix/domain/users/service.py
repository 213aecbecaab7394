"""Registration, login and directory lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import ulid

from remix.domain.common.pipeline import Pipelines, RequestContext, operation
from remix.infra.auth import issue_access_token
from remix.infra.password import hash_password, verify_password
from remix.infra.store.base import Store
from remix.obs import metrics as obs_metrics

from . import policy
from .exceptions import InvalidCredentials, UserNotFound
from .models import User

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthResult:
	user: User
	token: str


class UserService:
	def __init__(self, store: Store, pipelines: Pipelines) -> None:
		self.store = store
		self.pipelines = pipelines

	@operation(anonymous=True)
	async def create_user(
		self,
		ctx: RequestContext,
		*,
		password: Optional[str],
		email: Optional[str] = None,
		phone_number: Optional[str] = None,
		username: Optional[str] = None,
		name: Optional[str] = None,
		description: Optional[str] = None,
		color: Optional[str] = None,
		icon_url: Optional[str] = None,
	) -> AuthResult:
		email = policy.normalise_email(email)
		phone_number = policy.normalise_phone(phone_number)
		policy.guard_contact(email, phone_number)
		user = User(
			id=str(ulid.new()),
			email=email,
			phone_number=phone_number,
			username=policy.normalise_username(username),
			name=name,
			description=description,
			icon_url=icon_url,
			color=color,
			password_hash=hash_password(policy.guard_password(password)),
			created_at=datetime.now(timezone.utc),
		)
		user = await self.store.create_user(user)
		obs_metrics.inc_user_registered()
		logger.info("user_created", extra={"user_id": user.id})
		return AuthResult(user=user, token=issue_access_token(user.id))

	@operation(anonymous=True)
	async def login_with_email(self, ctx: RequestContext, email: str, password: str) -> AuthResult:
		user = await self.store.find_user_by_email(policy.normalise_email(email) or "")
		return self._check_login(user, password, method="email")

	@operation(anonymous=True)
	async def login_with_phone(self, ctx: RequestContext, phone_number: str, password: str) -> AuthResult:
		user = await self.store.find_user_by_phone(policy.normalise_phone(phone_number) or "")
		return self._check_login(user, password, method="phone")

	def _check_login(self, user: Optional[User], password: str, *, method: str) -> AuthResult:
		# Same error for unknown account and wrong password
		if user is None or not password or not verify_password(user.password_hash, password):
			obs_metrics.inc_login(method, "rejected")
			raise InvalidCredentials()
		obs_metrics.inc_login(method, "ok")
		return AuthResult(user=user, token=issue_access_token(user.id))

	@operation()
	async def get_user(self, ctx: RequestContext, user_id: str) -> User:
		user = await self.store.get_user(user_id)
		if user is None:
			raise UserNotFound()
		return user

	@operation()
	async def search_users(self, ctx: RequestContext, phrase: str, *, limit: int = policy.SEARCH_LIMIT) -> list[User]:
		if not phrase or not phrase.strip():
			return []
		return await self.store.search_users(phrase, limit=max(1, min(limit, 100)))
