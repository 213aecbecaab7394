"""Credential decoding and the principal value type.

The transport layers (FastAPI dependencies, Socket.IO connect handlers) only
decode credentials into claims. Turning claims into a ``Principal`` is the job
of the authentication policy in the request pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from remix.infra import jwt as jwt_helper
from remix.settings import settings


@dataclass(frozen=True, slots=True)
class Claims:
	"""Decoded credential in the only shape the core consumes."""

	id: str
	iat: int
	exp: int


@dataclass(frozen=True, slots=True)
class Principal:
	id: str
	issued_at: datetime
	expires_at: datetime

	def is_expired(self, now: datetime | None = None) -> bool:
		now = now or datetime.now(timezone.utc)
		return self.expires_at <= now

	@classmethod
	def from_claims(cls, claims: Claims) -> "Principal":
		return cls(
			id=claims.id,
			issued_at=datetime.fromtimestamp(claims.iat, tz=timezone.utc),
			expires_at=datetime.fromtimestamp(claims.exp, tz=timezone.utc),
		)


class CredentialError(Exception):
	"""Raised when a presented credential cannot be decoded."""


def decode_bearer(token: str) -> Claims:
	"""Decode an access JWT into claims.

	All decode failures are normalised to ``CredentialError("invalid_token")``.
	"""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise CredentialError("invalid_token") from None
	return Claims(id=str(payload["sub"]).strip(), iat=int(payload["iat"]), exp=int(payload["exp"]))


def dev_claims(user_id: str) -> Claims:
	"""Synthesise claims for the dev-only ``X-User-Id`` header."""
	now = datetime.now(timezone.utc)
	expires = now + timedelta(minutes=settings.access_ttl_minutes)
	return Claims(id=user_id, iat=int(now.timestamp()), exp=int(expires.timestamp()))


def issue_access_token(user_id: str) -> str:
	return jwt_helper.encode_access({"sub": str(user_id)})


def parse_authorization(value: Optional[str]) -> Optional[str]:
	"""Return the token from an ``Authorization`` header value, if any."""
	if not value:
		return None
	text = value.strip()
	if not text or text.lower() == "null":
		return None
	scheme, _, token = text.partition(" ")
	if token and scheme.lower() == "bearer":
		return token.strip() or None
	return text
