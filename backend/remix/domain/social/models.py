"""Domain models for friend requests and friendships."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

FRIEND_REQUEST_STREAM = "friend_request:new"


def pair_key(user_one: str, user_two: str) -> Tuple[str, str]:
	"""Canonical (low, high) ordering of an unordered user pair."""
	ordered = tuple(sorted((str(user_one), str(user_two))))
	return ordered[0], ordered[1]


@dataclass(slots=True)
class FriendRequest:
	"""A pending, directional request from one user to another."""

	id: str
	from_user_id: str
	to_user_id: str
	message: Optional[str]
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "FriendRequest":
		return cls(
			id=str(record["id"]),
			from_user_id=str(record["from_user_id"]),
			to_user_id=str(record["to_user_id"]),
			message=record["message"],
			created_at=record["created_at"],
		)

	@property
	def pair(self) -> Tuple[str, str]:
		return pair_key(self.from_user_id, self.to_user_id)

	def involves(self, user_id: str) -> bool:
		return user_id in (self.from_user_id, self.to_user_id)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"from_user_id": self.from_user_id,
			"to_user_id": self.to_user_id,
			"message": self.message,
			"created_at": self.created_at.isoformat(),
		}
