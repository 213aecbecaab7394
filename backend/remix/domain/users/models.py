"""Domain models for user accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class User:
	id: str
	email: Optional[str]
	phone_number: Optional[str]
	username: Optional[str]
	name: Optional[str]
	description: Optional[str]
	icon_url: Optional[str]
	color: Optional[str]
	password_hash: str
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "User":
		return cls(
			id=str(record["id"]),
			email=record["email"],
			phone_number=record["phone_number"],
			username=record["username"],
			name=record["name"],
			description=record["description"],
			icon_url=record["icon_url"],
			color=record["color"],
			password_hash=record["password_hash"],
			created_at=record["created_at"],
		)

	def matches(self, phrase: str) -> bool:
		"""Case-insensitive substring match on name or username."""
		needle = phrase.strip().lower()
		if not needle:
			return False
		return any(needle in (value or "").lower() for value in (self.name, self.username))
