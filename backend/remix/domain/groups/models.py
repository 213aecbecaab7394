"""Domain models for groups, chats and group join requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class GroupRequestKind(str, Enum):
	REQUEST = "request"
	INVITATION = "invitation"


@dataclass(slots=True)
class Group:
	id: str
	name: str
	icon_url: Optional[str]
	description: Optional[str]
	is_direct_message: bool
	created_at: datetime
	# Only set for direct-message groups; canonical (low, high) pair.
	dm_pair: Optional[Tuple[str, str]] = None

	@classmethod
	def from_record(cls, record) -> "Group":
		low = record["dm_user_low"]
		high = record["dm_user_high"]
		return cls(
			id=str(record["id"]),
			name=record["name"],
			icon_url=record["icon_url"],
			description=record["description"],
			is_direct_message=bool(record["is_direct_message"]),
			created_at=record["created_at"],
			dm_pair=(str(low), str(high)) if low and high else None,
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"icon_url": self.icon_url,
			"description": self.description,
			"is_direct_message": self.is_direct_message,
			"created_at": self.created_at.isoformat(),
		}


@dataclass(slots=True)
class Chat:
	id: str
	group_id: str
	name: str
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "Chat":
		return cls(
			id=str(record["id"]),
			group_id=str(record["group_id"]),
			name=record["name"],
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class GroupRequest:
	"""A pending request to join a group, or an invitation into one."""

	id: str
	kind: GroupRequestKind
	from_user_id: str
	to_user_id: Optional[str]
	group_id: str
	message: Optional[str]
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "GroupRequest":
		return cls(
			id=str(record["id"]),
			kind=GroupRequestKind(record["kind"]),
			from_user_id=str(record["from_user_id"]),
			to_user_id=str(record["to_user_id"]) if record["to_user_id"] else None,
			group_id=str(record["group_id"]),
			message=record["message"],
			created_at=record["created_at"],
		)

	@property
	def joining_user_id(self) -> str:
		"""The user who becomes a member when this record is accepted."""
		if self.kind is GroupRequestKind.INVITATION and self.to_user_id:
			return self.to_user_id
		return self.from_user_id
