"""Domain models for messages, their content and read positions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Tuple

MESSAGE_STREAM = "message:new"


@dataclass(slots=True)
class Content:
	"""Typed message body. Shared by reference and never mutated."""

	id: str
	type: str
	data: Any
	created_at: datetime

	@classmethod
	def from_record(cls, record, *, prefix: str = "") -> "Content":
		return cls(
			id=str(record[f"{prefix}id"]),
			type=record[f"{prefix}type"],
			data=record[f"{prefix}data"],
			created_at=record[f"{prefix}created_at"],
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"type": self.type,
			"data": self.data,
			"created_at": self.created_at.isoformat(),
		}


@dataclass(slots=True)
class Message:
	id: str
	seq: int
	chat_id: str
	user_id: str
	content: Content
	created_at: datetime

	@property
	def content_id(self) -> str:
		return self.content.id

	@property
	def order_key(self) -> Tuple[datetime, int]:
		return (self.created_at, self.seq)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"seq": self.seq,
			"chat_id": self.chat_id,
			"user_id": self.user_id,
			"content_id": self.content.id,
			"content": self.content.to_dict(),
			"created_at": self.created_at.isoformat(),
		}


@dataclass(slots=True)
class ReadPosition:
	user_id: str
	chat_id: str
	message_id: str
	updated_at: datetime
