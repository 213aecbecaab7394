"""Pydantic schemas for messages and read positions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, Field

from .models import Content, Message, ReadPosition


class MessageCreate(BaseModel):
	type: str = Field(..., min_length=1, max_length=64, examples=["remix/text"])
	data: Any = Field(..., examples=[{"text": "hello"}])


class MessageForward(BaseModel):
	content_id: str


class ContentOut(BaseModel):
	id: str
	type: str
	data: Any
	created_at: datetime

	@classmethod
	def from_model(cls, content: Content) -> "ContentOut":
		return cls(id=content.id, type=content.type, data=content.data, created_at=content.created_at)


class MessageOut(BaseModel):
	id: str
	seq: int
	chat_id: str
	user_id: str
	content_id: str
	content: ContentOut
	created_at: datetime

	@classmethod
	def from_model(cls, message: Message) -> "MessageOut":
		return cls(
			id=message.id,
			seq=message.seq,
			chat_id=message.chat_id,
			user_id=message.user_id,
			content_id=message.content_id,
			content=ContentOut.from_model(message.content),
			created_at=message.created_at,
		)


class MessageListResponse(BaseModel):
	items: List[MessageOut]


class ReadPositionUpdate(BaseModel):
	message_id: str


class ReadPositionOut(BaseModel):
	user_id: str
	chat_id: str
	message_id: str
	updated_at: datetime

	@classmethod
	def from_model(cls, position: ReadPosition) -> "ReadPositionOut":
		return cls(
			user_id=position.user_id,
			chat_id=position.chat_id,
			message_id=position.message_id,
			updated_at=position.updated_at,
		)
