"""Pydantic schemas for groups, chats and group requests."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .models import Chat, Group, GroupRequest


class GroupCreate(BaseModel):
	name: str = Field(..., min_length=1, max_length=120)
	icon_url: Optional[str] = Field(default=None, max_length=2048)
	description: Optional[str] = Field(default=None, max_length=500)


class GroupOut(BaseModel):
	id: str
	name: str
	icon_url: Optional[str] = None
	description: Optional[str] = None
	is_direct_message: bool
	created_at: datetime

	@classmethod
	def from_model(cls, group: Group) -> "GroupOut":
		return cls(
			id=group.id,
			name=group.name,
			icon_url=group.icon_url,
			description=group.description,
			is_direct_message=group.is_direct_message,
			created_at=group.created_at,
		)


class ChatCreate(BaseModel):
	name: str = Field(..., min_length=1, max_length=120)


class ChatOut(BaseModel):
	id: str
	group_id: str
	name: str
	created_at: datetime

	@classmethod
	def from_model(cls, chat: Chat) -> "ChatOut":
		return cls(id=chat.id, group_id=chat.group_id, name=chat.name, created_at=chat.created_at)


class MemberAdd(BaseModel):
	user_id: str


class MembershipChange(BaseModel):
	group_id: str
	user_id: str
	changed: bool


class GroupRequestCreate(BaseModel):
	from_user_id: str
	group_id: str
	message: Optional[str] = Field(default=None, max_length=500)


class GroupInvitationCreate(BaseModel):
	from_user_id: str
	to_user_id: str
	group_id: str
	message: Optional[str] = Field(default=None, max_length=500)


class GroupRequestOut(BaseModel):
	id: str
	kind: Literal["request", "invitation"]
	from_user_id: str
	to_user_id: Optional[str] = None
	group_id: str
	message: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_model(cls, record: GroupRequest) -> "GroupRequestOut":
		return cls(
			id=record.id,
			kind=record.kind.value,
			from_user_id=record.from_user_id,
			to_user_id=record.to_user_id,
			group_id=record.group_id,
			message=record.message,
			created_at=record.created_at,
		)


class GroupRequestAccepted(BaseModel):
	group_request_id: str
	group_id: str
	user_id: str
	added: bool
