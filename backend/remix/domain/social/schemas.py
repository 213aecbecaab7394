"""Pydantic schemas for friend requests."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from remix.domain.groups.schemas import GroupOut

from .models import FriendRequest


class FriendRequestCreate(BaseModel):
	from_user_id: str = Field(..., description="Sender of the request")
	to_user_id: str = Field(..., description="Recipient of the request")
	message: Optional[str] = Field(default=None, max_length=500)


class FriendRequestOut(BaseModel):
	id: str
	from_user_id: str
	to_user_id: str
	message: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_model(cls, request: FriendRequest) -> "FriendRequestOut":
		return cls(
			id=request.id,
			from_user_id=request.from_user_id,
			to_user_id=request.to_user_id,
			message=request.message,
			created_at=request.created_at,
		)


class FriendRequestAccepted(BaseModel):
	friend_request_id: str
	group: GroupOut
	dm_created: bool
