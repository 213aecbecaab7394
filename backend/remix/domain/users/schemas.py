"""Pydantic schemas for user accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .models import User


class CreateUserRequest(BaseModel):
	email: Optional[str] = Field(default=None, max_length=320)
	phone_number: Optional[str] = Field(default=None, max_length=32)
	username: Optional[str] = Field(default=None, max_length=64)
	password: str = Field(..., min_length=1, max_length=256)
	name: Optional[str] = Field(default=None, max_length=280)
	description: Optional[str] = Field(default=None, max_length=280)
	color: Optional[str] = Field(default=None, max_length=32)
	icon_url: Optional[str] = Field(default=None, max_length=2048)


class EmailLoginRequest(BaseModel):
	email: str
	password: str


class PhoneLoginRequest(BaseModel):
	phone_number: str
	password: str


class UserOut(BaseModel):
	id: str
	name: Optional[str] = None
	username: Optional[str] = None
	description: Optional[str] = None
	icon_url: Optional[str] = None
	color: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_model(cls, user: User) -> "UserOut":
		return cls(
			id=user.id,
			name=user.name,
			username=user.username,
			description=user.description,
			icon_url=user.icon_url,
			color=user.color,
			created_at=user.created_at,
		)


class AuthOut(BaseModel):
	id: str
	token: str
	user: UserOut
