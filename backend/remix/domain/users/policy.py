"""Normalisation and guard helpers for account credentials."""

from __future__ import annotations

from typing import Optional

from .exceptions import MissingContact
from remix.domain.common.errors import ValidationFailedError

SEARCH_LIMIT = 25


def normalise_email(email: Optional[str]) -> Optional[str]:
	if email is None:
		return None
	value = email.strip().lower()
	return value or None


def normalise_phone(phone_number: Optional[str]) -> Optional[str]:
	if phone_number is None:
		return None
	value = phone_number.strip().replace(" ", "")
	return value or None


def normalise_username(username: Optional[str]) -> Optional[str]:
	if username is None:
		return None
	value = username.strip()
	return value or None


def guard_contact(email: Optional[str], phone_number: Optional[str]) -> None:
	if not email and not phone_number:
		raise MissingContact()


def guard_password(password: Optional[str]) -> str:
	if not password:
		raise ValidationFailedError("password_required")
	return password
