"""Domain-level exceptions for user accounts."""

from __future__ import annotations

from remix.domain.common.errors import AuthenticationError, ConflictError, NotFoundError, ValidationFailedError


class UserNotFound(NotFoundError):
	detail = "user_not_found"


class EmailTaken(ConflictError):
	detail = "email_taken"


class PhoneTaken(ConflictError):
	detail = "phone_taken"


class UsernameTaken(ConflictError):
	detail = "username_taken"


class MissingContact(ValidationFailedError):
	detail = "email_or_phone_required"


class InvalidCredentials(AuthenticationError):
	detail = "invalid_credentials"
