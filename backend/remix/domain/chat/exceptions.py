"""Domain-level exceptions for messaging."""

from __future__ import annotations

from remix.domain.common.errors import NotFoundError, ValidationFailedError


class MessageNotFound(NotFoundError):
	detail = "message_not_found"


class ContentNotFound(NotFoundError):
	detail = "content_not_found"


class InvalidContent(ValidationFailedError):
	detail = "invalid_content"
