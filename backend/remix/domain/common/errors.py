"""Error taxonomy shared by every domain service."""

from __future__ import annotations

from enum import Enum

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - fallback for older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ErrorKind(str, Enum):
	AUTHENTICATION = "authentication"
	AUTHORIZATION = "authorization"
	NOT_FOUND = "not_found"
	CONFLICT = "conflict"
	VALIDATION = "validation"
	RATE_LIMITED = "rate_limited"
	UNKNOWN = "unknown"


class DomainError(Exception):
	"""Base class for errors that are safe to surface to callers."""

	kind: ErrorKind = ErrorKind.UNKNOWN
	status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail: str = "unknown_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class AuthenticationError(DomainError):
	"""Missing, invalid or expired principal."""

	kind = ErrorKind.AUTHENTICATION
	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "not_authenticated"


class AuthorizationError(DomainError):
	"""Authenticated, but not permitted to perform the operation."""

	kind = ErrorKind.AUTHORIZATION
	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class NotFoundError(DomainError):
	kind = ErrorKind.NOT_FOUND
	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ConflictError(DomainError):
	kind = ErrorKind.CONFLICT
	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"


class ValidationFailedError(DomainError):
	kind = ErrorKind.VALIDATION
	status_code = _HTTP_422
	detail = "validation_error"


class RateLimitedError(DomainError):
	kind = ErrorKind.RATE_LIMITED
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "rate_limited"


class UnknownError(DomainError):
	"""Opaque replacement for any failure that is not a domain error."""

	kind = ErrorKind.UNKNOWN
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "unknown_error"
	message = "An unknown error has occurred! Please try again later"
