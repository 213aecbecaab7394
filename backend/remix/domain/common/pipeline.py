"""Request context and the policy pipeline every operation runs through.

A ``Pipeline`` is an ordered tuple of policies. Running a handler folds it
through the policies so that the first policy is the outermost wrapper:

    Pipeline((BasePolicy(), AuthenticationPolicy())).run(ctx, handler, ...)

behaves like ``base(auth(handler))``. Each policy may replace the context
before the inner call (``before``) and transform an error raised by it
(``on_error``).
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Sequence

from remix.domain.common.errors import AuthenticationError, DomainError, UnknownError
from remix.infra.auth import Claims, Principal
from remix.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class RequestContext:
	"""Immutable per-request value handed to every operation."""

	claims: Optional[Claims] = None
	credential_error: Optional[str] = None
	request_id: Optional[str] = None
	principal: Optional[Principal] = None
	operation: Optional[str] = None

	@classmethod
	def anonymous(cls, *, request_id: Optional[str] = None) -> "RequestContext":
		return cls(request_id=request_id)

	@classmethod
	def for_claims(cls, claims: Claims, *, request_id: Optional[str] = None) -> "RequestContext":
		return cls(claims=claims, request_id=request_id)

	@property
	def user_id(self) -> str:
		"""Id of the authenticated principal; only valid after authentication."""
		if self.principal is None:
			raise AuthenticationError()
		return self.principal.id


class Policy:
	"""Base policy: passes the context through and re-raises errors unchanged."""

	def before(self, ctx: RequestContext) -> RequestContext:
		return ctx

	def on_error(self, ctx: RequestContext, exc: Exception) -> Exception:
		return exc

	def wrap(self, call: Handler) -> Handler:
		async def wrapped(ctx: RequestContext, *args: Any, **kwargs: Any) -> Any:
			ctx = self.before(ctx)
			try:
				return await call(ctx, *args, **kwargs)
			except Exception as exc:
				transformed = self.on_error(ctx, exc)
				if transformed is exc:
					raise
				raise transformed from exc

		return wrapped


class BasePolicy(Policy):
	"""Outermost boundary: logs the operation and masks unexpected failures."""

	def before(self, ctx: RequestContext) -> RequestContext:
		logger.debug("operation", extra={"operation": ctx.operation})
		return ctx

	def on_error(self, ctx: RequestContext, exc: Exception) -> Exception:
		if isinstance(exc, DomainError):
			return exc
		logger.error(
			"operation_failed",
			exc_info=(type(exc), exc, exc.__traceback__),
			extra={"operation": ctx.operation},
		)
		obs_metrics.inc_unknown_error(ctx.operation or "unknown")
		return UnknownError()


class AuthenticationPolicy(Policy):
	"""Requires a decoded, unexpired credential and attaches the principal."""

	def before(self, ctx: RequestContext) -> RequestContext:
		claims = ctx.claims
		if claims is None or not claims.id:
			raise AuthenticationError(ctx.credential_error or "not_authenticated")
		principal = Principal.from_claims(claims)
		if principal.is_expired(datetime.now(timezone.utc)):
			raise AuthenticationError("token_expired")
		return replace(ctx, principal=principal)


class Pipeline:
	def __init__(self, policies: Sequence[Policy] = ()) -> None:
		self.policies: tuple[Policy, ...] = tuple(policies)

	def extend(self, *policies: Policy) -> "Pipeline":
		return Pipeline(self.policies + tuple(policies))

	async def run(self, ctx: RequestContext, handler: Handler, *args: Any, **kwargs: Any) -> Any:
		if ctx.operation is None:
			ctx = replace(ctx, operation=getattr(handler, "__qualname__", None) or repr(handler))
		call = handler
		for policy in reversed(self.policies):
			call = policy.wrap(call)
		return await call(ctx, *args, **kwargs)


@dataclass(frozen=True, slots=True)
class Pipelines:
	"""The two pipelines services choose between."""

	anonymous: Pipeline
	authenticated: Pipeline

	@classmethod
	def default(cls) -> "Pipelines":
		base = Pipeline((BasePolicy(),))
		return cls(anonymous=base, authenticated=base.extend(AuthenticationPolicy()))


def operation(*, anonymous: bool = False) -> Callable[[Handler], Handler]:
	"""Route a service method through the owning service's pipelines.

	The decorated method receives the context produced by the policies, so
	authenticated operations can rely on ``ctx.principal``.
	"""

	def decorator(func: Handler) -> Handler:
		@functools.wraps(func)
		async def wrapper(self, ctx: RequestContext, *args: Any, **kwargs: Any) -> Any:
			pipelines: Pipelines = self.pipelines
			pipeline = pipelines.anonymous if anonymous else pipelines.authenticated
			return await pipeline.run(ctx, func.__get__(self, type(self)), *args, **kwargs)

		return wrapper

	return decorator


__all__ = [
	"AuthenticationPolicy",
	"BasePolicy",
	"Pipeline",
	"Pipelines",
	"Policy",
	"RequestContext",
	"operation",
]
