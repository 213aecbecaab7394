"""FastAPI dependencies resolving the service container and request context."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from remix.api.request_id import get_request_id
from remix.container import ServiceContainer
from remix.domain.common.pipeline import RequestContext
from remix.infra.auth import CredentialError, decode_bearer, dev_claims
from remix.settings import settings

_bearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceContainer:
	return request.app.state.services


async def get_request_context(
	request: Request,
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> RequestContext:
	"""Decode whatever credential the request carries; never rejects.

	Rejection belongs to the authentication policy, so anonymous operations
	still run without a token.
	"""
	request_id = get_request_id(request)
	if credentials is not None and credentials.credentials:
		try:
			claims = decode_bearer(credentials.credentials)
		except CredentialError as exc:
			return RequestContext(credential_error=str(exc), request_id=request_id)
		return RequestContext.for_claims(claims, request_id=request_id)
	# Dev-only shortcut used by local tooling and tests
	if x_user_id and settings.is_dev():
		return RequestContext.for_claims(dev_claims(x_user_id.strip()), request_id=request_id)
	return RequestContext.anonymous(request_id=request_id)
