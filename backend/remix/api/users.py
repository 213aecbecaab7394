"""REST API surface for user accounts and user-scoped projections."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from remix.api.deps import get_request_context, get_services
from remix.container import ServiceContainer
from remix.domain.chat.schemas import MessageOut
from remix.domain.common.pipeline import RequestContext
from remix.domain.groups.schemas import GroupOut
from remix.domain.social.schemas import FriendRequestOut
from remix.domain.users.schemas import AuthOut, CreateUserRequest, EmailLoginRequest, PhoneLoginRequest, UserOut
from remix.domain.users.service import AuthResult

router = APIRouter()


def _auth_out(result: AuthResult) -> AuthOut:
	return AuthOut(id=result.user.id, token=result.token, user=UserOut.from_model(result.user))


@router.post("/users", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def create_user(
	payload: CreateUserRequest,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> AuthOut:
	result = await services.users.create_user(ctx, **payload.model_dump())
	return _auth_out(result)


@router.post("/auth/login/email", response_model=AuthOut)
async def login_with_email(
	payload: EmailLoginRequest,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> AuthOut:
	return _auth_out(await services.users.login_with_email(ctx, payload.email, payload.password))


@router.post("/auth/login/phone", response_model=AuthOut)
async def login_with_phone(
	payload: PhoneLoginRequest,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> AuthOut:
	return _auth_out(await services.users.login_with_phone(ctx, payload.phone_number, payload.password))


@router.get("/users", response_model=List[UserOut])
async def search_users(
	phrase: str = Query(..., min_length=1, max_length=100),
	limit: int = Query(default=25, ge=1, le=100),
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[UserOut]:
	users = await services.users.search_users(ctx, phrase, limit=limit)
	return [UserOut.from_model(user) for user in users]


@router.get("/users/relevant", response_model=List[UserOut])
async def relevant_users(
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[UserOut]:
	return [UserOut.from_model(user) for user in await services.relevance.relevant_users(ctx)]


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> UserOut:
	return UserOut.from_model(await services.users.get_user(ctx, user_id))


@router.get("/users/{user_id}/friends", response_model=List[UserOut])
async def list_friends(
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[UserOut]:
	return [UserOut.from_model(user) for user in await services.social.list_friends(ctx, user_id)]


@router.get("/users/{user_id}/groups", response_model=List[GroupOut])
async def list_groups(
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[GroupOut]:
	return [GroupOut.from_model(group) for group in await services.groups.list_groups(ctx, user_id)]


@router.get("/users/{user_id}/friend-requests", response_model=List[FriendRequestOut])
async def list_friend_requests(
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[FriendRequestOut]:
	requests = await services.social.list_friend_requests(ctx, user_id)
	return [FriendRequestOut.from_model(request) for request in requests]


@router.get("/users/{user_id}/messages", response_model=List[MessageOut])
async def all_messages(
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[MessageOut]:
	return [MessageOut.from_model(message) for message in await services.chat.all_messages(ctx, user_id)]
