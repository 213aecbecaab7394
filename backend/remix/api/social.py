"""REST API surface for friend requests."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from remix.api.deps import get_request_context, get_services
from remix.container import ServiceContainer
from remix.domain.common.pipeline import RequestContext
from remix.domain.groups.schemas import GroupOut
from remix.domain.social.schemas import FriendRequestAccepted, FriendRequestCreate, FriendRequestOut

router = APIRouter()


@router.post("/friend-requests", response_model=FriendRequestOut, status_code=status.HTTP_201_CREATED)
async def create_friend_request(
	payload: FriendRequestCreate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> FriendRequestOut:
	request = await services.social.create_friend_request(
		ctx,
		payload.from_user_id,
		payload.to_user_id,
		payload.message,
	)
	return FriendRequestOut.from_model(request)


@router.post("/friend-requests/{friend_request_id}/accept", response_model=FriendRequestAccepted)
async def accept_friend_request(
	friend_request_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> FriendRequestAccepted:
	outcome = await services.social.accept_friend_request(ctx, friend_request_id)
	return FriendRequestAccepted(
		friend_request_id=outcome.request.id,
		group=GroupOut.from_model(outcome.group),
		dm_created=outcome.dm_created,
	)


@router.post("/friend-requests/{friend_request_id}/reject", response_model=FriendRequestOut)
async def reject_friend_request(
	friend_request_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> FriendRequestOut:
	return FriendRequestOut.from_model(await services.social.reject_friend_request(ctx, friend_request_id))


@router.get("/friend-requests/{friend_request_id}", response_model=FriendRequestOut)
async def get_friend_request(
	friend_request_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> FriendRequestOut:
	return FriendRequestOut.from_model(await services.social.get_friend_request(ctx, friend_request_id))


@router.get("/friends/{user_id}/dm-group", response_model=GroupOut)
async def get_dm_group(
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> GroupOut:
	return GroupOut.from_model(await services.social.get_dm_group(ctx, user_id))
