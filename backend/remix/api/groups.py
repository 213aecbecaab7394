"""REST API surface for groups, membership and group requests."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from remix.api.deps import get_request_context, get_services
from remix.container import ServiceContainer
from remix.domain.common.pipeline import RequestContext
from remix.domain.groups.schemas import (
	ChatCreate,
	ChatOut,
	GroupCreate,
	GroupInvitationCreate,
	GroupOut,
	GroupRequestAccepted,
	GroupRequestCreate,
	GroupRequestOut,
	MemberAdd,
	MembershipChange,
)
from remix.domain.users.schemas import UserOut

router = APIRouter()


@router.post("/groups", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
async def create_group(
	payload: GroupCreate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> GroupOut:
	group = await services.groups.create_group(ctx, payload.name, payload.icon_url, payload.description)
	return GroupOut.from_model(group)


@router.get("/groups/{group_id}", response_model=GroupOut)
async def get_group(
	group_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> GroupOut:
	return GroupOut.from_model(await services.groups.get_group(ctx, group_id))


@router.get("/groups/{group_id}/chats", response_model=List[ChatOut])
async def get_chats(
	group_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[ChatOut]:
	return [ChatOut.from_model(chat) for chat in await services.groups.get_chats(ctx, group_id)]


@router.post("/groups/{group_id}/chats", response_model=ChatOut, status_code=status.HTTP_201_CREATED)
async def create_chat(
	group_id: str,
	payload: ChatCreate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> ChatOut:
	return ChatOut.from_model(await services.groups.create_chat(ctx, group_id, payload.name))


@router.get("/groups/{group_id}/members", response_model=List[UserOut])
async def get_members(
	group_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> List[UserOut]:
	return [UserOut.from_model(user) for user in await services.groups.get_members(ctx, group_id)]


@router.post("/groups/{group_id}/members", response_model=MembershipChange)
async def add_member(
	group_id: str,
	payload: MemberAdd,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> MembershipChange:
	changed = await services.groups.add_member(ctx, group_id, payload.user_id)
	return MembershipChange(group_id=group_id, user_id=payload.user_id, changed=changed)


@router.delete("/groups/{group_id}/members/{user_id}", response_model=MembershipChange)
async def remove_member(
	group_id: str,
	user_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> MembershipChange:
	changed = await services.groups.remove_member(ctx, group_id, user_id)
	return MembershipChange(group_id=group_id, user_id=user_id, changed=changed)


@router.post("/group-requests", response_model=GroupRequestOut, status_code=status.HTTP_201_CREATED)
async def create_group_request(
	payload: GroupRequestCreate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> GroupRequestOut:
	record = await services.groups.create_group_request(ctx, payload.from_user_id, payload.group_id, payload.message)
	return GroupRequestOut.from_model(record)


@router.post("/group-invitations", response_model=GroupRequestOut, status_code=status.HTTP_201_CREATED)
async def create_group_invitation(
	payload: GroupInvitationCreate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> GroupRequestOut:
	record = await services.groups.create_group_invitation(
		ctx,
		payload.from_user_id,
		payload.to_user_id,
		payload.group_id,
		payload.message,
	)
	return GroupRequestOut.from_model(record)


@router.post("/group-requests/{group_request_id}/accept", response_model=GroupRequestAccepted)
async def accept_group_request(
	group_request_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> GroupRequestAccepted:
	record, added = await services.groups.accept_group_request(ctx, group_request_id)
	return GroupRequestAccepted(
		group_request_id=record.id,
		group_id=record.group_id,
		user_id=record.joining_user_id,
		added=added,
	)
