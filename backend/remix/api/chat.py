"""REST API surface for chats, messages and read positions."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status

from remix.api.deps import get_request_context, get_services
from remix.container import ServiceContainer
from remix.domain.chat.schemas import (
	MessageCreate,
	MessageForward,
	MessageListResponse,
	MessageOut,
	ReadPositionOut,
	ReadPositionUpdate,
)
from remix.domain.common.pipeline import RequestContext
from remix.domain.groups.schemas import ChatOut

router = APIRouter()


@router.get("/chats/{chat_id}", response_model=ChatOut)
async def get_chat(
	chat_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> ChatOut:
	return ChatOut.from_model(await services.groups.get_chat(ctx, chat_id))


@router.get("/chats/{chat_id}/messages", response_model=MessageListResponse)
async def list_messages(
	chat_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> MessageListResponse:
	messages = await services.chat.get_messages(ctx, chat_id)
	return MessageListResponse(items=[MessageOut.from_model(message) for message in messages])


@router.post("/chats/{chat_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def create_message(
	chat_id: str,
	payload: MessageCreate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> MessageOut:
	message = await services.chat.create_message(ctx, chat_id, payload.type, payload.data)
	return MessageOut.from_model(message)


@router.post("/chats/{chat_id}/messages/forward", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def forward_content(
	chat_id: str,
	payload: MessageForward,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> MessageOut:
	message = await services.chat.create_message_with_existing_content(ctx, payload.content_id, chat_id)
	return MessageOut.from_model(message)


@router.post("/read-positions", response_model=ReadPositionOut)
async def update_read_position(
	payload: ReadPositionUpdate,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> ReadPositionOut:
	position = await services.read_positions.update_read_position(ctx, payload.message_id)
	return ReadPositionOut.from_model(position)


@router.get("/chats/{chat_id}/read-position", response_model=Optional[ReadPositionOut])
async def get_read_position(
	chat_id: str,
	ctx: RequestContext = Depends(get_request_context),
	services: ServiceContainer = Depends(get_services),
) -> Optional[ReadPositionOut]:
	position = await services.read_positions.get_read_position(ctx, chat_id)
	return ReadPositionOut.from_model(position) if position else None
