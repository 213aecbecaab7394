import pytest

from remix.domain.chat.exceptions import MessageNotFound
from remix.domain.groups.exceptions import NotMember


async def _chat_with_messages(services, make_user, ctx_for, count=3):
    owner = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Readers")
    await services.groups.add_member(ctx_for(owner.id), group.id, owner.id)
    chat = (await services.groups.get_chats(ctx_for(owner.id), group.id))[0]
    messages = [
        await services.chat.create_message(ctx_for(owner.id), chat.id, "text", {"text": f"m{i}"})
        for i in range(count)
    ]
    return owner, chat, messages


@pytest.mark.asyncio
async def test_update_is_idempotent(services, make_user, ctx_for):
    owner, chat, messages = await _chat_with_messages(services, make_user, ctx_for)
    first = await services.read_positions.update_read_position(ctx_for(owner.id), messages[1].id)
    second = await services.read_positions.update_read_position(ctx_for(owner.id), messages[1].id)
    assert first == second
    stored = await services.read_positions.get_read_position(ctx_for(owner.id), chat.id)
    assert stored.message_id == messages[1].id


@pytest.mark.asyncio
async def test_marker_only_moves_forward(services, make_user, ctx_for):
    owner, chat, messages = await _chat_with_messages(services, make_user, ctx_for)
    await services.read_positions.update_read_position(ctx_for(owner.id), messages[2].id)
    position = await services.read_positions.update_read_position(ctx_for(owner.id), messages[0].id)
    assert position.message_id == messages[2].id
    assert position.chat_id == chat.id


@pytest.mark.asyncio
async def test_unknown_message_and_non_member(services, make_user, ctx_for):
    owner, chat, messages = await _chat_with_messages(services, make_user, ctx_for, count=1)
    outsider = await make_user()
    with pytest.raises(MessageNotFound):
        await services.read_positions.update_read_position(ctx_for(owner.id), "missing")
    with pytest.raises(NotMember):
        await services.read_positions.update_read_position(ctx_for(outsider.id), messages[0].id)


@pytest.mark.asyncio
async def test_no_marker_before_first_read(services, make_user, ctx_for):
    owner, chat, _ = await _chat_with_messages(services, make_user, ctx_for, count=1)
    assert await services.read_positions.get_read_position(ctx_for(owner.id), chat.id) is None
