import pytest

from remix.domain.common.errors import AuthorizationError, ValidationFailedError
from remix.domain.groups.exceptions import (
    AlreadyMember,
    ChatNotFound,
    DirectMessageGroup,
    GroupNotFound,
    GroupRequestAlreadySent,
    GroupRequestNotFound,
    NotMember,
)
from remix.domain.groups.models import GroupRequestKind
from remix.settings import settings


@pytest.mark.asyncio
async def test_create_group_has_default_chat_and_no_members(services, make_user, ctx_for):
    owner = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Book club", None, "Monthly reads")

    assert group.is_direct_message is False
    assert await services.groups.get_members(ctx_for(owner.id), group.id) == []
    chats = await services.groups.get_chats(ctx_for(owner.id), group.id)
    assert [chat.name for chat in chats] == [settings.default_chat_name]
    assert (await services.groups.get_group(ctx_for(owner.id), group.id)).description == "Monthly reads"


@pytest.mark.asyncio
async def test_create_group_requires_name(services, make_user, ctx_for):
    owner = await make_user()
    with pytest.raises(ValidationFailedError):
        await services.groups.create_group(ctx_for(owner.id), "   ")


@pytest.mark.asyncio
async def test_missing_group_and_chat(services, make_user, ctx_for):
    user = await make_user()
    with pytest.raises(GroupNotFound):
        await services.groups.get_group(ctx_for(user.id), "missing")
    with pytest.raises(ChatNotFound):
        await services.groups.get_chat(ctx_for(user.id), "missing")


@pytest.mark.asyncio
async def test_first_member_then_members_only(services, make_user, ctx_for):
    owner = await make_user()
    friend = await make_user()
    stranger = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Team")

    assert await services.groups.add_member(ctx_for(owner.id), group.id, owner.id) is True
    assert await services.groups.add_member(ctx_for(owner.id), group.id, friend.id) is True
    assert await services.groups.add_member(ctx_for(owner.id), group.id, friend.id) is False
    with pytest.raises(NotMember):
        await services.groups.add_member(ctx_for(stranger.id), group.id, stranger.id)

    members = await services.groups.get_members(ctx_for(owner.id), group.id)
    assert [m.id for m in members] == [owner.id, friend.id]


@pytest.mark.asyncio
async def test_remove_last_member_keeps_group(services, make_user, ctx_for):
    owner = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Solo")
    await services.groups.add_member(ctx_for(owner.id), group.id, owner.id)

    assert await services.groups.remove_member(ctx_for(owner.id), group.id, owner.id) is True
    assert (await services.groups.get_group(ctx_for(owner.id), group.id)).id == group.id
    assert await services.groups.get_members(ctx_for(owner.id), group.id) == []


@pytest.mark.asyncio
async def test_dm_group_membership_is_immutable(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    c = await make_user()
    request = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    outcome = await services.social.accept_friend_request(ctx_for(b.id), request.id)

    with pytest.raises(DirectMessageGroup):
        await services.groups.add_member(ctx_for(a.id), outcome.group.id, c.id)
    with pytest.raises(DirectMessageGroup):
        await services.groups.remove_member(ctx_for(a.id), outcome.group.id, b.id)
    with pytest.raises(DirectMessageGroup):
        await services.groups.create_group_request(ctx_for(c.id), c.id, outcome.group.id)


@pytest.mark.asyncio
async def test_members_create_chats(services, make_user, ctx_for):
    owner = await make_user()
    outsider = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Team")
    await services.groups.add_member(ctx_for(owner.id), group.id, owner.id)

    chat = await services.groups.create_chat(ctx_for(owner.id), group.id, "random")
    assert [c.name for c in await services.groups.get_chats(ctx_for(owner.id), group.id)] == ["general", "random"]
    assert (await services.groups.get_chat(ctx_for(owner.id), chat.id)).group_id == group.id
    with pytest.raises(NotMember):
        await services.groups.create_chat(ctx_for(outsider.id), group.id, "mine")


@pytest.mark.asyncio
async def test_invitation_accepted_by_invitee(services, make_user, ctx_for):
    owner = await make_user()
    invitee = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Team")
    await services.groups.add_member(ctx_for(owner.id), group.id, owner.id)

    invitation = await services.groups.create_group_invitation(
        ctx_for(owner.id), owner.id, invitee.id, group.id, "join us"
    )
    assert invitation.kind is GroupRequestKind.INVITATION
    with pytest.raises(GroupRequestAlreadySent):
        await services.groups.create_group_invitation(ctx_for(owner.id), owner.id, invitee.id, group.id)
    with pytest.raises(AuthorizationError):
        await services.groups.accept_group_request(ctx_for(owner.id), invitation.id)

    record, added = await services.groups.accept_group_request(ctx_for(invitee.id), invitation.id)
    assert added is True
    assert record.joining_user_id == invitee.id
    assert [g.id for g in await services.groups.list_groups(ctx_for(invitee.id), invitee.id)] == [group.id]
    with pytest.raises(GroupRequestNotFound):
        await services.groups.accept_group_request(ctx_for(invitee.id), invitation.id)


@pytest.mark.asyncio
async def test_invitation_requires_member_inviter(services, make_user, ctx_for):
    owner = await make_user()
    outsider = await make_user()
    target = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Team")
    await services.groups.add_member(ctx_for(owner.id), group.id, owner.id)

    with pytest.raises(NotMember):
        await services.groups.create_group_invitation(ctx_for(outsider.id), outsider.id, target.id, group.id)
    with pytest.raises(AlreadyMember):
        await services.groups.create_group_invitation(ctx_for(owner.id), owner.id, owner.id, group.id)


@pytest.mark.asyncio
async def test_join_request_accepted_by_member(services, make_user, ctx_for):
    owner = await make_user()
    applicant = await make_user()
    group = await services.groups.create_group(ctx_for(owner.id), "Team")
    await services.groups.add_member(ctx_for(owner.id), group.id, owner.id)

    with pytest.raises(AuthorizationError):
        await services.groups.create_group_request(ctx_for(owner.id), applicant.id, group.id)
    record = await services.groups.create_group_request(ctx_for(applicant.id), applicant.id, group.id, "please")
    assert record.kind is GroupRequestKind.REQUEST
    with pytest.raises(NotMember):
        await services.groups.accept_group_request(ctx_for(applicant.id), record.id)

    _, added = await services.groups.accept_group_request(ctx_for(owner.id), record.id)
    assert added is True
    with pytest.raises(AlreadyMember):
        await services.groups.create_group_request(ctx_for(applicant.id), applicant.id, group.id)
