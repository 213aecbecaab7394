import asyncio

import pytest

from remix.domain.common.errors import AuthenticationError, ConflictError, RateLimitedError
from remix.domain.social import policy
from remix.domain.social.exceptions import (
    FriendRequestAlreadyFriends,
    FriendRequestAlreadySent,
    FriendRequestNotFound,
    FriendRequestNotRecipient,
    FriendRequestSelf,
    UserMissing,
)
from remix.domain.social.models import FRIEND_REQUEST_STREAM
from remix.settings import settings


async def _befriend(services, ctx_for, sender, recipient, message=None):
    request = await services.social.create_friend_request(ctx_for(sender.id), sender.id, recipient.id, message)
    return await services.social.accept_friend_request(ctx_for(recipient.id), request.id)


@pytest.mark.asyncio
async def test_accept_creates_symmetric_friendship_and_dm_group(services, make_user, ctx_for):
    user1 = await make_user("test")
    user2 = await make_user("react")

    request = await services.social.create_friend_request(ctx_for(user2.id), user2.id, user1.id, "Hello, World!")
    assert request.message == "Hello, World!"
    outcome = await services.social.accept_friend_request(ctx_for(user1.id), request.id)

    assert outcome.dm_created is True
    assert [u.id for u in await services.social.list_friends(ctx_for(user1.id), user1.id)] == [user2.id]
    assert [u.id for u in await services.social.list_friends(ctx_for(user2.id), user2.id)] == [user1.id]

    groups1 = await services.groups.list_groups(ctx_for(user1.id), user1.id)
    groups2 = await services.groups.list_groups(ctx_for(user2.id), user2.id)
    assert [g.id for g in groups1] == [g.id for g in groups2] == [outcome.group.id]
    group = groups1[0]
    assert group.is_direct_message is True
    assert group.name == settings.dm_group_name
    members = await services.groups.get_members(ctx_for(user1.id), group.id)
    assert sorted(m.id for m in members) == sorted([user1.id, user2.id])
    chats = await services.groups.get_chats(ctx_for(user1.id), group.id)
    assert len(chats) == 1
    assert await services.social.list_friend_requests(ctx_for(user1.id), user1.id) == []


@pytest.mark.asyncio
async def test_self_request_is_rejected(services, make_user, ctx_for):
    user = await make_user()
    with pytest.raises(FriendRequestSelf) as exc_info:
        await services.social.create_friend_request(ctx_for(user.id), user.id, user.id)
    assert isinstance(exc_info.value, ConflictError)
    assert await services.social.list_friend_requests(ctx_for(user.id), user.id) == []


@pytest.mark.asyncio
async def test_unauthenticated_accept_changes_nothing(services, make_user, ctx_for, anonymous_ctx):
    sender = await make_user()
    recipient = await make_user()
    request = await services.social.create_friend_request(ctx_for(sender.id), sender.id, recipient.id)

    with pytest.raises(AuthenticationError):
        await services.social.accept_friend_request(anonymous_ctx, request.id)

    pending = await services.social.list_friend_requests(ctx_for(recipient.id), recipient.id)
    assert [r.id for r in pending] == [request.id]
    assert await services.social.are_friends(ctx_for(sender.id), sender.id, recipient.id) is False
    assert await services.groups.list_groups(ctx_for(sender.id), sender.id) == []


@pytest.mark.asyncio
async def test_duplicate_request_for_unordered_pair(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    with pytest.raises(FriendRequestAlreadySent):
        await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    with pytest.raises(FriendRequestAlreadySent):
        await services.social.create_friend_request(ctx_for(b.id), b.id, a.id)


@pytest.mark.asyncio
async def test_request_between_friends_is_rejected(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    await _befriend(services, ctx_for, a, b)
    with pytest.raises(FriendRequestAlreadyFriends):
        await services.social.create_friend_request(ctx_for(b.id), b.id, a.id)


@pytest.mark.asyncio
async def test_request_to_missing_user(services, make_user, ctx_for):
    a = await make_user()
    with pytest.raises(UserMissing):
        await services.social.create_friend_request(ctx_for(a.id), a.id, "nobody")


@pytest.mark.asyncio
async def test_only_recipient_may_accept(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    request = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    with pytest.raises(FriendRequestNotRecipient):
        await services.social.accept_friend_request(ctx_for(a.id), request.id)


@pytest.mark.asyncio
async def test_second_accept_is_not_found_and_keeps_one_dm_group(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    request = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    await services.social.accept_friend_request(ctx_for(b.id), request.id)
    with pytest.raises(FriendRequestNotFound):
        await services.social.accept_friend_request(ctx_for(b.id), request.id)
    groups = await services.groups.list_groups(ctx_for(a.id), a.id)
    assert len([g for g in groups if g.is_direct_message]) == 1


@pytest.mark.asyncio
async def test_concurrent_accepts_create_one_dm_group(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    request = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)

    results = await asyncio.gather(
        services.social.accept_friend_request(ctx_for(b.id), request.id),
        services.social.accept_friend_request(ctx_for(b.id), request.id),
        return_exceptions=True,
    )

    outcomes = [r for r in results if not isinstance(r, Exception)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(outcomes) == 1
    assert len(errors) == 1 and isinstance(errors[0], FriendRequestNotFound)
    groups = await services.groups.list_groups(ctx_for(b.id), b.id)
    assert [g.id for g in groups] == [outcomes[0].group.id]
    assert (await services.store.find_dm_group(a.id, b.id)).id == outcomes[0].group.id
    assert (await services.store.find_dm_group(b.id, a.id)).dm_pair == tuple(sorted((a.id, b.id)))


@pytest.mark.asyncio
async def test_refriending_reuses_existing_dm_group(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    first = await _befriend(services, ctx_for, a, b)
    # Simulate a friendship that was dropped while the DM group survived.
    services.store._friends[a.id].pop(b.id)
    services.store._friends[b.id].pop(a.id)
    second = await _befriend(services, ctx_for, b, a)
    assert second.dm_created is False
    assert second.group.id == first.group.id


@pytest.mark.asyncio
async def test_reject_and_cancel(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    request = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    await services.social.reject_friend_request(ctx_for(b.id), request.id)
    assert await services.social.list_friend_requests(ctx_for(b.id), b.id) == []

    again = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id)
    cancelled = await services.social.reject_friend_request(ctx_for(a.id), again.id)
    assert cancelled.id == again.id
    assert await services.social.are_friends(ctx_for(a.id), a.id, b.id) is False


@pytest.mark.asyncio
async def test_new_request_is_published_once_to_recipient(services, make_user, ctx_for):
    a = await make_user()
    b = await make_user()
    subscription = services.hub.subscribe(FRIEND_REQUEST_STREAM, b.id)
    sender_subscription = services.hub.subscribe(FRIEND_REQUEST_STREAM, a.id)

    request = await services.social.create_friend_request(ctx_for(a.id), a.id, b.id, "hi")

    payload = await asyncio.wait_for(subscription.get(), timeout=1)
    assert payload["id"] == request.id
    assert payload["message"] == "hi"
    assert subscription._queue.empty()
    assert sender_subscription._queue.empty()


@pytest.mark.asyncio
async def test_audit_stream_records_events(services, make_user, ctx_for, fake_redis):
    a = await make_user()
    b = await make_user()
    await _befriend(services, ctx_for, a, b)
    requests = await fake_redis.xrange("x:friend_requests.events")
    friendships = await fake_redis.xrange("x:friendships.events")
    assert [fields["event"] for _, fields in requests] == ["created"]
    assert [fields["event"] for _, fields in friendships] == ["accepted"]


@pytest.mark.asyncio
async def test_request_rate_limit_per_minute(fake_redis, monkeypatch):
    monkeypatch.setattr(settings, "friend_request_per_minute", 3)
    for _ in range(3):
        await policy.enforce_request_limits("user-1")
    with pytest.raises(RateLimitedError) as exc_info:
        await policy.enforce_request_limits("user-1")
    assert exc_info.value.detail == "per_minute"


@pytest.mark.asyncio
async def test_quota_is_charged_to_the_caller(services, make_user, ctx_for, monkeypatch):
    monkeypatch.setattr(settings, "friend_request_per_minute", 3)
    victim = await make_user()
    target = await make_user()
    other = await make_user()
    intruder = await make_user()

    await services.social.create_friend_request(ctx_for(intruder.id), victim.id, target.id)
    for _ in range(2):
        with pytest.raises(FriendRequestAlreadySent):
            await services.social.create_friend_request(ctx_for(intruder.id), victim.id, target.id)
    with pytest.raises(RateLimitedError):
        await services.social.create_friend_request(ctx_for(intruder.id), victim.id, target.id)

    request = await services.social.create_friend_request(ctx_for(victim.id), victim.id, other.id)
    assert request.from_user_id == victim.id
