import pytest

from remix.domain.common.errors import AuthenticationError, ConflictError, ValidationFailedError
from remix.domain.users.exceptions import EmailTaken, InvalidCredentials, MissingContact, UserNotFound
from remix.infra.auth import decode_bearer


@pytest.mark.asyncio
async def test_create_user_returns_token_for_new_user(services, anonymous_ctx):
    result = await services.users.create_user(anonymous_ctx, password="test", email="test", name="Test")
    assert result.user.email == "test"
    assert result.user.password_hash != "test"
    assert decode_bearer(result.token).id == result.user.id


@pytest.mark.asyncio
async def test_create_user_requires_contact_and_password(services, anonymous_ctx):
    with pytest.raises(MissingContact):
        await services.users.create_user(anonymous_ctx, password="pw")
    with pytest.raises(ValidationFailedError):
        await services.users.create_user(anonymous_ctx, password="", email="a@example.com")


@pytest.mark.asyncio
async def test_unique_contact_fields(services, anonymous_ctx):
    await services.users.create_user(anonymous_ctx, password="pw", email="Dup@Example.com", username="dup")
    with pytest.raises(EmailTaken):
        await services.users.create_user(anonymous_ctx, password="pw", email="dup@example.com")
    with pytest.raises(ConflictError) as exc_info:
        await services.users.create_user(anonymous_ctx, password="pw", email="other@example.com", username="dup")
    assert exc_info.value.detail == "username_taken"


@pytest.mark.asyncio
async def test_login_with_email_and_phone(services, anonymous_ctx):
    created = await services.users.create_user(
        anonymous_ctx, password="s3cret", email="me@example.com", phone_number="+1 555 0100"
    )
    by_email = await services.users.login_with_email(anonymous_ctx, "ME@example.com", "s3cret")
    by_phone = await services.users.login_with_phone(anonymous_ctx, "+15550100", "s3cret")
    assert by_email.user.id == by_phone.user.id == created.user.id


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(services, anonymous_ctx):
    await services.users.create_user(anonymous_ctx, password="s3cret", email="me@example.com")
    with pytest.raises(InvalidCredentials) as wrong_password:
        await services.users.login_with_email(anonymous_ctx, "me@example.com", "nope")
    with pytest.raises(InvalidCredentials) as unknown_user:
        await services.users.login_with_email(anonymous_ctx, "ghost@example.com", "s3cret")
    assert isinstance(wrong_password.value, AuthenticationError)
    assert wrong_password.value.detail == unknown_user.value.detail == "invalid_credentials"


@pytest.mark.asyncio
async def test_lookups_require_authentication(services, make_user, anonymous_ctx, ctx_for):
    user = await make_user("alice")
    with pytest.raises(AuthenticationError):
        await services.users.get_user(anonymous_ctx, user.id)
    assert (await services.users.get_user(ctx_for(user.id), user.id)).username == "alice"
    with pytest.raises(UserNotFound):
        await services.users.get_user(ctx_for(user.id), "missing")


@pytest.mark.asyncio
async def test_search_users_by_phrase(services, make_user, ctx_for):
    alice = await make_user("alice")
    await make_user("bob")
    malice = await make_user("malice")

    found = await services.users.search_users(ctx_for(alice.id), "ALIC")
    assert {user.id for user in found} == {alice.id, malice.id}
    assert await services.users.search_users(ctx_for(alice.id), "  ") == []
    assert len(await services.users.search_users(ctx_for(alice.id), "alic", limit=1)) == 1
