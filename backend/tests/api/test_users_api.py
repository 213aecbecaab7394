import pytest


async def _register(api_client, email: str, password: str = "test", **extra):
    response = await api_client.post("/users", json={"email": email, "password": password, **extra})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_register_then_login_with_email(api_client):
    created = await _register(api_client, "test", name="Test")
    assert created["user"]["name"] == "Test"
    assert "password_hash" not in created["user"]

    response = await api_client.post("/auth/login/email", json={"email": "test", "password": "test"})
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["id"]

    me = await api_client.get(f"/users/{body['id']}", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_login_with_phone(api_client):
    created = await _register(api_client, "phone@example.com", phone_number="+15550101")
    response = await api_client.post("/auth/login/phone", json={"phone_number": "+15550101", "password": "test"})
    assert response.status_code == 200
    assert response.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_bad_login_is_401(api_client):
    await _register(api_client, "test")
    response = await api_client.post("/auth/login/email", json={"email": "test", "password": "wrong"})
    assert response.status_code == 401
    body = response.json()
    assert body["detail"] == "invalid_credentials"
    assert body["kind"] == "authentication"
    assert body["request_id"]


@pytest.mark.asyncio
async def test_duplicate_email_is_409(api_client):
    await _register(api_client, "dup@example.com")
    response = await api_client.post("/users", json={"email": "dup@example.com", "password": "x"})
    assert response.status_code == 409
    assert response.json()["detail"] == "email_taken"


@pytest.mark.asyncio
async def test_missing_password_is_422(api_client):
    response = await api_client.post("/users", json={"email": "nopass@example.com"})
    assert response.status_code == 422
    assert response.json()["kind"] == "validation"


@pytest.mark.asyncio
async def test_lookup_requires_credentials(api_client):
    created = await _register(api_client, "test")
    response = await api_client.get(f"/users/{created['id']}")
    assert response.status_code == 401
    invalid = await api_client.get(f"/users/{created['id']}", headers={"Authorization": "Bearer not-a-jwt"})
    assert invalid.status_code == 401
    assert invalid.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_search_and_relevant_users(api_client):
    alice = await _register(api_client, "alice@example.com", username="alice")
    bob = await _register(api_client, "bob@example.com", username="bob")
    headers = {"X-User-Id": alice["id"]}

    search = await api_client.get("/users", params={"phrase": "bo"}, headers=headers)
    assert search.status_code == 200
    assert [user["id"] for user in search.json()] == [bob["id"]]

    request = await api_client.post(
        "/friend-requests",
        json={"from_user_id": alice["id"], "to_user_id": bob["id"]},
        headers=headers,
    )
    await api_client.post(f"/friend-requests/{request.json()['id']}/accept", headers={"X-User-Id": bob["id"]})

    relevant = await api_client.get("/users/relevant", headers=headers)
    assert relevant.status_code == 200
    assert [user["id"] for user in relevant.json()] == [bob["id"]]
    friends = await api_client.get(f"/users/{alice['id']}/friends", headers=headers)
    assert [user["id"] for user in friends.json()] == [bob["id"]]
    groups = await api_client.get(f"/users/{alice['id']}/groups", headers=headers)
    assert [group["is_direct_message"] for group in groups.json()] == [True]


@pytest.mark.asyncio
async def test_dev_header_is_ignored_outside_dev(api_client, monkeypatch):
    from remix.settings import settings

    created = await _register(api_client, "test")
    monkeypatch.setattr(settings, "environment", "production")
    response = await api_client.get(f"/users/{created['id']}", headers={"X-User-Id": created["id"]})
    assert response.status_code == 401
