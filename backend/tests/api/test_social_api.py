import pytest


async def _user(api_client, email: str) -> str:
    response = await api_client.post("/users", json={"email": email, "password": "test"})
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.asyncio
async def test_friend_request_accept_provisions_dm_group(api_client):
    user1 = await _user(api_client, "test")
    user2 = await _user(api_client, "react")

    created = await api_client.post(
        "/friend-requests",
        json={"from_user_id": user2, "to_user_id": user1, "message": "Hello, World!"},
        headers={"X-User-Id": user2},
    )
    assert created.status_code == 201
    request_id = created.json()["id"]

    pending = await api_client.get(f"/users/{user1}/friend-requests", headers={"X-User-Id": user1})
    assert [r["message"] for r in pending.json()] == ["Hello, World!"]

    accepted = await api_client.post(f"/friend-requests/{request_id}/accept", headers={"X-User-Id": user1})
    assert accepted.status_code == 200
    body = accepted.json()
    assert body["friend_request_id"] == request_id
    assert body["dm_created"] is True
    assert body["group"]["is_direct_message"] is True
    assert body["group"]["name"] == "friend"

    members = await api_client.get(f"/groups/{body['group']['id']}/members", headers={"X-User-Id": user1})
    assert sorted(m["id"] for m in members.json()) == sorted([user1, user2])

    again = await api_client.post(f"/friend-requests/{request_id}/accept", headers={"X-User-Id": user1})
    assert again.status_code == 404
    assert again.json()["kind"] == "not_found"


@pytest.mark.asyncio
async def test_self_request_is_409(api_client):
    user = await _user(api_client, "self@example.com")
    response = await api_client.post(
        "/friend-requests",
        json={"from_user_id": user, "to_user_id": user},
        headers={"X-User-Id": user},
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "self_request"


@pytest.mark.asyncio
async def test_anonymous_accept_is_401_and_keeps_request(api_client):
    a = await _user(api_client, "a@example.com")
    b = await _user(api_client, "b@example.com")
    created = await api_client.post(
        "/friend-requests",
        json={"from_user_id": a, "to_user_id": b},
        headers={"X-User-Id": a},
    )
    request_id = created.json()["id"]

    response = await api_client.post(f"/friend-requests/{request_id}/accept")
    assert response.status_code == 401

    pending = await api_client.get(f"/users/{b}/friend-requests", headers={"X-User-Id": b})
    assert [r["id"] for r in pending.json()] == [request_id]


@pytest.mark.asyncio
async def test_reject_and_foreign_listing(api_client):
    a = await _user(api_client, "a@example.com")
    b = await _user(api_client, "b@example.com")
    created = await api_client.post(
        "/friend-requests",
        json={"from_user_id": a, "to_user_id": b},
        headers={"X-User-Id": a},
    )
    forbidden = await api_client.get(f"/users/{b}/friend-requests", headers={"X-User-Id": a})
    assert forbidden.status_code == 403

    rejected = await api_client.post(f"/friend-requests/{created.json()['id']}/reject", headers={"X-User-Id": b})
    assert rejected.status_code == 200
    pending = await api_client.get(f"/users/{b}/friend-requests", headers={"X-User-Id": b})
    assert pending.json() == []


@pytest.mark.asyncio
async def test_friend_request_detail_and_dm_group_lookup(api_client):
    a = await _user(api_client, "a@example.com")
    b = await _user(api_client, "b@example.com")
    c = await _user(api_client, "c@example.com")
    created = await api_client.post(
        "/friend-requests",
        json={"from_user_id": a, "to_user_id": b, "message": "hey"},
        headers={"X-User-Id": a},
    )
    request_id = created.json()["id"]

    detail = await api_client.get(f"/friend-requests/{request_id}", headers={"X-User-Id": b})
    assert detail.status_code == 200
    assert detail.json()["message"] == "hey"
    outsider = await api_client.get(f"/friend-requests/{request_id}", headers={"X-User-Id": c})
    assert outsider.status_code == 403
    assert outsider.json()["detail"] == "not_participant"

    missing = await api_client.get(f"/friends/{b}/dm-group", headers={"X-User-Id": a})
    assert missing.status_code == 404

    accepted = await api_client.post(f"/friend-requests/{request_id}/accept", headers={"X-User-Id": b})
    group_id = accepted.json()["group"]["id"]
    for viewer, other in ((a, b), (b, a)):
        found = await api_client.get(f"/friends/{other}/dm-group", headers={"X-User-Id": viewer})
        assert found.status_code == 200
        assert found.json()["id"] == group_id

    gone = await api_client.get(f"/friend-requests/{request_id}", headers={"X-User-Id": b})
    assert gone.status_code == 404
