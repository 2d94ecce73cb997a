import pytest


def as_user(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}


@pytest.mark.asyncio
async def test_health(api_client):
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_post_requires_identity(api_client):
    resp = await api_client.post("/posts/", json={"content": "anon"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_post_lifecycle(api_client, make_user):
    alice = await make_user()
    bob = await make_user()

    resp = await api_client.post("/posts/", json={"content": "hello"}, headers=as_user(alice))
    assert resp.status_code == 201
    post_id = resp.json()["post"]["id"]

    resp = await api_client.patch(
        f"/posts/{post_id}", json={"irrelevantField": "x"}, headers=as_user(alice)
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "no valid fields"}

    resp = await api_client.patch(
        f"/posts/{post_id}", json={"content": "edited"}, headers=as_user(alice)
    )
    assert resp.status_code == 200
    assert resp.json()["post"]["content"] == "edited"

    # Non-owners get the same answer as for a missing post
    resp = await api_client.delete(f"/posts/{post_id}", headers=as_user(bob))
    assert resp.status_code == 404
    assert resp.json()["error"] == "not found or unauthorized"

    resp = await api_client.delete(f"/posts/{post_id}", headers=as_user(alice))
    assert resp.status_code == 200

    resp = await api_client.get(f"/posts/{post_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_self_follow_is_hidden_as_not_found(api_client, make_user):
    alice = await make_user()

    resp = await api_client.post("/users/follow", json={"user_id": alice}, headers=as_user(alice))

    assert resp.status_code == 403
    assert resp.json() == {"error": "not found or unauthorized", "reason": "self-follow"}


@pytest.mark.asyncio
async def test_like_twice_conflicts(api_client, make_user):
    alice = await make_user()
    bob = await make_user()
    resp = await api_client.post("/posts/", json={"content": "like it"}, headers=as_user(alice))
    post_id = resp.json()["post"]["id"]

    first = await api_client.post("/likes/", json={"post_id": post_id}, headers=as_user(bob))
    second = await api_client.post("/likes/", json={"post_id": post_id}, headers=as_user(bob))

    assert first.status_code == 201
    assert first.json()["like_count"] == 1
    assert second.status_code == 409
    assert second.json() == {"error": "already liked"}

    status = await api_client.get(f"/likes/status/{post_id}", headers=as_user(bob))
    assert status.json() == {"post_id": post_id, "user_has_liked": True, "like_count": 1}

    resp = await api_client.delete(f"/likes/{post_id}", headers=as_user(bob))
    assert resp.json()["like_count"] == 0
    resp = await api_client.delete(f"/likes/{post_id}", headers=as_user(bob))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_comment_pages_echo_page_and_limit(api_client, make_user):
    alice = await make_user()
    resp = await api_client.post("/posts/", json={"content": "talk"}, headers=as_user(alice))
    post_id = resp.json()["post"]["id"]
    for i in range(3):
        await api_client.post(
            "/comments/", json={"post_id": post_id, "content": f"c{i}"}, headers=as_user(alice)
        )

    resp = await api_client.get(f"/comments/post/{post_id}", params={"page": 2, "limit": 2})

    body = resp.json()
    assert resp.status_code == 200
    assert [c["content"] for c in body["comments"]] == ["c2"]
    assert body["page"] == 2
    assert body["limit"] == 2
    assert body["total"] == 3
    assert body["has_more"] is False


@pytest.mark.asyncio
async def test_profile_follow_flag_only_when_authenticated(api_client, make_user):
    alice = await make_user()
    bob = await make_user()
    await api_client.post("/users/follow", json={"user_id": bob}, headers=as_user(alice))

    anonymous = await api_client.get(f"/users/profile/{bob}")
    viewer = await api_client.get(f"/users/profile/{bob}", headers=as_user(alice))

    assert "is_following" not in anonymous.json()["user"]
    assert viewer.json()["user"]["is_following"] is True
    assert viewer.json()["user"]["followers_count"] == 1


@pytest.mark.asyncio
async def test_invalid_page_size_rejected(api_client):
    resp = await api_client.get("/posts/user/1", params={"limit": 500})
    assert resp.status_code == 422
