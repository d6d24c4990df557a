async def test_health(api):
    resp = await api.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_create_user_requires_bearer_token(api):
    resp = await api.post("/users/", json={"name": "Sofia"})
    assert resp.status_code == 401


async def test_create_and_fetch_profile(api, make_profile):
    created = await make_profile("auth0|sofia", "Sofia", bio="hi", profile_picture="pics/sofia")
    assert created["auth_id"] == "auth0|sofia"
    assert created["font"] == ""

    resp = await api.get("/users/auth0|sofia")
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Sofia"
    assert body["bio"] == "hi"
    assert body["profile_picture"] == "pics/sofia"


async def test_profile_auth_id_comes_from_token(api, login_as):
    login_as("auth0|real")
    resp = await api.post("/users/", json={"name": "Real", "auth_id": "auth0|spoofed"})
    assert resp.status_code == 201
    assert resp.json()["auth_id"] == "auth0|real"
    assert (await api.get("/users/auth0|spoofed")).status_code == 404


async def test_second_profile_for_same_subject_conflicts(api, make_profile):
    await make_profile("auth0|sofia", "Sofia")
    resp = await api.post("/users/", json={"name": "Sofia again"})
    assert resp.status_code == 409


async def test_unknown_profile_is_404(api):
    resp = await api.get("/users/auth0|nobody")
    assert resp.status_code == 404


async def test_update_own_profile(api, make_profile):
    await make_profile("auth0|sofia", "Sofia")
    resp = await api.patch("/users/me", json={"bio": "new bio"})
    assert resp.status_code == 200
    assert resp.json()["bio"] == "new bio"
    assert resp.json()["name"] == "Sofia"


async def test_update_without_profile_is_404(api, login_as):
    login_as("auth0|ghost")
    resp = await api.patch("/users/me", json={"bio": "x"})
    assert resp.status_code == 404


async def test_user_posts_newest_first(api, make_profile):
    await make_profile("auth0|sofia", "Sofia")
    await api.post("/posts/", json={"image_url": "img/one", "message": "one"})
    await api.post("/posts/", json={"image_url": "img/two", "message": "two"})

    resp = await api.get("/users/auth0|sofia/posts")
    assert resp.status_code == 200
    assert [p["message"] for p in resp.json()] == ["two", "one"]
    assert all(p["user_name"] == "Sofia" for p in resp.json())


async def test_lists_for_unknown_user_are_empty(api):
    for path in ("posts", "followers", "following"):
        resp = await api.get(f"/users/auth0|nobody/{path}")
        assert resp.status_code == 200
        assert resp.json() == []


async def test_profile_created_concurrently_conflicts(api, make_profile, monkeypatch):
    from glifghe.api.routers import users

    await make_profile("auth0|sofia", "Sofia")

    async def not_found_yet(db, auth_id):
        return None

    # the duplicate check ran before the other request committed
    monkeypatch.setattr(users, "get_user_by_auth_id", not_found_yet)
    resp = await api.post("/users/", json={"name": "Sofia again"})
    assert resp.status_code == 409

    monkeypatch.undo()
    assert (await api.get("/users/auth0|sofia")).json()["name"] == "Sofia"
