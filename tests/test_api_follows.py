async def _two_users(make_profile):
    await make_profile("auth0|nikola", "Nikola")
    await make_profile("auth0|sofia", "Sofia")  # logged in as sofia


async def test_follow_creates_edge(api, make_profile):
    await _two_users(make_profile)

    resp = await api.post("/users/auth0|nikola/follow")
    assert resp.status_code == 204

    followers = (await api.get("/users/auth0|nikola/followers")).json()
    assert [u["auth_id"] for u in followers] == ["auth0|sofia"]

    following = (await api.get("/users/auth0|sofia/following")).json()
    assert [u["auth_id"] for u in following] == ["auth0|nikola"]

    # edges are directed
    assert (await api.get("/users/auth0|sofia/followers")).json() == []


async def test_follow_twice_is_idempotent(api, make_profile):
    await _two_users(make_profile)
    await api.post("/users/auth0|nikola/follow")
    resp = await api.post("/users/auth0|nikola/follow")
    assert resp.status_code == 204
    assert len((await api.get("/users/auth0|nikola/followers")).json()) == 1


async def test_cannot_follow_yourself(api, make_profile):
    await make_profile("auth0|sofia", "Sofia")
    resp = await api.post("/users/auth0|sofia/follow")
    assert resp.status_code == 400


async def test_follow_unknown_user_is_404(api, make_profile):
    await make_profile("auth0|sofia", "Sofia")
    resp = await api.post("/users/auth0|nobody/follow")
    assert resp.status_code == 404


async def test_follow_without_own_profile_is_404(api, make_profile, login_as):
    await make_profile("auth0|nikola", "Nikola")
    login_as("auth0|ghost")
    resp = await api.post("/users/auth0|nikola/follow")
    assert resp.status_code == 404


async def test_unfollow_removes_edge(api, make_profile):
    await _two_users(make_profile)
    await api.post("/users/auth0|nikola/follow")

    resp = await api.delete("/users/auth0|nikola/follow")
    assert resp.status_code == 204
    assert (await api.get("/users/auth0|nikola/followers")).json() == []


async def test_unfollow_without_edge_is_noop(api, make_profile):
    await _two_users(make_profile)
    resp = await api.delete("/users/auth0|nikola/follow")
    assert resp.status_code == 204


async def test_follow_requires_auth(api, make_profile, login_as):
    await make_profile("auth0|nikola", "Nikola")
    from glifghe.api.main import app

    app.dependency_overrides.clear()
    resp = await api.post("/users/auth0|nikola/follow")
    assert resp.status_code == 401


async def test_concurrent_follow_loses_race_quietly(api, make_profile):
    """Two sessions both miss the existing edge; the second insert is absorbed."""
    from glifghe.api.database import AsyncSessionLocal
    from glifghe.api.routers.users import follow_user

    await _two_users(make_profile)

    async with AsyncSessionLocal() as first:
        await follow_user("auth0|nikola", current_auth_id="auth0|sofia", db=first)

    async with AsyncSessionLocal() as second:

        async def missing(*args, **kwargs):
            return None

        # the edge lookup ran before the other session committed
        second.get = missing
        await follow_user("auth0|nikola", current_auth_id="auth0|sofia", db=second)
        await second.commit()

    followers = (await api.get("/users/auth0|nikola/followers")).json()
    assert [u["auth_id"] for u in followers] == ["auth0|sofia"]


def _unfollow_count() -> float:
    from prometheus_client import REGISTRY

    value = REGISTRY.get_sample_value(
        "glifghe_follow_mutations_total", {"action": "unfollow"}
    )
    return value or 0.0


async def test_unfollow_counted_only_when_edge_removed(api, make_profile):
    await _two_users(make_profile)

    before = _unfollow_count()
    await api.delete("/users/auth0|nikola/follow")
    assert _unfollow_count() == before

    await api.post("/users/auth0|nikola/follow")
    await api.delete("/users/auth0|nikola/follow")
    assert _unfollow_count() == before + 1
