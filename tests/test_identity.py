import time

import httpx
import pytest

from glifghe.web.clients.identity import (
    IdentityClient,
    IdentityError,
    LoginRequired,
    current_subject,
    is_authenticated,
    store_tokens,
)


async def _client(handler) -> IdentityClient:
    client = IdentityClient(transport=httpx.MockTransport(handler))
    await client.start()
    return client


def test_login_url_carries_oauth_parameters():
    url = httpx.URL(IdentityClient().login_url("state-1", prompt="login"))
    assert url.host == "idp.test"
    assert url.path == "/authorize"
    assert url.params["response_type"] == "code"
    assert url.params["client_id"] == "client-123"
    assert url.params["redirect_uri"] == "http://testserver/callback"
    assert url.params["state"] == "state-1"
    assert url.params["prompt"] == "login"
    assert "offline_access" in url.params["scope"]


def test_logout_url():
    url = httpx.URL(IdentityClient().logout_url("http://testserver/"))
    assert url.path == "/v2/logout"
    assert url.params["returnTo"] == "http://testserver/"


async def test_valid_token_returned_without_refresh():
    client = await _client(lambda request: pytest.fail("no request expected"))
    session = {"access_token": "tok", "expires_at": time.time() + 3600}
    assert await client.get_access_token_silently(session) == "tok"
    await client.stop()


async def test_expired_token_is_refreshed():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"access_token": "tok-2", "expires_in": 3600})

    client = await _client(handler)
    session = {"access_token": "tok-1", "expires_at": time.time() - 1, "refresh_token": "r-1"}
    assert await client.get_access_token_silently(session) == "tok-2"
    assert "grant_type=refresh_token" in seen["body"]
    assert session["refresh_token"] == "r-1"
    assert session["expires_at"] > time.time()
    await client.stop()


async def test_expired_token_without_refresh_token_requires_login():
    client = await _client(lambda request: httpx.Response(500))
    with pytest.raises(LoginRequired):
        await client.get_access_token_silently({"access_token": "t", "expires_at": 0})
    with pytest.raises(LoginRequired):
        await client.get_access_token_silently({})
    await client.stop()


async def test_rejected_refresh_requires_login():
    client = await _client(lambda request: httpx.Response(403, json={"error": "invalid_grant"}))
    session = {"access_token": "t", "expires_at": 0, "refresh_token": "r"}
    with pytest.raises(LoginRequired):
        await client.get_access_token_silently(session)
    await client.stop()


def test_session_helpers():
    session = {}
    assert not is_authenticated(session)
    store_tokens(session, {"access_token": "a", "refresh_token": "r", "expires_in": 60})
    session["user"] = {"sub": "auth0|sofia"}
    assert current_subject(session) == "auth0|sofia"
    assert is_authenticated(session)


async def test_token_response_without_access_token_is_an_identity_error():
    client = await _client(lambda request: httpx.Response(200, json={"token_type": "Bearer"}))
    with pytest.raises(IdentityError):
        await client.exchange_code("abc")
    await client.stop()


async def test_non_json_token_response_is_an_identity_error():
    client = await _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(IdentityError):
        await client.exchange_code("abc")
    await client.stop()


async def test_userinfo_without_sub_is_an_identity_error():
    client = await _client(lambda request: httpx.Response(200, json={"name": "Sofia"}))
    with pytest.raises(IdentityError):
        await client.userinfo("tok")
    await client.stop()


def test_store_tokens_rejects_malformed_token_sets():
    session = {}
    with pytest.raises(IdentityError):
        store_tokens(session, {"refresh_token": "r"})
    with pytest.raises(IdentityError):
        store_tokens(session, {"access_token": "a", "expires_in": "soon"})
    assert session == {}
