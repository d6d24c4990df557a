"""
Identity provider client (OAuth2 authorization-code flow).

  login_url()                  — where to send the browser to log in
  exchange_code()              — callback: authorization code → tokens
  userinfo()                   — tokens → profile claims (`sub`, `name`)
  get_access_token_silently()  — a bearer token that is valid right now,
                                 refreshed behind the user's back if needed
  logout_url()                 — where to send the browser to log out

Tokens live in the signed session cookie; this module only reads and
writes the plain dict it is handed.
"""
import logging
import time
from typing import Optional

import httpx

from glifghe.web.config import settings

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The identity provider refused or failed a request."""


class LoginRequired(IdentityError):
    """No usable session; the user must log in again."""


class IdentityClient:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._http: Optional[httpx.AsyncClient] = None
        self._transport = transport

    @property
    def base_url(self) -> str:
        return f"https://{settings.auth_domain}"

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=self.base_url, timeout=5.0, transport=self._transport
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    def login_url(self, state: str, prompt: str | None = "login") -> str:
        params = {
            "response_type": "code",
            "client_id": settings.auth_client_id,
            "redirect_uri": settings.auth_redirect_uri,
            "scope": "openid profile email offline_access",
            "audience": settings.auth_audience,
            "state": state,
        }
        if prompt:
            params["prompt"] = prompt
        return str(httpx.URL(f"{self.base_url}/authorize", params=params))

    def logout_url(self, return_to: str) -> str:
        params = {"client_id": settings.auth_client_id, "returnTo": return_to}
        return str(httpx.URL(f"{self.base_url}/v2/logout", params=params))

    async def _token_request(self, data: dict) -> dict:
        if self._http is None:
            raise RuntimeError("IdentityClient not started — call start() first")
        payload = {
            "client_id": settings.auth_client_id,
            "client_secret": settings.auth_client_secret,
            **data,
        }
        try:
            resp = await self._http.post("/oauth/token", data=payload)
        except httpx.HTTPError as exc:
            raise IdentityError(f"Token endpoint unreachable: {exc}") from exc
        if resp.status_code in (400, 401, 403):
            raise LoginRequired(f"Token request rejected ({resp.status_code})")
        if resp.is_error:
            raise IdentityError(f"Token endpoint returned {resp.status_code}")
        token_set = _json_object(resp, "Token response")
        if not token_set.get("access_token"):
            raise IdentityError("Token response has no access_token")
        return token_set

    async def exchange_code(self, code: str) -> dict:
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.auth_redirect_uri,
            }
        )

    async def refresh(self, refresh_token: str) -> dict:
        return await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    async def userinfo(self, access_token: str) -> dict:
        if self._http is None:
            raise RuntimeError("IdentityClient not started — call start() first")
        try:
            resp = await self._http.get(
                "/userinfo", headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.HTTPError as exc:
            raise IdentityError(f"userinfo unreachable: {exc}") from exc
        if resp.is_error:
            raise IdentityError(f"userinfo returned {resp.status_code}")
        info = _json_object(resp, "userinfo")
        if not info.get("sub"):
            raise IdentityError("userinfo response has no sub")
        return info

    async def get_access_token_silently(self, session: dict) -> str:
        token = session.get("access_token")
        if not token:
            raise LoginRequired("Not logged in")

        if session.get("expires_at", 0) - settings.auth_token_leeway > time.time():
            return token

        refresh_token = session.get("refresh_token")
        if not refresh_token:
            raise LoginRequired("Access token expired")

        logger.info("Refreshing access token for %s", session.get("user", {}).get("sub"))
        store_tokens(session, await self.refresh(refresh_token))
        return session["access_token"]


def _json_object(resp: httpx.Response, what: str) -> dict:
    try:
        body = resp.json()
    except ValueError as exc:
        raise IdentityError(f"{what} is not JSON") from exc
    if not isinstance(body, dict):
        raise IdentityError(f"{what} is not a JSON object")
    return body


def store_tokens(session: dict, token_set: dict) -> None:
    if not token_set.get("access_token"):
        raise IdentityError("Token set has no access_token")
    try:
        expires_in = int(token_set.get("expires_in", 0))
    except (TypeError, ValueError) as exc:
        raise IdentityError("Token set has a malformed expires_in") from exc
    session["access_token"] = token_set["access_token"]
    session["expires_at"] = time.time() + expires_in
    # Refresh token rotation: keep the old one when none is returned
    if token_set.get("refresh_token"):
        session["refresh_token"] = token_set["refresh_token"]


def current_subject(session: dict) -> str | None:
    """The `sub` of the logged-in user, if any."""
    user = session.get("user") or {}
    return user.get("sub")


def is_authenticated(session: dict) -> bool:
    return bool(session.get("access_token") and current_subject(session))


# Singleton
identity_client = IdentityClient()
