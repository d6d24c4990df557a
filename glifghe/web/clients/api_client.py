"""
GlIFGHE API client.

Thin request/response wrappers: one method per endpoint, no logic beyond
building the request and unpacking the JSON. Any non-2xx response or
transport failure is raised as `ApiError`. The single exception is
`get_user_by_id`, where a 404 means "no profile yet" and returns None.
"""
import logging
from typing import Optional

import httpx

from glifghe.web.config import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class ApiClient:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._http: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.api_timeout,
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self._http is None:
            raise RuntimeError("ApiClient not started — call start() first")
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(f"Network error: {exc}") from exc
        if resp.is_error:
            raise ApiError(
                f"Request failed with status code {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp

    # ── Users ──────────────────────────────────────────────────────────────

    async def get_user_by_id(self, auth_id: str) -> dict | None:
        try:
            resp = await self._request("GET", f"/users/{auth_id}")
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        return resp.json()

    async def create_user(self, user: dict, token: str) -> dict:
        resp = await self._request("POST", "/users/", json=user, headers=_auth(token))
        return resp.json()

    async def update_user(self, changes: dict, token: str) -> dict:
        resp = await self._request("PATCH", "/users/me", json=changes, headers=_auth(token))
        return resp.json()

    async def get_user_posts(self, auth_id: str) -> list[dict]:
        resp = await self._request("GET", f"/users/{auth_id}/posts")
        return resp.json()

    async def get_followers(self, auth_id: str) -> list[dict]:
        resp = await self._request("GET", f"/users/{auth_id}/followers")
        return resp.json()

    async def get_following(self, auth_id: str) -> list[dict]:
        resp = await self._request("GET", f"/users/{auth_id}/following")
        return resp.json()

    async def follow_user(self, target_auth_id: str, token: str) -> None:
        await self._request("POST", f"/users/{target_auth_id}/follow", headers=_auth(token))

    async def unfollow_user(self, target_auth_id: str, token: str) -> None:
        await self._request("DELETE", f"/users/{target_auth_id}/follow", headers=_auth(token))

    # ── Posts & comments ───────────────────────────────────────────────────

    async def get_posts(self) -> list[dict]:
        resp = await self._request("GET", "/posts/")
        return resp.json()

    async def get_post(self, post_id: int) -> dict:
        resp = await self._request("GET", f"/posts/{post_id}")
        return resp.json()

    async def create_post(self, image_url: str, message: str | None, token: str) -> dict:
        resp = await self._request(
            "POST",
            "/posts/",
            json={"image_url": image_url, "message": message},
            headers=_auth(token),
        )
        return resp.json()

    async def get_comments(self, post_id: int) -> list[dict]:
        resp = await self._request("GET", f"/posts/{post_id}/comments")
        return resp.json()

    async def add_comment(self, post_id: int, message: str, token: str) -> dict:
        resp = await self._request(
            "POST",
            f"/posts/{post_id}/comments",
            json={"message": message},
            headers=_auth(token),
        )
        return resp.json()


# Singleton
api_client = ApiClient()
