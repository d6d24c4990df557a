"""
Identity provider client.

Bearer tokens are issued to the browser by the OAuth2 provider; the API
never sees passwords. A token is resolved to its subject (`sub`) by calling
the provider's /userinfo endpoint. Successful lookups are cached in Redis
for `token_cache_ttl` seconds so a page that fires several writes does not
hit the provider every time.
"""
import logging
from typing import Optional

import httpx

from glifghe.api.clients import redis_client
from glifghe.api.config import settings
from glifghe.api.telemetry import AUTH_FAILURES_TOTAL

logger = logging.getLogger(__name__)


class IdentityUnavailable(Exception):
    """The identity provider could not be reached or answered unexpectedly."""


class IdentityClient:
    def __init__(self) -> None:
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(timeout=5.0)

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()

    async def get_subject(self, token: str) -> str | None:
        """
        Return the subject the token was issued for, or None when the
        provider rejects it.
        """
        try:
            cached = await redis_client.get_cached_subject(token)
        except Exception as exc:
            logger.warning("Token cache read failed: %s", exc)
            cached = None
        if cached:
            return cached

        if self._http is None:
            raise IdentityUnavailable("Identity client not started")

        try:
            resp = await self._http.get(
                settings.userinfo_url,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise IdentityUnavailable(str(exc)) from exc

        if resp.status_code in (401, 403):
            AUTH_FAILURES_TOTAL.inc()
            return None
        if resp.status_code != 200:
            raise IdentityUnavailable(
                f"userinfo returned status {resp.status_code}"
            )

        subject = resp.json().get("sub")
        if not subject:
            AUTH_FAILURES_TOTAL.inc()
            return None

        try:
            await redis_client.set_cached_subject(token, subject)
        except Exception as exc:
            logger.warning("Token cache write failed: %s", exc)
        return subject


# Singleton
identity_client = IdentityClient()
