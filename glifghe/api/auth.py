"""
Bearer-token authentication dependency.

Routes that mutate data depend on `get_current_auth_id`, which yields the
identity provider subject of the caller.
"""
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from glifghe.api.clients.identity_client import IdentityUnavailable, identity_client

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_auth_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        subject = await identity_client.get_subject(credentials.credentials)
    except IdentityUnavailable as exc:
        logger.error("Identity provider unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider unavailable",
        ) from exc

    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return subject
