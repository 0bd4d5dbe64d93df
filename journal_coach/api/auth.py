"""Bearer API keys for callers, plus the admin check for moderation"""
import os
import logging
from fastapi import Header, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from journal_coach.exceptions import AuthorizationError
from journal_coach.services.container import get_container

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_api_keys() -> list[str]:
    """Comma-separated API_KEYS, read from the environment on every call"""
    return [key.strip() for key in os.getenv("API_KEYS", "").split(",") if key.strip()]


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Raises:
        HTTPException: 503 when no keys are configured, 401 for an unknown key
    """
    api_key = credentials.credentials
    valid_keys = get_api_keys()

    if not valid_keys:
        logger.error("API_KEYS is empty, rejecting request")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if api_key not in valid_keys:
        logger.warning(f"Rejected API key {api_key[:6]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    return api_key


async def require_admin(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """
    Acting user for moderation endpoints, checked against the container's
    admin predicate.

    Raises:
        AuthorizationError: the acting user is not an admin
    """
    if not get_container().is_admin(x_user_id):
        raise AuthorizationError(
            message=f"User {x_user_id} is not an admin",
            user_id=x_user_id,
            resource="community_moderation"
        )
    return x_user_id
