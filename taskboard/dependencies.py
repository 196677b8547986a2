"""
Common Dependencies
===================

Shared dependencies used across the application.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.config import settings
from taskboard.core.errors import AuthenticationError, ErrorCodes
from taskboard.core.security import decode_token
from taskboard.db.session import get_db
from taskboard.schemas.auth import TokenUser

logger = logging.getLogger(__name__)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Bearer header is accepted as an alternative to the session cookie
security = HTTPBearer(auto_error=False)

# Development identity used when DEV_AUTH_DISABLED is set
DEV_USER_UID = "dev-user"
DEV_USER_EMAIL = "dev@test.local"


def _resolve_user_from_token(token: str) -> Optional[TokenUser]:
    """Decode the session token into an identity, or None when invalid."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None

    uid = payload.get("sub")
    if not uid:
        return None

    return TokenUser(uid=uid, email=payload.get("email"))


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> TokenUser:
    """
    Get current authenticated identity.

    Reads the session cookie first, then the ``Authorization: Bearer``
    header. Raises 401 if neither carries a valid token.
    In development with DEV_AUTH_DISABLED=True, returns the dev identity.
    """
    if settings.auth_disabled:
        return TokenUser(uid=DEV_USER_UID, email=DEV_USER_EMAIL)

    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials

    if not token:
        raise AuthenticationError()

    user = _resolve_user_from_token(token)
    if user is None:
        logger.info("Rejected invalid session token path=%s", request.url.path)
        raise AuthenticationError(code=ErrorCodes.AUTH_INVALID_TOKEN)

    # Exposed to the request timing middleware
    request.state.user_id = user.uid
    return user


# Type alias for authenticated user dependency
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
