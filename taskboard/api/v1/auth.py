"""
Authentication API Endpoints
============================

Issues and clears the session cookie after identity-provider sign-in.
"""

import logging

from fastapi import APIRouter, Response
from google.auth.exceptions import GoogleAuthError

from taskboard.config import settings
from taskboard.core.errors import AuthenticationError, ErrorCodes
from taskboard.core.security import create_session_token
from taskboard.schemas.auth import SessionRequest
from taskboard.services.auth_service import verify_firebase_id_token

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite=settings.cookie_samesite,
    )


@router.post("/jwt")
async def issue_session(body: SessionRequest, response: Response):
    """
    Exchange a signed-in identity for the session cookie.

    With FIREBASE_PROJECT_ID configured the Firebase ID token is verified
    and the identity is taken from its claims. Without it the posted
    uid/email are trusted, which is refused in production.
    """
    if settings.FIREBASE_PROJECT_ID:
        if not body.id_token:
            raise AuthenticationError(
                code=ErrorCodes.AUTH_INVALID_TOKEN,
                message="ID token is required",
            )
        try:
            claims = await verify_firebase_id_token(body.id_token)
        except (ValueError, GoogleAuthError) as exc:
            logger.info("Rejected ID token email=%s: %s", body.email, exc)
            raise AuthenticationError(
                code=ErrorCodes.AUTH_INVALID_TOKEN,
                message="Invalid or expired ID token",
            )
        uid = claims.get("user_id") or claims["sub"]
        email = claims.get("email", body.email)
    elif settings.is_production:
        logger.error("Refused /jwt email=%s: FIREBASE_PROJECT_ID is not set", body.email)
        raise AuthenticationError(
            code=ErrorCodes.AUTH_INVALID_TOKEN,
            message="ID token verification is not configured",
        )
    else:
        uid = body.uid or body.email
        email = body.email

    _set_session_cookie(response, create_session_token(uid, email))
    return {"success": True}


@router.get("/logout")
async def logout(response: Response):
    """
    Clear the session cookie.
    """
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite=settings.cookie_samesite,
    )
    return {"success": True}
