"""
Authentication Service
======================

User profile persistence and identity-provider token verification.
"""

import asyncio
import logging
from typing import Optional

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.config import settings
from taskboard.models.user import User
from taskboard.schemas.auth import UserSave

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        stmt = select(User).where(User.email == email)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def save_user(self, email: str, user_data: UserSave) -> tuple[User, bool]:
        """
        Save a user profile unless one already exists for the email.

        Returns:
            ``(user, created)``; an existing record is returned untouched.
        """
        user = await self.get_user_by_email(email)
        if user is not None:
            return user, False

        user = User(
            email=email,
            uid=user_data.uid,
            name=user_data.name,
            photo_url=user_data.photo_url,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)

        logger.info("user_saved email=%s uid=%s", email, user.uid)
        return user, True


async def verify_firebase_id_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return its claims.

    Uses google-auth to check signature, expiry, audience (the configured
    Firebase project) and issuer. Verification is synchronous, so it is
    offloaded to a thread to avoid blocking the event loop.

    Raises:
        ValueError: If the token is invalid, expired, or issued for
                    another project.
    """
    project_id = settings.FIREBASE_PROJECT_ID
    if not project_id:
        raise ValueError("FIREBASE_PROJECT_ID is not configured")

    def _verify() -> dict:
        request = google_requests.Request()
        claims = google_id_token.verify_firebase_token(
            token, request, audience=project_id,
        )
        if claims.get("iss") != FIREBASE_ISSUER_PREFIX + project_id:
            raise ValueError("Invalid token issuer")
        return claims

    return await asyncio.to_thread(_verify)
