"""
Users API Endpoints
===================

Saves user profiles reported by the client after sign-up.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from taskboard.dependencies import DBSession
from taskboard.schemas.auth import UserSave
from taskboard.services.auth_service import AuthService
from taskboard.utils.validators import validate_email

router = APIRouter()


@router.post("/{email}")
async def save_user(
    email: str,
    user_data: UserSave,
    db: DBSession,
):
    """
    Save a user unless the email is already known.

    Returns the existing record (200) or the newly created one (201).
    """
    email = validate_email(email)

    auth_service = AuthService(db)
    user, created = await auth_service.save_user(email, user_data)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={
            "success": True,
            "data": user.to_api_dict(),
            "created": created,
        },
    )
