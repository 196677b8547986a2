"""
Authentication Schemas
======================

Pydantic schemas for the session cookie and user profile endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SessionRequest(BaseModel):
    """
    Request schema for POST /jwt.

    ``id_token`` is the identity provider's ID token; it is mandatory when
    token verification is configured and ignored otherwise.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    uid: Optional[str] = Field(None, max_length=128)
    id_token: Optional[str] = Field(None, alias="idToken")


class TokenUser(BaseModel):
    """Identity decoded from the session token."""

    uid: str
    email: Optional[str] = None


class UserSave(BaseModel):
    """Request schema for saving a user profile after sign-up."""

    model_config = ConfigDict(populate_by_name=True)

    uid: Optional[str] = Field(None, max_length=128)
    name: Optional[str] = Field(None, alias="displayName", max_length=255)
    photo_url: Optional[str] = Field(None, alias="photoURL", max_length=500)
