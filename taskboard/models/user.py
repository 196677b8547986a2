"""
User Model
==========

SQLAlchemy model for user profiles saved after identity-provider sign-in.
"""

from typing import Optional
import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """
    User profile model.

    Authentication itself happens at the identity provider; this table only
    keeps the profile the client reports after sign-up.
    """

    __tablename__ = "users"

    # Primary Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Account fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    uid: Mapped[Optional[str]] = mapped_column(
        String(128),
        unique=True,
        nullable=True,
    )
    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    photo_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, email={self.email})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.user_id),
            "email": self.email,
            "uid": self.uid,
            "name": self.name,
            "photoURL": self.photo_url,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
