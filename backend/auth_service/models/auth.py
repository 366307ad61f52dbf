"""Authentication models: users and refresh token tracking.

Refresh tokens are tracked by the SHA-256 digest of the signed token; the
raw bearer value is never stored.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from auth_service.db.session import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Database model representing an application user.

    Attributes:
        id: Primary key (UUID string).
        email: Unique, lowercase-normalized login email.
        password_hash: Password hash.
        created_at: Account creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RefreshToken(Base):
    """One outstanding grant of refresh capability.

    Attributes:
        id: Primary key (UUID string).
        user_id: Foreign key to `users.id`, cascades on delete.
        token_hash: SHA-256 hex digest of the refresh token.
        expires_at: Instant after which the record is dead.
        created_at: Record creation timestamp.
    """

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    user = relationship("User", back_populates="refresh_tokens")
