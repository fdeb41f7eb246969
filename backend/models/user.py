# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""User ORM model."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Index, UniqueConstraint
from sqlalchemy.sql import func

from database import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("oauth_provider", "oauth_provider_id", name="uq_users_oauth"),
        Index("idx_users_email_verification_token", "email_verification_token"),
        Index("idx_users_reset_token", "reset_token"),
    )

    id = Column(String(32), primary_key=True, default=_new_user_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # NULL for OAuth-only accounts – password login must fail for them
    password_hash = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    image = Column(String(2048), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)

    # One-time tokens.  Each token column is set and cleared together with
    # its expiry column.
    email_verification_token = Column(String(64), nullable=True)
    email_verification_expiry = Column(DateTime(timezone=True), nullable=True)
    reset_token = Column(String(64), nullable=True)
    reset_token_expiry = Column(DateTime(timezone=True), nullable=True)
    remember_me_token = Column(String(64), nullable=True)

    oauth_provider = Column(String(64), nullable=True)
    oauth_provider_id = Column(String(255), nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
