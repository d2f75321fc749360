# hackmate/models/auth_user.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from hackmate.database import Base


class AuthUser(Base):
    """Credential record owned by the identity provider, not by the document store."""

    __tablename__ = "auth_users"

    uid = Column(String(64), primary_key=True)

    # anonymous (guest) accounts have neither email nor password
    email = Column(String(255), unique=True, index=True, nullable=True)
    password_hash = Column(String(255), nullable=True)

    display_name = Column(String(255), nullable=True)
    google_sub = Column(String(255), unique=True, index=True, nullable=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
