"""User model."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from authflow.database import Base


def utcnow() -> datetime:
    """Current time as naive UTC, the form stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Registered account."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(256), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(16), nullable=True, index=True)
    verification_token_expires_at = Column(DateTime, nullable=True)
    reset_password_token = Column(String(256), nullable=True, index=True)
    reset_password_expires_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def clear_verification_token(self) -> None:
        self.verification_token = None
        self.verification_token_expires_at = None

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expires_at = None
