"""Authentication workflow service."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from authflow.config import Settings
from authflow.models.user import User, utcnow

logger = logging.getLogger("authflow")


class AuthError(str, Enum):
    """Failure kinds returned by the auth workflow."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    NOT_FOUND = "not_found"


MISSING_FIELDS_MESSAGE = "All fields are required"
USER_EXISTS_MESSAGE = "User already exists"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_VERIFICATION_MESSAGE = "Invalid or expired verification code"
INVALID_RESET_MESSAGE = "Invalid or expired reset token"
INVALID_EMAIL_MESSAGE = "Invalid email"
USER_NOT_FOUND_MESSAGE = "User not found"


@dataclass
class AuthResult:
    """Outcome of an auth workflow operation."""

    success: bool
    error: AuthError | None = None
    message: str | None = None
    user: User | None = None
    token: str | None = None

    @classmethod
    def fail(cls, error: AuthError, message: str) -> "AuthResult":
        return cls(success=False, error=error, message=message)


BCRYPT_MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases refuse longer input.
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_verification_token() -> str:
    """Six digit numeric code, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def generate_reset_token() -> str:
    return secrets.token_hex(20)


_TRIMMED_FIELDS = {"email", "name"}


def _missing_fields(**fields: str | None) -> list[str]:
    """Names of absent or empty fields. Email and name are also empty when blank."""
    missing = []
    for name, value in fields.items():
        if value is None or value == "" or (name in _TRIMMED_FIELDS and not value.strip()):
            missing.append(name)
    return missing


class AuthService:
    """Signup, verification, login and password reset against the user table.

    Every method takes the request's session and reports failures through
    ``AuthResult`` rather than raising. Store errors other than the email
    uniqueness constraint propagate to the caller.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
        self.bcrypt_rounds = settings.BCRYPT_ROUNDS
        self.verification_ttl = timedelta(hours=settings.VERIFICATION_TOKEN_TTL_HOURS)
        self.reset_ttl = timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES)
        self.clock = clock

    def signup(self, db: Session, email: str | None, password: str | None, name: str | None) -> AuthResult:
        """Create an unverified user. ``token`` on the result is the verification code."""
        if _missing_fields(email=email, password=password, name=name):
            return AuthResult.fail(AuthError.VALIDATION, MISSING_FIELDS_MESSAGE)

        email = email.strip()
        if db.query(User).filter(User.email == email).first():
            return AuthResult.fail(AuthError.CONFLICT, USER_EXISTS_MESSAGE)

        now = self.clock()
        verification_token = generate_verification_token()
        user = User(
            email=email,
            password_hash=hash_password(password, self.bcrypt_rounds),
            name=name.strip(),
            is_verified=False,
            verification_token=verification_token,
            verification_token_expires_at=now + self.verification_ttl,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent signup won the unique index on email.
            db.rollback()
            logger.info("Signup for %s lost a race on the email constraint", email)
            return AuthResult.fail(AuthError.CONFLICT, USER_EXISTS_MESSAGE)
        db.refresh(user)

        return AuthResult(success=True, user=user, token=verification_token)

    def verify_email(self, db: Session, code: str | None) -> AuthResult:
        """Mark the owner of an unexpired verification code as verified."""
        user = self._find_token_owner(db, User.verification_token, User.verification_token_expires_at, code)
        if not user:
            self._clear_expired_tokens(db, User.verification_token, User.verification_token_expires_at, code)
            return AuthResult.fail(AuthError.INVALID_TOKEN, INVALID_VERIFICATION_MESSAGE)

        user.is_verified = True
        user.clear_verification_token()
        db.commit()
        db.refresh(user)

        return AuthResult(success=True, user=user)

    def login(self, db: Session, email: str | None, password: str | None) -> AuthResult:
        """Check credentials and record the login time."""
        if _missing_fields(email=email, password=password):
            return AuthResult.fail(AuthError.VALIDATION, MISSING_FIELDS_MESSAGE)

        user = db.query(User).filter(User.email == email.strip()).first()
        if not user or not verify_password(password, user.password_hash):
            return AuthResult.fail(AuthError.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        user.last_login_at = self.clock()
        db.commit()
        db.refresh(user)

        return AuthResult(success=True, user=user)

    def request_password_reset(self, db: Session, email: str | None) -> AuthResult:
        """Issue a reset token. ``token`` on the result is the raw reset token."""
        if _missing_fields(email=email):
            return AuthResult.fail(AuthError.VALIDATION, MISSING_FIELDS_MESSAGE)

        user = db.query(User).filter(User.email == email.strip()).first()
        if not user:
            return AuthResult.fail(AuthError.NOT_FOUND, INVALID_EMAIL_MESSAGE)

        token = generate_reset_token()
        user.reset_password_token = token
        user.reset_password_expires_at = self.clock() + self.reset_ttl
        db.commit()
        db.refresh(user)

        return AuthResult(success=True, user=user, token=token)

    def reset_password(self, db: Session, token: str | None, new_password: str | None) -> AuthResult:
        """Replace the password of the owner of an unexpired reset token."""
        user = self._find_token_owner(db, User.reset_password_token, User.reset_password_expires_at, token)
        if not user:
            self._clear_expired_tokens(db, User.reset_password_token, User.reset_password_expires_at, token)
            return AuthResult.fail(AuthError.INVALID_TOKEN, INVALID_RESET_MESSAGE)

        if _missing_fields(password=new_password):
            return AuthResult.fail(AuthError.VALIDATION, MISSING_FIELDS_MESSAGE)

        user.password_hash = hash_password(new_password, self.bcrypt_rounds)
        user.clear_reset_token()
        db.commit()
        db.refresh(user)

        return AuthResult(success=True, user=user)

    def get_user(self, db: Session, user_id: int) -> AuthResult:
        user = db.get(User, user_id)
        if not user:
            return AuthResult.fail(AuthError.NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        return AuthResult(success=True, user=user)

    def _find_token_owner(self, db: Session, token_column, expires_column, token: str | None) -> User | None:
        """Return the user holding ``token`` with an expiry strictly after now."""
        if not token:
            return None
        return db.query(User).filter(token_column == token, expires_column > self.clock()).first()

    def _clear_expired_tokens(self, db: Session, token_column, expires_column, token: str | None) -> None:
        """Null out every expired copy of ``token`` so it can never be presented again."""
        if not token:
            return
        cleared = (
            db.query(User)
            .filter(token_column == token, expires_column <= self.clock())
            .update({token_column: None, expires_column: None}, synchronize_session="fetch")
        )
        if cleared:
            db.commit()
