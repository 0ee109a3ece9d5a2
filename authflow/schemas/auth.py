"""Pydantic schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from authflow.models.user import User

# Request fields are optional so that missing values reach the explicit
# validation step in AuthService instead of FastAPI's 422 handler.


class SignupRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None


class VerifyEmailRequest(BaseModel):
    code: str | None = None

    @field_validator("code", mode="before")
    @classmethod
    def numeric_code_as_text(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(BaseModel):
    password: str | None = None


class SanitizedUser(BaseModel):
    """Outbound view of a user. Never carries the password hash or any token."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    email: str
    name: str
    is_verified: bool
    last_login: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "SanitizedUser":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            is_verified=user.is_verified,
            last_login=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthEnvelope(BaseModel):
    """Uniform response body for every auth operation."""

    success: bool
    message: str
    user: SanitizedUser | None = None

    def to_json(self) -> dict:
        data = self.model_dump(mode="json", by_alias=True)
        if self.user is None:
            del data["user"]
        return data
