"""Tests for session tokens, configuration and the response view."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from authflow.config import Settings
from authflow.models.user import User
from authflow.schemas.auth import AuthEnvelope, SanitizedUser
from authflow.services.jwt import JWTService


class TestJWTService:
    """Tests for session token creation and decoding."""

    def test_round_trip_user_id(self, settings: Settings):
        service = JWTService(settings)

        token = service.create_token(42)

        assert service.get_user_id(token) == 42
        assert service.decode_token(token)["sub"] == "42"

    def test_rejects_token_signed_with_other_key(self, settings: Settings):
        other = Settings()
        other.JWT_SECRET_KEY = "a-different-secret"

        token = JWTService(other).create_token(42)

        assert JWTService(settings).get_user_id(token) is None

    def test_rejects_expired_token(self, settings: Settings):
        payload = {"sub": "42", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)}
        token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

        assert JWTService(settings).get_user_id(token) is None

    def test_rejects_non_numeric_subject(self, settings: Settings):
        token = jwt.encode({"sub": "abc"}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

        assert JWTService(settings).get_user_id(token) is None


class TestSettings:
    def test_validate_warns_without_smtp(self):
        settings = Settings()
        settings.SMTP_HOST = ""

        assert any("SMTP_HOST" in warning for warning in settings.validate())

    def test_production_flag(self):
        settings = Settings()
        settings.APP_ENV = "production"

        assert settings.is_production


class TestSanitizedUser:
    """Tests for the outbound user view."""

    def _user(self) -> User:
        now = datetime(2026, 1, 1, 9, 30)
        return User(
            id=7,
            email="a@x.com",
            password_hash="$2b$10$hash",
            name="A",
            is_verified=False,
            verification_token="123456",
            verification_token_expires_at=now,
            reset_password_token="deadbeef",
            reset_password_expires_at=now,
            last_login_at=None,
            created_at=now,
            updated_at=now,
        )

    def test_view_omits_secrets(self):
        data = AuthEnvelope(success=True, message="ok", user=SanitizedUser.from_user(self._user())).to_json()

        assert data["user"] == {
            "id": 7,
            "email": "a@x.com",
            "name": "A",
            "isVerified": False,
            "lastLogin": None,
            "createdAt": "2026-01-01T09:30:00",
            "updatedAt": "2026-01-01T09:30:00",
        }
        serialized = str(data)
        assert "$2b$10$hash" not in serialized
        assert "123456" not in serialized
        assert "deadbeef" not in serialized

    def test_envelope_without_user(self):
        assert AuthEnvelope(success=False, message="nope").to_json() == {"success": False, "message": "nope"}
