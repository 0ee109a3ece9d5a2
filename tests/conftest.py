"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from authflow.config import Settings
from authflow.context import AppContext, build_context
from authflow.database import Base
from authflow.models.user import User
from authflow.services.mailer import Mailer


class RecordingMailer(Mailer):
    """Keeps sent messages in memory."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    def send(self, to_email: str, subject: str, html: str) -> None:
        self.sent.append({"to": to_email, "subject": subject, "html": html})

    def subjects(self) -> list[str]:
        return [message["subject"] for message in self.sent]


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    settings = Settings()
    settings.JWT_SECRET_KEY = "test-secret"
    settings.BCRYPT_ROUNDS = 4
    settings.CLIENT_URL = "http://client.test"
    settings.AUTO_CREATE_TABLES = True
    settings.APP_ENV = "test"
    return settings


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(name="context")
def context_fixture(settings: Settings, mailer: RecordingMailer):
    """Build an application context on an in-memory SQLite database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    context = build_context(settings, mailer=mailer, engine=engine)
    try:
        yield context
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="db_session")
def db_session_fixture(context: AppContext):
    session = context.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="client")
def client_fixture(context: AppContext):
    """Create a test client around the test context with rate limiting disabled."""
    from authflow.rate_limit import limiter
    from main import create_app

    limiter.enabled = False
    with TestClient(create_app(context)) as c:
        yield c
    limiter.enabled = True


@pytest.fixture(name="load_user")
def load_user_fixture(context: AppContext):
    """Return a loader that reads a user through a fresh session."""

    def load(email: str) -> User | None:
        session: Session = context.session_factory()
        try:
            user = session.query(User).filter(User.email == email).first()
            if user is not None:
                session.expunge(user)
            return user
        finally:
            session.close()

    return load


@pytest.fixture(name="test_user")
def test_user_fixture(context: AppContext, db_session: Session):
    """Create an unverified user and return its data with the verification code and session token."""
    result = context.auth_service.signup(db_session, "test@example.com", "password123", "Test User")
    token = context.jwt_service.create_token(result.user.id)

    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "name": result.user.name,
        "verification_code": result.token,
        "token": token,
    }
