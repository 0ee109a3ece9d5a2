"""Application context wiring the store, token issuer and mail collaborators."""

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from authflow.config import Settings
from authflow.database import create_db_engine, create_session_factory
from authflow.services.auth import AuthService
from authflow.services.jwt import JWTService
from authflow.services.mailer import Mailer, build_mailer
from authflow.services.notifications import NotificationService


@dataclass
class AppContext:
    """Collaborators shared by every request, built once at startup."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    jwt_service: JWTService
    auth_service: AuthService
    notifications: NotificationService


def build_context(
    settings: Settings,
    mailer: Mailer | None = None,
    engine: Engine | None = None,
) -> AppContext:
    """Construct the context from settings; ``mailer`` and ``engine`` override the configured ones."""
    if engine is None:
        engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    if mailer is None:
        mailer = build_mailer(settings)

    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        jwt_service=JWTService(settings),
        auth_service=AuthService(settings),
        notifications=NotificationService(mailer, app_name=settings.MAIL_FROM_NAME),
    )
