"""Request dependencies for FastAPI routes."""

from collections.abc import Generator

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from authflow.config import Settings
from authflow.context import AppContext
from authflow.database import session_scope


def get_context(request: Request) -> AppContext:
    """Return the context the application was created with."""
    return request.app.state.context


def get_db(context: AppContext = Depends(get_context)) -> Generator[Session, None, None]:
    """Yield a database session for the request."""
    yield from session_scope(context.session_factory)


def get_current_user_id(request: Request, context: AppContext = Depends(get_context)) -> int:
    """Extract the user id from a Bearer token or the session cookie. Raises 401 if invalid."""
    token: str | None = None

    # Check Authorization header first
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[7:]

    # Fall back to cookie
    if not token:
        token = request.cookies.get(context.settings.AUTH_COOKIE_NAME)

    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized - no token provided")

    user_id = context.jwt_service.get_user_id(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized - invalid token")

    return user_id


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    """Set the session cookie."""
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    """Clear the session cookie."""
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )
