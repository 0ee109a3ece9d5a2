"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authflow.context import AppContext
from authflow.dependencies import clear_auth_cookie, get_context, get_current_user_id, get_db, set_auth_cookie
from authflow.models.user import User
from authflow.rate_limit import limiter
from authflow.schemas.auth import (
    AuthEnvelope,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SanitizedUser,
    SignupRequest,
    VerifyEmailRequest,
)
from authflow.services.auth import AuthResult

logger = logging.getLogger("authflow")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

SERVER_ERROR_MESSAGE = "Server error"


def _respond(status_code: int, message: str, user: User | None = None) -> JSONResponse:
    envelope = AuthEnvelope(
        success=True,
        message=message,
        user=SanitizedUser.from_user(user) if user is not None else None,
    )
    return JSONResponse(status_code=status_code, content=envelope.to_json())


def _failure(result: AuthResult) -> JSONResponse:
    envelope = AuthEnvelope(success=False, message=result.message or "Request failed")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=envelope.to_json())


def _store_failure(db: Session, operation: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    """Roll back and report an unexpected store error without leaking its details."""
    db.rollback()
    logger.exception("Error in %s", operation)
    envelope = AuthEnvelope(success=False, message=SERVER_ERROR_MESSAGE)
    return JSONResponse(status_code=status_code, content=envelope.to_json())


@router.post("/signup", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def signup(
    request: Request,
    body: SignupRequest,
    background_tasks: BackgroundTasks,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Register an unverified account, start a session and send the verification code."""
    try:
        result = context.auth_service.signup(db, body.email, body.password, body.name)
    except SQLAlchemyError:
        return _store_failure(db, "signup")

    if not result.success:
        return _failure(result)

    user = result.user
    background_tasks.add_task(context.notifications.send_verification_email, user.email, result.token)

    response = _respond(status.HTTP_201_CREATED, "User created successfully", user)
    set_auth_cookie(response, context.jwt_service.create_token(user.id), context.settings)
    return response


@router.post("/verify-email")
@limiter.limit("10/minute")
def verify_email(
    request: Request,
    body: VerifyEmailRequest,
    background_tasks: BackgroundTasks,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Confirm email ownership with the code sent at signup."""
    try:
        result = context.auth_service.verify_email(db, body.code)
    except SQLAlchemyError:
        return _store_failure(db, "verifyEmail", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if not result.success:
        return _failure(result)

    user = result.user
    background_tasks.add_task(context.notifications.send_welcome_email, user.email, user.name)

    return _respond(status.HTTP_200_OK, "Email verified successfully", user)


@router.post("/login")
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Authenticate with email and password and start a session."""
    try:
        result = context.auth_service.login(db, body.email, body.password)
    except SQLAlchemyError:
        return _store_failure(db, "login")

    if not result.success:
        return _failure(result)

    response = _respond(status.HTTP_200_OK, "Logged in successfully", result.user)
    set_auth_cookie(response, context.jwt_service.create_token(result.user.id), context.settings)
    return response


@router.post("/logout")
def logout(context: AppContext = Depends(get_context)) -> JSONResponse:
    """End the session by clearing the cookie."""
    response = _respond(status.HTTP_200_OK, "Logged out successfully")
    clear_auth_cookie(response, context.settings)
    return response


@router.post("/forgot-password")
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Issue a one hour reset token and email the reset link."""
    try:
        result = context.auth_service.request_password_reset(db, body.email)
    except SQLAlchemyError:
        return _store_failure(db, "forgotPassword")

    if not result.success:
        return _failure(result)

    reset_url = f"{context.settings.CLIENT_URL.rstrip('/')}/reset-password/{result.token}"
    background_tasks.add_task(context.notifications.send_password_reset_email, result.user.email, reset_url)

    return _respond(status.HTTP_200_OK, "Password reset link sent to your email")


@router.post("/reset-password/{token}")
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Set a new password using the token from the reset link."""
    try:
        result = context.auth_service.reset_password(db, token, body.password)
    except SQLAlchemyError:
        return _store_failure(db, "resetPassword")

    if not result.success:
        return _failure(result)

    background_tasks.add_task(context.notifications.send_reset_success_email, result.user.email)

    return _respond(status.HTTP_200_OK, "Password reset successfully")


@router.get("/check-auth")
def check_auth(
    user_id: int = Depends(get_current_user_id),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Return the user behind the current session."""
    try:
        result = context.auth_service.get_user(db, user_id)
    except SQLAlchemyError:
        return _store_failure(db, "checkAuth")

    if not result.success:
        return _failure(result)

    return _respond(status.HTTP_200_OK, "User authenticated", result.user)
