"""Auth router — /api/v1/auth endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.auth.jwt import create_access_token
from worldleader.auth.password import PasswordStrengthError
from worldleader.auth.schemas import (
    AuthResponse,
    AuthUser,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenStatus,
)
from worldleader.auth.service import (
    authenticate_user,
    clear_expired_reset_tokens,
    create_reset_token,
    register_user,
    reset_password,
    verify_reset_token,
)
from worldleader.config import get_settings
from worldleader.database import get_session
from worldleader.db.models import User
from worldleader.errors import DuplicateUserError, PersistenceFailure, error_to_http
from worldleader.notifications.dispatch import dispatch_password_reset, dispatch_welcome

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _issue_session(user: User, response: Response) -> AuthResponse:
    """Create a session token, set it as the auth cookie, and build the body."""
    settings = get_settings()
    token = create_access_token(user.id, user.email, user.username)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        path="/",
    )
    return AuthResponse(
        user=AuthUser(
            id=user.id,
            email=user.email,
            username=user.username,
            continent=user.continent,
            country_code=user.country_code,
            current_continent_rank=user.current_continent_rank,
            current_global_rank=user.current_global_rank,
            total_positions_purchased=user.total_positions_purchased,
        ),
        access_token=token,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Create an account, place it on the leaderboard, and log it in."""
    try:
        user = await register_user(
            db,
            email=body.email,
            username=body.username,
            password=body.password,
            continent=body.continent,
            country_code=body.country_code,
        )
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "feedback": e.feedback}) from e
    except (DuplicateUserError, PersistenceFailure) as e:
        status, detail = error_to_http(e)
        raise HTTPException(status_code=status, detail=detail) from e

    background_tasks.add_task(
        dispatch_welcome,
        user.email,
        user.username,
        user.continent.display_name,
        user.current_continent_rank,
    )
    return _issue_session(user, response)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Login with email + password."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    logger.info("user_logged_in", user_id=user.id)
    return _issue_session(user, response)


@router.post("/logout")
async def logout(response: Response) -> dict[str, bool]:
    """Clear the session cookie."""
    response.delete_cookie(get_settings().auth_cookie_name, path="/")
    return {"success": True}


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Request a password reset email. The response never reveals whether the account exists."""
    await clear_expired_reset_tokens(db)
    issued = await create_reset_token(db, body.email)
    if issued is not None:
        user, raw_token = issued
        background_tasks.add_task(dispatch_password_reset, user.email, user.username, raw_token)
    return {"message": "If an account exists with that email, a password reset link has been sent."}


@router.get("/reset-password", response_model=ResetTokenStatus)
async def check_reset_token(
    token: str = Query("", max_length=128),
    db: AsyncSession = Depends(get_session),
) -> ResetTokenStatus:
    """Tell the reset page whether its token is still usable."""
    return ResetTokenStatus(valid=await verify_reset_token(db, token) is not None)


@router.post("/reset-password")
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Set a new password with a valid reset token."""
    try:
        ok = await reset_password(db, body.token, body.password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "feedback": e.feedback}) from e
    if not ok:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    return {"message": "Password has been reset successfully."}
