"""
Authentication business logic.

Handles registration (which places the newcomer on the leaderboard),
email + password login, and the password reset token lifecycle.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from worldleader.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from worldleader.config import get_settings
from worldleader.db.models import Continent, User, utcnow
from worldleader.errors import DuplicateUserError, PersistenceFailure
from worldleader.ranking.engine import (
    get_new_user_starting_rank,
    recalculate_rankings,
    serialized_ranking,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Look up a user by primary key."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Look up a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(User.email == email.lower().strip()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    username: str,
    password: str,
    continent: Continent,
    country_code: str,
) -> User:
    """
    Register a new competitor and rank them.

    The user starts in last place on their continent, then the whole ranking
    is recomputed and committed under the ranking lock.

    Raises:
        PasswordStrengthError: If the password is too weak.
        DuplicateUserError: If the email or username is taken.
        PersistenceFailure: If the insert or ranking write failed.
    """
    validate_password_strength(password)
    email = email.lower().strip()

    existing = await db.execute(
        select(User.id).where(or_(User.email == email, User.username == username)).limit(1)
    )
    if existing.first() is not None:
        msg = "User with this email or username already exists"
        raise DuplicateUserError(msg)

    password_hash = hash_password(password)

    try:
        async with serialized_ranking(db):
            starting_rank = await get_new_user_starting_rank(db, continent)
            total = await db.execute(select(func.count()).select_from(User))
            user = User(
                email=email,
                username=username,
                password_hash=password_hash,
                continent=continent,
                country_code=country_code.upper(),
                total_positions_purchased=0,
                current_continent_rank=starting_rank,
                current_global_rank=total.scalar_one() + 1,
                created_at=datetime.now(timezone.utc),
            )
            db.add(user)
            await db.flush()
            await recalculate_rankings(db)
            await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration of the same email/username
        await db.rollback()
        msg = "User with this email or username already exists"
        raise DuplicateUserError(msg) from e
    except PersistenceFailure:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("user_create_failed", email=email)
        msg = "Registration could not be recorded"
        raise PersistenceFailure(msg) from e

    # Rank columns were rewritten by a bulk UPDATE; reload them
    await db.refresh(user)
    logger.info(
        "user_created",
        user_id=user.id,
        continent=continent.value,
        continent_rank=user.current_continent_rank,
        global_rank=user.current_global_rank,
    )
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Raises:
        ValueError: If credentials are invalid. Unknown email and wrong
            password produce the same message.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        msg = "Invalid email or password"
        raise ValueError(msg)

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        user.updated_at = utcnow()
        await db.commit()
        logger.info("password_rehashed", user_id=user.id)

    return user


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


async def create_reset_token(db: AsyncSession, email: str) -> tuple[User, str] | None:
    """
    Issue a password reset token for the account with this email.

    Returns ``(user, raw_token)``, or None if no such account exists. Only
    the sha256 of the token is stored; a new token replaces any previous one.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        return None

    settings = get_settings()
    raw_token = secrets.token_hex(32)
    user.reset_token = _hash_token(raw_token)
    user.updated_at = utcnow()
    user.reset_token_expiry = datetime.now(timezone.utc) + timedelta(
        minutes=settings.password_reset_token_ttl_minutes
    )
    await db.commit()
    logger.info("password_reset_requested", user_id=user.id)
    return user, raw_token


async def verify_reset_token(db: AsyncSession, raw_token: str) -> int | None:
    """Return the user id the token belongs to, or None if unknown or expired."""
    if not raw_token:
        return None
    result = await db.execute(
        select(User.id).where(
            User.reset_token == _hash_token(raw_token),
            User.reset_token_expiry > datetime.now(timezone.utc),
        )
    )
    return result.scalar_one_or_none()


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> bool:
    """
    Set a new password using a reset token.

    Returns False if the token is invalid or expired. On success both token
    fields are cleared so the token cannot be used again.

    Raises:
        PasswordStrengthError: If the new password is too weak.
    """
    validate_password_strength(new_password)

    user_id = await verify_reset_token(db, raw_token)
    if user_id is None:
        return False

    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.reset_token == _hash_token(raw_token))
        .values(
            password_hash=hash_password(new_password),
            reset_token=None,
            reset_token_expiry=None,
            updated_at=utcnow(),
        )
    )
    if result.rowcount == 0:  # type: ignore[attr-defined]
        # Consumed concurrently
        await db.rollback()
        return False
    await db.commit()
    logger.info("password_reset_completed", user_id=user_id)
    return True


async def clear_expired_reset_tokens(db: AsyncSession) -> int:
    """Null out reset tokens whose expiry has passed. Returns the count cleared."""
    result = await db.execute(
        update(User)
        .where(User.reset_token.is_not(None), User.reset_token_expiry <= datetime.now(timezone.utc))
        .values(reset_token=None, reset_token_expiry=None)
    )
    await db.commit()
    count = result.rowcount  # type: ignore[attr-defined]
    if count:
        logger.info("expired_reset_tokens_cleared", count=count)
    return count
