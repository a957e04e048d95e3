"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.auth.jwt import TokenIdentity, verify_token
from worldleader.auth.service import get_user_by_id
from worldleader.config import get_settings
from worldleader.database import get_session
from worldleader.db.models import User

_bearer = HTTPBearer(auto_error=False)


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> TokenIdentity:
    """
    Resolve the caller's identity from a bearer token or the auth cookie.

    Raises 401 when neither is present or the token does not verify.
    """
    token = credentials.credentials if credentials else request.cookies.get(get_settings().auth_cookie_name)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return verify_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail="Not authenticated") from e


async def get_current_user(
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Load the authenticated user.

    A user deleted after the token was issued is reported as unauthenticated,
    not as missing.
    """
    user = await get_user_by_id(db, identity.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
