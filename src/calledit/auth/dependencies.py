"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.auth.jwt import verify_token
from calledit.auth.service import get_or_create_profile
from calledit.config import get_settings
from calledit.database import get_session
from calledit.db.models import Profile
from calledit.exceptions import AuthenticationRequired, AuthorizationDenied

_bearer = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Profile | None:
    """
    Resolve the session to a Profile, or None when no session is presented.

    A presented but invalid token is still rejected with 401.
    """
    token = _extract_token(request, credentials)
    if not token:
        return None
    try:
        claims = verify_token(token)
    except jwt.InvalidTokenError as e:
        raise AuthenticationRequired(str(e)) from e

    profile, _ = await get_or_create_profile(db, claims)
    return profile


async def get_current_user(
    user: Profile | None = Depends(get_optional_user),
) -> Profile:
    """Require a valid session. Raises 401 when absent."""
    if user is None:
        raise AuthenticationRequired
    return user


async def require_admin(
    user: Profile = Depends(get_current_user),
) -> Profile:
    """Same as get_current_user but additionally requires role='admin'."""
    if user.role != "admin":
        raise AuthorizationDenied
    return user
