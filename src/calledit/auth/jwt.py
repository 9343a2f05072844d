"""
Session token verification.

Tokens are issued by the hosted identity provider and signed with a shared
secret. The ``sub`` claim is the profile id; ``email`` and ``user_metadata``
seed the profile on first sight.
"""

from __future__ import annotations

from typing import Any

import jwt

from calledit.config import get_settings


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Args:
        token: The encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience or None,
            issuer=settings.auth_jwt_issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not isinstance(payload.get("sub"), str) or not payload["sub"]:
        msg = "Token subject is missing"
        raise jwt.InvalidTokenError(msg)
    return payload
