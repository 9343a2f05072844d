"""Profile lookup and implicit creation from session claims."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.config import get_settings
from calledit.db.models import Profile

logger = structlog.get_logger()


async def get_profile_by_id(db: AsyncSession, profile_id: str) -> Profile | None:
    """Look up a profile by id."""
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def get_profile_by_email(db: AsyncSession, email: str) -> Profile | None:
    """Look up a profile by email (case-insensitive)."""
    result = await db.execute(select(Profile).where(func.lower(Profile.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, claims: dict[str, Any]) -> tuple[Profile, bool]:
    """
    Get the profile for a token subject, creating it on first authentication.

    Returns:
        Tuple of (profile, created) where created is True if a new profile was made.
    """
    profile_id = claims["sub"]
    profile = await get_profile_by_id(db, profile_id)
    if profile is not None:
        return profile, False

    metadata = claims.get("user_metadata") or {}
    email = claims.get("email") or None
    admin_emails = {e.lower() for e in get_settings().admin_emails}

    profile = Profile(
        id=profile_id,
        email=email,
        full_name=metadata.get("full_name") or metadata.get("name"),
        username=metadata.get("user_name") or metadata.get("preferred_username"),
        avatar_url=metadata.get("avatar_url"),
        role="admin" if email and email.lower() in admin_emails else "user",
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent first request for the same subject created it already
        await db.rollback()
        existing = await get_profile_by_id(db, profile_id)
        if existing is None:
            raise
        return existing, False

    logger.info("profile_created", profile_id=profile.id, role=profile.role)
    return profile, True


async def promote_to_admin(db: AsyncSession, profile_id: str) -> Profile | None:
    """Set a profile's role to admin. Returns None if the profile does not exist."""
    profile = await get_profile_by_id(db, profile_id)
    if profile is None:
        return None
    profile.role = "admin"
    await db.flush()
    logger.info("profile_promoted", profile_id=profile_id)
    return profile
