"""Profile endpoints: own profile, public profiles, admin promotion."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.auth.dependencies import get_current_user, get_optional_user, require_admin
from calledit.auth.service import get_profile_by_id, promote_to_admin
from calledit.database import get_session
from calledit.db.models import Profile
from calledit.exceptions import NotFound
from calledit.predictions.mappers import display_name, to_iso
from calledit.predictions.schemas import SuccessResponse
from calledit.users.schemas import ProfileEnvelope, ProfileResponse

router = APIRouter(prefix="/api", tags=["Profiles"])


def _profile_response(profile: Profile, private: bool = False) -> ProfileResponse:
    """Build a ProfileResponse. ``private`` adds email and role."""
    response = ProfileResponse(
        id=profile.id,
        name=display_name(profile),
        full_name=profile.full_name,
        username=profile.username,
        avatar_url=profile.avatar_url,
        created_at=to_iso(profile.created_at) or "",
    )
    if private:
        response.email = profile.email
        response.role = profile.role
    return response


@router.get("/profiles/me", response_model=ProfileEnvelope, response_model_exclude_none=True)
async def get_me(user: Profile = Depends(get_current_user)):
    """The caller's own profile."""
    return ProfileEnvelope(profile=_profile_response(user, private=True))


@router.get("/profiles/{profile_id}", response_model=ProfileEnvelope, response_model_exclude_none=True)
async def get_profile_endpoint(
    profile_id: str,
    viewer: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Public profile; email and role only for the owner or an admin."""
    profile = await get_profile_by_id(db, profile_id)
    if profile is None:
        raise NotFound("Profile not found")
    private = viewer is not None and (viewer.id == profile.id or viewer.role == "admin")
    return ProfileEnvelope(profile=_profile_response(profile, private=private))


@router.post("/admin/profiles/{profile_id}/promote", response_model=SuccessResponse)
async def promote_profile_endpoint(
    profile_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Grant the admin role."""
    profile = await promote_to_admin(db, profile_id)
    if profile is None:
        raise NotFound("Profile not found")
    await db.commit()
    return SuccessResponse()
