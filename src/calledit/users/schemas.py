"""Request/response schemas for profile endpoints."""

from __future__ import annotations

from calledit.schemas import CamelModel


class ProfileResponse(CamelModel):
    id: str
    name: str
    full_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    created_at: str
    email: str | None = None
    role: str | None = None


class ProfileEnvelope(CamelModel):
    profile: ProfileResponse
