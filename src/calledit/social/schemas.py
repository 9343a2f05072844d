"""Pydantic schemas for friendship, wager and engagement endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from calledit.schemas import CamelModel


class ProfileSummary(CamelModel):
    id: str
    name: str
    username: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None


# --- Friendships ---


class FriendshipResponse(CamelModel):
    id: str
    status: str
    user_id: str
    friend_id: str
    created_at: str
    friend: ProfileSummary | None = None
    user: ProfileSummary | None = None


class FriendListResponse(CamelModel):
    friends: list[FriendshipResponse]
    requests: list[FriendshipResponse]
    sent_requests: list[FriendshipResponse]


class SendFriendRequest(CamelModel):
    target_email: str = Field(..., min_length=1, max_length=320)


class RespondFriendRequest(CamelModel):
    friendship_id: str = Field(..., min_length=1)
    status: str


class FollowRequest(CamelModel):
    target_user_id: str = Field(..., min_length=1)


class FollowCheckResponse(CamelModel):
    is_following: bool


# --- Wagers ---


class WagerPredictionSummary(CamelModel):
    prediction: str
    category: str
    target_date: str | None = None


class WagerResponse(CamelModel):
    id: str
    prediction_id: str
    challenger_id: str
    recipient_id: str
    terms: str
    status: str
    created_at: str
    updated_at: str | None = None
    challenger: ProfileSummary | None = None
    recipient: ProfileSummary | None = None
    prediction: WagerPredictionSummary | None = None


class CreateWagerRequest(CamelModel):
    prediction_id: str = Field(..., min_length=1)
    friend_id: str = Field(..., min_length=1)
    terms: str = Field(..., min_length=1, max_length=500)


class RespondWagerRequest(CamelModel):
    wager_id: str = Field(..., min_length=1)
    status: str


class WagerEnvelope(CamelModel):
    wager: WagerResponse


class WagerListResponse(CamelModel):
    wagers: list[WagerResponse]


# --- Engagement ---


class ReactionRequest(CamelModel):
    prediction_id: str = Field(..., min_length=1)
    reaction_type: str = Field(..., min_length=1)


class BookmarkRequest(CamelModel):
    prediction_id: str = Field(..., min_length=1)


class ToggleResponse(CamelModel):
    action: Literal["added", "removed"]
