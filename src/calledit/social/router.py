"""Social API endpoints.

Friendships (5), Wagers (3), Reactions and Bookmarks (2).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.auth.dependencies import get_current_user
from calledit.database import get_session
from calledit.db.models import Friendship, Profile, Wager
from calledit.predictions.mappers import display_name, to_iso
from calledit.predictions.schemas import SuccessResponse
from calledit.social import engagement_service, friendship_service, wager_service
from calledit.social.schemas import (
    BookmarkRequest,
    CreateWagerRequest,
    FollowCheckResponse,
    FollowRequest,
    FriendListResponse,
    FriendshipResponse,
    ProfileSummary,
    ReactionRequest,
    RespondFriendRequest,
    RespondWagerRequest,
    SendFriendRequest,
    ToggleResponse,
    WagerEnvelope,
    WagerListResponse,
    WagerPredictionSummary,
    WagerResponse,
)

router = APIRouter(prefix="/api", tags=["Social"])


# ── Helpers ──


def _summary(profile: Profile | None) -> ProfileSummary | None:
    if profile is None:
        return None
    return ProfileSummary(
        id=profile.id,
        name=display_name(profile),
        username=profile.username,
        full_name=profile.full_name,
        avatar_url=profile.avatar_url,
    )


def _build_friendship_response(
    edge: Friendship,
    friend: Profile | None = None,
    user: Profile | None = None,
) -> FriendshipResponse:
    return FriendshipResponse(
        id=edge.id,
        status=edge.status,
        user_id=edge.user_id,
        friend_id=edge.friend_id,
        created_at=to_iso(edge.created_at) or "",
        friend=_summary(friend),
        user=_summary(user),
    )


def _build_wager_response(wager: Wager, with_relations: bool = False) -> WagerResponse:
    response = WagerResponse(
        id=wager.id,
        prediction_id=wager.prediction_id,
        challenger_id=wager.challenger_id,
        recipient_id=wager.recipient_id,
        terms=wager.terms,
        status=wager.status,
        created_at=to_iso(wager.created_at) or "",
        updated_at=to_iso(wager.updated_at),
    )
    if with_relations:
        response.challenger = _summary(wager.challenger)
        response.recipient = _summary(wager.recipient)
        if wager.prediction is not None:
            response.prediction = WagerPredictionSummary(
                prediction=wager.prediction.prediction,
                category=wager.prediction.category,
                target_date=to_iso(wager.prediction.target_date),
            )
    return response


# ── Friendships ──


@router.get("/friends", response_model=FriendListResponse, response_model_exclude_none=True)
async def list_friends_endpoint(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Accepted friends, received requests and sent requests."""
    lists = await friendship_service.list_friends(db, user.id)
    return FriendListResponse(
        friends=[
            _build_friendship_response(e, friend=friendship_service.counterpart(e, user.id))
            for e in lists.friends
        ],
        requests=[_build_friendship_response(e, user=e.requester) for e in lists.requests],
        sent_requests=[_build_friendship_response(e, friend=e.recipient) for e in lists.sent_requests],
    )


@router.post("/friends", response_model=SuccessResponse)
async def send_friend_request_endpoint(
    body: SendFriendRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Send a friend request by email."""
    await friendship_service.send_request(db, user, body.target_email)
    await db.commit()
    return SuccessResponse()


@router.put("/friends", response_model=SuccessResponse)
async def respond_friend_request_endpoint(
    body: RespondFriendRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Accept or block a received request (recipient only)."""
    await friendship_service.respond(db, user, body.friendship_id, body.status)
    await db.commit()
    return SuccessResponse()


@router.post("/friends/follow", response_model=SuccessResponse)
async def follow_endpoint(
    body: FollowRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Follow a profile by id."""
    await friendship_service.follow(db, user, body.target_user_id)
    await db.commit()
    return SuccessResponse()


@router.get("/friends/check", response_model=FollowCheckResponse)
async def follow_check_endpoint(
    target_user_id: str = Query(..., alias="targetUserId", min_length=1),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Whether the caller follows ``targetUserId``."""
    following = await friendship_service.is_following(db, user.id, target_user_id)
    return FollowCheckResponse(is_following=following)


# ── Wagers ──


@router.post("/wagers", response_model=WagerEnvelope, response_model_exclude_none=True)
async def create_wager_endpoint(
    body: CreateWagerRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Challenge a friend on a prediction."""
    wager = await wager_service.create_wager(db, user, body.prediction_id, body.friend_id, body.terms)
    await db.commit()
    return WagerEnvelope(wager=_build_wager_response(wager))


@router.get("/wagers", response_model=WagerListResponse, response_model_exclude_none=True)
async def list_wagers_endpoint(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Wagers the caller issued or received, newest first."""
    wagers = await wager_service.list_wagers(db, user.id)
    return WagerListResponse(wagers=[_build_wager_response(w, with_relations=True) for w in wagers])


@router.put("/wagers", response_model=SuccessResponse)
async def respond_wager_endpoint(
    body: RespondWagerRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Accept or decline a wager (recipient only)."""
    await wager_service.respond_to_wager(db, user, body.wager_id, body.status)
    await db.commit()
    return SuccessResponse()


# ── Engagement ──


@router.post("/reactions", response_model=ToggleResponse)
async def toggle_reaction_endpoint(
    body: ReactionRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Toggle a reaction on a prediction."""
    action = await engagement_service.toggle_reaction(db, user.id, body.prediction_id, body.reaction_type)
    await db.commit()
    return ToggleResponse(action=action)


@router.post("/bookmarks", response_model=ToggleResponse)
async def toggle_bookmark_endpoint(
    body: BookmarkRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Toggle a bookmark on a prediction."""
    action = await engagement_service.toggle_bookmark(db, user.id, body.prediction_id)
    await db.commit()
    return ToggleResponse(action=action)
