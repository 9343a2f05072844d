"""Friendship graph business logic.

Rules:
- Edges are directed: requester (user_id) -> recipient (friend_id)
- At most one edge per unordered pair, enforced by the unique ``pair_key``
- Only the recipient may move a request out of ``pending``
- ``accepted`` and ``blocked`` are terminal (no unfriend)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from calledit.auth.service import get_profile_by_email, get_profile_by_id
from calledit.db.models import Friendship, Profile
from calledit.exceptions import AuthorizationDenied, ConflictError, NotFound, ValidationError

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["accepted", "blocked"],
    "accepted": [],
    "blocked": [],
}

RESPONSE_STATUSES = ("accepted", "blocked")


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a state transition. Raises ConflictError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise ConflictError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


def pair_key(a: str, b: str) -> str:
    """Canonical key for the unordered pair {a, b}."""
    return ":".join(sorted((a, b)))


@dataclass
class FriendLists:
    friends: list[Friendship] = field(default_factory=list)
    requests: list[Friendship] = field(default_factory=list)
    sent_requests: list[Friendship] = field(default_factory=list)


async def get_edge_between(db: AsyncSession, a: str, b: str) -> Friendship | None:
    """The edge between two profiles, in either direction."""
    result = await db.execute(
        select(Friendship).where(
            or_(
                and_(Friendship.user_id == a, Friendship.friend_id == b),
                and_(Friendship.user_id == b, Friendship.friend_id == a),
            )
        )
    )
    return result.scalars().first()


async def _insert_edge(db: AsyncSession, requester_id: str, target_id: str) -> Friendship:
    edge = Friendship(
        user_id=requester_id,
        friend_id=target_id,
        status="pending",
        pair_key=pair_key(requester_id, target_id),
        created_at=datetime.now(timezone.utc),
    )
    db.add(edge)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.info("friend_request_race", requester_id=requester_id, target_id=target_id)
        raise ConflictError("Friendship already exists") from e
    return edge


async def send_request(db: AsyncSession, requester: Profile, target_email: str) -> Friendship:
    """Send a pending friend request to the profile with ``target_email``."""
    if not target_email or not target_email.strip():
        raise ValidationError("Missing targetEmail")

    target = await get_profile_by_email(db, target_email.strip())
    if target is None:
        raise NotFound("User not found")
    if target.id == requester.id:
        raise ValidationError("Cannot add yourself")

    existing = await get_edge_between(db, requester.id, target.id)
    if existing is not None:
        raise ConflictError(f"Friendship status: {existing.status}")

    edge = await _insert_edge(db, requester.id, target.id)
    logger.info("friend_request_sent", friendship_id=edge.id, requester_id=requester.id, target_id=target.id)
    return edge


async def follow(db: AsyncSession, requester: Profile, target_user_id: str) -> Friendship:
    """Create a pending edge to ``target_user_id``. An existing edge is returned unchanged."""
    if not target_user_id:
        raise ValidationError("Missing targetUserId")
    if target_user_id == requester.id:
        raise ValidationError("Cannot follow yourself")

    target = await get_profile_by_id(db, target_user_id)
    if target is None:
        raise NotFound("Target user not found")

    requester_id, target_id = requester.id, target.id
    existing = await get_edge_between(db, requester_id, target_id)
    if existing is not None:
        return existing

    try:
        edge = await _insert_edge(db, requester_id, target_id)
    except ConflictError:
        # Lost the insert race; the session was rolled back
        existing = await get_edge_between(db, requester_id, target_id)
        if existing is None:
            raise
        return existing
    logger.info("follow_created", friendship_id=edge.id, requester_id=requester_id, target_id=target_id)
    return edge


async def respond(db: AsyncSession, actor: Profile, friendship_id: str, status: str) -> Friendship:
    """Accept or block a received request.

    Raises:
        ValidationError: Unsupported status.
        NotFound: No such friendship.
        AuthorizationDenied: Actor is not the recipient.
        ConflictError: The request is no longer pending.
    """
    if status not in RESPONSE_STATUSES:
        raise ValidationError("Invalid status")

    result = await db.execute(select(Friendship).where(Friendship.id == friendship_id))
    edge = result.scalar_one_or_none()
    if edge is None:
        raise NotFound("Friendship not found")
    if edge.friend_id != actor.id:
        raise AuthorizationDenied("Only the recipient can respond to this request")
    validate_transition(edge.status, status)

    await db.execute(
        update(Friendship)
        .where(
            Friendship.id == friendship_id,
            Friendship.friend_id == actor.id,
            Friendship.status == "pending",
        )
        .values(status=status)
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()
    logger.info("friend_request_answered", friendship_id=friendship_id, status=status, actor_id=actor.id)
    return edge


async def list_friends(db: AsyncSession, user_id: str) -> FriendLists:
    """Accepted friends, received requests and sent requests for ``user_id``."""
    result = await db.execute(
        select(Friendship)
        .options(selectinload(Friendship.requester), selectinload(Friendship.recipient))
        .where(or_(Friendship.user_id == user_id, Friendship.friend_id == user_id))
        .order_by(Friendship.created_at.desc())
    )
    lists = FriendLists()
    for edge in result.scalars().all():
        if edge.status == "accepted":
            lists.friends.append(edge)
        elif edge.status == "pending" and edge.friend_id == user_id:
            lists.requests.append(edge)
        elif edge.status == "pending" and edge.user_id == user_id:
            lists.sent_requests.append(edge)
    return lists


def counterpart(edge: Friendship, user_id: str) -> Profile:
    """The other party of an edge, whichever side ``user_id`` is stored on."""
    return edge.recipient if edge.user_id == user_id else edge.requester


async def is_following(db: AsyncSession, user_id: str, target_id: str) -> bool:
    """True if a directed edge user_id -> target_id exists."""
    result = await db.execute(
        select(Friendship.id).where(Friendship.user_id == user_id, Friendship.friend_id == target_id)
    )
    return result.first() is not None


async def are_friends(db: AsyncSession, a: str, b: str) -> bool:
    """True if an accepted edge exists between the two profiles."""
    edge = await get_edge_between(db, a, b)
    return edge is not None and edge.status == "accepted"
