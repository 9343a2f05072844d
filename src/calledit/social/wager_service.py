"""Wager business logic.

Rules:
- The creator is always the challenger; the target friend is the recipient
- Only the recipient may accept or decline, and only while pending
- Accepted wagers are settled to ``completed`` outside this API
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from calledit.auth.service import get_profile_by_id
from calledit.config import get_settings
from calledit.db.models import Prediction, Profile, Wager
from calledit.exceptions import AuthorizationDenied, ConflictError, NotFound, ValidationError
from calledit.social.friendship_service import are_friends

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["accepted", "declined"],
    "accepted": ["completed"],
    "declined": [],
    "completed": [],
}

RESPONSE_STATUSES = ("accepted", "declined")


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a state transition. Raises ConflictError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise ConflictError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


async def create_wager(
    db: AsyncSession,
    challenger: Profile,
    prediction_id: str | None,
    friend_id: str | None,
    terms: str | None,
) -> Wager:
    """Challenge ``friend_id`` on a prediction."""
    terms = (terms or "").strip()
    if not prediction_id or not friend_id or not terms:
        raise ValidationError("Missing required fields")
    if friend_id == challenger.id:
        raise ValidationError("Cannot wager against yourself")

    result = await db.execute(
        select(Prediction).where(Prediction.id == prediction_id, Prediction.deleted_at.is_(None))
    )
    if result.scalar_one_or_none() is None:
        raise NotFound("Prediction not found")
    if await get_profile_by_id(db, friend_id) is None:
        raise NotFound("User not found")

    if get_settings().wager_requires_friendship and not await are_friends(db, challenger.id, friend_id):
        raise AuthorizationDenied("Wagers require an accepted friendship")

    wager = Wager(
        prediction_id=prediction_id,
        challenger_id=challenger.id,
        recipient_id=friend_id,
        terms=terms,
        status="pending",
        created_at=datetime.now(timezone.utc),
    )
    db.add(wager)
    await db.flush()
    logger.info("wager_created", wager_id=wager.id, challenger_id=challenger.id, recipient_id=friend_id)
    return wager


async def respond_to_wager(db: AsyncSession, actor: Profile, wager_id: str, status: str) -> Wager:
    """Accept or decline a wager as its recipient.

    Raises:
        ValidationError: Unsupported status.
        NotFound: No such wager.
        AuthorizationDenied: Actor is not the recipient. Status is left unchanged.
        ConflictError: The wager is no longer pending.
    """
    if status not in RESPONSE_STATUSES:
        raise ValidationError("Invalid status")

    result = await db.execute(select(Wager).where(Wager.id == wager_id))
    wager = result.scalar_one_or_none()
    if wager is None:
        raise NotFound("Wager not found")
    if wager.recipient_id != actor.id:
        raise AuthorizationDenied("Only the recipient can accept or decline")
    if wager.status != "pending":
        raise ConflictError(f"Wager is already {wager.status}")
    validate_transition(wager.status, status)

    wager.status = status
    wager.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("wager_answered", wager_id=wager_id, status=status, actor_id=actor.id)
    return wager


async def list_wagers(db: AsyncSession, user_id: str) -> list[Wager]:
    """Wagers where ``user_id`` is challenger or recipient, newest first."""
    result = await db.execute(
        select(Wager)
        .options(
            selectinload(Wager.challenger),
            selectinload(Wager.recipient),
            selectinload(Wager.prediction),
        )
        .where(or_(Wager.challenger_id == user_id, Wager.recipient_id == user_id))
        .order_by(Wager.created_at.desc(), Wager.id.desc())
    )
    return list(result.scalars().all())
