"""Reaction and bookmark toggles.

Presence of a row means "on". A toggle deletes the row when present and
inserts it otherwise, returning the resulting state.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.db.models import Prediction, PredictionBookmark, PredictionReaction
from calledit.exceptions import NotFound, ValidationError

logger = structlog.get_logger()

REACTION_TYPES = ("like", "laugh", "fire", "doubt")

ToggleAction = Literal["added", "removed"]


async def _require_prediction(db: AsyncSession, user_id: str, prediction_id: str) -> None:
    """Visible to ``user_id``: not deleted, and public or owned."""
    result = await db.execute(
        select(Prediction.id).where(
            Prediction.id == prediction_id,
            Prediction.deleted_at.is_(None),
            or_(Prediction.is_private.is_(False), Prediction.user_id == user_id),
        )
    )
    if result.first() is None:
        raise NotFound("Prediction not found")


async def _insert(db: AsyncSession, row: PredictionReaction | PredictionBookmark) -> None:
    db.add(row)
    try:
        await db.flush()
    except IntegrityError:
        # Concurrent toggle already inserted the same tuple
        await db.rollback()


async def toggle_reaction(
    db: AsyncSession, user_id: str, prediction_id: str, reaction_type: str
) -> ToggleAction:
    """Flip the (user, prediction, reaction_type) tuple."""
    if not prediction_id or not reaction_type:
        raise ValidationError("Missing parameters")
    if reaction_type not in REACTION_TYPES:
        raise ValidationError(f"Unknown reaction type: {reaction_type}")
    await _require_prediction(db, user_id, prediction_id)

    result = await db.execute(
        select(PredictionReaction).where(
            PredictionReaction.user_id == user_id,
            PredictionReaction.prediction_id == prediction_id,
            PredictionReaction.reaction_type == reaction_type,
        )
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        await db.delete(existing)
        await db.flush()
        logger.info("reaction_removed", user_id=user_id, prediction_id=prediction_id, reaction_type=reaction_type)
        return "removed"

    await _insert(
        db,
        PredictionReaction(
            user_id=user_id,
            prediction_id=prediction_id,
            reaction_type=reaction_type,
            created_at=datetime.now(timezone.utc),
        ),
    )
    logger.info("reaction_added", user_id=user_id, prediction_id=prediction_id, reaction_type=reaction_type)
    return "added"


async def toggle_bookmark(db: AsyncSession, user_id: str, prediction_id: str) -> ToggleAction:
    """Flip the (user, prediction) bookmark tuple."""
    if not prediction_id:
        raise ValidationError("Missing parameters")
    await _require_prediction(db, user_id, prediction_id)

    result = await db.execute(
        select(PredictionBookmark).where(
            PredictionBookmark.user_id == user_id,
            PredictionBookmark.prediction_id == prediction_id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        await db.delete(existing)
        await db.flush()
        logger.info("bookmark_removed", user_id=user_id, prediction_id=prediction_id)
        return "removed"

    await _insert(
        db,
        PredictionBookmark(user_id=user_id, prediction_id=prediction_id, created_at=datetime.now(timezone.utc)),
    )
    logger.info("bookmark_added", user_id=user_id, prediction_id=prediction_id)
    return "added"
