"""Prediction create, read, update and soft delete.

Rules:
- Text is required, trimmed, at most 280 characters
- Category must be one of the live categories; when omitted the LLM
  classifier picks one and falls back to the default category
- Only the owner may change outcome or evidence, or delete
- Deletion is soft: ``deleted_at`` is set and the row is kept
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from calledit.ai.classifier import CategoryClassifier
from calledit.db.models import Prediction, Profile
from calledit.exceptions import AuthorizationDenied, NotFound, ValidationError
from calledit.predictions.categories import MAX_PREDICTION_LENGTH, OUTCOMES, is_valid_category

logger = structlog.get_logger()


async def _load_prediction(db: AsyncSession, prediction_id: str) -> Prediction | None:
    """Fetch a prediction with author and engagement rows loaded."""
    result = await db.execute(
        select(Prediction)
        .options(
            selectinload(Prediction.author),
            selectinload(Prediction.reactions),
            selectinload(Prediction.bookmarks),
        )
        .where(Prediction.id == prediction_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_prediction(
    db: AsyncSession,
    owner: Profile,
    text: str,
    category: str | None = None,
    target_date: date | None = None,
    meta: dict[str, Any] | None = None,
    is_private: bool = False,
    classifier: CategoryClassifier | None = None,
) -> Prediction:
    """Create a prediction owned by ``owner``."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Missing required fields")
    if len(text) > MAX_PREDICTION_LENGTH:
        raise ValidationError(f"Prediction must be at most {MAX_PREDICTION_LENGTH} characters")

    if category is None and classifier is not None:
        classification = await classifier.classify_or_default(text)
        category = classification.category
        if target_date is None and classification.target_date:
            target_date = date.fromisoformat(classification.target_date)
        if meta is None:
            meta = classification.meta.model_dump(exclude_none=True)

    if not category:
        raise ValidationError("Missing required fields")
    if not is_valid_category(category):
        raise ValidationError(f"Unknown category: {category}")

    prediction = Prediction(
        user_id=owner.id,
        category=category,
        prediction=text,
        target_date=target_date,
        meta=meta,
        is_private=is_private,
        outcome="pending",
        created_at=datetime.now(timezone.utc),
    )
    db.add(prediction)
    await db.flush()
    logger.info("prediction_created", prediction_id=prediction.id, user_id=owner.id, category=category)

    return await get_prediction(db, prediction.id, owner.id)


async def get_prediction(db: AsyncSession, prediction_id: str, viewer_id: str | None = None) -> Prediction:
    """
    Fetch a single visible prediction.

    Raises:
        NotFound: If missing, soft-deleted, or private and not owned by the viewer.
    """
    prediction = await _load_prediction(db, prediction_id)
    if prediction is None or prediction.deleted_at is not None:
        raise NotFound("Prediction not found")
    if prediction.is_private and prediction.user_id != viewer_id:
        raise NotFound("Prediction not found")
    return prediction


async def _owned_prediction(db: AsyncSession, actor: Profile, prediction_id: str) -> Prediction:
    result = await db.execute(select(Prediction).where(Prediction.id == prediction_id))
    prediction = result.scalar_one_or_none()
    if prediction is None or prediction.deleted_at is not None:
        raise NotFound("Prediction not found")
    if prediction.user_id != actor.id:
        raise AuthorizationDenied("Only the owner can modify this prediction")
    return prediction


async def update_prediction(
    db: AsyncSession,
    actor: Profile,
    prediction_id: str,
    outcome: str | None = None,
    evidence_image_url: str | None = None,
    deleted_at: datetime | None = None,
    *,
    set_evidence: bool = False,
) -> Prediction:
    """
    Update outcome, evidence image, or soft-delete timestamp.

    ``set_evidence`` distinguishes clearing the evidence (None) from leaving it untouched.
    """
    if outcome is not None and outcome not in OUTCOMES:
        raise ValidationError(f"Invalid outcome: {outcome}")

    prediction = await _owned_prediction(db, actor, prediction_id)
    if outcome is not None:
        prediction.outcome = outcome
    if set_evidence:
        prediction.evidence_image_url = evidence_image_url
    if deleted_at is not None:
        prediction.deleted_at = deleted_at
    await db.flush()
    logger.info(
        "prediction_updated",
        prediction_id=prediction_id,
        outcome=prediction.outcome,
        deleted=prediction.deleted_at is not None,
    )
    return prediction


async def soft_delete_prediction(db: AsyncSession, actor: Profile, prediction_id: str) -> None:
    """Mark a prediction deleted without removing the row."""
    prediction = await _owned_prediction(db, actor, prediction_id)
    prediction.deleted_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("prediction_deleted", prediction_id=prediction_id, user_id=actor.id)
