"""Public feed and dashboard queries.

Keyset pagination ordered by (created_at DESC, id DESC). A cursor is either a
plain ISO timestamp (rows strictly older than it) or the opaque token returned
as ``next_cursor``, which encodes (created_at, id) as base64 JSON and stays
gap-free when several predictions share a timestamp.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import Select, and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from calledit.db.models import Prediction
from calledit.exceptions import UpstreamFailure, ValidationError
from calledit.predictions.categories import is_valid_category
from calledit.predictions.mappers import PredictionView, map_prediction

logger = structlog.get_logger()


@dataclass
class FeedPage:
    predictions: list[PredictionView] = field(default_factory=list)
    next_cursor: str | None = None


@dataclass(frozen=True)
class Cursor:
    time: datetime
    id: str | None = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_cursor(time: datetime, prediction_id: str) -> str:
    """Encode a keyset cursor from the last prediction of a page."""
    payload = {"time": _as_utc(time).isoformat(), "id": prediction_id}
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def decode_cursor(cursor: str) -> Cursor:
    """Decode either a plain ISO timestamp or an opaque keyset token.

    Raises:
        ValidationError: If the cursor is neither.
    """
    try:
        return Cursor(time=_as_utc(datetime.fromisoformat(cursor.replace("Z", "+00:00"))))
    except ValueError:
        pass

    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode()))
        if not isinstance(data, dict) or "time" not in data:
            msg = "Missing 'time' in cursor"
            raise ValueError(msg)
        return Cursor(time=_as_utc(datetime.fromisoformat(data["time"])), id=data.get("id"))
    except (ValueError, TypeError, binascii.Error, UnicodeDecodeError) as e:
        msg = f"Invalid cursor: {e}"
        raise ValidationError(msg) from e


def apply_cursor(query: Select, cursor: Cursor | None) -> Select:  # type: ignore[type-arg]
    """Restrict a (created_at DESC, id DESC) ordered query to rows after ``cursor``."""
    if cursor is None:
        return query
    if cursor.id is None:
        return query.where(Prediction.created_at < cursor.time)
    return query.where(
        or_(
            Prediction.created_at < cursor.time,
            and_(Prediction.created_at == cursor.time, Prediction.id < cursor.id),
        )
    )


def _base_query() -> Select:  # type: ignore[type-arg]
    return (
        select(Prediction)
        .options(
            selectinload(Prediction.author),
            selectinload(Prediction.reactions),
            selectinload(Prediction.bookmarks),
        )
        .where(Prediction.deleted_at.is_(None))
        .order_by(Prediction.created_at.desc(), Prediction.id.desc())
    )


async def fetch_feed(
    db: AsyncSession,
    limit: int = 20,
    cursor: str | None = None,
    category: str | None = None,
    viewer_id: str | None = None,
    max_limit: int = 100,
) -> FeedPage:
    """Fetch one page of the public feed.

    Args:
        db: Database session.
        limit: Page size, between 1 and ``max_limit``.
        cursor: ISO timestamp or opaque token from the previous page.
        category: Optional category filter.
        viewer_id: Authenticated viewer, used for reaction/bookmark state.
        max_limit: Largest accepted ``limit``.

    Returns:
        FeedPage. A page shorter than ``limit`` is the last one.
    """
    if limit < 1:
        msg = "limit must be a positive integer"
        raise ValidationError(msg)
    if limit > max_limit:
        msg = f"limit must be at most {max_limit}"
        raise ValidationError(msg)
    if category is not None and not is_valid_category(category):
        msg = f"Unknown category: {category}"
        raise ValidationError(msg)
    decoded = decode_cursor(cursor) if cursor else None

    query = _base_query().where(Prediction.is_private.is_(False))
    if category is not None:
        query = query.where(Prediction.category == category)
    query = apply_cursor(query, decoded).limit(limit)

    try:
        result = await db.execute(query)
        rows = list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error("feed_query_failed", error=str(e))
        raise UpstreamFailure("Failed to load feed") from e

    items = [map_prediction(row, viewer_id) for row in rows]
    next_cursor = None
    if len(rows) == limit:
        last = rows[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return FeedPage(predictions=items, next_cursor=next_cursor)


async def fetch_dashboard(db: AsyncSession, user_id: str) -> list[PredictionView]:
    """All of a user's own non-deleted predictions, private ones included, newest first."""
    query = _base_query().where(Prediction.user_id == user_id)
    try:
        result = await db.execute(query)
        rows = list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error("dashboard_query_failed", user_id=user_id, error=str(e))
        raise UpstreamFailure("Failed to load dashboard") from e
    return [map_prediction(row, user_id) for row in rows]
