"""Maps stored prediction rows to the prediction view model."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import inspect

from calledit.db.models import Prediction, Profile
from calledit.schemas import CamelModel


class PredictionMeta(CamelModel):
    tags: list[str] | None = None
    entities: list[str] | None = None
    subject: str | None = None
    action: str | None = None
    confidence: float | None = None


class AuthorView(CamelModel):
    name: str
    username: str | None = None
    avatar_url: str | None = None


class PredictionView(CamelModel):
    id: str
    user_id: str
    category: str
    prediction: str
    created_at: str
    target_date: str | None = None
    outcome: str = "pending"
    evidence_image_url: str | None = None
    meta: PredictionMeta | None = None
    author: AuthorView | None = None
    reactions: dict[str, int] = {}
    user_reactions: list[str] = []
    is_bookmarked: bool = False


def display_name(profile: Profile) -> str:
    """First name, then handle, then email local part, then a placeholder."""
    if profile.full_name and profile.full_name.split():
        return profile.full_name.split()[0]
    if profile.username:
        return profile.username
    if profile.email and profile.email.split("@")[0]:
        return profile.email.split("@")[0]
    return "Authenticated"


def to_iso(value: datetime | date | None) -> str | None:
    """ISO-8601 string; naive datetimes are treated as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _loaded(row: Prediction, attr: str) -> Any:  # noqa: ANN401
    """Return a relationship only if it is already loaded (never lazy-load under asyncio)."""
    state = inspect(row, raiseerr=False)
    if state is not None and attr in state.unloaded:
        return None
    return getattr(row, attr, None)


def map_prediction(row: Prediction, current_user_id: str | None = None) -> PredictionView:
    """Build the view model for one prediction row.

    The author block is present only when the owning profile was loaded with
    the row. Reaction counts, the viewer's own reactions and bookmark state are
    derived from whatever reaction/bookmark rows were loaded.

    Raises:
        ValueError: If id, owner, category or text is missing.
    """
    for field in ("id", "user_id", "category", "prediction"):
        if not getattr(row, field, None):
            msg = f"Prediction row is missing required field '{field}'"
            raise ValueError(msg)

    reaction_counts: dict[str, int] = {}
    user_reactions: list[str] = []
    for reaction in _loaded(row, "reactions") or []:
        reaction_counts[reaction.reaction_type] = reaction_counts.get(reaction.reaction_type, 0) + 1
        if current_user_id and reaction.user_id == current_user_id:
            user_reactions.append(reaction.reaction_type)

    bookmarks = _loaded(row, "bookmarks") or []
    is_bookmarked = bool(current_user_id) and any(b.user_id == current_user_id for b in bookmarks)

    profile = _loaded(row, "author")
    author = None
    if profile is not None:
        author = AuthorView(
            name=display_name(profile),
            username=profile.username,
            avatar_url=profile.avatar_url,
        )

    return PredictionView(
        id=row.id,
        user_id=row.user_id,
        category=row.category,
        prediction=row.prediction,
        created_at=to_iso(row.created_at) or "",
        target_date=to_iso(row.target_date),
        outcome=row.outcome or "pending",
        evidence_image_url=row.evidence_image_url,
        meta=PredictionMeta.model_validate(row.meta) if row.meta else None,
        author=author,
        reactions=reaction_counts,
        user_reactions=user_reactions,
        is_bookmarked=is_bookmarked,
    )
