"""ORM models for profiles, predictions, the social graph and promotions.

Schema is created by Alembic (``alembic/versions``); tests build it from
``Base.metadata``. Ids are UUID strings generated client-side so the same
models run on PostgreSQL and SQLite.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from calledit.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """One row per authenticated identity; id matches the token subject."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    predictions: Mapped[list[Prediction]] = relationship("Prediction", back_populates="author")


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------


class Prediction(Base):
    """A user's prediction. Soft-deleted rows keep ``deleted_at`` set."""

    __tablename__ = "predictions"
    __table_args__ = (
        Index("idx_predictions_created_id", "created_at", "id"),
        Index("idx_predictions_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    prediction: Mapped[str] = mapped_column(String(280), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    evidence_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    author: Mapped[Profile | None] = relationship("Profile", back_populates="predictions")
    reactions: Mapped[list[PredictionReaction]] = relationship(
        "PredictionReaction", back_populates="prediction", cascade="all, delete-orphan"
    )
    bookmarks: Mapped[list[PredictionBookmark]] = relationship(
        "PredictionBookmark", back_populates="prediction", cascade="all, delete-orphan"
    )


class PredictionReaction(Base):
    """Presence of the row means the user reacted with ``reaction_type``."""

    __tablename__ = "prediction_reactions"
    __table_args__ = (
        UniqueConstraint("user_id", "prediction_id", "reaction_type", name="prediction_reactions_user_pred_type_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    prediction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False
    )
    reaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    prediction: Mapped[Prediction] = relationship("Prediction", back_populates="reactions")


class PredictionBookmark(Base):
    """Presence of the row means the user bookmarked the prediction."""

    __tablename__ = "prediction_bookmarks"
    __table_args__ = (
        UniqueConstraint("user_id", "prediction_id", name="prediction_bookmarks_user_pred_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    prediction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    prediction: Mapped[Prediction] = relationship("Prediction", back_populates="bookmarks")


# ---------------------------------------------------------------------------
# Social graph
# ---------------------------------------------------------------------------


class Friendship(Base):
    """Directed edge requester (user_id) -> recipient (friend_id).

    ``pair_key`` is the canonical unordered pair and is unique, so only one
    edge can ever exist between two profiles.
    """

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("pair_key", name="friendships_pair_key_key"),
        Index("idx_friendships_friend", "friend_id", "status"),
        Index("idx_friendships_user", "user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    friend_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    pair_key: Mapped[str] = mapped_column(String(80), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    requester: Mapped[Profile] = relationship("Profile", foreign_keys=[user_id])
    recipient: Mapped[Profile] = relationship("Profile", foreign_keys=[friend_id])


class Wager(Base):
    """Friendly challenge attached to a prediction."""

    __tablename__ = "wagers"
    __table_args__ = (
        Index("idx_wagers_challenger", "challenger_id"),
        Index("idx_wagers_recipient", "recipient_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    prediction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False
    )
    challenger_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    terms: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    prediction: Mapped[Prediction] = relationship("Prediction")
    challenger: Mapped[Profile] = relationship("Profile", foreign_keys=[challenger_id])
    recipient: Mapped[Profile] = relationship("Profile", foreign_keys=[recipient_id])


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------


class Advertisement(Base):
    """Sponsored card merged into feed and dashboard streams."""

    __tablename__ = "advertisements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    link_url: Mapped[str] = mapped_column(Text, nullable=False)
    cta_text: Mapped[str] = mapped_column(String(64), nullable=False, default="Learn more", server_default="Learn more")
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Affiliate(Base):
    """Category-targeted affiliate link."""

    __tablename__ = "affiliates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    label: Mapped[str] = mapped_column(String(128), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(128), nullable=True)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class AdEvent(Base):
    """Append-only view/click event for an advertisement."""

    __tablename__ = "ad_events"
    __table_args__ = (Index("idx_ad_events_ad_type", "ad_id", "type"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    ad_id: Mapped[str] = mapped_column(String(36), ForeignKey("advertisements.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class AffiliateEvent(Base):
    """Append-only view/click event for an affiliate link."""

    __tablename__ = "affiliate_events"
    __table_args__ = (Index("idx_affiliate_events_aff_type", "affiliate_id", "type"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    affiliate_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("affiliates.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
