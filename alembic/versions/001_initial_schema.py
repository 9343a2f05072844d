"""Initial schema: profiles, predictions, social graph and promotions.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _profile_fk(name: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(name, sa.String(36), sa.ForeignKey("profiles.id", ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    """Create all tables."""
    # --- Profiles ---
    op.create_table(
        "profiles",
        _id(),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("full_name", sa.String(128), nullable=True),
        sa.Column("username", sa.String(64), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("role", sa.String(16), server_default="user", nullable=False),
        _created_at(),
        sa.UniqueConstraint("email", name="profiles_email_key"),
    )
    op.execute("ALTER TABLE profiles ADD CONSTRAINT ck_profiles_role CHECK (role IN ('user', 'admin'))")

    # --- Predictions ---
    op.create_table(
        "predictions",
        _id(),
        _profile_fk("user_id"),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("prediction", sa.String(280), nullable=False),
        _created_at(),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("outcome", sa.String(16), server_default="pending", nullable=False),
        sa.Column("evidence_image_url", sa.Text(), nullable=True),
        sa.Column("meta", postgresql.JSONB(), nullable=True),
        sa.Column("is_private", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_predictions_created_id", "predictions", ["created_at", "id"])
    op.create_index("idx_predictions_user", "predictions", ["user_id"])
    op.execute(
        "ALTER TABLE predictions ADD CONSTRAINT ck_predictions_outcome "
        "CHECK (outcome IN ('pending', 'true', 'false'))"
    )

    op.create_table(
        "prediction_reactions",
        _id(),
        _profile_fk("user_id"),
        sa.Column("prediction_id", sa.String(36), sa.ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reaction_type", sa.String(16), nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "prediction_id", "reaction_type", name="prediction_reactions_user_pred_type_key"),
    )

    op.create_table(
        "prediction_bookmarks",
        _id(),
        _profile_fk("user_id"),
        sa.Column("prediction_id", sa.String(36), sa.ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "prediction_id", name="prediction_bookmarks_user_pred_key"),
    )

    # --- Social graph ---
    op.create_table(
        "friendships",
        _id(),
        _profile_fk("user_id"),
        _profile_fk("friend_id"),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("pair_key", sa.String(80), nullable=False),
        _created_at(),
        sa.UniqueConstraint("pair_key", name="friendships_pair_key_key"),
    )
    op.create_index("idx_friendships_friend", "friendships", ["friend_id", "status"])
    op.create_index("idx_friendships_user", "friendships", ["user_id", "status"])
    op.execute(
        "ALTER TABLE friendships ADD CONSTRAINT ck_friendships_status "
        "CHECK (status IN ('pending', 'accepted', 'blocked'))"
    )
    op.execute("ALTER TABLE friendships ADD CONSTRAINT ck_friendships_not_self CHECK (user_id <> friend_id)")

    op.create_table(
        "wagers",
        _id(),
        sa.Column("prediction_id", sa.String(36), sa.ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False),
        _profile_fk("challenger_id"),
        _profile_fk("recipient_id"),
        sa.Column("terms", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_wagers_challenger", "wagers", ["challenger_id"])
    op.create_index("idx_wagers_recipient", "wagers", ["recipient_id"])
    op.execute(
        "ALTER TABLE wagers ADD CONSTRAINT ck_wagers_status "
        "CHECK (status IN ('pending', 'accepted', 'declined', 'completed'))"
    )

    # --- Promotions ---
    op.create_table(
        "advertisements",
        _id(),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("link_url", sa.Text(), nullable=False),
        sa.Column("cta_text", sa.String(64), server_default="Learn more", nullable=False),
        sa.Column("category", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        _profile_fk("created_by", nullable=True, ondelete="SET NULL"),
        _created_at(),
    )

    op.create_table(
        "affiliates",
        _id(),
        sa.Column("label", sa.String(128), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(128), nullable=True),
        sa.Column("category", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        _created_at(),
    )

    op.create_table(
        "ad_events",
        _id(),
        sa.Column("ad_id", sa.String(36), sa.ForeignKey("advertisements.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        _profile_fk("user_id", nullable=True, ondelete="SET NULL"),
        _created_at(),
    )
    op.create_index("idx_ad_events_ad_type", "ad_events", ["ad_id", "type"])

    op.create_table(
        "affiliate_events",
        _id(),
        sa.Column("affiliate_id", sa.String(36), sa.ForeignKey("affiliates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        _profile_fk("user_id", nullable=True, ondelete="SET NULL"),
        _created_at(),
    )
    op.create_index("idx_affiliate_events_aff_type", "affiliate_events", ["affiliate_id", "type"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        "affiliate_events",
        "ad_events",
        "affiliates",
        "advertisements",
        "wagers",
        "friendships",
        "prediction_bookmarks",
        "prediction_reactions",
        "predictions",
        "profiles",
    ):
        op.drop_table(table)
