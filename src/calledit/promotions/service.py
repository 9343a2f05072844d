"""Advertisement and affiliate business logic.

Rules:
- Public reads only see active rows, optionally targeted to one category
  (untargeted rows match every category)
- View/click tracking is append-only; counts are aggregated on read
- Create/update/delete are admin-only (enforced by the router)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.db.models import AdEvent, Advertisement, Affiliate, AffiliateEvent
from calledit.exceptions import NotFound, ValidationError
from calledit.predictions.categories import is_valid_category

logger = structlog.get_logger()

EVENT_TYPES = ("view", "click")

# Columns an admin may explicitly clear with null
NULLABLE_AD_FIELDS = frozenset({"description", "image_url", "category"})
NULLABLE_AFFILIATE_FIELDS = frozenset({"description", "color", "category"})


def _check_category(category: str | None) -> None:
    if category is not None and not is_valid_category(category):
        raise ValidationError(f"Unknown category: {category}")


async def _event_counts(db: AsyncSession, event_model: Any, key_column: Any) -> dict[tuple[str, str], int]:  # noqa: ANN401
    """Aggregate (target_id, type) -> count for an event table."""
    result = await db.execute(
        select(key_column, event_model.type, func.count()).group_by(key_column, event_model.type)
    )
    return {(row[0], row[1]): row[2] for row in result.all()}


# ── Advertisements ──


async def list_active_ads(db: AsyncSession, category: str | None = None) -> list[Advertisement]:
    """Active ads in stable order, optionally targeted to ``category``."""
    _check_category(category)
    query = select(Advertisement).where(Advertisement.is_active.is_(True))
    if category is not None:
        query = query.where(or_(Advertisement.category.is_(None), Advertisement.category == category))
    result = await db.execute(query.order_by(Advertisement.created_at.asc(), Advertisement.id.asc()))
    return list(result.scalars().all())


async def list_ads_with_stats(db: AsyncSession) -> list[tuple[Advertisement, int, int]]:
    """All ads (newest first) with (views, clicks)."""
    result = await db.execute(select(Advertisement).order_by(Advertisement.created_at.desc()))
    ads = list(result.scalars().all())
    counts = await _event_counts(db, AdEvent, AdEvent.ad_id)
    return [(ad, counts.get((ad.id, "view"), 0), counts.get((ad.id, "click"), 0)) for ad in ads]


async def get_ad(db: AsyncSession, ad_id: str) -> Advertisement:
    result = await db.execute(select(Advertisement).where(Advertisement.id == ad_id))
    ad = result.scalar_one_or_none()
    if ad is None:
        raise NotFound("Advertisement not found")
    return ad


async def create_ad(db: AsyncSession, created_by: str, fields: dict[str, Any]) -> Advertisement:
    _check_category(fields.get("category"))
    ad = Advertisement(**fields, created_by=created_by, created_at=datetime.now(timezone.utc))
    db.add(ad)
    await db.flush()
    logger.info("ad_created", ad_id=ad.id, created_by=created_by)
    return ad


async def update_ad(db: AsyncSession, ad_id: str, updates: dict[str, Any]) -> Advertisement:
    updates = {k: v for k, v in updates.items() if v is not None or k in NULLABLE_AD_FIELDS}
    if "category" in updates:
        _check_category(updates["category"])
    ad = await get_ad(db, ad_id)
    for key, value in updates.items():
        setattr(ad, key, value)
    await db.flush()
    logger.info("ad_updated", ad_id=ad_id, fields=sorted(updates))
    return ad


async def delete_ad(db: AsyncSession, ad_id: str) -> None:
    ad = await get_ad(db, ad_id)
    await db.delete(ad)
    await db.flush()
    logger.info("ad_deleted", ad_id=ad_id)


async def track_ad_event(db: AsyncSession, ad_id: str, event_type: str, user_id: str | None = None) -> None:
    """Record a view or click on an advertisement."""
    if event_type not in EVENT_TYPES:
        raise ValidationError("Invalid data")
    await get_ad(db, ad_id)
    db.add(AdEvent(ad_id=ad_id, type=event_type, user_id=user_id, created_at=datetime.now(timezone.utc)))
    await db.flush()


# ── Affiliates ──


async def list_active_affiliates(db: AsyncSession, category: str | None = None) -> list[Affiliate]:
    """Active affiliate links, optionally targeted to ``category``."""
    _check_category(category)
    query = select(Affiliate).where(Affiliate.is_active.is_(True))
    if category is not None:
        query = query.where(or_(Affiliate.category.is_(None), Affiliate.category == category))
    result = await db.execute(query.order_by(Affiliate.created_at.asc(), Affiliate.id.asc()))
    return list(result.scalars().all())


async def list_affiliates_with_stats(db: AsyncSession) -> list[tuple[Affiliate, int, int]]:
    """All affiliates (newest first) with (views, clicks)."""
    result = await db.execute(select(Affiliate).order_by(Affiliate.created_at.desc()))
    affiliates = list(result.scalars().all())
    counts = await _event_counts(db, AffiliateEvent, AffiliateEvent.affiliate_id)
    return [(a, counts.get((a.id, "view"), 0), counts.get((a.id, "click"), 0)) for a in affiliates]


async def get_affiliate(db: AsyncSession, affiliate_id: str) -> Affiliate:
    result = await db.execute(select(Affiliate).where(Affiliate.id == affiliate_id))
    affiliate = result.scalar_one_or_none()
    if affiliate is None:
        raise NotFound("Affiliate not found")
    return affiliate


async def create_affiliate(db: AsyncSession, fields: dict[str, Any]) -> Affiliate:
    _check_category(fields.get("category"))
    affiliate = Affiliate(**fields, created_at=datetime.now(timezone.utc))
    db.add(affiliate)
    await db.flush()
    logger.info("affiliate_created", affiliate_id=affiliate.id)
    return affiliate


async def update_affiliate(db: AsyncSession, affiliate_id: str, updates: dict[str, Any]) -> Affiliate:
    updates = {k: v for k, v in updates.items() if v is not None or k in NULLABLE_AFFILIATE_FIELDS}
    if "category" in updates:
        _check_category(updates["category"])
    affiliate = await get_affiliate(db, affiliate_id)
    for key, value in updates.items():
        setattr(affiliate, key, value)
    await db.flush()
    logger.info("affiliate_updated", affiliate_id=affiliate_id, fields=sorted(updates))
    return affiliate


async def delete_affiliate(db: AsyncSession, affiliate_id: str) -> None:
    affiliate = await get_affiliate(db, affiliate_id)
    await db.delete(affiliate)
    await db.flush()
    logger.info("affiliate_deleted", affiliate_id=affiliate_id)


async def track_affiliate_event(
    db: AsyncSession, affiliate_id: str, event_type: str, user_id: str | None = None
) -> None:
    """Record a view or click on an affiliate link."""
    if event_type not in EVENT_TYPES:
        raise ValidationError("Invalid data")
    await get_affiliate(db, affiliate_id)
    db.add(
        AffiliateEvent(
            affiliate_id=affiliate_id, type=event_type, user_id=user_id, created_at=datetime.now(timezone.utc)
        )
    )
    await db.flush()
