"""Advertisement and affiliate endpoints.

Public: active listings and view/click tracking.
Admin: CRUD with aggregated view/click counts.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.auth.dependencies import get_optional_user, require_admin
from calledit.database import get_session
from calledit.db.models import Profile
from calledit.predictions.schemas import SuccessResponse
from calledit.promotions import service
from calledit.promotions.schemas import (
    AdEnvelope,
    AdListResponse,
    AdvertisementResponse,
    AffiliateEnvelope,
    AffiliateListResponse,
    AffiliateResponse,
    CreateAdvertisementRequest,
    CreateAffiliateRequest,
    TrackAdRequest,
    TrackAffiliateRequest,
    UpdateAdvertisementRequest,
    UpdateAffiliateRequest,
)

router = APIRouter(prefix="/api", tags=["Promotions"])


# ── Public ──


@router.get("/ads", response_model=AdListResponse, response_model_exclude_none=True)
async def list_ads_endpoint(
    category: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """Active advertisements, optionally targeted to a category."""
    ads = await service.list_active_ads(db, category)
    return AdListResponse(ads=[AdvertisementResponse.model_validate(a) for a in ads])


@router.post("/ads/track", response_model=SuccessResponse)
async def track_ad_endpoint(
    body: TrackAdRequest,
    user: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Record an ad view or click."""
    await service.track_ad_event(db, body.ad_id, body.type, user.id if user else None)
    await db.commit()
    return SuccessResponse()


@router.get("/affiliates", response_model=AffiliateListResponse, response_model_exclude_none=True)
async def list_affiliates_endpoint(
    category: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """Active affiliate links, optionally targeted to a category."""
    affiliates = await service.list_active_affiliates(db, category)
    return AffiliateListResponse(affiliates=[AffiliateResponse.model_validate(a) for a in affiliates])


@router.post("/affiliates/track", response_model=SuccessResponse)
async def track_affiliate_endpoint(
    body: TrackAffiliateRequest,
    user: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Record an affiliate view or click."""
    await service.track_affiliate_event(db, body.affiliate_id, body.type, user.id if user else None)
    await db.commit()
    return SuccessResponse()


# ── Admin: advertisements ──


@router.get("/admin/ads", response_model=AdListResponse)
async def admin_list_ads_endpoint(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """All advertisements with view and click counts."""
    rows = await service.list_ads_with_stats(db)
    ads = []
    for ad, views, clicks in rows:
        item = AdvertisementResponse.model_validate(ad)
        item.views = views
        item.clicks = clicks
        ads.append(item)
    return AdListResponse(ads=ads)


@router.post("/admin/ads", response_model=AdEnvelope, status_code=201)
async def admin_create_ad_endpoint(
    body: CreateAdvertisementRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    ad = await service.create_ad(db, admin.id, body.model_dump())
    await db.commit()
    return AdEnvelope(ad=AdvertisementResponse.model_validate(ad))


@router.put("/admin/ads", response_model=AdEnvelope)
async def admin_update_ad_endpoint(
    body: UpdateAdvertisementRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    updates = body.model_dump(exclude_unset=True, exclude={"id"})
    ad = await service.update_ad(db, body.id, updates)
    await db.commit()
    return AdEnvelope(ad=AdvertisementResponse.model_validate(ad))


@router.delete("/admin/ads", response_model=SuccessResponse)
async def admin_delete_ad_endpoint(
    id: str = Query(..., min_length=1),  # noqa: A002
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_ad(db, id)
    await db.commit()
    return SuccessResponse()


# ── Admin: affiliates ──


@router.get("/admin/affiliates", response_model=AffiliateListResponse)
async def admin_list_affiliates_endpoint(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """All affiliate links with view and click counts."""
    rows = await service.list_affiliates_with_stats(db)
    affiliates = []
    for affiliate, views, clicks in rows:
        item = AffiliateResponse.model_validate(affiliate)
        item.views = views
        item.clicks = clicks
        affiliates.append(item)
    return AffiliateListResponse(affiliates=affiliates)


@router.post("/admin/affiliates", response_model=AffiliateEnvelope, status_code=201)
async def admin_create_affiliate_endpoint(
    body: CreateAffiliateRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    affiliate = await service.create_affiliate(db, body.model_dump())
    await db.commit()
    return AffiliateEnvelope(affiliate=AffiliateResponse.model_validate(affiliate))


@router.put("/admin/affiliates", response_model=AffiliateEnvelope)
async def admin_update_affiliate_endpoint(
    body: UpdateAffiliateRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    updates = body.model_dump(exclude_unset=True, exclude={"id"})
    affiliate = await service.update_affiliate(db, body.id, updates)
    await db.commit()
    return AffiliateEnvelope(affiliate=AffiliateResponse.model_validate(affiliate))


@router.delete("/admin/affiliates", response_model=SuccessResponse)
async def admin_delete_affiliate_endpoint(
    id: str = Query(..., min_length=1),  # noqa: A002
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_affiliate(db, id)
    await db.commit()
    return SuccessResponse()
