"""Feed, dashboard and prediction endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from calledit.ai.classifier import CategoryClassifier, Classification, get_classifier
from calledit.auth.dependencies import get_current_user, get_optional_user
from calledit.config import get_settings
from calledit.database import get_session
from calledit.db.models import Profile
from calledit.predictions import service
from calledit.predictions.feed_service import fetch_dashboard, fetch_feed
from calledit.predictions.mappers import PredictionView, map_prediction
from calledit.predictions.schemas import (
    AnalyzeRequest,
    CreatePredictionRequest,
    DashboardResponse,
    FeedResponse,
    PredictionResponse,
    StreamItem,
    SuccessResponse,
    UpdatePredictionRequest,
    meta_to_dict,
)
from calledit.promotions.merge import interleave_promotions
from calledit.promotions.schemas import AdvertisementResponse
from calledit.promotions.service import list_active_ads

router = APIRouter(prefix="/api", tags=["Predictions"])


async def _promoted_stream(
    db: AsyncSession, predictions: list[PredictionView], category: str | None = None
) -> list[StreamItem]:
    """Predictions with active advertisements merged in at the promo interval."""
    ads = await list_active_ads(db, category)
    pool = [StreamItem(kind="advertisement", advertisement=AdvertisementResponse.model_validate(a)) for a in ads]
    items = [StreamItem(kind="prediction", prediction=p) for p in predictions]
    return interleave_promotions(items, pool, get_settings().promo_interval)


@router.get("/feed", response_model=FeedResponse, response_model_exclude_none=True)
async def feed_endpoint(
    limit: int | None = Query(None),
    cursor: str | None = Query(None),
    category: str | None = Query(None),
    promoted: bool = Query(False),
    viewer: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Public feed, newest first, keyset paginated."""
    settings = get_settings()
    page = await fetch_feed(
        db,
        limit=settings.feed_default_page_size if limit is None else limit,
        cursor=cursor,
        category=category,
        viewer_id=viewer.id if viewer else None,
        max_limit=settings.feed_max_page_size,
    )
    response = FeedResponse(predictions=page.predictions, next_cursor=page.next_cursor)
    if promoted:
        response.items = await _promoted_stream(db, page.predictions, category)
    return response


@router.get("/dashboard", response_model=DashboardResponse, response_model_exclude_none=True)
async def dashboard_endpoint(
    promoted: bool = Query(False),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's own predictions, private ones included."""
    predictions = await fetch_dashboard(db, user.id)
    response = DashboardResponse(predictions=predictions)
    if promoted:
        response.items = await _promoted_stream(db, predictions)
    return response


@router.post(
    "/predictions", response_model=PredictionResponse, status_code=201, response_model_exclude_none=True
)
async def create_prediction_endpoint(
    body: CreatePredictionRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    classifier: CategoryClassifier = Depends(get_classifier),
):
    """Create a prediction; the category is inferred when omitted."""
    prediction = await service.create_prediction(
        db,
        user,
        body.prediction,
        category=body.category,
        target_date=body.target_date,
        meta=meta_to_dict(body.meta),
        is_private=body.is_private,
        classifier=classifier,
    )
    await db.commit()
    return PredictionResponse(prediction=map_prediction(prediction, user.id))


@router.post("/predictions/analyze", response_model=Classification)
async def analyze_prediction_endpoint(
    body: AnalyzeRequest,
    _user: Profile = Depends(get_current_user),
    classifier: CategoryClassifier = Depends(get_classifier),
):
    """Suggest category, target date and metadata for draft text."""
    return await classifier.analyze(body.text)


@router.get("/predictions/{prediction_id}", response_model=PredictionResponse, response_model_exclude_none=True)
async def get_prediction_endpoint(
    prediction_id: str,
    viewer: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Single prediction for share pages."""
    viewer_id = viewer.id if viewer else None
    prediction = await service.get_prediction(db, prediction_id, viewer_id)
    return PredictionResponse(prediction=map_prediction(prediction, viewer_id))


@router.put("/predictions", response_model=SuccessResponse)
async def update_prediction_endpoint(
    body: UpdatePredictionRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Set outcome or evidence, or soft delete via ``deletedAt``."""
    await service.update_prediction(
        db,
        user,
        body.id,
        outcome=body.outcome,
        evidence_image_url=body.evidence_image_url,
        deleted_at=body.deleted_at,
        set_evidence="evidence_image_url" in body.model_fields_set,
    )
    await db.commit()
    return SuccessResponse()


@router.delete("/predictions", response_model=SuccessResponse)
async def delete_prediction_endpoint(
    id: str = Query(..., min_length=1),  # noqa: A002
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Soft delete one of the caller's predictions."""
    await service.soft_delete_prediction(db, user, id)
    await db.commit()
    return SuccessResponse()
