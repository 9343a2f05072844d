"""Pydantic schemas for feed, dashboard and prediction endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import Field

from calledit.predictions.mappers import PredictionMeta, PredictionView
from calledit.promotions.schemas import AdvertisementResponse
from calledit.schemas import CamelModel


class CreatePredictionRequest(CamelModel):
    prediction: str = Field(..., min_length=1, max_length=280)
    category: str | None = None
    target_date: date | None = None
    meta: PredictionMeta | None = None
    is_private: bool = False


class UpdatePredictionRequest(CamelModel):
    id: str
    outcome: Literal["pending", "true", "false"] | None = None
    evidence_image_url: str | None = None
    deleted_at: datetime | None = None


class AnalyzeRequest(CamelModel):
    text: str = Field(..., min_length=1, max_length=280)


class PredictionResponse(CamelModel):
    prediction: PredictionView


class StreamItem(CamelModel):
    """One entry of an interleaved stream: a prediction or a sponsored card."""

    kind: Literal["prediction", "advertisement"]
    prediction: PredictionView | None = None
    advertisement: AdvertisementResponse | None = None


class FeedResponse(CamelModel):
    predictions: list[PredictionView]
    next_cursor: str | None = None
    items: list[StreamItem] | None = None


class DashboardResponse(CamelModel):
    predictions: list[PredictionView]
    items: list[StreamItem] | None = None


class SuccessResponse(CamelModel):
    success: bool = True


def meta_to_dict(meta: PredictionMeta | None) -> dict[str, Any] | None:
    """Storage form of prediction metadata."""
    if meta is None:
        return None
    return meta.model_dump(exclude_none=True)
