"""Pydantic schemas for advertisements and affiliate links."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from calledit.schemas import CamelModel


# --- Advertisements ---


class AdvertisementResponse(CamelModel):
    id: str
    title: str
    description: str | None = None
    image_url: str | None = None
    link_url: str
    cta_text: str
    category: str | None = None
    is_active: bool
    views: int | None = None
    clicks: int | None = None


class CreateAdvertisementRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=128)
    description: str | None = None
    image_url: str | None = None
    link_url: str = Field(..., min_length=1)
    cta_text: str = Field("Learn more", max_length=64)
    category: str | None = None
    is_active: bool = True


class UpdateAdvertisementRequest(CamelModel):
    id: str
    title: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = None
    image_url: str | None = None
    link_url: str | None = Field(None, min_length=1)
    cta_text: str | None = Field(None, max_length=64)
    category: str | None = None
    is_active: bool | None = None


# --- Affiliates ---


class AffiliateResponse(CamelModel):
    id: str
    label: str
    url: str
    description: str | None = None
    color: str | None = None
    category: str | None = None
    is_active: bool
    views: int | None = None
    clicks: int | None = None


class CreateAffiliateRequest(CamelModel):
    label: str = Field(..., min_length=1, max_length=128)
    url: str = Field(..., min_length=1)
    description: str | None = None
    color: str | None = Field(None, max_length=128)
    category: str | None = None
    is_active: bool = True


class UpdateAffiliateRequest(CamelModel):
    id: str
    label: str | None = Field(None, min_length=1, max_length=128)
    url: str | None = Field(None, min_length=1)
    description: str | None = None
    color: str | None = Field(None, max_length=128)
    category: str | None = None
    is_active: bool | None = None


# --- Tracking ---


class TrackAdRequest(CamelModel):
    ad_id: str
    type: Literal["view", "click"]


class TrackAffiliateRequest(CamelModel):
    affiliate_id: str
    type: Literal["view", "click"]


class AdListResponse(CamelModel):
    ads: list[AdvertisementResponse]


class AffiliateListResponse(CamelModel):
    affiliates: list[AffiliateResponse]


class AdEnvelope(CamelModel):
    ad: AdvertisementResponse


class AffiliateEnvelope(CamelModel):
    affiliate: AffiliateResponse
