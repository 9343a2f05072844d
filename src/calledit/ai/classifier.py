"""LLM-backed prediction categorization.

One ``generateContent`` call per request against the Gemini REST API with a
JSON response schema. No retries: a transport failure surfaces immediately as
``UpstreamFailure`` and unparseable output falls back to the default category.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone
from typing import Any

import httpx
import structlog
from pydantic import field_validator

from calledit.config import Settings, get_settings
from calledit.exceptions import UpstreamFailure
from calledit.predictions.categories import CATEGORY_IDS, DEFAULT_CATEGORY, is_valid_category
from calledit.predictions.mappers import PredictionMeta
from calledit.schemas import CamelModel

logger = structlog.get_logger()

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "category": {"type": "STRING", "enum": list(CATEGORY_IDS)},
        "targetDate": {"type": "STRING", "nullable": True},
        "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
        "entities": {"type": "ARRAY", "items": {"type": "STRING"}},
        "subject": {"type": "STRING", "nullable": True},
        "action": {"type": "STRING", "nullable": True},
        "confidence": {"type": "NUMBER"},
    },
    "required": ["category"],
}


class Classification(CamelModel):
    """Sanitized classifier output."""

    category: str = DEFAULT_CATEGORY
    target_date: str | None = None
    meta: PredictionMeta = PredictionMeta(tags=[], entities=[])

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v: object) -> str:
        if isinstance(v, str) and is_valid_category(v.strip().lower()):
            return v.strip().lower()
        return DEFAULT_CATEGORY

    @field_validator("target_date", mode="before")
    @classmethod
    def _iso_date(cls, v: object) -> str | None:
        if not isinstance(v, str) or not _DATE.match(v.strip()):
            return None
        try:
            date.fromisoformat(v.strip())
        except ValueError:
            return None
        return v.strip()


def build_prompt(text: str, today: date | None = None) -> str:
    """Prompt asking for category, target date and structured metadata."""
    today = today or datetime.now(timezone.utc).date()
    categories = ", ".join(f"'{c}'" for c in CATEGORY_IDS)
    return (
        f'Analyze this prediction: "{text}"\n\n'
        "You are a prediction parser. Extract structured data from the text.\n"
        f"category: one of {categories}.\n"
        f"targetDate: YYYY-MM-DD relative to today {today.isoformat()}, or null.\n"
        "tags: general keywords. entities: specific proper nouns.\n"
        "subject: the main subject. action: what they will do.\n"
        "confidence: 0-1 score that this is a valid prediction statement.\n"
        "Respond ONLY with the JSON."
    )


def _unique_strings(values: object, limit: int = 10) -> list[str]:
    if not isinstance(values, list):
        return []
    seen: dict[str, None] = {}
    for value in values:
        if isinstance(value, str) and value.strip():
            seen.setdefault(value.strip(), None)
    return list(seen)[:limit]


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()[:200]
    return None


def parse_classification(raw: str) -> Classification:
    """Sanitize raw model text into a Classification.

    Strips code fences, extracts the first JSON object, coerces unknown
    categories to the default and clamps confidence into [0, 1]. Anything
    unparseable yields the default classification.
    """
    cleaned = _FENCE.sub("", raw.strip())
    match = _JSON_BLOCK.search(cleaned)
    if not match:
        logger.warning("llm_response_not_json", response=raw[:200])
        return Classification()
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("llm_response_invalid_json", response=raw[:200])
        return Classification()
    if not isinstance(data, dict):
        return Classification()

    # Both flat and nested ``meta`` layouts are seen in practice
    meta_src = data.get("meta") if isinstance(data.get("meta"), dict) else data

    confidence = meta_src.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = None
    else:
        confidence = min(1.0, max(0.0, float(confidence)))

    return Classification(
        category=data.get("category"),
        target_date=data.get("targetDate", data.get("target_date")),
        meta=PredictionMeta(
            tags=_unique_strings(meta_src.get("tags")),
            entities=_unique_strings(meta_src.get("entities")),
            subject=_optional_str(meta_src.get("subject")),
            action=_optional_str(meta_src.get("action")),
            confidence=confidence,
        ),
    )


class CategoryClassifier:
    """Thin client around the hosted text-classification model."""

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    async def _generate(self, prompt: str) -> str:
        if not self.settings.llm_api_key:
            logger.warning("llm_not_configured", model=self.settings.llm_model)
            msg = "Failed to analyze prediction"
            raise UpstreamFailure(msg)

        url = f"{self.settings.llm_base_url.rstrip('/')}/models/{self.settings.llm_model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
                "temperature": 0.2,
            },
        }
        headers = {"x-goog-api-key": self.settings.llm_api_key}

        client = self._client or httpx.AsyncClient(timeout=self.settings.llm_timeout_seconds)
        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("llm_request_failed", model=self.settings.llm_model, error=str(e))
            msg = "Failed to analyze prediction"
            raise UpstreamFailure(msg) from e
        finally:
            if self._client is None:
                await client.aclose()

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.warning("llm_response_empty", response=str(data)[:200])
            return ""

    async def analyze(self, text: str) -> Classification:
        """Classify prediction text.

        Raises:
            UpstreamFailure: If the model is unreachable or not configured.
        """
        raw = await self._generate(build_prompt(text))
        result = parse_classification(raw)
        logger.info("prediction_classified", category=result.category, target_date=result.target_date)
        return result

    async def classify_or_default(self, text: str) -> Classification:
        """Like ``analyze`` but degrades to the default classification instead of raising."""
        try:
            return await self.analyze(text)
        except UpstreamFailure:
            logger.warning("classification_degraded", category=DEFAULT_CATEGORY)
            return Classification()


def get_classifier() -> CategoryClassifier:
    """FastAPI dependency returning a classifier bound to current settings."""
    return CategoryClassifier(get_settings())
