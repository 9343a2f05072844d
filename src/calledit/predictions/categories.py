"""Prediction categories and outcomes.

The category set is closed: validation, storage and the LLM response schema
all read from ``CATEGORY_IDS``.
"""

from __future__ import annotations

DEFAULT_CATEGORY = "not-on-my-bingo"

CATEGORY_IDS: tuple[str, ...] = (
    "not-on-my-bingo",
    "sports",
    "world-events",
    "financial-markets",
    "politics",
    "entertainment",
    "technology",
)

# Known to the web client's display configuration but not accepted anywhere.
RESERVED_CATEGORIES = frozenset({"health"})

OUTCOMES: tuple[str, ...] = ("pending", "true", "false")

MAX_PREDICTION_LENGTH = 280


def is_valid_category(category: str | None) -> bool:
    """True when ``category`` is one of the live categories."""
    return category in CATEGORY_IDS
