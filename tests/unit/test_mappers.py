"""Unit tests for the prediction view mapper."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from calledit.db.models import Prediction, PredictionBookmark, PredictionReaction, Profile
from calledit.predictions.mappers import display_name, map_prediction, to_iso


def _row(**overrides) -> Prediction:
    fields = {
        "id": "p-1",
        "user_id": "u-1",
        "category": "sports",
        "prediction": "Home team wins",
        "created_at": datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc),
        "outcome": "pending",
    }
    fields.update(overrides)
    return Prediction(**fields)


class TestDisplayName:
    """Author name priority: first name, handle, email local part, placeholder."""

    def test_first_token_of_full_name(self):
        assert display_name(Profile(full_name="Ada Lovelace", username="ada")) == "Ada"

    def test_username_when_no_full_name(self):
        assert display_name(Profile(full_name="   ", username="ada")) == "ada"

    def test_email_local_part(self):
        assert display_name(Profile(email="grace@example.com")) == "grace"

    def test_placeholder(self):
        assert display_name(Profile()) == "Authenticated"


class TestMapPrediction:
    def test_minimal_row(self):
        view = map_prediction(_row())
        assert view.id == "p-1"
        assert view.user_id == "u-1"
        assert view.outcome == "pending"
        assert view.author is None
        assert view.reactions == {}
        assert view.user_reactions == []
        assert view.is_bookmarked is False
        assert view.created_at == "2026-05-01T12:00:00+00:00"

    def test_missing_outcome_defaults_to_pending(self):
        assert map_prediction(_row(outcome=None)).outcome == "pending"

    def test_author_present_when_profile_loaded(self):
        row = _row()
        row.author = Profile(id="u-1", full_name="Ada Lovelace", username="ada", avatar_url="https://a/x.png")
        view = map_prediction(row)
        assert view.author is not None
        assert view.author.name == "Ada"
        assert view.author.username == "ada"
        assert view.author.avatar_url == "https://a/x.png"

    def test_author_omitted_from_json_when_absent(self):
        payload = map_prediction(_row()).model_dump(by_alias=True, exclude_none=True)
        assert "author" not in payload
        assert payload["userId"] == "u-1"

    def test_engagement_summary(self):
        row = _row()
        row.reactions = [
            PredictionReaction(user_id="u-2", prediction_id="p-1", reaction_type="like"),
            PredictionReaction(user_id="u-3", prediction_id="p-1", reaction_type="like"),
            PredictionReaction(user_id="u-2", prediction_id="p-1", reaction_type="fire"),
        ]
        row.bookmarks = [PredictionBookmark(user_id="u-2", prediction_id="p-1")]

        view = map_prediction(row, current_user_id="u-2")
        assert view.reactions == {"like": 2, "fire": 1}
        assert sorted(view.user_reactions) == ["fire", "like"]
        assert view.is_bookmarked is True

        anonymous = map_prediction(row)
        assert anonymous.user_reactions == []
        assert anonymous.is_bookmarked is False

    def test_target_date_and_meta(self):
        row = _row(target_date=date(2027, 1, 1), meta={"tags": ["rain"], "confidence": 0.8})
        view = map_prediction(row)
        assert view.target_date == "2027-01-01"
        assert view.meta is not None
        assert view.meta.tags == ["rain"]
        assert view.meta.confidence == 0.8

    @pytest.mark.parametrize("field", ["id", "user_id", "category", "prediction"])
    def test_missing_required_field_raises(self, field):
        with pytest.raises(ValueError, match=field):
            map_prediction(_row(**{field: None}))


def test_to_iso_treats_naive_as_utc():
    assert to_iso(datetime(2026, 1, 1, 8, 30)) == "2026-01-01T08:30:00+00:00"
    assert to_iso(None) is None
