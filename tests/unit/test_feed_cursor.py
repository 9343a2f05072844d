"""Unit tests for feed cursor encoding and decoding."""

from __future__ import annotations

import base64
import json
from datetime import datetime, timezone

import pytest

from calledit.exceptions import ValidationError
from calledit.predictions.feed_service import decode_cursor, encode_cursor


class TestCursorCodec:
    def test_token_carries_time_and_id(self):
        t = datetime(2026, 3, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
        cursor = decode_cursor(encode_cursor(t, "abc"))
        assert cursor.time == t
        assert cursor.id == "abc"

    def test_naive_time_is_encoded_as_utc(self):
        cursor = decode_cursor(encode_cursor(datetime(2026, 3, 1, 10, 0), "abc"))
        assert cursor.time.tzinfo is not None
        assert cursor.time.utcoffset().total_seconds() == 0

    def test_plain_iso_timestamp(self):
        cursor = decode_cursor("2026-03-01T10:00:00Z")
        assert cursor.time == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert cursor.id is None

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError, match="Invalid cursor"):
            decode_cursor("not-a-cursor!!")

    def test_token_without_time_rejected(self):
        token = base64.urlsafe_b64encode(json.dumps({"id": "x"}).encode()).decode()
        with pytest.raises(ValidationError, match="Missing 'time'"):
            decode_cursor(token)
