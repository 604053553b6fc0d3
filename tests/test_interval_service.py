"""Tests for interval token normalization and bucketing."""

from __future__ import annotations

import pytest

from core.domain.errors import ValidationError
from core.domain.intervals import HOUR_MS, MINUTE_MS
from core.services.interval_service import IntervalService


@pytest.mark.parametrize(
    "token,expected",
    [
        ("1m", "1m"),
        ("1M", "1M"),
        ("5", "5m"),
        ("60", "1h"),
        ("1hour", "1h"),
        ("6", "6h"),
        ("360", "6h"),
        ("12", "12h"),
        ("24", "24h"),
        ("1440", "24h"),
        ("10080", "1w"),
        ("week", "1w"),
        ("43200", "1M"),
        ("Month", "1M"),
        (" 15m ", "15m"),
    ],
)
def test_normalize_maps_aliases(token, expected):
    assert IntervalService.normalize(token) == expected


@pytest.mark.parametrize("token", [None, "", "2m", "1y", "abc", "7d"])
def test_normalize_rejects_unknown_tokens(token):
    assert IntervalService.normalize(token) is None


def test_require_raises_invalid_interval():
    with pytest.raises(ValidationError) as exc_info:
        IntervalService.require("3m")

    assert exc_info.value.code == "INVALID_INTERVAL"
    assert exc_info.value.details["provided"] == "3m"


def test_bucket_start_floors_to_width():
    assert IntervalService.bucket_start(HOUR_MS + 59 * MINUTE_MS + 59_999, MINUTE_MS) == HOUR_MS + 59 * MINUTE_MS
    assert IntervalService.bucket_start(HOUR_MS + 59_999, MINUTE_MS) == HOUR_MS
    assert IntervalService.bucket_start(HOUR_MS, HOUR_MS) == HOUR_MS
    assert IntervalService.width_ms("1h") == HOUR_MS
