"""Tests for rolling 24h / 7d / 30d volume windows."""

from __future__ import annotations

import pytest

from core.domain.intervals import DAY_MS, HOUR_MS

from tests.conftest import T0


def test_windows_sum_events_inside_each_window(volume_service, series):
    now = T0 + 40 * DAY_MS
    volume_service.record_volume(series, 100.0, now - HOUR_MS, now)
    volume_service.record_volume(series, 50.0, now - 3 * DAY_MS, now)
    volume_service.record_volume(series, 25.0, now - 20 * DAY_MS, now)
    volume_service.record_volume(series, 10.0, now - 35 * DAY_MS, now)

    volume = series.volume
    assert volume.last_24h == pytest.approx(100.0)
    assert volume.last_7d == pytest.approx(150.0)
    assert volume.last_30d == pytest.approx(175.0)
    assert volume.total == pytest.approx(185.0)


def test_expired_entries_are_evicted_but_total_is_kept(volume_service, series):
    volume_service.record_volume(series, 10.0, T0, T0)

    volume_service.recompute(series, T0 + 31 * DAY_MS)

    assert series.volume_log == []
    assert series.volume.last_30d == 0.0
    assert series.volume.total == pytest.approx(10.0)


def test_windows_slide_with_time(volume_service, series):
    volume_service.record_volume(series, 40.0, T0, T0)

    volume_service.recompute(series, T0 + 2 * DAY_MS)

    assert series.volume.last_24h == 0.0
    assert series.volume.last_7d == pytest.approx(40.0)


def test_late_event_is_inserted_in_order(volume_service, series):
    volume_service.record_volume(series, 1.0, T0 + 2_000, T0 + 2_000)
    volume_service.record_volume(series, 2.0, T0 + 1_000, T0 + 2_000)

    assert [s.timestamp for s in series.volume_log] == [T0 + 1_000, T0 + 2_000]
    assert series.volume.last_24h == pytest.approx(3.0)


def test_events_dated_after_now_are_not_in_the_windows(volume_service, series):
    volume_service.record_volume(series, 50.0, T0 + HOUR_MS, T0)

    assert series.volume.last_24h == 0.0
    assert series.volume.last_30d == 0.0
    assert series.volume.total == pytest.approx(50.0)

    volume_service.recompute(series, T0 + 2 * HOUR_MS)

    assert series.volume.last_24h == pytest.approx(50.0)
