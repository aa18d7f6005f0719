from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from src.school_transport.school_transport.common.datetime_utils import (
    in_time_window,
    optional_datetime,
    parse_iso_datetime,
)

UTC_MOMENT = datetime(2026, 3, 2, 4, 1, 0, tzinfo=timezone.utc)


def _local_naive(aware: datetime) -> datetime:
    return aware.astimezone().replace(tzinfo=None)


def test_naive_timestamps_are_kept_as_given():
    assert parse_iso_datetime("2026-03-02T07:01:00") == datetime(2026, 3, 2, 7, 1, 0)
    assert optional_datetime(None) is None
    assert optional_datetime("") is None


def test_offsets_are_converted_to_naive_local_time():
    parsed = parse_iso_datetime("2026-03-02T07:01:00+03:00")

    assert parsed.tzinfo is None
    assert parsed == _local_naive(UTC_MOMENT)


def test_trailing_z_means_utc():
    parsed = parse_iso_datetime("2026-03-02T04:01:00Z")

    assert parsed.tzinfo is None
    assert parsed == _local_naive(UTC_MOMENT)
    assert parse_iso_datetime("2026-03-02T04:01:00Z") == parse_iso_datetime("2026-03-02T07:01:00+03:00")


def test_offset_timestamps_compare_with_naive_ones():
    naive = datetime(2026, 3, 2, 7, 0, 0)
    later = parse_iso_datetime((naive + timedelta(minutes=1)).astimezone().isoformat())

    assert later - naive == timedelta(minutes=1)


def test_time_window_wraps_midnight():
    assert in_time_window(time(23, 0), time(22, 0), time(6, 0))
    assert in_time_window(time(5, 59), time(22, 0), time(6, 0))
    assert not in_time_window(time(12, 0), time(22, 0), time(6, 0))
