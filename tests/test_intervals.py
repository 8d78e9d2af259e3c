import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from src.domain.errors import InvalidStateError
from src.domain.intervals import overlaps, ensure_valid_interval, first_overlapping


T0 = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def hours(n):
    return T0 + timedelta(hours=n)


def test_overlapping_intervals():
    assert overlaps(hours(0), hours(2), hours(1), hours(3))
    assert overlaps(hours(1), hours(3), hours(0), hours(2))


def test_contained_interval_overlaps():
    assert overlaps(hours(0), hours(4), hours(1), hours(2))
    assert overlaps(hours(1), hours(2), hours(0), hours(4))


def test_touching_endpoints_do_not_overlap():
    assert not overlaps(hours(0), hours(2), hours(2), hours(4))
    assert not overlaps(hours(2), hours(4), hours(0), hours(2))


def test_disjoint_intervals():
    assert not overlaps(hours(0), hours(1), hours(3), hours(4))


def test_identical_intervals_overlap():
    assert overlaps(hours(0), hours(2), hours(0), hours(2))


def test_overlap_across_timezones():
    sao_paulo = timezone(timedelta(hours=-3))
    # 06:00 in Sao Paulo is 09:00 UTC
    local_start = datetime(2024, 1, 1, 6, 0, tzinfo=sao_paulo)
    assert overlaps(hours(0), hours(2), local_start, local_start + timedelta(hours=1))
    assert not overlaps(hours(0), hours(1), local_start, local_start + timedelta(hours=1))


def test_ensure_valid_interval_rejects_empty_and_reversed():
    with pytest.raises(InvalidStateError, match="End time must be after start time"):
        ensure_valid_interval(hours(2), hours(2))
    with pytest.raises(InvalidStateError):
        ensure_valid_interval(hours(3), hours(2))
    ensure_valid_interval(hours(2), hours(3))


def test_first_overlapping_returns_first_clash():
    candidates = [
        SimpleNamespace(id=1, start_time=hours(-4), end_time=hours(0)),
        SimpleNamespace(id=2, start_time=hours(1), end_time=hours(5)),
        SimpleNamespace(id=3, start_time=hours(0), end_time=hours(1)),
    ]
    clash = first_overlapping(hours(0), hours(2), candidates)
    assert clash.id == 2
    assert first_overlapping(hours(5), hours(6), candidates) is None
    assert first_overlapping(hours(0), hours(1), []) is None
