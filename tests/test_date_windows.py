"""Tests for stay-window planning."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from airsweep.planning.date_windows import plan_windows

_TODAY = date(2024, 2, 27)


@pytest.mark.parametrize("days", [0, 1, 5, 30])
def test_window_count(days):
    assert len(plan_windows(_TODAY, days, 2)) == days


def test_window_dates():
    windows = plan_windows(_TODAY, 4, 3)
    for i, w in enumerate(windows):
        assert w.checkin == _TODAY + timedelta(days=1 + i)
        assert w.checkout == w.checkin + timedelta(days=3)
        assert w.checkin > _TODAY


def test_crosses_leap_day():
    windows = plan_windows(_TODAY, 3, 1)
    assert [w.checkin_str for w in windows] == ["2024-02-28", "2024-02-29", "2024-03-01"]
    assert windows[1].checkout_str == "2024-03-01"


def test_negative_days_is_empty():
    assert plan_windows(_TODAY, -3, 1) == []
