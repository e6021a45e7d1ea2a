"""Expand a job's sweep parameters into stay windows."""

from __future__ import annotations

from datetime import date, timedelta

from airsweep.models import DateWindow


def plan_windows(today: date, days: int, nights: int) -> list[DateWindow]:
    """Return ``days`` windows starting tomorrow, one per day offset.

    Window ``i`` checks in on ``today + 1 + i`` and checks out ``nights``
    later.
    """
    windows: list[DateWindow] = []
    for offset in range(days):
        checkin = today + timedelta(days=1 + offset)
        windows.append(DateWindow(checkin, checkin + timedelta(days=nights)))
    return windows
