"""Abstract daily weather provider protocol."""

from __future__ import annotations

import datetime as dt
from typing import Protocol

import pandas as pd

DAILY_COLUMNS = ["date", "precip_mm", "tmin_c", "tmax_c"]


class UpstreamDataUnavailable(RuntimeError):
    """Raised when weather data cannot be fetched or parsed."""


class WeatherProvider(Protocol):
    """Interface for fetching a daily weather series for one point."""

    def get_daily(self, lat: float, lon: float, start: dt.date, end: dt.date) -> pd.DataFrame:
        """Return one row per day from ``start`` to ``end`` inclusive.

        Columns:
        - date (ISO ``YYYY-MM-DD`` string)
        - precip_mm (float, 0 when unknown)
        - tmin_c, tmax_c (float or NaN when unknown)

        Raises UpstreamDataUnavailable on network or parse failure.
        """
        ...


def season_window(days: int, today: dt.date | None = None) -> tuple[dt.date, dt.date]:
    """The ``days``-long window ending today (inclusive on both ends)."""
    if days < 1:
        raise ValueError("days must be >= 1")
    end = today or dt.date.today()
    start = end - dt.timedelta(days=days - 1)
    return start, end


__all__ = ["WeatherProvider", "UpstreamDataUnavailable", "DAILY_COLUMNS", "season_window"]
