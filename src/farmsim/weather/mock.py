"""Deterministic offline weather used when live data is unavailable."""

from __future__ import annotations

import datetime as dt

import pandas as pd

from farmsim.core.debug import DebugCollector, NullDebugCollector
from .base import DAILY_COLUMNS, WeatherProvider


class MockWeatherProvider(WeatherProvider):
    """Constant daily weather: medium rain under both threshold tables."""

    def __init__(
        self,
        precip_mm: float = 5.0,
        tmin_c: float | None = 20.0,
        tmax_c: float | None = 30.0,
        debug: DebugCollector | None = None,
    ):
        self.precip_mm = precip_mm
        self.tmin_c = tmin_c
        self.tmax_c = tmax_c
        self.debug = debug or NullDebugCollector()

    def get_daily(self, lat: float, lon: float, start: dt.date, end: dt.date) -> pd.DataFrame:
        days = pd.date_range(start, end, freq="D")
        df = pd.DataFrame(
            {
                "date": [d.date().isoformat() for d in days],
                "precip_mm": [float(self.precip_mm)] * len(days),
                "tmin_c": [self.tmin_c] * len(days),
                "tmax_c": [self.tmax_c] * len(days),
            },
            columns=DAILY_COLUMNS,
        )
        df[["tmin_c", "tmax_c"]] = df[["tmin_c", "tmax_c"]].astype(float)
        self.debug.emit("weather.mock", {"days": len(df), "precip_mm": self.precip_mm}, ts=start)
        return df


__all__ = ["MockWeatherProvider"]
