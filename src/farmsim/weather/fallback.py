"""Fallback weather provider: live source first, offline series when it fails."""

from __future__ import annotations

import datetime as dt
from typing import Optional

import pandas as pd

from farmsim.core.debug import DebugCollector, NullDebugCollector
from .base import UpstreamDataUnavailable, WeatherProvider
from .mock import MockWeatherProvider


class FallbackWeatherProvider(WeatherProvider):
    """Ask ``primary``; on UpstreamDataUnavailable or an empty frame use ``secondary``.

    After each call ``notice`` holds the message to show the player when the
    fallback was used (None otherwise) and ``used_fallback`` says which source
    produced the series.
    """

    def __init__(
        self,
        primary: WeatherProvider,
        secondary: WeatherProvider | None = None,
        debug: DebugCollector | None = None,
    ):
        self.primary = primary
        self.secondary = secondary or MockWeatherProvider(debug=debug)
        self.debug = debug or NullDebugCollector()
        self.notice: Optional[str] = None
        self.used_fallback = False

    def get_daily(self, lat: float, lon: float, start: dt.date, end: dt.date) -> pd.DataFrame:
        self.notice = None
        self.used_fallback = False
        reason = None
        try:
            df = self.primary.get_daily(lat, lon, start, end)
            if df is None or df.empty:
                reason = "primary returned no rows"
            else:
                return df
        except UpstreamDataUnavailable as exc:
            reason = str(exc)

        self.used_fallback = True
        self.notice = "Live weather data failed to load. Using mock rainfall."
        self.debug.emit(
            "weather.fallback",
            {
                "primary": type(self.primary).__name__,
                "secondary": type(self.secondary).__name__,
                "reason": reason,
            },
            ts=start,
        )
        return self.secondary.get_daily(lat, lon, start, end)


__all__ = ["FallbackWeatherProvider"]
