"""NASA POWER daily point provider."""

from __future__ import annotations

import datetime as dt
import math
import time
from typing import Any, Dict, List

import pandas as pd
import requests

from farmsim.core.debug import DebugCollector, NullDebugCollector
from .base import DAILY_COLUMNS, UpstreamDataUnavailable, WeatherProvider

# POWER renamed PRECTOT to PRECTOTCORR; older cached payloads still carry the old key.
_PARAM_MAP = {
    "T2M_MAX": "tmax_c",
    "T2M_MIN": "tmin_c",
    "PRECTOTCORR": "precip_mm",
}
_ALIASES = {"PRECTOTCORR": ("PRECTOT",)}

MISSING_SENTINEL = -999.0


def _date_key(day: dt.date) -> str:
    return day.strftime("%Y%m%d")


class NasaPowerWeatherProvider(WeatherProvider):
    def __init__(
        self,
        base_url: str = "https://power.larc.nasa.gov/api/temporal/daily/point",
        debug: DebugCollector | None = None,
        session: requests.Session | None = None,
        attempts: int = 3,
        timeout: float = 30.0,
    ):
        self.base_url = base_url
        self.debug = debug or NullDebugCollector()
        self.session = session or requests.Session()
        self.attempts = attempts
        self.timeout = timeout

    def _build_params(self, lat: float, lon: float, start: dt.date, end: dt.date) -> Dict[str, str]:
        return {
            "parameters": ",".join(_PARAM_MAP.keys()),
            "community": "AG",
            "start": _date_key(start),
            "end": _date_key(end),
            "latitude": str(lat),
            "longitude": str(lon),
            "format": "JSON",
        }

    @staticmethod
    def _clean(value: Any, fill_value: float) -> float | None:
        if value is None:
            return None
        try:
            val = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(val) or val == fill_value or val <= MISSING_SENTINEL:
            return None
        return val

    def _parse(self, payload: Dict[str, Any], start: dt.date, end: dt.date) -> pd.DataFrame:
        try:
            params = payload["properties"]["parameter"]
        except (KeyError, TypeError) as exc:
            raise UpstreamDataUnavailable("NASA POWER response missing properties.parameter block") from exc
        fill_value = float((payload.get("header") or {}).get("fill_value", MISSING_SENTINEL))

        columns: Dict[str, Dict[str, Any]] = {}
        for api_key, col in _PARAM_MAP.items():
            block = params.get(api_key)
            if block is None:
                for alias in _ALIASES.get(api_key, ()):
                    block = params.get(alias)
                    if block is not None:
                        break
            columns[col] = block or {}

        rows: List[Dict[str, Any]] = []
        for day in pd.date_range(start, end, freq="D"):
            key = _date_key(day.date())
            precip = self._clean(columns["precip_mm"].get(key), fill_value)
            rows.append(
                {
                    "date": day.date().isoformat(),
                    "precip_mm": max(0.0, precip) if precip is not None else 0.0,
                    "tmin_c": self._clean(columns["tmin_c"].get(key), fill_value),
                    "tmax_c": self._clean(columns["tmax_c"].get(key), fill_value),
                }
            )
        df = pd.DataFrame(rows, columns=DAILY_COLUMNS)
        df[["tmin_c", "tmax_c"]] = df[["tmin_c", "tmax_c"]].astype(float)
        return df

    def _emit_summary(self, df: pd.DataFrame) -> None:
        payload = {
            "days": int(len(df)),
            "precip_total_mm": float(df["precip_mm"].sum()) if not df.empty else 0.0,
            "days_missing_temperature": int((df["tmin_c"].isna() | df["tmax_c"].isna()).sum()),
            "tmin_min": float(df["tmin_c"].min()) if df["tmin_c"].notna().any() else None,
            "tmax_max": float(df["tmax_c"].max()) if df["tmax_c"].notna().any() else None,
        }
        ts = df["date"].iloc[0] if not df.empty else None
        self.debug.emit("weather.summary", payload, ts=ts)

    def get_daily(self, lat: float, lon: float, start: dt.date, end: dt.date) -> pd.DataFrame:
        if end < start:
            raise ValueError("end must not be before start")
        params = self._build_params(lat, lon, start, end)
        self.debug.emit("weather.request", {"url": self.base_url, "params": params}, ts=start)
        data = None
        for attempt in range(1, self.attempts + 1):
            try:
                resp = self.session.get(self.base_url, params=params, timeout=self.timeout)
                resp.raise_for_status()
                data = resp.json()
                break
            except Exception as exc:
                if attempt == self.attempts:
                    self.debug.emit("weather.failed", {"attempts": attempt, "error": str(exc)}, ts=start)
                    raise UpstreamDataUnavailable(f"NASA POWER request failed: {exc}") from exc
                self.debug.emit("weather.retry", {"attempt": attempt, "error": str(exc)}, ts=start)
                time.sleep(0.5 * attempt)

        df = self._parse(data, start, end)
        self._emit_summary(df)
        return df


__all__ = ["NasaPowerWeatherProvider", "MISSING_SENTINEL"]
