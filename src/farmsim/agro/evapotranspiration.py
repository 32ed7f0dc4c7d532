"""Reference evapotranspiration (Hargreaves) from daily min/max temperature.

Extraterrestrial radiation follows FAO-56 eq. 21 (solar declination and
sunset hour angle); ETo follows the Hargreaves-Samani equation.
"""
from __future__ import annotations

import datetime as dt

import numpy as np
import pandas as pd

from farmsim.core.debug import DebugCollector, NullDebugCollector

SOLAR_CONSTANT_MJ = 0.0820  # MJ m^-2 min^-1


def day_of_year(date: dt.date | str | pd.Timestamp) -> int:
    """Day of year (1..366) for a date, ISO string or ``YYYYMMDD`` key."""
    if isinstance(date, str) and len(date) == 8 and date.isdigit():
        date = dt.datetime.strptime(date, "%Y%m%d")
    return int(pd.Timestamp(date).dayofyear)


def extraterrestrial_radiation(lat_deg: float, doy):
    """Daily extraterrestrial radiation Ra in MJ m^-2 day^-1.

    ``doy`` may be a scalar or an array. The sunset hour angle argument is
    clipped to [-1, 1] so polar night returns 0 and polar day returns the
    full 24 h integral instead of NaN.
    """
    doy_arr = np.asarray(doy, dtype=float)
    lat = np.deg2rad(lat_deg)
    dr = 1 + 0.033 * np.cos(2 * np.pi * doy_arr / 365)
    delta = 0.409 * np.sin(2 * np.pi * doy_arr / 365 - 1.39)
    omega_s = np.arccos(np.clip(-np.tan(lat) * np.tan(delta), -1.0, 1.0))
    ra = (24 * 60 / np.pi) * SOLAR_CONSTANT_MJ * dr * (
        omega_s * np.sin(lat) * np.sin(delta) + np.cos(lat) * np.cos(delta) * np.sin(omega_s)
    )
    ra = np.maximum(ra, 0.0)
    if ra.ndim == 0:
        return float(ra)
    return ra


def hargreaves_eto(tmin_c: float, tmax_c: float, ra_mj: float) -> float:
    """ETo = 0.0023 * (Tmean + 17.8) * sqrt(max(0, Tmax - Tmin)) * Ra, floored at 0."""
    tmean = (tmin_c + tmax_c) / 2
    delta_t = max(0.0, tmax_c - tmin_c)
    return max(0.0, 0.0023 * (tmean + 17.8) * float(np.sqrt(delta_t)) * ra_mj)


def eto_series(
    frame: pd.DataFrame,
    lat_deg: float,
    debug: DebugCollector | None = None,
) -> pd.Series:
    """Per-day ETo for a frame with ``date``, ``tmin_c`` and ``tmax_c`` columns.

    Rows missing either temperature (or the date) contribute 0.
    """
    debug = debug or NullDebugCollector()
    out = pd.Series(0.0, index=frame.index, name="eto_mm")
    if frame.empty:
        return out

    dates = pd.to_datetime(frame["date"], errors="coerce") if "date" in frame else pd.Series(pd.NaT, index=frame.index)
    tmin = pd.to_numeric(frame["tmin_c"], errors="coerce") if "tmin_c" in frame else pd.Series(np.nan, index=frame.index)
    tmax = pd.to_numeric(frame["tmax_c"], errors="coerce") if "tmax_c" in frame else pd.Series(np.nan, index=frame.index)
    usable = tmin.notna() & tmax.notna() & dates.notna()

    if usable.any():
        ra = extraterrestrial_radiation(lat_deg, dates[usable].dt.dayofyear.to_numpy())
        tmean = (tmin[usable] + tmax[usable]) / 2
        delta_t = (tmax[usable] - tmin[usable]).clip(lower=0)
        eto = 0.0023 * (tmean + 17.8) * np.sqrt(delta_t) * ra
        out.loc[usable] = eto.clip(lower=0).to_numpy()

    debug.emit(
        "eto.summary",
        {
            "days": int(len(out)),
            "days_without_temperature": int((~usable).sum()),
            "eto_min": float(out.min()),
            "eto_max": float(out.max()),
        },
        ts=None,
    )
    return out


__all__ = ["day_of_year", "extraterrestrial_radiation", "hargreaves_eto", "eto_series"]
