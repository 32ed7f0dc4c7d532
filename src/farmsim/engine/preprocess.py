"""Weather preprocessing: raw daily series -> labels, ETo and soil moisture.

Runs once before a season starts. The output seeds the simulation (rainfall
label per day, starting soil moisture) and feeds the history chart.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from farmsim.agro.evapotranspiration import eto_series
from farmsim.agro.rainfall import classify_series
from farmsim.agro.water_balance import soil_water_balance
from farmsim.core.config import DEFAULT_CROP_COEFFICIENTS, crop_coefficient
from farmsim.core.debug import DebugCollector, NullDebugCollector
from farmsim.core.models import DailyWeather, RainfallLabel

ETO_DECIMALS = 3
SOIL_DECIMALS = 2

_ALIASES = {
    "date": ("date", "day_key", "ts"),
    "precip_mm": ("precip_mm", "precipitation_mm", "precip", "PRECTOTCORR", "PRECTOT"),
    "tmin_c": ("tmin_c", "tmin", "T2M_MIN"),
    "tmax_c": ("tmax_c", "tmax", "T2M_MAX"),
}


def _normalize_date(value: Any) -> Optional[str]:
    if value is None or value is pd.NaT or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    if not text or text == "-999":
        return None
    try:
        if len(text) == 8 and text.isdigit():
            return dt.datetime.strptime(text, "%Y%m%d").date().isoformat()
        ts = pd.Timestamp(text)
    except (ValueError, OverflowError):
        return None
    # "nan" and "NaT" parse to NaT
    if pd.isna(ts):
        return None
    return ts.date().isoformat()


def _to_frame(series: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    raw = series.copy() if isinstance(series, pd.DataFrame) else pd.DataFrame(list(series))
    out = pd.DataFrame(index=range(len(raw)))
    for col, aliases in _ALIASES.items():
        source = next((a for a in aliases if a in raw.columns), None)
        out[col] = raw[source].to_numpy() if source is not None else None

    out["date"] = [_normalize_date(v) for v in out["date"]]
    precip = pd.to_numeric(out["precip_mm"], errors="coerce")
    out["precip_mm"] = precip.where(precip >= 0, 0.0).fillna(0.0).astype(float)
    for col in ("tmin_c", "tmax_c"):
        temps = pd.to_numeric(out[col], errors="coerce").astype(float)
        # -999 is the upstream "no data" marker
        out[col] = temps.where(temps > -999.0, np.nan)
    return out


@dataclass(frozen=True)
class PreprocessedWeather:
    crop_kind: str
    latitude: float
    field_capacity_mm: float
    crop_coefficient: float
    table: str
    days: Tuple[DailyWeather, ...]

    @property
    def season_length(self) -> int:
        return len(self.days)

    @property
    def rainfall_labels(self) -> List[RainfallLabel]:
        return [d.rainfall for d in self.days]

    @property
    def soil_moisture_mm(self) -> List[float]:
        return [float(d.soil_moisture_mm or 0.0) for d in self.days]

    @property
    def eto_mm(self) -> List[float]:
        return [d.eto_mm for d in self.days]

    @property
    def precip_mm(self) -> List[float]:
        return [d.precipitation_mm for d in self.days]

    def initial_soil_moisture(self) -> Optional[float]:
        if not self.days or self.days[0].soil_moisture_mm is None:
            return None
        return self.days[0].soil_moisture_mm

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "day": d.day,
                    "date": d.date,
                    "precip_mm": d.precipitation_mm,
                    "tmin_c": d.tmin_c,
                    "tmax_c": d.tmax_c,
                    "eto_mm": d.eto_mm,
                    "soil_moisture_mm": d.soil_moisture_mm,
                    "rainfall": d.rainfall.value,
                }
                for d in self.days
            ]
        )


def classify(
    series: pd.DataFrame | Iterable[Mapping[str, Any]],
    latitude: float,
    crop_kind: str,
    *,
    field_capacity_mm: float = 150.0,
    table: str = "four_level",
    crop_coefficients: Mapping[str, float] | None = None,
    debug: DebugCollector | None = None,
) -> PreprocessedWeather:
    """Derive rainfall labels, ETo and the soil-moisture balance for a series.

    Malformed upstream values never raise: precipitation falls back to 0 and
    temperatures to "absent", which yields an ETo of 0 for that day.
    """
    debug = debug or NullDebugCollector()
    kc = crop_coefficient(crop_coefficients or DEFAULT_CROP_COEFFICIENTS, crop_kind)

    frame = _to_frame(series)
    eto = eto_series(frame, latitude, debug=debug)
    soil = soil_water_balance(frame["precip_mm"], eto, kc, field_capacity_mm, debug=debug)
    labels = classify_series(frame["precip_mm"], table)

    days: List[DailyWeather] = []
    for idx, row in enumerate(frame.itertuples(index=False)):
        days.append(
            DailyWeather(
                day=idx + 1,
                date=row.date,
                precipitation_mm=float(row.precip_mm),
                tmin_c=None if pd.isna(row.tmin_c) else float(row.tmin_c),
                tmax_c=None if pd.isna(row.tmax_c) else float(row.tmax_c),
                eto_mm=round(float(eto.iloc[idx]), ETO_DECIMALS),
                soil_moisture_mm=round(soil[idx], SOIL_DECIMALS),
                rainfall=labels[idx],
            )
        )

    result = PreprocessedWeather(
        crop_kind=str(crop_kind).lower(),
        latitude=float(latitude),
        field_capacity_mm=float(field_capacity_mm),
        crop_coefficient=kc,
        table=table,
        days=tuple(days),
    )
    debug.emit(
        "preprocess.summary",
        {
            "days": result.season_length,
            "crop_kind": result.crop_kind,
            "crop_coefficient": kc,
            "table": table,
            "labels": [label.value for label in result.rainfall_labels],
            "initial_soil_moisture_mm": result.initial_soil_moisture(),
        },
        ts=days[0].date if days else None,
    )
    return result


def readable_date(value: Any) -> str:
    """``20251003`` / ``2025-10-03`` -> ``3rd October 2025``; empty for missing."""
    iso = _normalize_date(value)
    if iso is None:
        return ""
    day = dt.date.fromisoformat(iso)
    if day.day % 10 == 1 and day.day != 11:
        suffix = "st"
    elif day.day % 10 == 2 and day.day != 12:
        suffix = "nd"
    elif day.day % 10 == 3 and day.day != 13:
        suffix = "rd"
    else:
        suffix = "th"
    return f"{day.day}{suffix} {day.strftime('%B')} {day.year}"


def labels_only(labels: Sequence[RainfallLabel | str]) -> PreprocessedWeather:
    """Wrap bare rainfall labels (no measured series) for a season."""
    days = tuple(
        DailyWeather(day=i + 1, precipitation_mm=0.0, rainfall=RainfallLabel(label))
        for i, label in enumerate(labels)
    )
    return PreprocessedWeather(
        crop_kind="default",
        latitude=0.0,
        field_capacity_mm=150.0,
        crop_coefficient=1.0,
        table="four_level",
        days=days,
    )


__all__ = ["PreprocessedWeather", "classify", "readable_date", "labels_only"]
