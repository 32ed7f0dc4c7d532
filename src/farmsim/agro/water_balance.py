"""Single-bucket soil water balance."""
from __future__ import annotations

from typing import Iterable, List

from farmsim.core.debug import DebugCollector, NullDebugCollector


def soil_water_balance(
    precip_mm: Iterable[float],
    eto_mm: Iterable[float],
    crop_coefficient: float,
    field_capacity_mm: float = 150.0,
    debug: DebugCollector | None = None,
) -> List[float]:
    """Daily available water (mm) after rain in and crop ET out.

    The bucket starts half full. Each day precipitation is added, then
    ``min(available, ETo * Kc)`` is removed and the result clamped to
    ``[0, field_capacity_mm]``. Values are not rounded here.
    """
    if field_capacity_mm <= 0:
        raise ValueError("field_capacity_mm must be positive")
    if crop_coefficient < 0:
        raise ValueError("crop_coefficient must be non-negative")
    debug = debug or NullDebugCollector()

    available = field_capacity_mm * 0.5
    series: List[float] = []
    overflow_days = 0
    for precip, eto in zip(precip_mm, eto_mm):
        available += max(0.0, float(precip))
        etc = max(0.0, float(eto)) * crop_coefficient
        available -= min(available, etc)
        if available > field_capacity_mm:
            overflow_days += 1
            available = field_capacity_mm
        available = max(0.0, available)
        series.append(available)

    debug.emit(
        "water_balance.summary",
        {
            "days": len(series),
            "field_capacity_mm": field_capacity_mm,
            "crop_coefficient": crop_coefficient,
            "overflow_days": overflow_days,
            "min_mm": min(series) if series else None,
            "max_mm": max(series) if series else None,
        },
        ts=None,
    )
    return series


__all__ = ["soil_water_balance"]
