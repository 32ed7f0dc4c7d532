"""Rainfall intensity labels from daily precipitation totals.

Two threshold tables exist. ``four_level`` is the canonical one and the only
table that produces ``none``; ``three_level`` is the older table kept for
replaying legacy seasons. A run must stick to one table from start to finish.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Tuple

from farmsim.core.models import RainfallLabel

# (exclusive upper bound in mm, label); the last entry catches everything above.
THRESHOLD_TABLES: Dict[str, Tuple[Tuple[float, RainfallLabel], ...]] = {
    "four_level": (
        (3.0, RainfallLabel.LOW),
        (10.0, RainfallLabel.MEDIUM),
        (math.inf, RainfallLabel.HIGH),
    ),
    "three_level": (
        (2.0, RainfallLabel.LOW),
        (10.0, RainfallLabel.MEDIUM),
        (math.inf, RainfallLabel.HIGH),
    ),
}


def _clean_mm(value) -> float:
    try:
        mm = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(mm) or mm < 0:
        return 0.0
    return mm


def classify_rainfall(precip_mm, table: str = "four_level") -> RainfallLabel:
    """Map a daily precipitation total to a RainfallLabel.

    Missing, malformed or negative values count as a dry day.
    """
    try:
        bounds = THRESHOLD_TABLES[table]
    except KeyError as exc:
        raise ValueError(f"Unknown rainfall table '{table}'") from exc
    mm = _clean_mm(precip_mm)
    if table == "four_level" and mm == 0:
        return RainfallLabel.NONE
    for upper, label in bounds:
        if mm < upper:
            return label
    return RainfallLabel.HIGH


def classify_series(values: Iterable, table: str = "four_level") -> List[RainfallLabel]:
    return [classify_rainfall(v, table) for v in values]


__all__ = ["THRESHOLD_TABLES", "classify_rainfall", "classify_series"]
