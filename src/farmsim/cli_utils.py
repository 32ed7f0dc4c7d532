"""Shared CLI helpers to avoid circular imports."""
from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from farmsim.core.config import ConfigError
from farmsim.core.models import Action, SeasonSummary


def weather_to_series(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """Daily provider frame -> JSON-safe rows for the handoff record."""

    def clean(val: Any) -> Any:
        if val is None or val is pd.NaT:
            return None
        if isinstance(val, float) and math.isnan(val):
            return None
        if hasattr(val, "item"):
            val = val.item()
        return val

    rows = []
    for record in frame.to_dict(orient="records"):
        rows.append(
            {
                "date": None if clean(record.get("date")) is None else str(record.get("date")),
                "precip_mm": clean(record.get("precip_mm")),
                "tmin_c": clean(record.get("tmin_c")),
                "tmax_c": clean(record.get("tmax_c")),
            }
        )
    return rows


def parse_actions(script: str) -> List[List[Action]]:
    """``"irrigate;fertilize,scout;;wait"`` -> one list of actions per day.

    Days are separated by ``;`` and actions within a day by ``,``. An empty
    day means no action.
    """
    days: List[List[Action]] = []
    for chunk in script.split(";"):
        days.append([Action.parse(tok) for tok in chunk.split(",") if tok.strip()])
    return days


def write_history(path: Path, history: pd.DataFrame, summary: Optional[SeasonSummary], action_log: List[str]) -> None:
    fmt = path.suffix.lower().lstrip(".")
    if fmt == "json":
        payload = {
            "history": history.to_dict(orient="records"),
            "action_log": action_log,
            "summary": summary.to_dict() if summary else None,
        }
        path.write_text(json.dumps(payload, indent=2))
    elif fmt == "csv":
        history.to_csv(path, index=False)
    else:
        raise ConfigError("output path must end with .json or .csv")


def render_summary(summary: SeasonSummary) -> str:
    data = summary.to_dict()
    return (
        "Season Complete!\n"
        f"Final Profit: {data['final_profit']:.1f}\n"
        f"Sustainability: {data['final_sustainability']}\n"
        f"Crop Health: {data['final_crop_health']}"
    )


__all__ = ["weather_to_series", "parse_actions", "write_history", "render_summary"]
