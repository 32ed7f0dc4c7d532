"""Handoff between ``farmsim setup`` and ``farmsim play``.

Setup writes one record (crop, season length, location and the raw daily
weather series); play reads it back. A saved game stores the FarmState next
to the handoff so a season can be resumed.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from farmsim.core.config import ConfigError, _load_raw
from farmsim.core.models import CROP_KINDS, FarmLocation, FarmState, ValidationError

DEFAULT_HANDOFF_PATH = Path(".farmsim/handoff.json")


class MissingHandoffState(RuntimeError):
    """Raised when play starts without a usable setup record."""


@dataclass(frozen=True)
class HandoffState:
    crop_kind: str
    simulation_days: int
    location: FarmLocation
    weather_series: List[Dict[str, Any]] = field(default_factory=list)
    location_name: str = "Unknown location"
    source: str = "nasa_power"

    def __post_init__(self):
        if self.crop_kind not in CROP_KINDS:
            raise ValidationError(f"crop_kind must be one of {', '.join(CROP_KINDS)}")
        if self.simulation_days < 1:
            raise ValidationError("simulation_days must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "crop_kind": self.crop_kind,
            "simulation_days": self.simulation_days,
            "location": {"lat": self.location.lat, "lon": self.location.lon},
            "location_name": self.location_name,
            "source": self.source,
            "weather_series": [dict(row) for row in self.weather_series],
        }


def _dump(path: Path, data: Dict[str, Any]) -> None:
    suffix = path.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise ConfigError(f"Unsupported handoff extension: {path.suffix}")
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".json":
        path.write_text(json.dumps(data, indent=2))
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False))


def write_handoff(path: str | Path, state: HandoffState) -> Path:
    path = Path(path)
    base: Dict[str, Any] = {}
    if path.exists():
        # keep a saved game only if it belongs to the same setup
        try:
            raw = _load_raw(path)
        except (ConfigError, ValueError, yaml.YAMLError):
            raw = None
        if isinstance(raw, dict) and raw.get("game") and _same_setup(raw, state):
            base["game"] = raw["game"]
    data = state.to_dict()
    data.update(base)
    _dump(path, data)
    return path


def _same_setup(raw: Dict[str, Any], state: HandoffState) -> bool:
    return raw.get("crop_kind") == state.crop_kind and raw.get("weather_series") == state.to_dict()["weather_series"]


def _read_raw(path: str | Path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise MissingHandoffState(f"No setup found at {path}")
    try:
        raw = _load_raw(path)
    except (ValueError, yaml.YAMLError) as exc:
        raise MissingHandoffState(f"Setup file {path} is unreadable: {exc}") from exc
    if not isinstance(raw, dict):
        raise MissingHandoffState(f"Setup file {path} is not a mapping")
    return raw


def read_handoff(path: str | Path) -> HandoffState:
    raw = _read_raw(path)
    series = raw.get("weather_series")
    if not series or not isinstance(series, list):
        raise MissingHandoffState("No weather data found in setup; select a farm first")
    loc = raw.get("location") or {}
    try:
        location = FarmLocation(lat=float(loc["lat"]), lon=float(loc["lon"]), name=raw.get("location_name") or "Unknown location")
        return HandoffState(
            crop_kind=str(raw.get("crop_kind", "maize")).lower(),
            simulation_days=int(raw.get("simulation_days", len(series))),
            location=location,
            weather_series=series,
            location_name=location.name,
            source=str(raw.get("source", "nasa_power")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MissingHandoffState(f"Setup file is incomplete: {exc}") from exc


def farm_state_to_dict(state: FarmState) -> Dict[str, Any]:
    data = {f.name: getattr(state, f.name) for f in fields(FarmState)}
    data["actions_taken_today"] = [a.value for a in state.actions_taken_today]
    return data


def farm_state_from_dict(data: Dict[str, Any]) -> FarmState:
    known = {f.name for f in fields(FarmState)}
    unknown = set(data) - known
    if unknown:
        raise ValidationError(f"Unknown farm state fields: {sorted(unknown)}")
    values = dict(data)
    values["actions_taken_today"] = tuple(values.get("actions_taken_today") or ())
    return FarmState(**values)


def save_game(path: str | Path, state: FarmState) -> Path:
    """Store ``state`` under the ``game`` key of an existing handoff file."""
    path = Path(path)
    raw = _read_raw(path)
    raw["game"] = farm_state_to_dict(state)
    _dump(path, raw)
    return path


def load_game(path: str | Path) -> Optional[FarmState]:
    raw = _read_raw(path)
    game = raw.get("game")
    if not game:
        return None
    return farm_state_from_dict(game)


__all__ = [
    "DEFAULT_HANDOFF_PATH",
    "MissingHandoffState",
    "HandoffState",
    "write_handoff",
    "read_handoff",
    "farm_state_to_dict",
    "farm_state_from_dict",
    "save_game",
    "load_game",
]
