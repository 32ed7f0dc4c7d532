"""Domain models for the farm game.

Provides validated, immutable records for locations, daily weather, the farm
state that the simulation steps forward, and the end-of-season summary.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class ValidationError(ValueError):
    """Raised when model inputs violate constraints."""


class RainfallLabel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def intensity(self) -> int:
        return _RAIN_ORDER.index(self)

    @property
    def display(self) -> str:
        return "No rain" if self is RainfallLabel.NONE else self.value.upper()


_RAIN_ORDER = [RainfallLabel.NONE, RainfallLabel.LOW, RainfallLabel.MEDIUM, RainfallLabel.HIGH]


class Action(str, Enum):
    IRRIGATE = "irrigate"
    FERTILIZE = "fertilize"
    SCOUT = "scout"
    WAIT = "wait"

    @classmethod
    def parse(cls, raw: "str | Action") -> "Action":
        if isinstance(raw, Action):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError as exc:
            choices = ", ".join(a.value for a in cls)
            raise ValidationError(f"Unknown action '{raw}'; expected one of: {choices}") from exc

    @property
    def label(self) -> str:
        return self.value.capitalize()


CROP_KINDS = ("maize", "rice", "wheat", "soybean", "cassava")
SEASON_LENGTHS = (5, 10, 15, 20, 30)


@dataclass(frozen=True)
class FarmLocation:
    lat: float
    lon: float
    name: str = "Unknown location"

    def __post_init__(self):
        if not (-90.0 <= self.lat <= 90.0):
            raise ValidationError("Latitude must be between -90 and 90 degrees")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValidationError("Longitude must be between -180 and 180 degrees")


@dataclass(frozen=True)
class DailyWeather:
    day: int
    precipitation_mm: float
    rainfall: RainfallLabel
    date: Optional[str] = None
    tmin_c: Optional[float] = None
    tmax_c: Optional[float] = None
    eto_mm: float = 0.0
    soil_moisture_mm: Optional[float] = None

    def __post_init__(self):
        if self.day < 1:
            raise ValidationError("day must be >= 1")
        if self.precipitation_mm < 0:
            raise ValidationError("precipitation_mm must be non-negative")
        if self.eto_mm < 0:
            raise ValidationError("eto_mm must be non-negative")
        if not isinstance(self.rainfall, RainfallLabel):
            object.__setattr__(self, "rainfall", RainfallLabel(self.rainfall))


def _check_percent(name: str, value: float) -> None:
    if not (0.0 <= value <= 100.0):
        raise ValidationError(f"{name} must be between 0 and 100 (got {value})")


@dataclass(frozen=True)
class FarmState:
    """One snapshot of the farm. Steps return a new instance, never patch one."""

    day: int
    season_length: int
    money: float
    sustainability: float
    crop_health: float
    soil_moisture: float
    nitrogen: float
    pest_pressure: float
    market_price: float
    actions_taken_today: Tuple[Action, ...] = field(default_factory=tuple)
    drip_installed: bool = False

    def __post_init__(self):
        if self.season_length < 1:
            raise ValidationError("season_length must be >= 1")
        if not (1 <= self.day <= self.season_length + 1):
            raise ValidationError("day must be between 1 and season_length + 1")
        for name in ("sustainability", "crop_health", "soil_moisture", "nitrogen", "pest_pressure"):
            _check_percent(name, getattr(self, name))
        if self.market_price <= 0:
            raise ValidationError("market_price must be positive")
        actions = tuple(Action.parse(a) for a in self.actions_taken_today)
        object.__setattr__(self, "actions_taken_today", actions)

    @property
    def is_complete(self) -> bool:
        return self.day > self.season_length


@dataclass(frozen=True)
class SeasonSummary:
    final_profit: float
    final_sustainability: float
    final_crop_health: float

    def to_dict(self) -> dict:
        return {
            "final_profit": round(self.final_profit, 1),
            "final_sustainability": round(self.final_sustainability),
            "final_crop_health": round(self.final_crop_health),
        }


__all__ = [
    "ValidationError",
    "RainfallLabel",
    "Action",
    "CROP_KINDS",
    "SEASON_LENGTHS",
    "FarmLocation",
    "DailyWeather",
    "FarmState",
    "SeasonSummary",
]
