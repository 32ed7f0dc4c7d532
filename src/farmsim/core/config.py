"""Game configuration loader.

Supports YAML and JSON files. Every section is optional; missing keys fall back
to the values the game ships with.

Example::

    rainfall_table: four_level
    start:
      money: 20
      sustainability: 80
    economy:
      irrigation_cost: 3
    market:
      price_min: 0.8
      price_max: 1.5
    soil:
      field_capacity_mm: 150
      crop_coefficients: {maize: 1.15, wheat: 0.8}
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

try:
    import yaml
except ModuleNotFoundError as exc:  # pragma: no cover
    raise ImportError("PyYAML is required to load YAML configs") from exc


class ConfigError(ValueError):
    """Raised when configuration cannot be parsed into a GameConfig."""


RAINFALL_TABLES = {"four_level", "three_level"}

DEFAULT_CROP_COEFFICIENTS: Dict[str, float] = {"maize": 1.15, "wheat": 0.8, "grass": 1.0, "default": 1.0}


def crop_coefficient(coefficients: Mapping[str, float], crop_kind: str) -> float:
    """Kc for ``crop_kind``, falling back to the ``default`` entry, then 1.0."""
    return float(coefficients.get(str(crop_kind).lower(), coefficients.get("default", 1.0)))


@dataclass(frozen=True)
class StartConfig:
    money: float = 20.0
    sustainability: float = 80.0
    crop_health: float = 70.0
    nitrogen: float = 45.0
    pest_pressure: float = 15.0
    market_price: float = 1.0
    soil_moisture: float = 55.0


@dataclass(frozen=True)
class EconomyConfig:
    irrigation_cost: float = 3.0
    fertilize_cost: float = 2.0
    scout_cost: float = 1.0
    drip_cost: float = 15.0
    revenue_healthy: float = 4.0
    revenue_fair: float = 2.0


@dataclass(frozen=True)
class MarketConfig:
    price_min: float = 0.8
    price_max: float = 1.5
    drift: float = 0.05


@dataclass(frozen=True)
class SoilConfig:
    field_capacity_mm: float = 150.0
    crop_coefficients: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CROP_COEFFICIENTS))


@dataclass(frozen=True)
class GameConfig:
    start: StartConfig = field(default_factory=StartConfig)
    economy: EconomyConfig = field(default_factory=EconomyConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    soil: SoilConfig = field(default_factory=SoilConfig)
    rainfall_table: str = "four_level"

    def __post_init__(self):
        if self.rainfall_table not in RAINFALL_TABLES:
            raise ConfigError(f"rainfall_table must be one of {sorted(RAINFALL_TABLES)}")
        if self.market.price_min <= 0 or self.market.price_min > self.market.price_max:
            raise ConfigError("market.price_min must be positive and <= market.price_max")
        if not (self.market.price_min <= self.start.market_price <= self.market.price_max):
            raise ConfigError("start.market_price must lie within the market price band")
        if self.soil.field_capacity_mm <= 0:
            raise ConfigError("soil.field_capacity_mm must be positive")
        for name in ("sustainability", "crop_health", "nitrogen", "pest_pressure", "soil_moisture"):
            value = getattr(self.start, name)
            if not (0 <= value <= 100):
                raise ConfigError(f"start.{name} must be between 0 and 100")


def _load_raw(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    if path.suffix.lower() == ".json":
        return json.loads(text)
    raise ConfigError(f"Unsupported config extension: {path.suffix}")


def _parse_section(cls, raw: Any, name: str):
    if raw is None:
        return cls()
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Section '{name}' must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = set(raw) - set(known)
    if unknown:
        raise ConfigError(f"Unknown {name} fields: {sorted(unknown)}")
    values: Dict[str, Any] = {}
    for key, val in raw.items():
        if key == "crop_coefficients":
            if not isinstance(val, Mapping):
                raise ConfigError("soil.crop_coefficients must be a mapping of crop -> coefficient")
            merged = dict(DEFAULT_CROP_COEFFICIENTS)
            try:
                merged.update({str(k).lower(): float(v) for k, v in val.items()})
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid crop coefficient: {exc}") from exc
            values[key] = merged
            continue
        try:
            values[key] = float(val)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name}.{key} must be numeric") from exc
    return cls(**values)


def parse_game_config(raw: Mapping[str, Any] | None) -> GameConfig:
    raw = raw or {}
    if not isinstance(raw, Mapping):
        raise ConfigError("Config root must be a mapping")
    return GameConfig(
        start=_parse_section(StartConfig, raw.get("start"), "start"),
        economy=_parse_section(EconomyConfig, raw.get("economy"), "economy"),
        market=_parse_section(MarketConfig, raw.get("market"), "market"),
        soil=_parse_section(SoilConfig, raw.get("soil"), "soil"),
        rainfall_table=str(raw.get("rainfall_table", "four_level")).lower(),
    )


def load_game_config(path: str | Path | None = None) -> GameConfig:
    """Load config from a YAML/JSON file, or return defaults when ``path`` is None."""
    if path is None:
        return GameConfig()
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    return parse_game_config(_load_raw(path))


def with_rainfall_table(config: GameConfig, table: str | None) -> GameConfig:
    if table is None:
        return config
    return replace(config, rainfall_table=table.lower())


__all__ = [
    "ConfigError",
    "GameConfig",
    "StartConfig",
    "EconomyConfig",
    "MarketConfig",
    "SoilConfig",
    "RAINFALL_TABLES",
    "DEFAULT_CROP_COEFFICIENTS",
    "crop_coefficient",
    "load_game_config",
    "parse_game_config",
    "with_rainfall_table",
]
