from pathlib import Path

import pytest

from farmsim.core.config import (
    ConfigError,
    GameConfig,
    crop_coefficient,
    load_game_config,
    parse_game_config,
    with_rainfall_table,
)


def test_defaults_without_file():
    cfg = load_game_config(None)
    assert cfg == GameConfig()
    assert cfg.rainfall_table == "four_level"
    assert cfg.economy.drip_cost == 15
    assert crop_coefficient(cfg.soil.crop_coefficients, "Maize") == 1.15
    assert crop_coefficient(cfg.soil.crop_coefficients, "soybean") == 1.0


def test_yaml_sections(tmp_path: Path):
    path = tmp_path / "game.yaml"
    path.write_text(
        "rainfall_table: three_level\n"
        "start:\n"
        "  money: 50\n"
        "market:\n"
        "  drift: 0.1\n"
        "soil:\n"
        "  field_capacity_mm: 120\n"
        "  crop_coefficients:\n"
        "    rice: 1.2\n"
    )
    cfg = load_game_config(path)
    assert cfg.rainfall_table == "three_level"
    assert cfg.start.money == 50
    assert cfg.start.nitrogen == 45
    assert cfg.market.drift == 0.1
    assert cfg.soil.field_capacity_mm == 120
    assert crop_coefficient(cfg.soil.crop_coefficients, "rice") == 1.2
    assert crop_coefficient(cfg.soil.crop_coefficients, "maize") == 1.15


def test_json_config(tmp_path: Path):
    path = tmp_path / "game.json"
    path.write_text('{"economy": {"scout_cost": 2}}')
    assert load_game_config(path).economy.scout_cost == 2


@pytest.mark.parametrize(
    "raw",
    [
        {"rainfall_table": "five_level"},
        {"start": {"gold": 3}},
        {"start": {"money": "lots"}},
        {"start": {"soil_moisture": 130}},
        {"market": {"price_min": 2.0, "price_max": 1.5}},
        {"soil": {"field_capacity_mm": 0}},
        {"soil": {"crop_coefficients": [1, 2]}},
        {"economy": "cheap"},
    ],
)
def test_invalid_configs(raw):
    with pytest.raises(ConfigError):
        parse_game_config(raw)


def test_missing_and_unsupported_files(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_game_config(tmp_path / "nope.yaml")
    odd = tmp_path / "game.toml"
    odd.write_text("x = 1")
    with pytest.raises(ConfigError):
        load_game_config(odd)


def test_with_rainfall_table_override():
    cfg = with_rainfall_table(GameConfig(), "THREE_LEVEL")
    assert cfg.rainfall_table == "three_level"
    assert with_rainfall_table(cfg, None) is cfg
    with pytest.raises(ConfigError):
        with_rainfall_table(cfg, "bogus")
