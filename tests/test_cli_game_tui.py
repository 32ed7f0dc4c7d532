import threading
from pathlib import Path

from farmsim.cli_game_tui import (
    GameScreenState,
    _render_chart,
    _render_crop,
    render_hud,
    _render_log,
    _render_rain,
    handle_key,
)
from farmsim.core.handoff import HandoffState, load_game, write_handoff
from farmsim.core.models import FarmLocation, RainfallLabel
from farmsim.engine.preprocess import labels_only
from farmsim.engine.season import Season
from farmsim.weather.fetcher import LatestRequestFetcher


def _screen(labels=("medium", "none", "high"), rng=None, save_path=None):
    return GameScreenState(season=Season(list(labels), rng=rng), save_path=save_path)


def test_hud_shows_day_and_rain(fixed_rng):
    screen = _screen(rng=fixed_rng)
    lines = render_hud(screen.season)
    assert lines[0] == "Day: 1/3"
    assert "Money: 20.0" in lines
    assert lines[-1] == "Rain today: MEDIUM"


def test_action_keys_update_feedback(fixed_rng):
    screen = _screen(rng=fixed_rng)
    handle_key(screen, "i")
    assert screen.feedback.startswith("Rain: MEDIUM")
    assert screen.season.state.soil_moisture == 71
    handle_key(screen, "n")
    assert screen.feedback == ""
    assert screen.message == "Day 2 begins."
    assert _render_log(screen.season) == ["Day 1: Irrigate (Rain: MEDIUM)"]


def test_drip_key_and_unknown_key():
    screen = _screen()
    handle_key(screen, "d")
    assert screen.season.state.drip_installed
    handle_key(screen, "d")
    assert "already installed" in screen.message
    handle_key(screen, "x")
    assert screen.message.startswith("Unknown key 'x'")


def test_completion_blocks_actions_until_restart(fixed_rng):
    screen = _screen(labels=("low",), rng=fixed_rng)
    handle_key(screen, "n")
    assert screen.message == "Season complete!"
    before = screen.season.state
    handle_key(screen, "i")
    assert screen.season.state is before
    assert "press r" in screen.message
    handle_key(screen, "r")
    assert screen.season.state.day == 1
    handle_key(screen, "q")
    assert screen.quit


def test_save_key(tmp_path: Path):
    path = tmp_path / "handoff.json"
    write_handoff(
        path,
        HandoffState(
            crop_kind="rice",
            simulation_days=3,
            location=FarmLocation(lat=9.1, lon=7.4),
            weather_series=[{"date": "2025-10-01", "precip_mm": 1.0, "tmin_c": None, "tmax_c": None}],
        ),
    )
    screen = _screen(save_path=path)
    handle_key(screen, "n")
    handle_key(screen, "v")
    assert screen.message.startswith("Saved")
    assert load_game(path).day == 2


def test_save_without_path():
    screen = _screen()
    handle_key(screen, "v")
    assert screen.message == "No save file configured."


def test_rain_strip_density():
    assert _render_rain(0) == "(no rain)"
    assert _render_rain(10).count("'") == 10
    assert _render_rain(30).count("'") == 30
    assert _render_rain(60).count("'") == 60


def test_crop_panel_colour_follows_health():
    screen = _screen()
    style, _ = _render_crop(screen.season)[0]
    assert style == "class:crop.fair"


def test_chart_after_first_day(fixed_rng):
    screen = _screen(rng=fixed_rng)
    assert _render_chart(screen.season) == ["History appears after the first day."]
    handle_key(screen, "n")
    lines = _render_chart(screen.season)
    assert lines[0].startswith("Soil moisture")
    assert lines[1].startswith("Rainfall (mm)")


def _live_screen(fetch, rng=None):
    screen = _screen(rng=rng)
    screen.fetcher = LatestRequestFetcher(fetch)
    updated = threading.Event()
    screen.on_update = updated.set
    return screen, updated


def test_live_weather_key_replaces_forecast(fixed_rng):
    screen, updated = _live_screen(lambda: (labels_only(["none", "none", "none"]), None), rng=fixed_rng)
    try:
        handle_key(screen, "l")
        assert updated.wait(5)
    finally:
        screen.fetcher.shutdown()
    assert screen.season.rainfall_today is RainfallLabel.NONE
    assert screen.message == "Live weather loaded. Rain today: No rain"


def test_live_weather_shows_fallback_notice():
    notice = "Live weather data failed to load. Using mock rainfall."
    screen, updated = _live_screen(lambda: (labels_only(["medium"] * 3), notice))
    try:
        handle_key(screen, "l")
        assert updated.wait(5)
    finally:
        screen.fetcher.shutdown()
    assert screen.message == notice


def test_live_weather_arriving_after_next_day_is_dropped(fixed_rng):
    release = threading.Event()

    def slow_fetch():
        release.wait(5)
        return labels_only(["high", "high", "high"]), None

    screen, updated = _live_screen(slow_fetch, rng=fixed_rng)
    try:
        handle_key(screen, "l")
        assert screen.message == "Fetching live weather..."
        handle_key(screen, "n")
        release.set()
        assert updated.wait(5)
    finally:
        release.set()
        screen.fetcher.shutdown()
    assert screen.season.state.day == 2
    assert screen.season.rainfall_today is RainfallLabel.NONE
    assert screen.season.weather.rainfall_labels == [RainfallLabel.MEDIUM, RainfallLabel.NONE, RainfallLabel.HIGH]
    assert "arrived too late" in screen.message


def test_live_weather_without_fetcher():
    screen = _screen()
    handle_key(screen, "l")
    assert screen.message == "Live weather is not available for this season."
