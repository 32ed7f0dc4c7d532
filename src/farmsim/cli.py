"""Command line entrypoint for farmsim.

Implements three commands:

* ``setup``: pick a farm location, crop and season length; fetch the daily
  weather for that point and write the handoff file.
* ``play``: play the season from the handoff file (full-screen TUI, or plain
  prompts with ``--no-tui``).
* ``simulate``: run a scripted season non-interactively and export history.
"""
from __future__ import annotations

import datetime as dt
import random
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional

import typer

from farmsim.cli_game_tui import GameScreenState, LiveWeather, handle_key, launch_game_tui, render_hud
from farmsim.cli_utils import parse_actions, render_summary, weather_to_series, write_history
from farmsim.core.config import ConfigError, GameConfig, load_game_config, with_rainfall_table
from farmsim.core.debug import DebugCollector, ScopedDebugCollector, build_debug_collector
from farmsim.core.handoff import DEFAULT_HANDOFF_PATH, HandoffState, MissingHandoffState, load_game, read_handoff, write_handoff
from farmsim.core.models import CROP_KINDS, SEASON_LENGTHS, FarmLocation, ValidationError
from farmsim.engine.preprocess import PreprocessedWeather, classify, readable_date
from farmsim.engine.season import Season
from farmsim.weather.base import season_window
from farmsim.weather.fallback import FallbackWeatherProvider
from farmsim.weather.fetcher import LatestRequestFetcher
from farmsim.weather.geocode import NominatimReverseGeocoder
from farmsim.weather.mock import MockWeatherProvider
from farmsim.weather.nasa_power import NasaPowerWeatherProvider

__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Weather-driven farm management game")


def default_weather_provider(debug) -> NasaPowerWeatherProvider:
    """Factory separated for easy monkeypatching in tests."""

    return NasaPowerWeatherProvider(debug=debug)


def default_geocoder(debug) -> NominatimReverseGeocoder:
    return NominatimReverseGeocoder(debug=debug)


def _exit_with_error(msg: str) -> None:
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(code=1)


def _close_debug(collector: DebugCollector) -> None:
    close = getattr(collector, "close", None)
    if close is not None:
        close()


def _load_config(path: Optional[Path], rainfall_table: Optional[str]) -> GameConfig:
    try:
        return with_rainfall_table(load_game_config(path), rainfall_table)
    except ConfigError as exc:
        _exit_with_error(str(exc))


def _read_handoff(path: Path) -> HandoffState:
    try:
        return read_handoff(path)
    except MissingHandoffState as exc:
        typer.echo(f"{exc}. Please run `farmsim setup` first.", err=True)
        raise typer.Exit(code=2)


def _preprocess(handoff: HandoffState, cfg: GameConfig, debug: DebugCollector) -> PreprocessedWeather:
    series = handoff.weather_series[: handoff.simulation_days]
    return classify(
        series,
        handoff.location.lat,
        handoff.crop_kind,
        field_capacity_mm=cfg.soil.field_capacity_mm,
        table=cfg.rainfall_table,
        crop_coefficients=cfg.soil.crop_coefficients,
        debug=debug,
    )


def _live_weather(handoff: HandoffState, cfg: GameConfig, debug: DebugCollector) -> Callable[[], LiveWeather]:
    """Build the in-game refresh: re-fetch the season window and reclassify it."""

    def fetch() -> LiveWeather:
        provider = FallbackWeatherProvider(default_weather_provider(debug=debug), debug=debug)
        start, end = season_window(handoff.simulation_days)
        frame = provider.get_daily(handoff.location.lat, handoff.location.lon, start, end)
        fresh = replace(handoff, weather_series=weather_to_series(frame))
        return _preprocess(fresh, cfg, debug), provider.notice

    return fetch


@app.command()
def setup(
    lat: float = typer.Option(..., help="Farm latitude (-90..90)"),
    lon: float = typer.Option(..., help="Farm longitude (-180..180)"),
    crop: str = typer.Option("maize", help=f"Crop: {', '.join(CROP_KINDS)}"),
    days: int = typer.Option(10, help=f"Season length in days: {', '.join(str(d) for d in SEASON_LENGTHS)}"),
    handoff: Path = typer.Option(DEFAULT_HANDOFF_PATH, help="Where to write the setup record (.json/.yaml)"),
    end_date: Optional[str] = typer.Option(None, help="Last day of the weather window (YYYY-MM-DD); defaults to today"),
    mock: bool = typer.Option(False, "--mock", help="Skip the live weather request and use the offline series"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events to this path (.json or JSONL)"),
):
    """Select a farm and fetch the weather the season will be played against."""

    crop = crop.lower()
    if crop not in CROP_KINDS:
        _exit_with_error(f"crop must be one of {', '.join(CROP_KINDS)}")
    if days not in SEASON_LENGTHS:
        _exit_with_error(f"days must be one of {', '.join(str(d) for d in SEASON_LENGTHS)}")
    try:
        location = FarmLocation(lat=lat, lon=lon)
    except ValidationError as exc:
        _exit_with_error(str(exc))

    today = None
    if end_date:
        try:
            today = dt.date.fromisoformat(end_date)
        except ValueError:
            _exit_with_error("end-date must be YYYY-MM-DD")
    start, end = season_window(days, today)

    debug_collector = build_debug_collector(debug)
    if mock:
        provider = MockWeatherProvider(debug=debug_collector)
        source = "mock"
    else:
        provider = FallbackWeatherProvider(default_weather_provider(debug=debug_collector), debug=debug_collector)
        source = "nasa_power"

    frame = provider.get_daily(location.lat, location.lon, start, end)
    if isinstance(provider, FallbackWeatherProvider) and provider.used_fallback:
        typer.echo(provider.notice, err=True)
        source = "mock"

    name = default_geocoder(debug_collector).reverse(location.lat, location.lon)
    state = HandoffState(
        crop_kind=crop,
        simulation_days=days,
        location=FarmLocation(lat=location.lat, lon=location.lon, name=name),
        location_name=name,
        weather_series=weather_to_series(frame),
        source=source,
    )
    try:
        write_handoff(handoff, state)
    except ConfigError as exc:
        _exit_with_error(str(exc))

    preview = _preprocess(state, GameConfig(), debug_collector)
    typer.echo(f"Farm: {name} ({location.lat:.2f}, {location.lon:.2f}) • crop {crop} • {days} days")
    for day in preview.days:
        label = readable_date(day.date) or f"Day {day.day}"
        typer.echo(
            f"  {label:>20}  rain {day.precipitation_mm:5.1f} mm ({day.rainfall.display})"
            f"  ETo {day.eto_mm:5.2f}  soil {day.soil_moisture_mm:6.1f} mm"
        )
    typer.echo(f"Saved setup to {handoff}")
    _close_debug(debug_collector)


def _play_prompts(screen: GameScreenState) -> None:
    season = screen.season
    while not screen.quit:
        typer.echo("\n".join(render_hud(season)))
        key = typer.prompt(
            "Choose [i=irrigate, f=fertilize, s=scout, w=wait, n=next day, d=drip, l=live weather, v=save, r=restart, q=quit]",
            default="n",
        ).strip().lower()
        before = season.is_complete
        handle_key(screen, key[:1] if key else "n")
        if screen.feedback and key[:1] in {"i", "f", "s", "w"}:
            typer.echo(screen.feedback)
        typer.echo(screen.message)
        if season.is_complete and not before:
            typer.echo("\n".join(season.action_log))
            typer.echo(render_summary(season.summary))
            screen.quit = True


@app.command()
def play(
    handoff: Path = typer.Option(DEFAULT_HANDOFF_PATH, help="Setup record written by `farmsim setup`"),
    config: Optional[Path] = typer.Option(None, help="Game config YAML/JSON"),
    rainfall_table: Optional[str] = typer.Option(None, help="Override rainfall table: four_level or three_level"),
    seed: Optional[int] = typer.Option(None, help="Random seed for a reproducible season"),
    resume: bool = typer.Option(False, "--resume", help="Continue from the game saved in the setup file"),
    no_tui: bool = typer.Option(False, help="Use plain prompts instead of the full-screen game"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events to this path (.json or JSONL)"),
):
    """Play the season prepared by `farmsim setup`."""

    cfg = _load_config(config, rainfall_table)
    state = _read_handoff(handoff)
    debug_collector = build_debug_collector(debug)
    weather = _preprocess(state, cfg, debug_collector)
    season = Season(weather, config=cfg, rng=random.Random(seed), debug=debug_collector, farm=state.location_name)

    if resume:
        try:
            saved = load_game(handoff)
            if saved is not None:
                season.restore(saved)
        except (MissingHandoffState, ValidationError, TypeError) as exc:
            _exit_with_error(f"Cannot resume saved game: {exc}")

    live_debug = ScopedDebugCollector(debug_collector, farm=state.location_name)
    fetcher = LatestRequestFetcher(_live_weather(state, cfg, live_debug), debug=live_debug)
    screen = GameScreenState(
        season=season,
        title=f"farmsim • {state.location_name} • {state.crop_kind}",
        save_path=handoff,
        fetcher=fetcher,
    )
    try:
        if no_tui:
            _play_prompts(screen)
        else:
            launch_game_tui(screen)
    finally:
        fetcher.shutdown()
        _close_debug(debug_collector)


@app.command()
def simulate(
    actions: str = typer.Option("", help="Scripted actions: days split by ';', actions by ',' e.g. 'irrigate;scout,wait'"),
    handoff: Path = typer.Option(DEFAULT_HANDOFF_PATH, help="Setup record written by `farmsim setup`"),
    labels: Optional[str] = typer.Option(None, help="Comma-separated rainfall labels; skips the setup record"),
    config: Optional[Path] = typer.Option(None, help="Game config YAML/JSON"),
    rainfall_table: Optional[str] = typer.Option(None, help="Override rainfall table: four_level or three_level"),
    seed: Optional[int] = typer.Option(0, help="Random seed"),
    output: Optional[Path] = typer.Option(None, help="Write history to .json or .csv"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events to this path (.json or JSONL)"),
):
    """Run a whole season from a script of actions (no prompts)."""

    cfg = _load_config(config, rainfall_table)
    try:
        plan = parse_actions(actions) if actions.strip() else []
    except ValidationError as exc:
        _exit_with_error(str(exc))

    debug_collector = build_debug_collector(debug)
    farm = None
    if labels:
        weather: List[str] | PreprocessedWeather = [lbl.strip().lower() for lbl in labels.split(",") if lbl.strip()]
    else:
        state = _read_handoff(handoff)
        weather = _preprocess(state, cfg, debug_collector)
        farm = state.location_name
    try:
        season = Season(weather, config=cfg, rng=random.Random(seed), debug=debug_collector, farm=farm)
    except (ValidationError, ValueError) as exc:
        _exit_with_error(str(exc))

    day_idx = 0
    while not season.is_complete:
        for action in plan[day_idx] if day_idx < len(plan) else []:
            result = season.act(action)
            typer.echo(f"Day {season.state.day}: {result.feedback.replace(chr(10), ' ')}")
        season.next_day()
        day_idx += 1

    history = season.history_frame()
    typer.echo("\n".join(season.action_log))
    typer.echo(history.to_string(index=False))
    typer.echo(render_summary(season.summary))
    if output:
        try:
            write_history(output, history, season.summary, season.action_log)
        except ConfigError as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Wrote history to {output}")
    _close_debug(debug_collector)
    if debug:
        typer.echo(f"Debug events -> {debug}")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def version_callback(
    version: bool = typer.Option(False, "--version", callback=_show_version, is_eager=True, help="Show version and exit"),
):
    """Weather-driven farm management game."""


def main() -> None:  # pragma: no cover - thin wrapper for console_script
    app()


__all__ = ["app", "main", "default_weather_provider", "default_geocoder"]


if __name__ == "__main__":  # pragma: no cover
    main()
