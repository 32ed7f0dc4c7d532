"""Game screen for `farmsim play`.

Layout: HUD and crop panel on the left, rain strip and history chart on the
right, action log below, key help and status line at the bottom. All state
changes go through ``handle_key`` so they can be tested without a terminal.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from prompt_toolkit import Application
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, VSplit, Layout
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import D
from prompt_toolkit.layout.containers import Window, WindowAlign
from prompt_toolkit.styles import Style

from farmsim.cli_utils import render_summary
from farmsim.core.handoff import MissingHandoffState, save_game
from farmsim.core.models import Action, ValidationError
from farmsim.engine.preprocess import PreprocessedWeather
from farmsim.engine.season import Season
from farmsim.weather.fetcher import FetchTicket, LatestRequestFetcher

SPARK = " ▁▂▃▄▅▆▇█"

KEY_ACTIONS = {
    "i": Action.IRRIGATE,
    "f": Action.FERTILIZE,
    "s": Action.SCOUT,
    "w": Action.WAIT,
}

HELP_LINE = "i irrigate • f fertilize • s scout • w wait • n next day • d drip (15) • l live weather • v save • r restart • q quit"


# A live-weather refresh returns the reclassified season and the fallback
# notice (None when the live source answered).
LiveWeather = Tuple[PreprocessedWeather, Optional[str]]


@dataclass
class GameScreenState:
    season: Season
    title: str = "farmsim"
    save_path: Optional[Path] = None
    message: str = "Pick an action for today, then press n for the next day."
    feedback: str = ""
    quit: bool = False
    fetcher: Optional[LatestRequestFetcher[LiveWeather]] = None
    on_update: Optional[Callable[[], None]] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


def _health_style(health: float) -> str:
    if health > 70:
        return "class:crop.good"
    if health > 40:
        return "class:crop.fair"
    return "class:crop.poor"


def render_hud(season: Season) -> List[str]:
    st = season.state
    day = f"{min(st.day, st.season_length)}/{st.season_length}"
    lines = [
        f"Day: {day}" + ("  (complete)" if st.is_complete else ""),
        f"Moisture: {st.soil_moisture:.0f}",
        f"Nitrogen: {st.nitrogen:.0f}",
        f"Pests: {st.pest_pressure:.0f}",
        f"Money: {st.money:.1f}",
        f"Sustainability: {st.sustainability:.0f}",
        f"Market price: {st.market_price:.2f}",
        f"Drip irrigation: {'installed' if st.drip_installed else 'no'}",
    ]
    if not st.is_complete:
        lines.append(f"Rain today: {season.rainfall_today.display}")
    return lines


def _render_crop(season: Season) -> List[tuple[str, str]]:
    health = season.state.crop_health
    # 20 wide at health 0, 60 at 100, scaled to a quarter for the terminal
    width = max(1, int(round((20 + 40 * health / 100) / 4)))
    return [
        (_health_style(health), "●" * width),
        ("", f"  crop health {health:.0f}"),
    ]


def _render_rain(drops: int, width: int = 60) -> str:
    if drops <= 0:
        return "(no rain)"
    dense = min(width, drops)
    step = max(1, width // dense)
    return "".join("'" if i % step == 0 else " " for i in range(width))


def _sparkline(values: List[float], upper: float) -> str:
    if not values:
        return ""
    top = len(SPARK) - 1
    out = []
    for val in values:
        frac = 0.0 if upper <= 0 else max(0.0, min(1.0, val / upper))
        out.append(SPARK[int(round(frac * top))])
    return "".join(out)


def _render_chart(season: Season) -> List[str]:
    if not season.history:
        return ["History appears after the first day."]
    soil = [row["soil_moisture"] for row in season.history]
    precip = [row["precip_mm"] for row in season.history]
    return [
        f"Soil moisture  {_sparkline(soil, 100.0)}  {soil[-1]:.0f}",
        f"Rainfall (mm)  {_sparkline(precip, max(precip) or 1.0)}  {precip[-1]:.1f}",
    ]


def _render_log(season: Season, limit: int = 6) -> List[str]:
    if not season.action_log:
        return ["No days played yet."]
    return season.action_log[-limit:]


def handle_key(state: GameScreenState, key: str) -> None:
    """Apply one key press to the game screen state."""
    with state.lock:
        _handle_key(state, key)


def _handle_key(state: GameScreenState, key: str) -> None:
    season = state.season
    if key == "q":
        state.quit = True
        return
    if key == "r":
        season.reset()
        state.feedback = ""
        state.message = "New season started."
        return
    if key == "v":
        if state.save_path is None:
            state.message = "No save file configured."
            return
        try:
            save_game(state.save_path, season.state)
        except (MissingHandoffState, ValidationError) as exc:
            state.message = f"Save failed: {exc}"
            return
        state.message = f"Saved → {state.save_path}"
        return
    if season.is_complete:
        state.message = "Season complete: press r to play again or q to quit."
        return
    if key in KEY_ACTIONS:
        result = season.act(KEY_ACTIONS[key])
        state.feedback = result.feedback
        state.message = f"{KEY_ACTIONS[key].label} done."
        return
    if key == "d":
        result = season.install_drip()
        state.message = result.feedback
        return
    if key == "l":
        _request_live_weather(state)
        return
    if key == "n":
        result = season.next_day()
        state.feedback = ""
        if result.summary is not None:
            state.message = "Season complete!"
        else:
            state.message = f"Day {result.state.day} begins."
        return
    state.message = f"Unknown key '{key}'. {HELP_LINE}"


def _request_live_weather(state: GameScreenState) -> None:
    if state.fetcher is None:
        state.message = "Live weather is not available for this season."
        return
    state.message = "Fetching live weather..."
    state.fetcher.submit(
        for_day=state.season.state.day,
        on_result=lambda weather, ticket: _apply_live_weather(state, weather, ticket),
        on_error=lambda exc, ticket: _live_weather_failed(state, exc),
    )


def _apply_live_weather(state: GameScreenState, result: LiveWeather, ticket: FetchTicket) -> None:
    weather, notice = result
    with state.lock:
        try:
            accepted = state.season.replace_weather(weather, ticket.for_day)
        except ValidationError as exc:
            state.message = f"Live weather rejected: {exc}"
        else:
            if not accepted:
                state.message = f"Live weather for day {ticket.for_day} arrived too late; kept the current forecast."
            elif notice:
                state.message = notice
            else:
                state.message = f"Live weather loaded. Rain today: {state.season.rainfall_today.display}"
    _notify(state)


def _live_weather_failed(state: GameScreenState, exc: BaseException) -> None:
    with state.lock:
        state.message = f"Live weather failed: {exc}"
    _notify(state)


def _notify(state: GameScreenState) -> None:
    if state.on_update is not None:
        state.on_update()


def _render_summary_panel(season: Season) -> str:
    summary = season.summary
    if summary is None:
        return ""
    return render_summary(summary) + "\n\nPress r to restart or q to quit."


def launch_game_tui(state: GameScreenState) -> None:
    kb = KeyBindings()

    def bind(key: str) -> None:
        @kb.add(key)
        def _(event):
            handle_key(state, key)
            if state.quit:
                event.app.exit(result=None)
            else:
                event.app.invalidate()

    for key in ("i", "f", "s", "w", "n", "d", "l", "v", "r", "q"):
        bind(key)

    @kb.add("c-c")
    def _(event):
        event.app.exit(result=None)

    season = state.season
    left = HSplit(
        [
            Window(content=FormattedTextControl(lambda: "\n".join(render_hud(season))), height=D(min=9)),
            Window(height=1, content=FormattedTextControl(lambda: _render_crop(season))),
            Window(content=FormattedTextControl(lambda: state.feedback), wrap_lines=True, height=D(min=3)),
        ],
        width=D(weight=2),
    )
    right = HSplit(
        [
            Window(
                height=1,
                content=FormattedTextControl(lambda: _render_rain(season.rain_drops)),
                style="class:rain",
            ),
            Window(content=FormattedTextControl(lambda: "\n".join(_render_chart(season))), height=D(min=2)),
            Window(height=1, content=FormattedTextControl("Action log"), style="class:heading"),
            Window(content=FormattedTextControl(lambda: "\n".join(_render_log(season))), height=D(weight=1)),
            Window(content=FormattedTextControl(lambda: _render_summary_panel(season)), style="class:summary"),
        ],
        width=D(weight=3),
    )

    root_container = HSplit(
        [
            Window(height=1, content=FormattedTextControl(lambda: state.title), align=WindowAlign.CENTER),
            VSplit([left, Window(width=1, char="│", style="class:sep"), right]),
            Window(height=1, content=FormattedTextControl(HELP_LINE)),
            Window(height=1, content=FormattedTextControl(lambda: state.message), style="class:status"),
        ]
    )

    app = Application(
        layout=Layout(root_container),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "crop.good": "fg:#2ecc71 bold",
                "crop.fair": "fg:#f1c40f bold",
                "crop.poor": "fg:#e74c3c bold",
                "rain": "fg:#3498db",
                "heading": "bold",
                "summary": "bold",
                "status": "reverse",
                "sep": "fg:#444444",
            }
        ),
    )
    state.on_update = app.invalidate

    app.run()


__all__ = ["launch_game_tui", "GameScreenState", "LiveWeather", "handle_key", "render_hud"]
