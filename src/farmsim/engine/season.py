"""Caller-owned season: one FarmState plus the weather it is played against.

The engine functions stay pure; Season is the single writer that threads the
state through them, keeps the action log and history rows, and turns
``InvalidTransition`` into a reported no-op.
"""
from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from farmsim.core.config import GameConfig
from farmsim.core.debug import DebugCollector, NullDebugCollector
from farmsim.core.models import Action, FarmState, RainfallLabel, SeasonSummary, ValidationError
from farmsim.engine.preprocess import PreprocessedWeather, labels_only
from farmsim.engine.simulate import (
    DayResult,
    InvalidTransition,
    RandomSource,
    StepResult,
    advance_day,
    apply_action,
    install_drip,
    new_farm_state,
    rain_drop_count,
    season_summary,
)

HISTORY_COLUMNS = [
    "day",
    "soil_moisture",
    "precip_mm",
    "crop_health",
    "money",
    "sustainability",
    "pest_pressure",
    "nitrogen",
    "market_price",
]

DEFAULT_RAINFALL = RainfallLabel.MEDIUM


class Season:
    def __init__(
        self,
        weather: PreprocessedWeather | Sequence[RainfallLabel | str],
        *,
        config: GameConfig | None = None,
        rng: RandomSource | None = None,
        debug: DebugCollector | None = None,
        farm: str | None = None,
    ):
        self.weather = weather if isinstance(weather, PreprocessedWeather) else labels_only(weather)
        if self.weather.season_length < 1:
            raise ValidationError("A season needs at least one day of weather")
        self.config = config or GameConfig()
        self.rng = rng or random.Random()
        self.debug = debug or NullDebugCollector()
        self.farm = farm
        self.reset()

    # state ---------------------------------------------------------------
    @property
    def season_length(self) -> int:
        return self.weather.season_length

    @property
    def is_complete(self) -> bool:
        return self.state.is_complete

    @property
    def summary(self) -> Optional[SeasonSummary]:
        return season_summary(self.state) if self.state.is_complete else None

    def rainfall_for(self, day: int) -> RainfallLabel:
        if 1 <= day <= len(self.weather.days):
            return self.weather.days[day - 1].rainfall
        return DEFAULT_RAINFALL

    @property
    def rainfall_today(self) -> RainfallLabel:
        return self.rainfall_for(self.state.day)

    @property
    def rain_drops(self) -> int:
        if self.state.is_complete:
            return 0
        return rain_drop_count(self.rainfall_today)

    def _ts(self, day: int) -> Any:
        if 1 <= day <= len(self.weather.days):
            return self.weather.days[day - 1].date
        return None

    def _emit(self, stage: str, payload: Dict[str, Any], day: int) -> None:
        self.debug.emit(stage, payload, ts=self._ts(day), farm=self.farm, day=day)

    def _rejected(self, what: str, exc: InvalidTransition) -> None:
        self._emit("season.invalid_transition", {"operation": what, "reason": str(exc)}, self.state.day)

    # operations ----------------------------------------------------------
    def reset(self) -> FarmState:
        self.state = new_farm_state(
            self.season_length,
            initial_soil_moisture=self.weather.initial_soil_moisture(),
            config=self.config,
        )
        self.action_log: List[str] = []
        self.history: List[Dict[str, float]] = []
        self.last_feedback = ""
        self._emit("season.reset", {"season_length": self.season_length, "soil_moisture": self.state.soil_moisture}, 1)
        return self.state

    def restore(self, state: FarmState) -> FarmState:
        """Continue from a saved state; log and history restart empty."""
        if state.season_length != self.season_length:
            raise ValidationError(
                f"Saved game is for {state.season_length} days, weather covers {self.season_length}"
            )
        self.state = state
        self._emit("season.restored", {"day": state.day}, state.day)
        return state

    def act(self, action: Action | str) -> StepResult:
        action = Action.parse(action)
        rain = self.rainfall_today
        try:
            result = apply_action(self.state, action, rain, rng=self.rng, config=self.config)
        except InvalidTransition as exc:
            self._rejected(action.value, exc)
            return StepResult(state=self.state, feedback="", accepted=False)
        self.state = result.state
        self.last_feedback = result.feedback
        self._emit(
            "season.action",
            {
                "action": action,
                "rain": rain,
                "soil_moisture": self.state.soil_moisture,
                "nitrogen": self.state.nitrogen,
                "pest_pressure": self.state.pest_pressure,
                "crop_health": self.state.crop_health,
                "money": self.state.money,
                "sustainability": self.state.sustainability,
                "market_price": self.state.market_price,
            },
            self.state.day,
        )
        return result

    def install_drip(self) -> StepResult:
        try:
            result = install_drip(self.state, config=self.config)
        except InvalidTransition as exc:
            self._rejected("install_drip", exc)
            return StepResult(state=self.state, feedback=str(exc), accepted=False)
        self.state = result.state
        self.last_feedback = result.feedback
        self._emit("season.drip_installed", {"money": self.state.money}, self.state.day)
        return result

    def next_day(self) -> DayResult:
        if self.state.is_complete:
            self._rejected("next_day", InvalidTransition("season already complete"))
            return DayResult(state=self.state, summary=self.summary, accepted=False)

        closing = self.state
        self.action_log.append(self._log_line(closing))
        self.history.append(self._history_row(closing))
        result = advance_day(closing, self.rainfall_for(closing.day + 1))
        self.state = result.state
        self.last_feedback = ""

        self._emit("season.day", {"closed_day": closing.day, "actions": list(closing.actions_taken_today)}, closing.day)
        if result.summary is not None:
            self._emit("season.complete", result.summary.to_dict(), closing.day)
        return result

    def replace_weather(self, weather: PreprocessedWeather | Sequence[RainfallLabel | str], computed_for_day: int) -> bool:
        """Swap in a newer weather series unless it was computed for a past day.

        Returns False (and changes nothing) for a stale response: one issued
        before the season advanced past ``computed_for_day``.
        """
        weather = weather if isinstance(weather, PreprocessedWeather) else labels_only(weather)
        if self.state.is_complete or computed_for_day < self.state.day:
            self._emit(
                "season.stale_weather",
                {"computed_for_day": computed_for_day, "current_day": self.state.day},
                self.state.day,
            )
            return False
        if weather.season_length != self.season_length:
            raise ValidationError(
                f"Replacement weather covers {weather.season_length} days, season has {self.season_length}"
            )
        self.weather = weather
        self._emit("season.weather_replaced", {"computed_for_day": computed_for_day}, self.state.day)
        return True

    # reporting -----------------------------------------------------------
    def _log_line(self, state: FarmState) -> str:
        actions = [a.label for a in state.actions_taken_today] or ["No action"]
        return f"Day {state.day}: {', '.join(actions)} (Rain: {self.rainfall_for(state.day).display})"

    def _history_row(self, state: FarmState) -> Dict[str, float]:
        day = state.day
        precip = self.weather.days[day - 1].precipitation_mm if day <= len(self.weather.days) else 0.0
        return {
            "day": day,
            "soil_moisture": state.soil_moisture,
            "precip_mm": precip,
            "crop_health": state.crop_health,
            "money": state.money,
            "sustainability": state.sustainability,
            "pest_pressure": state.pest_pressure,
            "nitrogen": state.nitrogen,
            "market_price": state.market_price,
        }

    def history_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.history, columns=HISTORY_COLUMNS)


__all__ = ["Season", "HISTORY_COLUMNS"]
