"""Daily simulation rules.

Every function here is pure: it takes a FarmState (plus today's rainfall, the
game config and a random source) and returns a new FarmState. Nothing is
mutated in place and nothing touches I/O, so any caller (CLI, TUI, tests) can
own the state however it likes.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Protocol

from farmsim.core.config import GameConfig
from farmsim.core.models import Action, FarmState, RainfallLabel, SeasonSummary

RAIN_MOISTURE_DELTA = {
    RainfallLabel.NONE: -7.0,
    RainfallLabel.LOW: -5.0,
    RainfallLabel.MEDIUM: 6.0,
    RainfallLabel.HIGH: 12.0,
}

RAIN_DROP_COUNT = {
    RainfallLabel.NONE: 0,
    RainfallLabel.LOW: 10,
    RainfallLabel.MEDIUM: 30,
    RainfallLabel.HIGH: 60,
}

IRRIGATION_GAIN = 10.0
IRRIGATION_GAIN_DRIP = 14.0
FERTILIZER_GAIN = 12.0
IRRIGATION_OVERUSE_PENALTY = 2.0
RUNOFF_PENALTY = 3.0
HEALTHY_THRESHOLD = 70.0
FAIR_THRESHOLD = 40.0


class InvalidTransition(RuntimeError):
    """Raised when a finished season is asked to take another step."""


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int:
        ...

    def uniform(self, a: float, b: float) -> float:
        ...


@dataclass(frozen=True)
class StepResult:
    state: FarmState
    feedback: str
    accepted: bool = True


@dataclass(frozen=True)
class DayResult:
    state: FarmState
    summary: Optional[SeasonSummary] = None
    rain_drops: int = 0
    accepted: bool = True


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def compute_crop_health(soil_moisture: float, nitrogen: float, pest_pressure: float) -> float:
    return clamp((soil_moisture * 0.4 + nitrogen * 0.4 + (100 - pest_pressure) * 0.2) / 1.5, 0.0, 100.0)


def rain_drop_count(rainfall: RainfallLabel | str) -> int:
    return RAIN_DROP_COUNT[RainfallLabel(rainfall)]


def new_farm_state(
    season_length: int,
    *,
    initial_soil_moisture: float | None = None,
    config: GameConfig | None = None,
) -> FarmState:
    """Starting state for day 1; soil moisture from the preprocessed series when known."""
    start = (config or GameConfig()).start
    # a first-day reading of 0 counts as missing
    soil = clamp(float(initial_soil_moisture), 0.0, 100.0) if initial_soil_moisture else start.soil_moisture
    return FarmState(
        day=1,
        season_length=season_length,
        money=start.money,
        sustainability=start.sustainability,
        crop_health=start.crop_health,
        soil_moisture=soil,
        nitrogen=start.nitrogen,
        pest_pressure=start.pest_pressure,
        market_price=start.market_price,
    )


def season_summary(state: FarmState) -> SeasonSummary:
    return SeasonSummary(
        final_profit=state.money,
        final_sustainability=state.sustainability,
        final_crop_health=state.crop_health,
    )


def apply_action(
    state: FarmState,
    action: Action | str,
    rainfall: RainfallLabel | str,
    *,
    rng: RandomSource,
    config: GameConfig | None = None,
) -> StepResult:
    """Apply one player action for the current day.

    Order: rain moisture delta, action delta, pest growth (driven by the crop
    health before this step), soil/nitrogen clamp, crop health, revenue,
    market drift. All bounded fields are clamped before the state is built.
    """
    if state.is_complete:
        raise InvalidTransition(f"season finished after day {state.season_length}; no more actions")
    config = config or GameConfig()
    economy = config.economy
    action = Action.parse(action)
    rain = RainfallLabel(rainfall)

    soil = state.soil_moisture + RAIN_MOISTURE_DELTA[rain]
    nitrogen = state.nitrogen
    pests = state.pest_pressure
    money = state.money
    sustainability = state.sustainability
    lines = [f"Rain: {rain.display}"]

    if action is Action.IRRIGATE:
        soil += IRRIGATION_GAIN_DRIP if state.drip_installed else IRRIGATION_GAIN
        money -= economy.irrigation_cost
        if rain in (RainfallLabel.MEDIUM, RainfallLabel.HIGH):
            sustainability -= IRRIGATION_OVERUSE_PENALTY
        lines.append("You irrigated, soil moisture increased.")
    elif action is Action.FERTILIZE:
        nitrogen += FERTILIZER_GAIN
        money -= economy.fertilize_cost
        if rain is RainfallLabel.HIGH:
            sustainability -= RUNOFF_PENALTY
        lines.append("You fertilized, nitrogen increased.")
    elif action is Action.SCOUT:
        reduction = rng.randint(5, 15)
        pests = clamp(pests - reduction, 0.0, 100.0)
        money -= economy.scout_cost
        lines.append(f"You scouted and reduced pests by {reduction}.")
    else:
        lines.append("You waited.")

    pests = clamp(pests + rng.randint(0, 5) + (100 - state.crop_health) / 20, 0.0, 100.0)
    soil = clamp(soil, 0.0, 100.0)
    nitrogen = clamp(nitrogen, 0.0, 100.0)
    crop_health = compute_crop_health(soil, nitrogen, pests)

    if crop_health > HEALTHY_THRESHOLD:
        money += economy.revenue_healthy * state.market_price
    elif crop_health > FAIR_THRESHOLD:
        money += economy.revenue_fair * state.market_price

    market = config.market
    price = clamp(state.market_price + rng.uniform(-market.drift, market.drift), market.price_min, market.price_max)

    new_state = replace(
        state,
        money=money,
        sustainability=clamp(sustainability, 0.0, 100.0),
        crop_health=crop_health,
        soil_moisture=soil,
        nitrogen=nitrogen,
        pest_pressure=pests,
        market_price=price,
        actions_taken_today=state.actions_taken_today + (action,),
    )
    return StepResult(state=new_state, feedback="\n".join(lines))


def advance_day(state: FarmState, next_rainfall: RainfallLabel | str | None = None) -> DayResult:
    """Close the current day; the summary is set once the last day is closed."""
    if state.is_complete:
        raise InvalidTransition("season already complete")
    new_state = replace(state, day=state.day + 1, actions_taken_today=())
    if new_state.is_complete:
        return DayResult(state=new_state, summary=season_summary(new_state), rain_drops=0)
    drops = rain_drop_count(next_rainfall) if next_rainfall is not None else 0
    return DayResult(state=new_state, rain_drops=drops)


def install_drip(state: FarmState, *, config: GameConfig | None = None) -> StepResult:
    """One-time upgrade: irrigation adds more moisture from then on."""
    if state.is_complete:
        raise InvalidTransition("season already complete")
    if state.drip_installed:
        raise InvalidTransition("drip irrigation is already installed")
    cost = (config or GameConfig()).economy.drip_cost
    new_state = replace(state, money=state.money - cost, drip_installed=True)
    return StepResult(state=new_state, feedback=f"Drip irrigation installed for {cost:g}.")


__all__ = [
    "InvalidTransition",
    "RandomSource",
    "StepResult",
    "DayResult",
    "clamp",
    "compute_crop_health",
    "rain_drop_count",
    "new_farm_state",
    "season_summary",
    "apply_action",
    "advance_day",
    "install_drip",
    "RAIN_MOISTURE_DELTA",
    "RAIN_DROP_COUNT",
]
