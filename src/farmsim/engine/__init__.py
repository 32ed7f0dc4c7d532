"""Engine package: weather preprocessing and the daily farm simulation."""

from .preprocess import PreprocessedWeather, classify
from .season import Season
from .simulate import InvalidTransition, advance_day, apply_action, install_drip, new_farm_state

__all__ = [
    "PreprocessedWeather",
    "classify",
    "Season",
    "InvalidTransition",
    "apply_action",
    "advance_day",
    "install_drip",
    "new_farm_state",
]
