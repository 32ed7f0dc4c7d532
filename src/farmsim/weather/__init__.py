"""Weather provider interfaces and implementations."""

from .base import UpstreamDataUnavailable, WeatherProvider
from .fallback import FallbackWeatherProvider
from .mock import MockWeatherProvider
from .nasa_power import NasaPowerWeatherProvider

__all__ = [
    "WeatherProvider",
    "UpstreamDataUnavailable",
    "NasaPowerWeatherProvider",
    "MockWeatherProvider",
    "FallbackWeatherProvider",
]
