"""Normalized weather observations and location models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class HomeLocation:
    """Home address chosen during onboarding."""

    address: str
    city: str
    state: str
    coordinates: Coordinates


@dataclass(frozen=True)
class WeatherSnapshot:
    """One weather observation at a point in time.

    Temperatures are in Fahrenheit, wind in mph and visibility in miles. Every
    optional metric uses ``None`` for "not measured"; rule code must never read
    a missing metric as zero.
    """

    temperature: float
    condition: str
    precipitation_chance: int
    wind_speed: Optional[float] = None
    humidity: Optional[int] = None
    uv_index: Optional[float] = None
    feels_like: Optional[float] = None
    air_quality_index: Optional[int] = None
    visibility: Optional[float] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None

    def __post_init__(self) -> None:
        if self.precipitation_chance is None:
            raise ValueError("precipitation_chance is required")
        if not 0 <= self.precipitation_chance <= 100:
            raise ValueError(
                f"precipitation_chance must be within [0, 100], got {self.precipitation_chance}"
            )


@dataclass(frozen=True, kw_only=True)
class HourlyPoint(WeatherSnapshot):
    """A snapshot tagged with the hour it describes."""

    time: datetime


@dataclass(frozen=True)
class DailyForecast:
    date: date
    high: float
    low: float
    condition: str
    precipitation_chance: int
    uv_index: Optional[float] = None
    wind_speed: Optional[float] = None
    humidity: Optional[int] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None


__all__ = ["Coordinates", "HomeLocation", "WeatherSnapshot", "HourlyPoint", "DailyForecast"]
