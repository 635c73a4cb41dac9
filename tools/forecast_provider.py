"""Forecast provider abstractions and the Open-Meteo implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, List, Optional, Sequence

import requests
from pydantic import BaseModel, ValidationError

from concierge_app.config import DEFAULT_FORECAST_URL
from logic.conditions import condition_from_wmo_code
from models.weather import DailyForecast, HourlyPoint, WeatherSnapshot

LOGGER = logging.getLogger(__name__)

METRES_PER_MILE = 1609.344
HOURLY_FIELDS = (
    "temperature_2m",
    "precipitation_probability",
    "weather_code",
    "uv_index",
    "wind_speed_10m",
    "relative_humidity_2m",
    "apparent_temperature",
    "visibility",
)
DAILY_FIELDS = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "weather_code",
    "uv_index_max",
    "wind_speed_10m_max",
    "relative_humidity_2m_max",
    "sunrise",
    "sunset",
)


class _HourlyBlock(BaseModel):
    time: List[str]
    temperature_2m: List[Optional[float]] = []
    precipitation_probability: List[Optional[float]] = []
    weather_code: List[Optional[int]] = []
    uv_index: List[Optional[float]] = []
    wind_speed_10m: List[Optional[float]] = []
    relative_humidity_2m: List[Optional[float]] = []
    apparent_temperature: List[Optional[float]] = []
    visibility: List[Optional[float]] = []


class _DailyBlock(BaseModel):
    time: List[str]
    temperature_2m_max: List[Optional[float]] = []
    temperature_2m_min: List[Optional[float]] = []
    precipitation_probability_max: List[Optional[float]] = []
    weather_code: List[Optional[int]] = []
    uv_index_max: List[Optional[float]] = []
    wind_speed_10m_max: List[Optional[float]] = []
    relative_humidity_2m_max: List[Optional[float]] = []
    sunrise: List[Optional[str]] = []
    sunset: List[Optional[str]] = []


class _ForecastResponse(BaseModel):
    utc_offset_seconds: int = 0
    hourly: Optional[_HourlyBlock] = None
    daily: Optional[_DailyBlock] = None


def _at(values: Sequence[Any], index: int) -> Any:
    return values[index] if index < len(values) else None


def _rounded(value: Optional[float]) -> Optional[float]:
    return float(round(value)) if value is not None else None


def _as_int(value: Optional[float]) -> Optional[int]:
    return int(round(value)) if value is not None else None


def _chance(value: Optional[float]) -> int:
    if value is None:
        return 0
    return max(0, min(100, int(round(value))))


def _miles(metres: Optional[float]) -> Optional[float]:
    if metres is None:
        return None
    return round(metres / METRES_PER_MILE, 1)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_clock(iso_local: Optional[str]) -> Optional[str]:
    """Render an ISO local timestamp as a 12-hour clock such as "6:30 AM"."""

    if not iso_local:
        return None
    try:
        moment = datetime.fromisoformat(iso_local)
    except ValueError:
        return None
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{moment.hour % 12 or 12}:{moment.minute:02d} {suffix}"


class ForecastProvider(ABC):
    """Abstract forecast provider.

    Implementations return ``None`` or an empty list when data is unavailable
    and never raise for upstream failures.
    """

    @abstractmethod
    def get_snapshot_at(self, latitude: float, longitude: float, when: datetime) -> WeatherSnapshot | None:
        """Return the forecast for the first hour at or after ``when``."""

    @abstractmethod
    def get_hourly_series(
        self, latitude: float, longitude: float, start: datetime, end: datetime
    ) -> List[HourlyPoint]:
        """Return hourly points whose time lies within ``[start, end]``."""

    @abstractmethod
    def get_daily_forecast(self, latitude: float, longitude: float, days: int = 7) -> List[DailyForecast]:
        """Return up to ``days`` daily summaries starting today."""

    def get_current(self, latitude: float, longitude: float) -> WeatherSnapshot | None:
        return self.get_snapshot_at(latitude, longitude, datetime.now(timezone.utc))


class OpenMeteoForecastProvider(ForecastProvider):
    """Open-Meteo client with schema validation and graceful fallbacks."""

    def __init__(self, base_url: str = DEFAULT_FORECAST_URL, timeout_seconds: float = 5.0) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    def _fetch(self, latitude: float, longitude: float, **params: Any) -> _ForecastResponse | None:
        query = {
            "latitude": latitude,
            "longitude": longitude,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "timezone": "auto",
            **params,
        }
        try:
            response = requests.get(self.base_url, params=query, timeout=self.timeout_seconds)
            response.raise_for_status()
            return _ForecastResponse.model_validate(response.json())
        except (requests.Timeout, requests.RequestException) as exc:
            LOGGER.error("Forecast API unreachable", exc_info=exc)
        except ValidationError as exc:
            LOGGER.error("Forecast payload schema validation failed", exc_info=exc)
        except ValueError as exc:
            LOGGER.error("Forecast payload was not JSON", exc_info=exc)
        return None

    def _hourly_window(self, latitude: float, longitude: float, start: date, end: date) -> List[HourlyPoint]:
        # Request one extra day either side so local-day boundaries never cut the window.
        parsed = self._fetch(
            latitude,
            longitude,
            hourly=",".join(HOURLY_FIELDS),
            daily="sunrise,sunset",
            start_date=(start - timedelta(days=1)).isoformat(),
            end_date=(end + timedelta(days=1)).isoformat(),
        )
        if parsed is None or parsed.hourly is None:
            return []
        return self._points(parsed)

    def _points(self, parsed: _ForecastResponse) -> List[HourlyPoint]:
        offset = timezone(timedelta(seconds=parsed.utc_offset_seconds))
        sun_times = self._sun_times(parsed.daily)
        block = parsed.hourly
        points: List[HourlyPoint] = []
        for index, stamp in enumerate(block.time):
            temperature = _at(block.temperature_2m, index)
            if temperature is None:
                continue
            moment = self._parse_time(stamp, offset)
            if moment is None:
                continue
            sunrise, sunset = sun_times.get(moment.date(), (None, None))
            points.append(
                HourlyPoint(
                    time=moment,
                    temperature=float(round(temperature)),
                    condition=condition_from_wmo_code(_at(block.weather_code, index)),
                    precipitation_chance=_chance(_at(block.precipitation_probability, index)),
                    wind_speed=_rounded(_at(block.wind_speed_10m, index)),
                    humidity=_as_int(_at(block.relative_humidity_2m, index)),
                    uv_index=_at(block.uv_index, index),
                    feels_like=_rounded(_at(block.apparent_temperature, index)),
                    visibility=_miles(_at(block.visibility, index)),
                    sunrise=sunrise,
                    sunset=sunset,
                )
            )
        return points

    @staticmethod
    def _parse_time(stamp: str, offset: tzinfo) -> datetime | None:
        try:
            return datetime.fromisoformat(stamp).replace(tzinfo=offset)
        except ValueError:
            LOGGER.warning("Skipping unparseable forecast timestamp", extra={"stamp": stamp})
            return None

    @staticmethod
    def _sun_times(daily: Optional[_DailyBlock]) -> dict:
        if daily is None:
            return {}
        result = {}
        for index, day in enumerate(daily.time):
            try:
                key = date.fromisoformat(day)
            except ValueError:
                continue
            result[key] = (format_clock(_at(daily.sunrise, index)), format_clock(_at(daily.sunset, index)))
        return result

    def get_snapshot_at(self, latitude: float, longitude: float, when: datetime) -> WeatherSnapshot | None:
        target = _as_utc(when)
        points = self._hourly_window(latitude, longitude, target.date(), target.date())
        if not points:
            return None
        chosen = next((point for point in points if point.time >= target), points[-1])
        return WeatherSnapshot(
            temperature=chosen.temperature,
            condition=chosen.condition,
            precipitation_chance=chosen.precipitation_chance,
            wind_speed=chosen.wind_speed,
            humidity=chosen.humidity,
            uv_index=chosen.uv_index,
            feels_like=chosen.feels_like,
            visibility=chosen.visibility,
            sunrise=chosen.sunrise,
            sunset=chosen.sunset,
        )

    def get_hourly_series(
        self, latitude: float, longitude: float, start: datetime, end: datetime
    ) -> List[HourlyPoint]:
        window_start = _as_utc(start)
        window_end = _as_utc(end)
        if window_end < window_start:
            return []
        points = self._hourly_window(latitude, longitude, window_start.date(), window_end.date())
        return [point for point in points if window_start <= point.time <= window_end]

    def get_daily_forecast(self, latitude: float, longitude: float, days: int = 7) -> List[DailyForecast]:
        parsed = self._fetch(latitude, longitude, daily=",".join(DAILY_FIELDS), forecast_days=days)
        if parsed is None or parsed.daily is None:
            return []
        block = parsed.daily
        forecasts: List[DailyForecast] = []
        for index, day in enumerate(block.time[:days]):
            high = _at(block.temperature_2m_max, index)
            low = _at(block.temperature_2m_min, index)
            if high is None or low is None:
                continue
            try:
                forecast_date = date.fromisoformat(day)
            except ValueError:
                continue
            forecasts.append(
                DailyForecast(
                    date=forecast_date,
                    high=float(round(high)),
                    low=float(round(low)),
                    condition=condition_from_wmo_code(_at(block.weather_code, index)),
                    precipitation_chance=_chance(_at(block.precipitation_probability_max, index)),
                    uv_index=_at(block.uv_index_max, index),
                    wind_speed=_rounded(_at(block.wind_speed_10m_max, index)),
                    humidity=_as_int(_at(block.relative_humidity_2m_max, index)),
                    sunrise=format_clock(_at(block.sunrise, index)),
                    sunset=format_clock(_at(block.sunset, index)),
                )
            )
        return forecasts


class MockForecastProvider(ForecastProvider):
    """Offline deterministic forecast provider for tests and local runs."""

    def __init__(
        self,
        snapshot: WeatherSnapshot | None = None,
        hourly: Sequence[HourlyPoint] | None = None,
        current: WeatherSnapshot | None = None,
        daily: Sequence[DailyForecast] | None = None,
    ) -> None:
        self.snapshot = snapshot or WeatherSnapshot(
            temperature=62.0,
            condition="Partly Cloudy",
            precipitation_chance=10,
            wind_speed=8.0,
            humidity=55,
            uv_index=4.0,
            feels_like=62.0,
        )
        self.hourly = list(hourly or [])
        self.current = current or self.snapshot
        self.daily = list(daily or [])
        self.calls: List[str] = []

    def get_snapshot_at(self, latitude: float, longitude: float, when: datetime) -> WeatherSnapshot | None:
        self.calls.append("snapshot")
        return self.snapshot

    def get_current(self, latitude: float, longitude: float) -> WeatherSnapshot | None:
        self.calls.append("current")
        return self.current

    def get_hourly_series(
        self, latitude: float, longitude: float, start: datetime, end: datetime
    ) -> List[HourlyPoint]:
        self.calls.append("hourly")
        window_start = _as_utc(start)
        window_end = _as_utc(end)
        return [point for point in self.hourly if window_start <= _as_utc(point.time) <= window_end]

    def get_daily_forecast(self, latitude: float, longitude: float, days: int = 7) -> List[DailyForecast]:
        self.calls.append("daily")
        return self.daily[:days]


__all__ = [
    "ForecastProvider",
    "OpenMeteoForecastProvider",
    "MockForecastProvider",
    "format_clock",
]
