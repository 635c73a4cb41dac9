"""Calendar event models and their weather-enriched view."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple

from models.suggestion import Suggestion
from models.weather import Coordinates, HourlyPoint, WeatherSnapshot


@dataclass(frozen=True)
class EventTime:
    """Either a timed instant or an all-day date, never both."""

    date_time: Optional[datetime] = None
    date: Optional[date] = None

    def __post_init__(self) -> None:
        if (self.date_time is None) == (self.date is None):
            raise ValueError("EventTime requires exactly one of date_time or date")

    @property
    def is_all_day(self) -> bool:
        return self.date_time is None

    def sort_key(self) -> datetime:
        """UTC instant used for ordering; naive values are read as UTC."""

        if self.date_time is None:
            return datetime.combine(self.date, time.min, tzinfo=timezone.utc)
        if self.date_time.tzinfo is None:
            return self.date_time.replace(tzinfo=timezone.utc)
        return self.date_time.astimezone(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Normalized calendar entry."""

    id: str
    title: str
    start: EventTime
    end: Optional[EventTime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    calendar_name: Optional[str] = None


@dataclass(frozen=True)
class EnrichedEvent:
    """An event plus the weather and suggestions attached to it."""

    event: Event
    weather: Optional[WeatherSnapshot] = None
    current_weather: Optional[WeatherSnapshot] = None
    hourly_forecast: Tuple[HourlyPoint, ...] = ()
    suggestions: Tuple[Suggestion, ...] = ()
    coordinates: Optional[Coordinates] = None

    @property
    def id(self) -> str:
        return self.event.id

    @property
    def title(self) -> str:
        return self.event.title

    @property
    def location(self) -> Optional[str]:
        return self.event.location

    @property
    def start(self) -> EventTime:
        return self.event.start

    @property
    def end(self) -> Optional[EventTime]:
        return self.event.end

    @property
    def weather_available(self) -> bool:
        return self.weather is not None


__all__ = ["EventTime", "Event", "EnrichedEvent"]
