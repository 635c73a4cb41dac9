"""Model package exports."""

from models.event import EnrichedEvent, Event, EventTime
from models.preferences import NotificationPreferences, UserPreferences
from models.suggestion import Suggestion, SuggestionCategory, SuggestionPriority
from models.weather import Coordinates, DailyForecast, HomeLocation, HourlyPoint, WeatherSnapshot

__all__ = [
    "Coordinates",
    "DailyForecast",
    "EnrichedEvent",
    "Event",
    "EventTime",
    "HomeLocation",
    "HourlyPoint",
    "NotificationPreferences",
    "Suggestion",
    "SuggestionCategory",
    "SuggestionPriority",
    "UserPreferences",
    "WeatherSnapshot",
]
