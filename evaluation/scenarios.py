"""Evaluation scenarios exercising the suggestion engine end to end."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from models.event import Event, EventTime
from models.preferences import UserPreferences
from models.weather import Coordinates, HourlyPoint, WeatherSnapshot

EVALUATION_NOW = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)
EVENT_START = datetime(2025, 1, 15, 15, 0, tzinfo=timezone.utc)
EVENT_END = EVENT_START + timedelta(hours=1)


@dataclass
class EvaluationScenario:
    name: str
    description: str
    snapshot: WeatherSnapshot
    hourly: List[HourlyPoint]
    event: Event
    preferences: UserPreferences
    expectations: Dict[str, object]
    home: Coordinates | None = None
    known_locations: Dict[str, Coordinates] = field(default_factory=dict)


def _steady_hours(snapshot: WeatherSnapshot, first: datetime, count: int) -> List[HourlyPoint]:
    """Hourly series that repeats the snapshot's values."""

    return [HourlyPoint(time=first + timedelta(hours=offset), **asdict(snapshot)) for offset in range(count)]


def _event(title: str, location: str | None = None, event_id: str | None = None) -> Event:
    return Event(
        id=event_id or title.lower().replace(" ", "-"),
        title=title,
        start=EventTime(date_time=EVENT_START),
        end=EventTime(date_time=EVENT_END),
        location=location,
    )


HOME = Coordinates(latitude=40.7128, longitude=-74.0060)
PARK = Coordinates(latitude=40.7829, longitude=-73.9654)

_COLD_WINDY = WeatherSnapshot(temperature=20, condition="Clear", precipitation_chance=0, wind_speed=30)
_HOT_WET = WeatherSnapshot(temperature=90, condition="Rainy", precipitation_chance=75, humidity=80)
_RAW_DAY = WeatherSnapshot(
    temperature=28, condition="Partly Cloudy", precipitation_chance=50, wind_speed=20, uv_index=7
)
_SPARSE = WeatherSnapshot(temperature=45, condition="Cloudy", precipitation_chance=0)
_DRIZZLE = WeatherSnapshot(temperature=55, condition="Drizzle", precipitation_chance=30, wind_speed=5)


SCENARIOS: List[EvaluationScenario] = [
    EvaluationScenario(
        name="cold_windy_clear",
        description="Clear, 20°F and 30 mph wind: wind-chill warning, no rain advice.",
        snapshot=_COLD_WINDY,
        hourly=_steady_hours(_COLD_WINDY, EVENT_START - timedelta(hours=2), 4),
        event=_event("Team standup"),
        preferences=UserPreferences.all_enabled(),
        home=HOME,
        expectations={
            "requires_high_any": ["warmth", "wind"],
            "forbids_categories": ["precipitation"],
            "max_suggestions": 4,
        },
    ),
    EvaluationScenario(
        name="hot_humid_rain",
        description="90°F, 80% humidity, 75% rain: full rain gear and a heat-index warning.",
        snapshot=_HOT_WET,
        hourly=_steady_hours(_HOT_WET, EVENT_START - timedelta(hours=2), 4),
        event=_event("Lunch with Sam"),
        preferences=UserPreferences.all_enabled(),
        home=HOME,
        expectations={
            "requires_high_all": ["precipitation", "heat"],
            "expects_text": ["very likely", "humidity"],
            "max_suggestions": 4,
        },
    ),
    EvaluationScenario(
        name="no_hourly_series",
        description="Valid snapshot but no hourly data: basic rules, at most three tips.",
        snapshot=_RAW_DAY,
        hourly=[],
        event=_event("Dentist"),
        preferences=UserPreferences.all_enabled(),
        home=HOME,
        expectations={"matches_basic": True, "max_suggestions": 3, "min_suggestions": 1},
    ),
    EvaluationScenario(
        name="no_location_anywhere",
        description="No event location and no home location: empty but well-formed result.",
        snapshot=_RAW_DAY,
        hourly=_steady_hours(_RAW_DAY, EVENT_START - timedelta(hours=2), 4),
        event=_event("Mystery meeting"),
        preferences=UserPreferences.all_enabled(),
        home=None,
        expectations={"expects_no_weather": True},
    ),
    EvaluationScenario(
        name="wind_toggle_off",
        description="Same cold, windy day with the wind feature disabled.",
        snapshot=_COLD_WINDY,
        hourly=_steady_hours(_COLD_WINDY, EVENT_START - timedelta(hours=2), 4),
        event=_event("Team standup"),
        preferences=UserPreferences(wind_speed=False),
        home=HOME,
        expectations={"forbids_categories": ["wind"], "forbids_text": ["wind chill", "mph"]},
    ),
    EvaluationScenario(
        name="missing_metrics",
        description="Cloudy 45°F with no wind or UV reading: no wind or UV rules fire.",
        snapshot=_SPARSE,
        hourly=_steady_hours(_SPARSE, EVENT_START - timedelta(hours=2), 4),
        event=_event("Book club"),
        preferences=UserPreferences.all_enabled(),
        home=HOME,
        expectations={"forbids_categories": ["wind", "sun"], "min_suggestions": 1},
    ),
    EvaluationScenario(
        name="geocoded_event_location",
        description="Event location geocodes, so its coordinates win over home.",
        snapshot=_DRIZZLE,
        hourly=_steady_hours(_DRIZZLE, EVENT_START - timedelta(hours=2), 4),
        event=_event("Picnic", location="Central Park, New York"),
        preferences=UserPreferences.all_enabled(),
        home=HOME,
        known_locations={"Central Park, New York": PARK},
        expectations={"expects_coordinates": PARK, "expects_text": ["umbrella"]},
    ),
]


__all__ = ["EvaluationScenario", "SCENARIOS", "EVALUATION_NOW", "EVENT_START", "EVENT_END"]
