"""Dashboard orchestration over calendar, preferences and enrichment."""

from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta, timezone

import pytest

from agents.enrichment_agent import EventEnrichmentAgent
from agents.orchestrator import CalendarUnavailableError, OrchestratorAgent
from memory.preference_store import OnboardingPreferenceStore
from models.event import Event, EventTime
from models.weather import Coordinates, HomeLocation, WeatherSnapshot
from tools.calendar_provider import CalendarAuthError, CalendarProvider, MockCalendarProvider
from tools.forecast_provider import MockForecastProvider
from tools.geocoding import MockGeocoder

NOW = datetime(2025, 1, 15, 13, 0, tzinfo=timezone.utc)
HOME = HomeLocation(
    address="1 Main St, Springfield, IL",
    city="Springfield",
    state="IL",
    coordinates=Coordinates(latitude=39.7817, longitude=-89.6501),
)


def _events(count: int):
    return [
        Event(
            id=f"evt-{index}",
            title=f"Meeting {index}",
            start=EventTime(date_time=NOW + timedelta(hours=index + 1)),
            end=EventTime(date_time=NOW + timedelta(hours=index + 2)),
        )
        for index in range(count)
    ]


class _RecordingCalendar(CalendarProvider):
    def __init__(self, events=None, error: Exception | None = None) -> None:
        self.events = list(events or [])
        self.error = error
        self.windows = []

    def get_events(self, time_min, time_max):
        self.windows.append((time_min, time_max))
        if self.error is not None:
            raise self.error
        return list(self.events)


@pytest.fixture()
def store(tmp_path) -> OnboardingPreferenceStore:
    store = OnboardingPreferenceStore(tmp_path / "onboarding.json")
    store.set_home_location(HOME)
    return store


def _orchestrator(calendar: CalendarProvider, store: OnboardingPreferenceStore, forecast=None) -> OrchestratorAgent:
    enrichment = EventEnrichmentAgent(
        forecast or MockForecastProvider(), MockGeocoder(), timezone="America/Chicago", clock=lambda: NOW
    )
    return OrchestratorAgent(calendar, enrichment, store, timezone="America/Chicago")


def test_returns_first_three_events_in_start_order(store: OnboardingPreferenceStore) -> None:
    orchestrator = _orchestrator(MockCalendarProvider(list(reversed(_events(5)))), store)

    upcoming = asyncio.run(orchestrator.upcoming_events())

    assert [event.id for event in upcoming] == ["evt-0", "evt-1", "evt-2"]
    assert all(event.coordinates == HOME.coordinates for event in upcoming)
    assert all(event.weather_available for event in upcoming)


def test_events_without_any_location_still_listed(tmp_path) -> None:
    bare_store = OnboardingPreferenceStore(tmp_path / "empty.json")
    forecast = MockForecastProvider()
    orchestrator = _orchestrator(MockCalendarProvider(_events(2)), bare_store, forecast=forecast)

    upcoming = asyncio.run(orchestrator.upcoming_events())

    assert [event.id for event in upcoming] == ["evt-0", "evt-1"]
    assert not any(event.weather_available for event in upcoming)
    assert forecast.calls == []


def test_calendar_failure_surfaces_as_unavailable(store: OnboardingPreferenceStore) -> None:
    calendar = _RecordingCalendar(error=CalendarAuthError("Calendar token expired. Please reconnect your calendar."))
    orchestrator = _orchestrator(calendar, store)

    with pytest.raises(CalendarUnavailableError, match="reconnect"):
        asyncio.run(orchestrator.upcoming_events())


def test_fetch_window_spans_local_today_through_lookahead(store: OnboardingPreferenceStore) -> None:
    calendar = _RecordingCalendar(events=[])
    orchestrator = _orchestrator(calendar, store)

    upcoming = asyncio.run(orchestrator.upcoming_events())

    assert upcoming == []
    time_min, time_max = calendar.windows[0]
    assert time_min.isoformat() == "2025-01-15T00:00:00-06:00"
    assert time_max.date() == (time_min + timedelta(days=16)).date()
    assert time_max.timetz().replace(tzinfo=None) == time.max


def test_preferences_are_read_from_the_store(store: OnboardingPreferenceStore) -> None:
    sunny = WeatherSnapshot(temperature=75, condition="Clear", precipitation_chance=0, uv_index=9)
    calendar = MockCalendarProvider(_events(1))

    before = asyncio.run(_orchestrator(calendar, store, MockForecastProvider(snapshot=sunny)).upcoming_events())
    store.update_weather_features(uv_index=False)
    upcoming = asyncio.run(_orchestrator(calendar, store, MockForecastProvider(snapshot=sunny)).upcoming_events())

    assert any("UV" in suggestion.text for suggestion in before[0].suggestions)
    assert not any("UV" in suggestion.text for suggestion in upcoming[0].suggestions)
