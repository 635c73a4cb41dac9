"""Per-event enrichment pipeline: fan-out, fallbacks and refresh semantics."""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from agents.enrichment_agent import EventEnrichmentAgent
from models.event import Event, EventTime
from models.preferences import UserPreferences
from models.suggestion import SuggestionCategory
from models.weather import Coordinates, HourlyPoint, WeatherSnapshot
from tools.forecast_provider import MockForecastProvider
from tools.geocoding import MockGeocoder

NOW = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)
START = datetime(2025, 1, 15, 15, 0, tzinfo=timezone.utc)
HOME = Coordinates(latitude=40.7128, longitude=-74.0060)
PARK = Coordinates(latitude=40.7829, longitude=-73.9654)
PIER = Coordinates(latitude=40.7033, longitude=-74.0170)
PREFS = UserPreferences.all_enabled()


def _event(event_id: str, location: str | None = None, start: datetime = START) -> Event:
    return Event(
        id=event_id,
        title=f"Event {event_id}",
        start=EventTime(date_time=start),
        end=EventTime(date_time=start + timedelta(hours=1)),
        location=location,
    )


def _agent(forecast=None, geocoder=None, clock_value: datetime = NOW) -> EventEnrichmentAgent:
    return EventEnrichmentAgent(
        forecast or MockForecastProvider(),
        geocoder or MockGeocoder(),
        timezone="UTC",
        clock=lambda: clock_value,
    )


class SlowForecast(MockForecastProvider):
    """Answers for the first coordinate slowly so results finish out of order."""

    def __init__(self, slow_latitude: float) -> None:
        super().__init__()
        self.slow_latitude = slow_latitude

    def get_snapshot_at(self, latitude, longitude, when):
        if latitude == self.slow_latitude:
            time.sleep(0.05)
        return super().get_snapshot_at(latitude, longitude, when)


class BrokenSnapshotForecast(MockForecastProvider):
    def get_snapshot_at(self, latitude, longitude, when):
        raise RuntimeError("upstream timeout")


class RecordingForecast(MockForecastProvider):
    def __init__(self) -> None:
        super().__init__()
        self.hourly_windows = []
        self.snapshot_targets = []

    def get_snapshot_at(self, latitude, longitude, when):
        self.snapshot_targets.append(when)
        return super().get_snapshot_at(latitude, longitude, when)

    def get_hourly_series(self, latitude, longitude, start, end):
        self.hourly_windows.append((start, end))
        return super().get_hourly_series(latitude, longitude, start, end)


def test_results_keep_input_order_even_when_first_finishes_last() -> None:
    geocoder = MockGeocoder(known={"Central Park": PARK, "Pier 17": PIER})
    agent = _agent(forecast=SlowForecast(slow_latitude=PARK.latitude), geocoder=geocoder)
    events = [_event("slow", "Central Park"), _event("fast", "Pier 17"), _event("home")]

    results = asyncio.run(agent.enrich_events(events, PREFS, HOME))

    assert [result.id for result in results] == ["slow", "fast", "home"]
    assert [result.coordinates for result in results] == [PARK, PIER, HOME]


def test_event_location_falls_back_to_home_when_geocoding_misses() -> None:
    geocoder = MockGeocoder()
    agent = _agent(geocoder=geocoder)

    enriched = asyncio.run(agent.enrich_event(_event("a", "Somewhere unknown"), PREFS, HOME))

    assert geocoder.lookups == ["Somewhere unknown"]
    assert enriched.coordinates == HOME
    assert enriched.weather_available


def test_no_location_and_no_home_yields_bare_event_without_fetching() -> None:
    forecast = MockForecastProvider()
    agent = _agent(forecast=forecast)

    enriched = asyncio.run(agent.enrich_event(_event("a"), PREFS, None))

    assert enriched.coordinates is None
    assert enriched.weather is None
    assert enriched.suggestions == ()
    assert forecast.calls == []


def test_failed_snapshot_keeps_coordinates_and_other_results() -> None:
    agent = _agent(forecast=BrokenSnapshotForecast())

    enriched = asyncio.run(agent.enrich_event(_event("a"), PREFS, HOME))

    assert enriched.coordinates == HOME
    assert enriched.weather is None
    assert enriched.current_weather is not None
    assert enriched.suggestions == ()


def test_one_failing_event_does_not_affect_the_batch() -> None:
    class FailsForPark(MockForecastProvider):
        def get_snapshot_at(self, latitude, longitude, when):
            if latitude == PARK.latitude:
                raise RuntimeError("boom")
            return super().get_snapshot_at(latitude, longitude, when)

    geocoder = MockGeocoder(known={"Central Park": PARK})
    agent = _agent(forecast=FailsForPark(), geocoder=geocoder)

    results = asyncio.run(agent.enrich_events([_event("park", "Central Park"), _event("home")], PREFS, HOME))

    assert results[0].weather is None
    assert results[1].weather is not None
    assert results[1].suggestions


def test_hourly_series_starts_two_hours_before_the_event() -> None:
    forecast = RecordingForecast()
    agent = _agent(forecast=forecast)

    asyncio.run(agent.enrich_event(_event("a"), PREFS, HOME))

    assert forecast.snapshot_targets == [START]
    assert forecast.hourly_windows == [(START - timedelta(hours=2), START + timedelta(hours=1))]


def test_hourly_series_never_starts_in_the_past() -> None:
    forecast = RecordingForecast()
    now = START - timedelta(minutes=30)
    agent = _agent(forecast=forecast, clock_value=now)

    asyncio.run(agent.enrich_event(_event("a"), PREFS, HOME))

    assert forecast.hourly_windows[0][0] == now


def test_hourly_series_drives_full_rule_engine() -> None:
    snapshot = WeatherSnapshot(temperature=20, condition="Clear", precipitation_chance=0, wind_speed=30)
    hourly = [
        HourlyPoint(
            time=START + timedelta(hours=offset),
            temperature=20,
            condition="Clear",
            precipitation_chance=0,
            wind_speed=30,
        )
        for offset in range(-2, 2)
    ]
    agent = _agent(forecast=MockForecastProvider(snapshot=snapshot, hourly=hourly))

    enriched = asyncio.run(agent.enrich_event(_event("a"), PREFS, HOME))

    assert len(enriched.hourly_forecast) == 4
    assert enriched.suggestions[0].text == "Severe wind chill - feels like 1°F (limit time outside)"


def test_all_day_events_span_noon_to_five() -> None:
    agent = _agent()
    event = Event(
        id="holiday",
        title="Offsite",
        start=EventTime(date=date(2025, 1, 15)),
        end=EventTime(date=date(2025, 1, 16)),
    )

    start, end = agent.event_window(event)

    assert start == datetime(2025, 1, 15, 12, 0, tzinfo=start.tzinfo)
    assert end == datetime(2025, 1, 16, 17, 0, tzinfo=end.tzinfo)
    assert start.utcoffset() == timedelta(0)


def test_missing_end_defaults_to_one_hour() -> None:
    agent = _agent()
    event = Event(id="a", title="Call", start=EventTime(date_time=START))

    assert agent.event_window(event) == (START, START + timedelta(hours=1))


def test_naive_times_use_configured_timezone() -> None:
    agent = EventEnrichmentAgent(
        MockForecastProvider(), MockGeocoder(), timezone="America/New_York", clock=lambda: NOW
    )
    event = Event(id="a", title="Call", start=EventTime(date_time=datetime(2025, 1, 15, 10, 0)))

    start, _ = agent.event_window(event)

    assert start.astimezone(timezone.utc) == datetime(2025, 1, 15, 15, 0, tzinfo=timezone.utc)


def test_refresh_reuses_published_results_for_unchanged_events() -> None:
    forecast = MockForecastProvider()
    agent = _agent(forecast=forecast)
    events = [_event("a"), _event("b")]

    first = asyncio.run(agent.refresh(events, PREFS, HOME))
    calls_after_first = len(forecast.calls)
    second = asyncio.run(agent.refresh(events, PREFS, HOME))

    assert first == second
    assert len(forecast.calls) == calls_after_first


def test_refresh_reenriches_when_event_list_changes() -> None:
    forecast = MockForecastProvider()
    agent = _agent(forecast=forecast)

    asyncio.run(agent.refresh([_event("a")], PREFS, HOME))
    calls_after_first = len(forecast.calls)
    results = asyncio.run(agent.refresh([_event("a"), _event("b")], PREFS, HOME))

    assert [result.id for result in results] == ["a", "b"]
    assert len(forecast.calls) > calls_after_first


def test_refresh_reenriches_when_preferences_change() -> None:
    windy = WeatherSnapshot(temperature=60, condition="Cloudy", precipitation_chance=0, wind_speed=50)
    forecast = MockForecastProvider(snapshot=windy)
    agent = _agent(forecast=forecast)
    events = [_event("a")]

    [first] = asyncio.run(agent.refresh(events, PREFS, HOME))
    calls_after_first = len(forecast.calls)
    [second] = asyncio.run(agent.refresh(events, replace(PREFS, wind_speed=False), HOME))

    assert any(s.category is SuggestionCategory.WIND for s in first.suggestions)
    assert not any(s.category is SuggestionCategory.WIND for s in second.suggestions)
    assert len(forecast.calls) > calls_after_first


def test_refresh_reenriches_when_home_changes() -> None:
    forecast = MockForecastProvider()
    agent = _agent(forecast=forecast)
    events = [_event("a")]

    asyncio.run(agent.refresh(events, PREFS, HOME))
    calls_after_first = len(forecast.calls)
    [result] = asyncio.run(agent.refresh(events, PREFS, PIER))

    assert result.coordinates == PIER
    assert len(forecast.calls) > calls_after_first


def test_superseded_refresh_returns_none() -> None:
    agent = _agent(forecast=SlowForecast(slow_latitude=HOME.latitude))

    async def run_both():
        return await asyncio.gather(
            agent.refresh([_event("old")], PREFS, HOME),
            agent.refresh([_event("new")], PREFS, HOME),
        )

    stale, fresh = asyncio.run(run_both())

    assert stale is None
    assert [result.id for result in fresh] == ["new"]
