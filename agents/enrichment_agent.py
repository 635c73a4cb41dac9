"""Attach weather and suggestions to calendar events."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from concierge_app.config import DEFAULT_TIMEZONE
from concierge_app.logging_config import get_logger, log_event, operation_context
from logic import suggestion_engine
from models.event import EnrichedEvent, Event, EventTime
from models.preferences import UserPreferences
from models.weather import Coordinates
from tools.forecast_provider import ForecastProvider
from tools.geocoding import Geocoder
from tools.observability import instrument_call

LOGGER = get_logger(__name__)

ALL_DAY_START = time(12, 0)
ALL_DAY_END = time(17, 0)
DEFAULT_DURATION = timedelta(hours=1)
HOURLY_LEAD = timedelta(hours=2)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventEnrichmentAgent:
    """Runs one independent weather pipeline per event.

    Each pipeline resolves coordinates (event location, then home), fetches
    current weather, event-time weather and the hourly series concurrently,
    and turns them into suggestions. Failures stay inside the event that hit
    them; the batch always returns one result per input, in input order.
    """

    def __init__(
        self,
        forecast: ForecastProvider,
        geocoder: Geocoder,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.forecast = forecast
        self.geocoder = geocoder
        self.tz = ZoneInfo(timezone)
        self.clock = clock or _utc_now
        self._generation = 0
        self._published_key: Optional[Tuple[Any, ...]] = None
        self._published: Optional[List[EnrichedEvent]] = None

    def _now(self) -> datetime:
        now = self.clock()
        return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)

    def _resolve_time(self, value: EventTime, all_day_time: time) -> datetime:
        if value.date_time is not None:
            moment = value.date_time
            return moment if moment.tzinfo is not None else moment.replace(tzinfo=self.tz)
        return datetime.combine(value.date, all_day_time, tzinfo=self.tz)

    def event_window(self, event: Event) -> Tuple[datetime, datetime]:
        """Concrete start/end instants; all-day entries span noon to 5 PM."""

        start = self._resolve_time(event.start, ALL_DAY_START)
        if event.end is None:
            return start, start + DEFAULT_DURATION
        return start, self._resolve_time(event.end, ALL_DAY_END)

    async def _fetch(self, call_name: str, func: Callable[..., Any], default: Any, *args: Any) -> Any:
        try:
            result = await asyncio.to_thread(instrument_call(call_name)(func), *args)
        except Exception as exc:  # noqa: BLE001
            log_event(
                LOGGER,
                logging.WARNING,
                "enrichment_fetch_failed",
                call=call_name,
                error_type=type(exc).__name__,
            )
            return default
        return default if result is None else result

    async def _resolve_coordinates(self, event: Event, home: Coordinates | None) -> Coordinates | None:
        if event.location:
            coordinates = await self._fetch("geocoder.resolve", self.geocoder.resolve, None, event.location)
            if coordinates is not None:
                return coordinates
        return home

    async def enrich_event(
        self, event: Event, preferences: UserPreferences, home: Coordinates | None = None
    ) -> EnrichedEvent:
        coordinates: Coordinates | None = None
        try:
            coordinates = await self._resolve_coordinates(event, home)
            if coordinates is None:
                log_event(LOGGER, logging.INFO, "enrichment_no_coordinates", event_id=event.id)
                return EnrichedEvent(event=event)

            start, end = self.event_window(event)
            now = self._now()
            hourly_start = max(start - HOURLY_LEAD, now)
            lat, lon = coordinates.latitude, coordinates.longitude

            current, weather, hourly = await asyncio.gather(
                self._fetch("forecast.current", self.forecast.get_current, None, lat, lon),
                self._fetch("forecast.snapshot_at", self.forecast.get_snapshot_at, None, lat, lon, start),
                self._fetch(
                    "forecast.hourly_series", self.forecast.get_hourly_series, [], lat, lon, hourly_start, end
                ),
            )

            suggestions = []
            if weather is not None and hourly:
                suggestions = suggestion_engine.generate(
                    weather, hourly, start, end, event.title, preferences, now=now
                )
            elif weather is not None:
                suggestions = suggestion_engine.generate_basic(weather, preferences)

            log_event(
                LOGGER,
                logging.INFO,
                "event_enriched",
                event_id=event.id,
                weather_available=weather is not None,
                hourly_points=len(hourly),
                suggestion_count=len(suggestions),
            )
            return EnrichedEvent(
                event=event,
                weather=weather,
                current_weather=current,
                hourly_forecast=tuple(hourly),
                suggestions=tuple(suggestions),
                coordinates=coordinates,
            )
        except Exception:  # noqa: BLE001
            log_event(LOGGER, logging.ERROR, "event_enrichment_failed", event_id=event.id, exc_info=True)
            return EnrichedEvent(event=event, coordinates=coordinates)

    async def enrich_events(
        self, events: Sequence[Event], preferences: UserPreferences, home: Coordinates | None = None
    ) -> List[EnrichedEvent]:
        with operation_context("enrichment_run", event_count=len(events)) as correlation_id:
            log_event(
                LOGGER,
                logging.INFO,
                "enrichment_run_started",
                correlation_id=correlation_id,
                event_count=len(events),
            )
            results = await asyncio.gather(*(self.enrich_event(event, preferences, home) for event in events))
            log_event(
                LOGGER,
                logging.INFO,
                "enrichment_run_completed",
                correlation_id=correlation_id,
                with_weather=sum(1 for result in results if result.weather_available),
            )
            return list(results)

    async def refresh(
        self, events: Sequence[Event], preferences: UserPreferences, home: Coordinates | None = None
    ) -> List[EnrichedEvent] | None:
        """Re-enrich when the events, preferences or home changed; ``None`` if this run was superseded."""

        key = (tuple(event.id for event in events), preferences, home)
        if self._published is not None and key == self._published_key:
            return list(self._published)

        self._generation += 1
        generation = self._generation
        results = await self.enrich_events(events, preferences, home)
        if generation != self._generation:
            log_event(LOGGER, logging.INFO, "enrichment_run_superseded", generation=generation)
            return None

        self._published_key = key
        self._published = results
        return list(results)


__all__ = ["EventEnrichmentAgent"]
