"""Weather Concierge bootstrap."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List

from concierge_app.config import ConciergeConfig
from concierge_app.logging_config import configure_logging, get_logger, log_event, operation_context
from agents.enrichment_agent import EventEnrichmentAgent
from agents.orchestrator import CalendarUnavailableError, OrchestratorAgent
from logic.suggestion_engine import suggestion_reason
from memory.preference_store import OnboardingPreferenceStore, export_summary
from models.event import EnrichedEvent
from models.weather import DailyForecast, HomeLocation
from tools.calendar_provider import CalendarProvider, GoogleCalendarProvider
from tools.forecast_provider import ForecastProvider, OpenMeteoForecastProvider
from tools.geocoding import Geocoder, PhotonGeocoder


LOGGER = get_logger(__name__)


class WeatherConciergeApp:
    """Wires together providers, the preference store and the agents."""

    def __init__(
        self,
        config: ConciergeConfig | None = None,
        *,
        forecast: ForecastProvider | None = None,
        geocoder: Geocoder | None = None,
        calendar: CalendarProvider | None = None,
        store: OnboardingPreferenceStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or ConciergeConfig.from_env()
        configure_logging(self.config.log_level)

        self.store = store or OnboardingPreferenceStore(self.config.preferences_path)
        self.forecast = forecast or OpenMeteoForecastProvider(
            base_url=self.config.forecast_base_url,
            timeout_seconds=self.config.request_timeout_seconds,
        )
        self.geocoder = geocoder or PhotonGeocoder(
            base_url=self.config.geocoding_base_url,
            timeout_seconds=self.config.request_timeout_seconds,
        )
        self.calendar = calendar or GoogleCalendarProvider(
            access_token=self.config.calendar_access_token or self.store.calendar_token(),
            credentials_path=self.config.google_credentials_path,
            base_url=self.config.calendar_base_url,
            timeout_seconds=self.config.request_timeout_seconds,
        )
        self.enrichment = EventEnrichmentAgent(
            self.forecast,
            self.geocoder,
            timezone=self.config.timezone,
            clock=clock,
        )
        self.orchestrator = OrchestratorAgent(
            self.calendar,
            self.enrichment,
            self.store,
            lookahead_days=self.config.lookahead_days,
            max_events=self.config.max_dashboard_events,
            timezone=self.config.timezone,
        )

    async def upcoming_events(self) -> List[EnrichedEvent] | None:
        return await self.orchestrator.upcoming_events()

    def dashboard(self) -> Dict[str, Any]:
        """Run one dashboard load and return a display-ready payload."""

        with operation_context("app:dashboard") as correlation_id:
            log_event(LOGGER, logging.INFO, "app_call_started", method="dashboard", correlation_id=correlation_id)
            try:
                events = asyncio.run(self.upcoming_events())
            except CalendarUnavailableError as exc:
                return {"status": "error", "message": f"Couldn't load events: {exc}", "events": []}

            if events is None:
                return {"status": "superseded", "events": []}

            payload = {"status": "ok", "events": [self.present(event) for event in events]}
            if not events:
                payload["message"] = "No upcoming events"
            log_event(
                LOGGER,
                logging.INFO,
                "app_call_completed",
                method="dashboard",
                correlation_id=correlation_id,
                event_count=len(events),
            )
            return payload

    @staticmethod
    def present(enriched: EnrichedEvent) -> Dict[str, Any]:
        """Flatten an enriched event into plain data with a reason per suggestion."""

        weather = enriched.weather
        suggestions = []
        for suggestion in enriched.suggestions:
            suggestions.append(
                {
                    "text": suggestion.text,
                    "icon": suggestion.icon,
                    "priority": suggestion.priority.value,
                    "category": suggestion.category.value,
                    "reason": suggestion_reason(suggestion, weather) if weather else "",
                }
            )
        start = enriched.start
        return {
            "id": enriched.id,
            "title": enriched.title,
            "location": enriched.location,
            "start": (start.date_time or start.date).isoformat(),
            "weather_available": enriched.weather_available,
            "temperature": weather.temperature if weather else None,
            "condition": weather.condition if weather else None,
            "precipitation_chance": weather.precipitation_chance if weather else None,
            "hourly_points": len(enriched.hourly_forecast),
            "suggestions": suggestions,
        }

    def search_home(self, query: str, limit: int = 5) -> List[HomeLocation]:
        return self.geocoder.search(query, limit=limit)

    def set_home(self, location: HomeLocation) -> Dict[str, Any]:
        data = self.store.set_home_location(location)
        log_event(LOGGER, logging.INFO, "home_location_saved", onboarding=export_summary(data))
        return export_summary(data)

    def home_daily_forecast(self, days: int = 7) -> List[DailyForecast]:
        coordinates = self.store.home_coordinates()
        if coordinates is None:
            return []
        return self.forecast.get_daily_forecast(coordinates.latitude, coordinates.longitude, days)


__all__ = ["WeatherConciergeApp"]
