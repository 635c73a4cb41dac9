"""Dashboard orchestration: calendar -> enrichment -> next events."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Callable, List, Tuple
from zoneinfo import ZoneInfo

from concierge_app.config import DEFAULT_TIMEZONE
from concierge_app.logging_config import get_logger, log_event, operation_context
from agents.enrichment_agent import EventEnrichmentAgent
from memory.preference_store import OnboardingPreferenceStore
from models.event import EnrichedEvent
from tools.calendar_provider import CalendarProvider
from tools.observability import instrument_call

LOGGER = get_logger(__name__)


class CalendarUnavailableError(RuntimeError):
    """The upcoming-event list itself could not be fetched."""


class OrchestratorAgent:
    """Builds the "your next events" view.

    Reads the preference snapshot once per run, fetches events from the start
    of today through ``lookahead_days`` ahead, enriches them and returns the
    first ``max_events``.
    """

    def __init__(
        self,
        calendar: CalendarProvider,
        enrichment: EventEnrichmentAgent,
        store: OnboardingPreferenceStore,
        *,
        lookahead_days: int = 16,
        max_events: int = 3,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.calendar = calendar
        self.enrichment = enrichment
        self.store = store
        self.lookahead_days = lookahead_days
        self.max_events = max_events
        self.tz = ZoneInfo(timezone)
        self.clock = clock or enrichment.clock

    def fetch_window(self) -> Tuple[datetime, datetime]:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        today = now.astimezone(self.tz).date()
        start = datetime.combine(today, time.min, tzinfo=self.tz)
        end = datetime.combine(today + timedelta(days=self.lookahead_days), time.max, tzinfo=self.tz)
        return start, end

    async def upcoming_events(self) -> List[EnrichedEvent] | None:
        """Next enriched events; ``None`` when a newer refresh superseded this run."""

        with operation_context("agent:orchestrator.upcoming_events") as correlation_id:
            preferences = self.store.preferences()
            home = self.store.home_coordinates()
            time_min, time_max = self.fetch_window()

            fetch = instrument_call("calendar.get_events")(self.calendar.get_events)
            try:
                events = await asyncio.to_thread(fetch, time_min, time_max)
            except Exception as exc:
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "calendar_unavailable",
                    correlation_id=correlation_id,
                    error_type=type(exc).__name__,
                )
                raise CalendarUnavailableError(str(exc) or "Failed to load calendar events") from exc

            enriched = await self.enrichment.refresh(events, preferences, home)
            if enriched is None:
                return None

            upcoming = enriched[: self.max_events]
            log_event(
                LOGGER,
                logging.INFO,
                "agent_call_completed",
                agent="orchestrator",
                method="upcoming_events",
                correlation_id=correlation_id,
                fetched=len(events),
                returned=len(upcoming),
                has_home=home is not None,
            )
            return upcoming


__all__ = ["CalendarUnavailableError", "OrchestratorAgent"]
