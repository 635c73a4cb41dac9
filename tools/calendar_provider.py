"""Calendar provider abstractions and the Google Calendar implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Sequence
from urllib.parse import quote

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
import requests
from pydantic import BaseModel, ValidationError

from concierge_app.config import DEFAULT_CALENDAR_URL
from models.event import Event, EventTime

LOGGER = logging.getLogger(__name__)
SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
UNTITLED_EVENT = "Untitled Event"

HOLIDAY_KEYWORDS = (
    "holiday",
    "no class",
    "college closed",
    "university closed",
    "school closed",
    "break",
    "recess",
    "day off",
    "closed",
    "martin luther king",
    "mlk",
    "presidents day",
    "memorial day",
    "independence day",
    "labor day",
    "thanksgiving",
    "christmas",
    "new year",
    "veterans day",
    "columbus day",
    "easter",
    "good friday",
)


class CalendarAuthError(RuntimeError):
    """Raised when no usable calendar credentials are available."""


class _CalendarListEntry(BaseModel):
    id: str
    summary: Optional[str] = None


class _CalendarList(BaseModel):
    items: List[_CalendarListEntry] = []


class _EventTimePayload(BaseModel):
    dateTime: Optional[str] = None
    date: Optional[str] = None


class _EventPayload(BaseModel):
    id: str
    summary: Optional[str] = None
    start: _EventTimePayload = _EventTimePayload()
    end: Optional[_EventTimePayload] = None
    location: Optional[str] = None
    description: Optional[str] = None


class _EventList(BaseModel):
    items: List[_EventPayload] = []


def _parse_event_time(payload: _EventTimePayload | None) -> EventTime | None:
    if payload is None:
        return None
    if payload.dateTime:
        return EventTime(date_time=datetime.fromisoformat(payload.dateTime.replace("Z", "+00:00")))
    if payload.date:
        return EventTime(date=date.fromisoformat(payload.date))
    return None


def should_filter_event(event: Event) -> bool:
    """True for all-day entries and anything that looks like a holiday."""

    if event.start.is_all_day:
        return True
    if "holiday" in (event.calendar_name or "").lower():
        return True
    title = (event.title or "").lower()
    return any(keyword in title for keyword in HOLIDAY_KEYWORDS)


def merge_calendar_events(batches: Iterable[Sequence[Event]]) -> List[Event]:
    """Merge per-calendar batches: filter, drop title+start duplicates, sort by start."""

    unique = {}
    for batch in batches:
        for event in batch:
            if should_filter_event(event):
                continue
            key = (event.title, event.start.sort_key())
            unique.setdefault(key, event)
    return sorted(unique.values(), key=lambda event: event.start.sort_key())


class CalendarProvider(ABC):
    """Abstract calendar provider interface."""

    @abstractmethod
    def get_events(self, time_min: datetime, time_max: datetime) -> List[Event]:
        """Fetch timed events overlapping ``[time_min, time_max]`` in start order."""


class GoogleCalendarProvider(CalendarProvider):
    """Google Calendar client reading every calendar the user can see."""

    def __init__(
        self,
        access_token: str | None = None,
        credentials_path: str | None = None,
        base_url: str = DEFAULT_CALENDAR_URL,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.access_token = access_token
        self.credentials_path = credentials_path
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _get_token(self) -> str:
        if self.access_token:
            return self.access_token
        try:
            if self.credentials_path:
                credentials, _ = google.auth.load_credentials_from_file(self.credentials_path, scopes=SCOPES)
            else:
                credentials, _ = google.auth.default(scopes=SCOPES)
            if not credentials.valid:
                credentials.refresh(Request())
        except GoogleAuthError as exc:
            raise CalendarAuthError("Failed to acquire Google credentials") from exc
        return credentials.token

    def _get(self, path: str, token: str, params: dict | None = None) -> requests.Response:
        return requests.get(
            f"{self.base_url}/{path}",
            headers={"Authorization": f"Bearer {token}"},
            params=params,
            timeout=self.timeout_seconds,
        )

    def _list_calendars(self, token: str) -> List[_CalendarListEntry]:
        primary = [_CalendarListEntry(id="primary", summary="primary")]
        try:
            response = self._get("users/me/calendarList", token, {"minAccessRole": "reader"})
        except requests.RequestException as exc:
            LOGGER.error("Calendar list unreachable; using primary calendar", exc_info=exc)
            return primary
        if response.status_code == 401:
            raise CalendarAuthError("Calendar token expired. Please reconnect your calendar.")
        try:
            response.raise_for_status()
            calendars = _CalendarList.model_validate(response.json()).items
        except requests.RequestException as exc:
            LOGGER.warning("Calendar list request failed; using primary calendar", extra={"error": str(exc)})
            return primary
        except ValueError as exc:
            LOGGER.warning("Calendar list payload invalid; using primary calendar", exc_info=exc)
            return primary
        return calendars or primary

    def _fetch_calendar(
        self, token: str, calendar: _CalendarListEntry, time_min: datetime, time_max: datetime
    ) -> List[Event]:
        params = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        calendar_name = calendar.summary or calendar.id
        try:
            response = self._get(f"calendars/{quote(calendar.id, safe='')}/events", token, params)
        except requests.RequestException as exc:
            LOGGER.warning("Calendar unreachable, skipping", extra={"calendar_id": calendar.id, "error": str(exc)})
            return []
        if response.status_code in (403, 404):
            LOGGER.warning(
                "Calendar not accessible, skipping",
                extra={"calendar_id": calendar.id, "status_code": response.status_code},
            )
            return []
        if not response.ok:
            LOGGER.warning(
                "Calendar request failed, skipping",
                extra={"calendar_id": calendar.id, "status_code": response.status_code},
            )
            return []
        try:
            payload = _EventList.model_validate(response.json())
        except (ValidationError, ValueError) as exc:
            LOGGER.error("Calendar payload schema validation failed", exc_info=exc)
            return []

        events: List[Event] = []
        for item in payload.items:
            try:
                start = _parse_event_time(item.start)
                if start is None:
                    raise ValueError("event has no start time")
                events.append(
                    Event(
                        id=f"{calendar.id}_{item.id}",
                        title=item.summary or UNTITLED_EVENT,
                        start=start,
                        end=_parse_event_time(item.end),
                        location=item.location or None,
                        description=item.description or None,
                        calendar_name=calendar_name,
                    )
                )
            except ValueError as exc:
                LOGGER.warning("Skipping malformed calendar event", exc_info=exc)
        return events

    def get_events(self, time_min: datetime, time_max: datetime) -> List[Event]:
        if time_min > time_max:
            raise ValueError("time_min must be on or before time_max")
        if time_min.tzinfo is None:
            time_min = time_min.replace(tzinfo=timezone.utc)
        if time_max.tzinfo is None:
            time_max = time_max.replace(tzinfo=timezone.utc)

        token = self._get_token()
        calendars = self._list_calendars(token)
        LOGGER.info("Fetching calendar events", extra={"calendar_count": len(calendars)})
        batches = [self._fetch_calendar(token, calendar, time_min, time_max) for calendar in calendars]
        events = merge_calendar_events(batches)
        LOGGER.info(
            "Fetched calendar events",
            extra={"fetched": sum(len(batch) for batch in batches), "kept": len(events)},
        )
        return events


class MockCalendarProvider(CalendarProvider):
    """Offline deterministic calendar provider for tests."""

    def __init__(self, events: Sequence[Event] | None = None) -> None:
        self._events = list(events or [])

    def get_events(self, time_min: datetime, time_max: datetime) -> List[Event]:
        LOGGER.info("Returning mock calendar events", extra={"count": len(self._events)})
        return merge_calendar_events([self._events])


__all__ = [
    "CalendarAuthError",
    "CalendarProvider",
    "GoogleCalendarProvider",
    "MockCalendarProvider",
    "merge_calendar_events",
    "should_filter_event",
]
