"""User-facing preference snapshots read by the rule engine."""

from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class UserPreferences:
    """Feature toggles chosen during onboarding.

    The first eight toggles gate suggestion rule families; ``temperature``,
    ``hourly_forecast`` and ``pressure`` only affect what the dashboard shows.
    """

    precipitation: bool = True
    uv_index: bool = True
    wind_speed: bool = True
    humidity: bool = False
    air_quality: bool = False
    visibility: bool = False
    feels_like: bool = True
    sunrise_sunset: bool = True
    temperature: bool = True
    hourly_forecast: bool = True
    pressure: bool = False

    @classmethod
    def all_enabled(cls) -> "UserPreferences":
        return cls(**{field.name: True for field in fields(cls)})


@dataclass(frozen=True)
class NotificationPreferences:
    """Notification choices; only stored, never scheduled here."""

    morning_briefing_enabled: bool = True
    event_reminders_enabled: bool = True
    morning_briefing_time: str = "7:00 AM"
    event_reminder_time: str = "1 hour before heading out"


__all__ = ["UserPreferences", "NotificationPreferences"]
