"""JSON-backed onboarding state: home location, permissions and feature toggles."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from models.preferences import NotificationPreferences, UserPreferences
from models.weather import Coordinates, HomeLocation

LOGGER = logging.getLogger(__name__)

ESSENTIAL_FEATURES = ("temperature", "hourly_forecast", "precipitation")
LAST_STEP = 6
_CLOCK_PATTERN = re.compile(r"^(1[0-2]|[1-9]):[0-5]\d (AM|PM)$")


class CoordinatesModel(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class HomeLocationModel(BaseModel):
    address: str
    city: str = ""
    state: str = ""
    coordinates: CoordinatesModel


class PermissionsModel(BaseModel):
    location: Literal["granted", "denied", "prompt", "not_requested"] = "not_requested"
    calendar: bool = False
    notifications: bool = False


class WeatherFeaturesModel(BaseModel):
    temperature: bool = True
    hourly_forecast: bool = True
    precipitation: bool = True
    uv_index: bool = True
    sunrise_sunset: bool = True
    wind_speed: bool = True
    humidity: bool = False
    air_quality: bool = False
    visibility: bool = False
    pressure: bool = False
    feels_like: bool = True


class NotificationPreferencesModel(BaseModel):
    morning_briefing_enabled: bool = True
    event_reminders_enabled: bool = True
    morning_briefing_time: str = "7:00 AM"
    event_reminder_time: str = "1 hour before heading out"

    @field_validator("morning_briefing_time")
    @classmethod
    def _validate_clock(cls, value: str) -> str:
        if not _CLOCK_PATTERN.match(value):
            raise ValueError(f"expected a time like '7:00 AM', got {value!r}")
        return value


class OnboardingData(BaseModel):
    """Everything the onboarding flow persists.

    Missing keys, including nested ones, fall back to their defaults, so blobs
    written by older versions still load.
    """

    completed: bool = False
    current_step: int = Field(default=0, ge=0, le=LAST_STEP)
    home_location: Optional[HomeLocationModel] = None
    permissions: PermissionsModel = Field(default_factory=PermissionsModel)
    weather_features: WeatherFeaturesModel = Field(default_factory=WeatherFeaturesModel)
    calendar_token: Optional[str] = None
    notification_preferences: Optional[NotificationPreferencesModel] = None


class OnboardingPreferenceStore:
    """Reads and writes one :class:`OnboardingData` blob at ``path``."""

    def __init__(self, path: str | Path = "data/onboarding.json") -> None:
        self.path = Path(path)

    def load(self) -> OnboardingData:
        if not self.path.exists():
            return OnboardingData()
        try:
            raw = json.loads(self.path.read_text())
            return OnboardingData.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            LOGGER.warning(
                "Onboarding data unreadable; using defaults",
                extra={"path": str(self.path), "error_type": type(exc).__name__},
            )
            return OnboardingData()

    def save(self, data: OnboardingData) -> OnboardingData:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(data.model_dump_json(indent=2))
        return data

    def update(self, **changes: Any) -> OnboardingData:
        """Apply top-level changes and persist; nested dicts replace whole sections."""

        merged = {**self.load().model_dump(), **changes}
        return self.save(OnboardingData.model_validate(merged))

    def update_weather_features(self, **toggles: bool) -> OnboardingData:
        known = set(WeatherFeaturesModel.model_fields)
        unknown = sorted(set(toggles) - known)
        if unknown:
            raise ValueError(f"Unknown weather features: {', '.join(unknown)}")
        disabled_essentials = [name for name in ESSENTIAL_FEATURES if toggles.get(name) is False]
        if disabled_essentials:
            raise ValueError(f"Essential features cannot be disabled: {', '.join(disabled_essentials)}")

        data = self.load()
        features = data.weather_features.model_copy(update=toggles)
        return self.save(data.model_copy(update={"weather_features": features}))

    def set_home_location(self, location: HomeLocation | None) -> OnboardingData:
        payload = asdict(location) if location is not None else None
        return self.update(home_location=payload)

    def set_notification_preferences(self, preferences: NotificationPreferences) -> OnboardingData:
        return self.update(notification_preferences=asdict(preferences))

    def set_permissions(
        self,
        location: str | None = None,
        calendar: bool | None = None,
        notifications: bool | None = None,
    ) -> OnboardingData:
        current = self.load().permissions.model_dump()
        changes = {"location": location, "calendar": calendar, "notifications": notifications}
        current.update({key: value for key, value in changes.items() if value is not None})
        return self.update(permissions=current)

    def set_calendar_token(self, token: str | None) -> OnboardingData:
        permissions = self.load().permissions.model_dump()
        permissions["calendar"] = token is not None
        return self.update(calendar_token=token, permissions=permissions)

    def set_current_step(self, step: int) -> OnboardingData:
        return self.update(current_step=step)

    def complete(self) -> OnboardingData:
        return self.update(completed=True, current_step=LAST_STEP)

    def preferences(self) -> UserPreferences:
        """Snapshot of the feature toggles for one run."""

        features = self.load().weather_features.model_dump()
        return UserPreferences(**{field.name: features[field.name] for field in fields(UserPreferences)})

    def home_location(self) -> HomeLocation | None:
        stored = self.load().home_location
        if stored is None:
            return None
        return HomeLocation(
            address=stored.address,
            city=stored.city,
            state=stored.state,
            coordinates=Coordinates(
                latitude=stored.coordinates.latitude, longitude=stored.coordinates.longitude
            ),
        )

    def home_coordinates(self) -> Coordinates | None:
        location = self.home_location()
        return location.coordinates if location else None

    def notification_preferences(self) -> NotificationPreferences:
        stored = self.load().notification_preferences
        if stored is None:
            return NotificationPreferences()
        return NotificationPreferences(**stored.model_dump())

    def calendar_token(self) -> str | None:
        return self.load().calendar_token


def export_summary(data: OnboardingData) -> Dict[str, Any]:
    """Log-safe view of the stored blob (no address, coordinates or token)."""

    return {
        "completed": data.completed,
        "current_step": data.current_step,
        "has_home_location": data.home_location is not None,
        "calendar_connected": data.calendar_token is not None,
        "permissions": data.permissions.model_dump(),
        "enabled_features": sorted(
            name for name, enabled in data.weather_features.model_dump().items() if enabled
        ),
    }


__all__ = ["OnboardingData", "OnboardingPreferenceStore", "ESSENTIAL_FEATURES", "export_summary"]
