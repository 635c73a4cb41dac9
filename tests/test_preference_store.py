"""Onboarding preference persistence."""

import json

import pytest
from pydantic import ValidationError

from memory.preference_store import OnboardingData, OnboardingPreferenceStore, export_summary
from models.preferences import NotificationPreferences, UserPreferences
from models.weather import Coordinates, HomeLocation

HOME = HomeLocation(
    address="350 5th Ave, New York, NY",
    city="New York",
    state="NY",
    coordinates=Coordinates(latitude=40.7484, longitude=-73.9857),
)


@pytest.fixture()
def store(tmp_path) -> OnboardingPreferenceStore:
    return OnboardingPreferenceStore(tmp_path / "onboarding.json")


def test_missing_file_loads_defaults(store: OnboardingPreferenceStore) -> None:
    data = store.load()

    assert data == OnboardingData()
    assert store.preferences() == UserPreferences()
    assert store.home_location() is None
    assert store.notification_preferences() == NotificationPreferences()


def test_partial_blob_is_merged_with_defaults(store: OnboardingPreferenceStore) -> None:
    store.path.write_text(json.dumps({"current_step": 2, "weather_features": {"humidity": True}}))

    data = store.load()

    assert data.current_step == 2
    assert data.weather_features.humidity is True
    assert data.weather_features.temperature is True
    assert data.permissions.location == "not_requested"


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps({"current_step": 42}), json.dumps({"permissions": {"location": "maybe"}})],
)
def test_unreadable_blob_falls_back_to_defaults(store: OnboardingPreferenceStore, content: str) -> None:
    store.path.write_text(content)

    assert store.load() == OnboardingData()


def test_feature_toggles_persist_and_feed_preferences(store: OnboardingPreferenceStore) -> None:
    store.update_weather_features(humidity=True, uv_index=False)

    reloaded = OnboardingPreferenceStore(store.path)
    prefs = reloaded.preferences()

    assert prefs.humidity is True
    assert prefs.uv_index is False
    assert prefs.precipitation is True


def test_essential_features_cannot_be_disabled(store: OnboardingPreferenceStore) -> None:
    with pytest.raises(ValueError, match="Essential"):
        store.update_weather_features(precipitation=False)

    assert not store.path.exists()


def test_unknown_features_are_rejected(store: OnboardingPreferenceStore) -> None:
    with pytest.raises(ValueError, match="Unknown weather features: pollen"):
        store.update_weather_features(pollen=True)


def test_home_location_round_trips(store: OnboardingPreferenceStore) -> None:
    store.set_home_location(HOME)

    assert store.home_location() == HOME
    assert store.home_coordinates() == HOME.coordinates

    store.set_home_location(None)
    assert store.home_coordinates() is None


def test_notification_preferences_validate_clock_format(store: OnboardingPreferenceStore) -> None:
    store.set_notification_preferences(NotificationPreferences(morning_briefing_time="6:30 AM"))
    assert store.notification_preferences().morning_briefing_time == "6:30 AM"

    with pytest.raises(ValidationError):
        store.set_notification_preferences(NotificationPreferences(morning_briefing_time="25:00"))
    assert store.notification_preferences().morning_briefing_time == "6:30 AM"


def test_calendar_token_tracks_permission(store: OnboardingPreferenceStore) -> None:
    data = store.set_calendar_token("ya29.token")

    assert store.calendar_token() == "ya29.token"
    assert data.permissions.calendar is True

    data = store.set_calendar_token(None)
    assert data.calendar_token is None
    assert data.permissions.calendar is False


def test_set_permissions_only_changes_given_fields(store: OnboardingPreferenceStore) -> None:
    store.set_permissions(notifications=True)
    data = store.set_permissions(location="granted")

    assert data.permissions.location == "granted"
    assert data.permissions.notifications is True
    assert data.permissions.calendar is False


def test_complete_marks_last_step(store: OnboardingPreferenceStore) -> None:
    store.set_current_step(3)
    assert store.load().current_step == 3

    data = store.complete()

    assert data.completed is True
    assert data.current_step == 6


def test_export_summary_hides_address_and_token(store: OnboardingPreferenceStore) -> None:
    store.set_home_location(HOME)
    data = store.set_calendar_token("ya29.secret")

    summary = export_summary(data)
    rendered = json.dumps(summary)

    assert summary["has_home_location"] is True
    assert summary["calendar_connected"] is True
    assert "ya29.secret" not in rendered
    assert "5th Ave" not in rendered
    assert "precipitation" in summary["enabled_features"]
