"""Configuration helpers for the Weather Concierge app."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Any, Callable, Dict, Optional

DEFAULT_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_GEOCODING_URL = "https://photon.komoot.io/api/"
DEFAULT_CALENDAR_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_TIMEZONE = "America/New_York"


@dataclass
class ConciergeConfig:
    """Configuration values for the Weather Concierge app.

    Provider endpoints are configurable so that tests and staging deployments
    can point at local fakes without touching code.
    """

    forecast_base_url: str = DEFAULT_FORECAST_URL
    geocoding_base_url: str = DEFAULT_GEOCODING_URL
    calendar_base_url: str = DEFAULT_CALENDAR_URL
    request_timeout_seconds: float = 5.0
    timezone: str = DEFAULT_TIMEZONE
    google_credentials_path: Optional[str] = None
    calendar_access_token: Optional[str] = None
    preferences_path: str = "data/onboarding.json"
    lookahead_days: int = 16
    max_dashboard_events: int = 3
    log_level: str = "INFO"
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "ConciergeConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that the calendar
        token can be injected by the runtime environment.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("CONCIERGE_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            return os.getenv(key.upper(), yaml_config.get(key, default))

        def get_number(key: str, default: str, cast: Callable[[str], Any]) -> Any:
            raw = get_value(key) or default
            try:
                return cast(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from exc

        return cls(
            forecast_base_url=str(get_value("forecast_base_url") or DEFAULT_FORECAST_URL),
            geocoding_base_url=str(get_value("geocoding_base_url") or DEFAULT_GEOCODING_URL),
            calendar_base_url=str(get_value("calendar_base_url") or DEFAULT_CALENDAR_URL),
            request_timeout_seconds=get_number("request_timeout_seconds", "5.0", float),
            timezone=str(get_value("timezone") or DEFAULT_TIMEZONE),
            google_credentials_path=get_value("google_credentials_path"),
            calendar_access_token=get_value("calendar_access_token"),
            preferences_path=str(get_value("preferences_path") or "data/onboarding.json"),
            lookahead_days=get_number("lookahead_days", "16", int),
            max_dashboard_events=get_number("max_dashboard_events", "3", int),
            log_level=str(get_value("log_level") or "INFO"),
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> Dict[str, str]:
        """Read flat ``key: value`` pairs; nested sections and comments are ignored."""

        config: Dict[str, str] = {}
        for line in path.read_text().splitlines():
            if not line.strip() or line.lstrip().startswith("#") or line[:1].isspace():
                continue
            key, sep, raw_value = line.partition(":")
            if not sep:
                continue
            value = raw_value.strip()
            if value[:1] in ("'", '"') and value[-1:] == value[:1] and len(value) > 1:
                value = value[1:-1]
            else:
                value = value.split(" #", 1)[0].strip()
            if value:
                config[key.strip()] = value
        return config
