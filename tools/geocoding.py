"""Free-text location resolution backed by the Photon geocoder."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, ValidationError

from concierge_app.config import DEFAULT_GEOCODING_URL
from models.weather import Coordinates, HomeLocation

LOGGER = logging.getLogger(__name__)

US_COUNTRY_NAMES = {"united states", "usa", "united states of america"}


class _Geometry(BaseModel):
    coordinates: Tuple[float, float]


class _Properties(BaseModel):
    name: Optional[str] = None
    housenumber: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class _Feature(BaseModel):
    geometry: _Geometry
    properties: _Properties = _Properties()

    @property
    def coordinates(self) -> Coordinates:
        # GeoJSON order is [lon, lat].
        longitude, latitude = self.geometry.coordinates
        return Coordinates(latitude=latitude, longitude=longitude)


class _FeatureCollection(BaseModel):
    features: List[_Feature] = []


def _display_address(props: _Properties) -> str:
    primary = props.name or ""
    if props.street:
        primary = f"{props.housenumber} {props.street}" if props.housenumber else props.street
    secondary = [part for part in (props.city if props.city != primary else None, props.state) if part]
    return ", ".join(part for part in (primary, ", ".join(secondary)) if part)


def _home_location(feature: _Feature, fallback_city: str = "") -> HomeLocation:
    props = feature.properties
    return HomeLocation(
        address=_display_address(props),
        city=props.city or props.name or fallback_city,
        state=props.state or "",
        coordinates=feature.coordinates,
    )


class Geocoder(ABC):
    """Abstract geocoder interface."""

    @abstractmethod
    def resolve(self, text: str) -> Coordinates | None:
        """Return the best match for ``text`` or ``None``."""

    def search(self, query: str, limit: int = 5) -> List[HomeLocation]:
        return []

    def reverse(self, latitude: float, longitude: float) -> HomeLocation | None:
        return None


class PhotonGeocoder(Geocoder):
    """Photon (komoot) client with schema validation."""

    def __init__(self, base_url: str = DEFAULT_GEOCODING_URL, timeout_seconds: float = 5.0) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    def _get(self, url: str, params: Dict[str, object]) -> _FeatureCollection | None:
        try:
            response = requests.get(url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
            return _FeatureCollection.model_validate(response.json())
        except (requests.Timeout, requests.RequestException) as exc:
            LOGGER.error("Geocoding API unreachable", exc_info=exc)
        except ValidationError as exc:
            LOGGER.error("Geocoding payload schema validation failed", exc_info=exc)
        except ValueError as exc:
            LOGGER.error("Geocoding payload was not JSON", exc_info=exc)
        return None

    def resolve(self, text: str) -> Coordinates | None:
        if not text or not text.strip():
            return None
        parsed = self._get(self.base_url, {"q": text, "limit": 1, "lang": "en"})
        if parsed is None or not parsed.features:
            return None
        return parsed.features[0].coordinates

    def search(self, query: str, limit: int = 5) -> List[HomeLocation]:
        """Address autocomplete limited to US results, deduplicated by place."""

        if not query or len(query.strip()) < 3:
            return []
        parsed = self._get(self.base_url, {"q": query, "limit": 10, "lang": "en"})
        if parsed is None:
            return []

        results: List[HomeLocation] = []
        seen = set()
        for feature in parsed.features:
            props = feature.properties
            if props.country and props.country.lower() not in US_COUNTRY_NAMES:
                continue
            key = (props.name, props.city, props.state)
            if key in seen:
                continue
            seen.add(key)
            results.append(_home_location(feature))
            if len(results) >= limit:
                break
        return results

    def reverse(self, latitude: float, longitude: float) -> HomeLocation | None:
        reverse_url = self.base_url.rstrip("/").rsplit("/", 1)[0] + "/reverse"
        parsed = self._get(reverse_url, {"lat": latitude, "lon": longitude, "lang": "en"})
        if parsed is None or not parsed.features:
            return None
        location = _home_location(parsed.features[0], fallback_city="Current Location")
        return HomeLocation(
            address=location.address,
            city=location.city,
            state=location.state,
            coordinates=Coordinates(latitude=latitude, longitude=longitude),
        )


class MockGeocoder(Geocoder):
    """Dictionary-backed geocoder for offline runs."""

    def __init__(self, known: Dict[str, Coordinates] | None = None) -> None:
        self.known = {key.lower(): value for key, value in (known or {}).items()}
        self.lookups: List[str] = []

    def resolve(self, text: str) -> Coordinates | None:
        self.lookups.append(text)
        return self.known.get((text or "").lower())


__all__ = ["Geocoder", "PhotonGeocoder", "MockGeocoder"]
