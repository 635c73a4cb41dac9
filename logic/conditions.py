"""Deterministic condition classification for free-text weather descriptions."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class ConditionCategory(str, Enum):
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly-cloudy"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SNOW = "snow"
    OTHER = "other"


# Checked in insertion order; the first category with a matching keyword wins.
CONDITION_KEYWORDS: Dict[ConditionCategory, Tuple[str, ...]] = {
    ConditionCategory.CLEAR: ("clear", "sunny"),
    ConditionCategory.PARTLY_CLOUDY: ("partly", "partially"),
    ConditionCategory.RAIN: ("rain", "drizzle", "shower"),
    ConditionCategory.SNOW: ("snow", "sleet", "flurry"),
    ConditionCategory.CLOUDY: ("cloud", "overcast", "fog"),
}


def classify(condition_text: str | None) -> ConditionCategory:
    """Map a condition string such as "Rain Showers" onto a closed category."""

    lowered = (condition_text or "").lower()
    for category, keywords in CONDITION_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return ConditionCategory.OTHER


def condition_from_wmo_code(code: int | None) -> str:
    """Translate a WMO weather interpretation code into display text."""

    if code is None:
        return "Partly Cloudy"
    if code == 0:
        return "Clear"
    if 1 <= code <= 3:
        return "Partly Cloudy"
    if 45 <= code <= 48:
        return "Foggy"
    if 51 <= code <= 67:
        return "Rainy"
    if 71 <= code <= 77:
        return "Snowy"
    if 80 <= code <= 82:
        return "Rain Showers"
    if 85 <= code <= 86:
        return "Snow Showers"
    if 95 <= code <= 99:
        return "Thunderstorm"
    return "Partly Cloudy"


__all__ = ["ConditionCategory", "CONDITION_KEYWORDS", "classify", "condition_from_wmo_code"]
