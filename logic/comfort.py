"""Derived comfort metrics: wind chill and heat index (Fahrenheit)."""

from __future__ import annotations

import math


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def wind_chill(temp_f: float, wind_mph: float) -> float:
    """NWS wind chill; the air temperature itself above 50°F or below 3 mph."""

    if temp_f > 50 or wind_mph < 3:
        return temp_f
    factor = wind_mph ** 0.16
    chill = 35.74 + 0.6215 * temp_f - 35.75 * factor + 0.4275 * temp_f * factor
    return _round_half_up(chill)


def heat_index(temp_f: float, humidity_pct: float) -> float:
    """Rothfusz heat index; the air temperature below 80°F or 40% humidity."""

    if temp_f < 80 or humidity_pct < 40:
        return temp_f
    t = temp_f
    h = humidity_pct
    hi = (
        -42.379
        + 2.04901523 * t
        + 10.14333127 * h
        - 0.22475541 * t * h
        - 6.83783e-3 * t * t
        - 5.481717e-2 * h * h
        + 1.22874e-3 * t * t * h
        + 8.5282e-4 * t * h * h
        - 1.99e-6 * t * t * h * h
    )
    return _round_half_up(hi)


__all__ = ["wind_chill", "heat_index"]
