"""Rule-based "what to bring" suggestions for an event's forecast.

The engine runs an ordered battery of independent rule blocks. Each block
looks at the event-time snapshot (and, when available, the hourly series
around the event) and appends zero or more candidate suggestions. The
candidates are then merged by :func:`select_suggestions`, which keeps every
high-priority warning it can and fills the remaining slots with tips that use
different icons.

Every block respects two gates: the user's feature toggle for the weather
dimension it talks about, and the presence of the metric it reads. A missing
metric disables the rule; it is never treated as zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import math
from typing import List, Optional, Sequence

from logic.comfort import heat_index, wind_chill
from logic.conditions import ConditionCategory, classify
from models.preferences import UserPreferences
from models.suggestion import Suggestion, SuggestionCategory, SuggestionPriority
from models.weather import HourlyPoint, WeatherSnapshot

MAX_SUGGESTIONS = 4
MAX_BASIC_SUGGESTIONS = 3
DIVERSITY_FLOOR = 2

OUTDOOR_KEYWORDS = (
    "outdoor",
    "park",
    "walk",
    "run",
    "bike",
    "hike",
    "beach",
    "picnic",
    "stadium",
    "field",
)

HIGH = SuggestionPriority.HIGH
MEDIUM = SuggestionPriority.MEDIUM
LOW = SuggestionPriority.LOW

ICON_WARNING = "warning"
ICON_FREEZING = "freezing-face"
ICON_COAT = "coat"
ICON_THERMOMETER = "thermometer"
ICON_DROPLET = "droplet"
ICON_RAIN_UMBRELLA = "umbrella-rain"
ICON_UMBRELLA = "umbrella"
ICON_BOOT = "boot"
ICON_HIKING_BOOT = "hiking-boot"
ICON_SNEAKER = "sneaker"
ICON_SUNGLASSES = "sunglasses"
ICON_SUN = "sun"
ICON_SUN_CLOUD = "sun-behind-cloud"
ICON_FOG = "fog"
ICON_CLOUD = "cloud"
ICON_WIND = "wind"
ICON_HAT = "hat"
ICON_SCARF = "scarf"
ICON_RAIN_CLOUD = "rain-cloud"
ICON_SHIRT = "shirt"
ICON_BUILDING = "building"


@dataclass(frozen=True)
class _RuleContext:
    snapshot: WeatherSnapshot
    preferences: UserPreferences
    condition: ConditionCategory
    event_temps: Sequence[float] = ()
    departure: Optional[HourlyPoint] = None
    title: str = ""

    @property
    def temp(self) -> float:
        return self.snapshot.temperature

    @property
    def precip(self) -> int:
        return self.snapshot.precipitation_chance

    @property
    def wind(self) -> Optional[float]:
        return self.snapshot.wind_speed

    @property
    def uv(self) -> Optional[float]:
        return self.snapshot.uv_index

    @property
    def temp_range(self) -> float:
        if not self.event_temps:
            return 0
        return max(self.event_temps) - min(self.event_temps)


def _fmt(value: float) -> str:
    return f"{value:g}"


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _add(
    out: List[Suggestion],
    text: str,
    icon: str,
    priority: SuggestionPriority,
    category: SuggestionCategory,
) -> None:
    out.append(Suggestion(text=text, icon=icon, priority=priority, category=category))


def nearest_point(hourly: Sequence[HourlyPoint], target: datetime) -> Optional[HourlyPoint]:
    """Return the hourly point closest to ``target``; earliest wins on ties."""

    if not hourly:
        return None
    target = _as_aware(target)
    return min(hourly, key=lambda point: abs((_as_aware(point.time) - target).total_seconds()))


def departure_time(event_start: datetime, now: datetime) -> datetime:
    """Leave 1.5 hours ahead for events at least 2 hours away, else 1 hour."""

    event_start = _as_aware(event_start)
    hours_until = (event_start - _as_aware(now)).total_seconds() / 3600
    lead_hours = 1.5 if hours_until >= 2 else 1
    return event_start - timedelta(hours=lead_hours)


def _feels_like(ctx: _RuleContext) -> float:
    if ctx.snapshot.feels_like is not None:
        return ctx.snapshot.feels_like
    return wind_chill(ctx.temp, ctx.wind)


def _wind_chill_rules(ctx: _RuleContext, out: List[Suggestion], include_bundle_up: bool = True) -> None:
    prefs = ctx.preferences
    if not (prefs.wind_speed and prefs.feels_like) or ctx.wind is None:
        return
    if not (ctx.temp < 50 and ctx.wind > 15):
        return

    feels = _fmt(_feels_like(ctx))
    value = _feels_like(ctx)
    if value < 0:
        _add(out, f"Dangerous wind chill - feels like {feels}°F (cover all exposed skin)",
             ICON_WARNING, HIGH, SuggestionCategory.WARMTH)
    elif value < 15:
        _add(out, f"Severe wind chill - feels like {feels}°F (limit time outside)",
             ICON_FREEZING, HIGH, SuggestionCategory.WARMTH)
    elif value < 25 and include_bundle_up:
        _add(out, f"Wind chill makes it feel like {feels}°F - bundle up",
             ICON_COAT, HIGH, SuggestionCategory.WARMTH)


def _safety_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    _wind_chill_rules(ctx, out)

    if ctx.preferences.wind_speed and ctx.wind is not None and ctx.wind > 45:
        _add(out, f"DANGEROUS WINDS ({_fmt(ctx.wind)} mph) - avoid outdoor activities if possible",
             ICON_WARNING, HIGH, SuggestionCategory.WIND)

    if ctx.temp < 0:
        _add(out, f"Dangerous cold ({_fmt(ctx.temp)}°F) - frostbite possible in minutes",
             ICON_FREEZING, HIGH, SuggestionCategory.WARMTH)
    elif ctx.temp > 95:
        _add(out, f"Dangerous heat ({_fmt(ctx.temp)}°F) - limit outdoor activities",
             ICON_THERMOMETER, HIGH, SuggestionCategory.HEAT)

    humidity = ctx.snapshot.humidity
    if humidity is not None and ctx.temp > 80 and humidity > 70:
        index = heat_index(ctx.temp, humidity)
        if index > 90:
            _add(out, f"Feels like {_fmt(index)}°F due to humidity - stay hydrated",
                 ICON_DROPLET, HIGH, SuggestionCategory.HEAT)


def _precipitation_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    if not ctx.preferences.precipitation:
        return
    precip = ctx.precip
    temp = ctx.temp
    rain = SuggestionCategory.PRECIPITATION

    if precip > 60:
        _add(out, f"Rain very likely ({precip}%) - full rain gear (umbrella, jacket, boots)",
             ICON_RAIN_UMBRELLA, HIGH, rain)
    elif precip > 40:
        _add(out, f"Likely to rain ({precip}%) - umbrella and waterproof jacket",
             ICON_RAIN_UMBRELLA, HIGH, rain)
    elif precip > 20:
        _add(out, f"Rain possible ({precip}%) - definitely bring an umbrella", ICON_UMBRELLA, MEDIUM, rain)
    elif precip > 0:
        _add(out, f"Only {precip}% chance of rain but bring a compact umbrella just in case",
             ICON_UMBRELLA, LOW, rain)

    if precip > 20 and temp < 40:
        _add(out, "Cold rain expected - waterproof AND insulated jacket", ICON_COAT, HIGH, rain)

    if precip > 20:
        _add(out, "Rain likely - wear waterproof shoes or boots", ICON_BOOT, MEDIUM, rain)
    elif precip > 0 and temp < 40:
        _add(out, "Possible wet conditions - waterproof boots recommended", ICON_HIKING_BOOT, LOW, rain)
    elif precip > 0:
        _add(out, "Small rain chance - wear shoes you don't mind getting wet", ICON_SNEAKER, LOW, rain)

    if precip > 0 and 28 <= temp <= 35:
        _add(out, "Possible ice - definitely wear boots with grip",
             ICON_WARNING, HIGH, SuggestionCategory.TRACTION)


def _sun_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    prefs = ctx.preferences
    uv = ctx.uv if prefs.uv_index else None
    sun = SuggestionCategory.SUN

    if ctx.condition is ConditionCategory.CLEAR:
        if ctx.temp < 40:
            _add(out, "Cold but bright sun - dress warm and bring sunglasses", ICON_SUNGLASSES, MEDIUM, sun)
        else:
            _add(out, "Bright sun - bring sunglasses", ICON_SUNGLASSES, MEDIUM, sun)
        if uv is not None and uv > 3:
            _add(out, f"Strong sun exposure (UV: {_fmt(uv)}) - wear sunscreen and sunglasses",
                 ICON_SUN, MEDIUM, sun)
    elif ctx.condition is ConditionCategory.PARTLY_CLOUDY:
        _add(out, "Partly cloudy - sun may peek through, bring sunglasses", ICON_SUNGLASSES, LOW, sun)
        if uv is not None and uv > 5:
            _add(out, f"UV still high despite clouds ({_fmt(uv)}) - sunglasses recommended",
                 ICON_SUNGLASSES, MEDIUM, sun)
        if ctx.temp_range > 10:
            _add(out, "Mix of sun and clouds - layer up for changing conditions",
                 ICON_SUN_CLOUD, MEDIUM, SuggestionCategory.LAYERING)
    elif ctx.condition is ConditionCategory.CLOUDY:
        _add(out, "Overcast - will feel cooler than forecast suggests", ICON_FOG, LOW, SuggestionCategory.WARMTH)
        if prefs.wind_speed and ctx.wind is not None and ctx.wind > 15:
            feels_colder = math.floor(ctx.wind * 0.5 + 0.5)
            _add(out, f"Cloudy and windy - dress warmer, feels {feels_colder}° colder",
                 ICON_CLOUD, MEDIUM, SuggestionCategory.WARMTH)

    if uv is not None and uv > 6:
        _add(out, f"Strong sun (UV: {_fmt(uv)}) - sunglasses and SPF 30+ sunscreen", ICON_SUN, MEDIUM, sun)
    elif uv is not None and uv > 3 and ctx.condition is not ConditionCategory.CLOUDY:
        _add(out, f"Moderate UV ({_fmt(uv)}) - sunglasses recommended", ICON_SUNGLASSES, LOW, sun)


def _temperature_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    temp = ctx.temp
    label = _fmt(temp)
    warmth = SuggestionCategory.WARMTH

    if temp < 15:
        _add(out, f"Extreme cold ({label}°F) - cover all exposed skin", ICON_FREEZING, HIGH, warmth)
    elif temp < 32:
        _add(out, f"Freezing ({label}°F) - wear insulated coat", ICON_COAT, HIGH, warmth)
    elif temp < 50:
        _add(out, f"Cold ({label}°F) - jacket needed", ICON_COAT, MEDIUM, warmth)
    elif temp > 85:
        _add(out, f"Hot ({label}°F) - stay hydrated, seek shade", ICON_DROPLET, MEDIUM, SuggestionCategory.HEAT)

    if temp < 40 and ctx.condition is ConditionCategory.CLOUDY:
        _add(out, "Cold and gray - dress extra warm, no sun to help", ICON_FOG, MEDIUM, warmth)


def _wind_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    prefs = ctx.preferences
    wind = ctx.wind
    if not prefs.wind_speed or wind is None:
        return
    label = _fmt(wind)
    windy = SuggestionCategory.WIND
    umbrella_relevant = prefs.precipitation and ctx.precip > 0

    if wind > 45:
        _add(out, f"Dangerous winds ({label} mph) - stay near buildings, away from trees",
             ICON_WARNING, HIGH, windy)
    elif wind > 35:
        if umbrella_relevant:
            _add(out, f"Very windy ({label} mph) - skip umbrella, use hooded jacket instead",
                 ICON_COAT, HIGH, windy)
        else:
            _add(out, f"Very windy ({label} mph) - wear a hooded jacket", ICON_COAT, HIGH, windy)
        _add(out, "Strong gusts - secure all loose items, bags, scarves", ICON_WIND, MEDIUM, windy)
    elif wind > 25:
        if umbrella_relevant:
            _add(out, f"Windy ({label} mph) - umbrella will be difficult to use", ICON_UMBRELLA, MEDIUM, windy)
        else:
            _add(out, f"Windy ({label} mph) - expect strong gusts outside", ICON_WIND, MEDIUM, windy)
        _add(out, "Strong wind - wear a tight-fitting hat or skip the hat", ICON_HAT, LOW, windy)
    elif wind > 15:
        _add(out, f"Breezy ({label} mph) - hats and scarves should be secured", ICON_SCARF, LOW, windy)

    if ctx.condition is ConditionCategory.CLEAR and wind > 25:
        _add(out, f"Sunny but very windy ({label} mph) - sunglasses that won't blow off",
             ICON_SUNGLASSES, MEDIUM, windy)

    if ctx.condition is ConditionCategory.CLOUDY and wind > 15:
        _add(out, "Cloudy and windy - feels colder than forecast, dress warm",
             ICON_CLOUD, MEDIUM, SuggestionCategory.WARMTH)

    if ctx.condition is ConditionCategory.RAIN and wind > 20 and prefs.precipitation:
        if wind > 25:
            _add(out, "Rainy and windy - umbrella may not help, wear hooded raincoat",
                 ICON_RAIN_UMBRELLA, HIGH, SuggestionCategory.PRECIPITATION)
        else:
            _add(out, "Wet and windy - waterproof everything, avoid umbrellas if wind > 25mph",
                 ICON_RAIN_CLOUD, MEDIUM, SuggestionCategory.PRECIPITATION)


def _layering_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    if ctx.temp_range > 10:
        low = _fmt(min(ctx.event_temps))
        high = _fmt(max(ctx.event_temps))
        if max(ctx.event_temps) > ctx.temp:
            _add(out, f"Warming up during event ({low}° → {high}°) - dress in removable layers",
                 ICON_SHIRT, MEDIUM, SuggestionCategory.LAYERING)
        else:
            _add(out, f"Cooling down during event ({high}° → {low}°) - bring an extra layer",
                 ICON_COAT, MEDIUM, SuggestionCategory.LAYERING)

    title = ctx.title.lower()
    is_outdoor = any(keyword in title for keyword in OUTDOOR_KEYWORDS)
    if not is_outdoor and ctx.temp < 32:
        _add(out, "Buildings are often overheated - wear layers you can remove indoors",
             ICON_BUILDING, LOW, SuggestionCategory.LAYERING)


def _departure_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    departure = ctx.departure
    if departure is None:
        return
    prefs = ctx.preferences
    leaving = classify(departure.condition)
    pack_umbrella = f"Dry when you leave but {ctx.precip}% rain chance during event - pack umbrella"

    if leaving is not ctx.condition:
        if leaving is ConditionCategory.CLEAR and ctx.condition is ConditionCategory.CLOUDY:
            _add(out, "Clear when you leave, cloudy during event - bring sunglasses anyway",
                 ICON_SUNGLASSES, LOW, SuggestionCategory.SUN)
        elif (
            leaving is ConditionCategory.CLOUDY
            and ctx.condition is ConditionCategory.RAIN
            and prefs.precipitation
        ):
            _add(out, pack_umbrella, ICON_UMBRELLA, MEDIUM, SuggestionCategory.PRECIPITATION)

    if (
        prefs.wind_speed
        and departure.wind_speed is not None
        and ctx.wind is not None
        and departure.wind_speed < 20
        and ctx.wind > 30
    ):
        _add(out, f"Calm winds when leaving but {_fmt(ctx.wind)} mph gusts during event - prepare for wind",
             ICON_WIND, MEDIUM, SuggestionCategory.WIND)

    if prefs.precipitation and departure.precipitation_chance < 10 and ctx.precip > 30:
        _add(out, pack_umbrella, ICON_UMBRELLA, MEDIUM, SuggestionCategory.PRECIPITATION)


def _sidewalk_rules(ctx: _RuleContext, out: List[Suggestion]) -> None:
    if ctx.preferences.precipitation and ctx.precip > 0 and ctx.temp < 40:
        _add(out, "Sidewalks may be icy - wear boots with good traction",
             ICON_BOOT, MEDIUM, SuggestionCategory.TRACTION)


def _by_priority(candidates: Sequence[Suggestion]) -> List[Suggestion]:
    return sorted(candidates, key=lambda suggestion: suggestion.priority.rank)


def select_suggestions(candidates: Sequence[Suggestion], limit: int = MAX_SUGGESTIONS) -> List[Suggestion]:
    """Merge candidates into at most ``limit`` prioritized, icon-diverse tips.

    Pass one keeps high-priority candidates in order. Pass two fills the
    remaining slots with medium/low candidates whose icon has not been used,
    relaxing the icon check until ``DIVERSITY_FLOOR`` tips are selected.
    """

    unique: List[Suggestion] = []
    seen_text = set()
    for candidate in candidates:
        if candidate.text in seen_text:
            continue
        seen_text.add(candidate.text)
        unique.append(candidate)

    ordered = _by_priority(unique)
    selected: List[Suggestion] = []
    seen_icons = set()

    for suggestion in ordered:
        if suggestion.priority is HIGH:
            selected.append(suggestion)
            seen_icons.add(suggestion.icon)
            if len(selected) >= limit:
                break

    for suggestion in ordered:
        if len(selected) >= limit:
            break
        if suggestion.priority is HIGH:
            continue
        if suggestion.icon not in seen_icons or len(selected) < DIVERSITY_FLOOR:
            selected.append(suggestion)
            seen_icons.add(suggestion.icon)

    return selected if selected else ordered[:limit]


def generate(
    snapshot: WeatherSnapshot,
    hourly: Sequence[HourlyPoint],
    event_start: datetime,
    event_end: datetime,
    event_title: str,
    preferences: UserPreferences,
    *,
    now: datetime | None = None,
) -> List[Suggestion]:
    """Return up to four suggestions for an event using its hourly forecast.

    Without an hourly series there is nothing to compare or layer against, so
    the call falls back to :func:`generate_basic`.
    """

    if not hourly:
        return generate_basic(snapshot, preferences)

    start = _as_aware(event_start)
    end = _as_aware(event_end)
    current = _as_aware(now) if now is not None else datetime.now(timezone.utc)
    event_temps = [point.temperature for point in hourly if start <= _as_aware(point.time) <= end]

    ctx = _RuleContext(
        snapshot=snapshot,
        preferences=preferences,
        condition=classify(snapshot.condition),
        event_temps=tuple(event_temps),
        departure=nearest_point(hourly, departure_time(start, current)),
        title=event_title or "",
    )

    candidates: List[Suggestion] = []
    for rule in (
        _safety_rules,
        _precipitation_rules,
        _sun_rules,
        _temperature_rules,
        _wind_rules,
        _layering_rules,
        _departure_rules,
        _sidewalk_rules,
    ):
        rule(ctx, candidates)

    return select_suggestions(candidates)


def generate_basic(snapshot: WeatherSnapshot, preferences: UserPreferences) -> List[Suggestion]:
    """Return up to three suggestions from the event-time snapshot alone."""

    ctx = _RuleContext(snapshot=snapshot, preferences=preferences, condition=classify(snapshot.condition))
    out: List[Suggestion] = []
    temp = ctx.temp
    precip = ctx.precip
    rain = SuggestionCategory.PRECIPITATION

    _wind_chill_rules(ctx, out, include_bundle_up=False)

    if preferences.wind_speed and ctx.wind is not None and ctx.wind > 45:
        _add(out, f"DANGEROUS WINDS ({_fmt(ctx.wind)} mph) - avoid outdoor activities",
             ICON_WARNING, HIGH, SuggestionCategory.WIND)

    if preferences.precipitation and precip > 0:
        if precip > 60:
            _add(out, f"Rain very likely ({precip}%) - full rain gear", ICON_RAIN_UMBRELLA, HIGH, rain)
        elif precip > 40:
            _add(out, f"Likely to rain ({precip}%) - umbrella and waterproof jacket",
                 ICON_RAIN_UMBRELLA, HIGH, rain)
        elif precip > 20:
            _add(out, f"Rain possible ({precip}%) - bring an umbrella", ICON_UMBRELLA, MEDIUM, rain)
        else:
            _add(out, f"Only {precip}% chance but bring compact umbrella just in case", ICON_UMBRELLA, LOW, rain)

    if ctx.condition is ConditionCategory.CLEAR:
        _add(out, "Bright sun - bring sunglasses", ICON_SUNGLASSES, MEDIUM, SuggestionCategory.SUN)
    elif ctx.condition is ConditionCategory.PARTLY_CLOUDY:
        _add(out, "Partly cloudy - sun may peek through, bring sunglasses",
             ICON_SUNGLASSES, LOW, SuggestionCategory.SUN)

    if preferences.uv_index and ctx.uv is not None and ctx.uv > 6:
        _add(out, f"Strong sun (UV: {_fmt(ctx.uv)}) - sunglasses and SPF 30+", ICON_SUN, MEDIUM, SuggestionCategory.SUN)

    if temp < 32:
        _add(out, f"Freezing ({_fmt(temp)}°F) - wear insulated coat", ICON_COAT, HIGH, SuggestionCategory.WARMTH)
    elif temp < 50:
        _add(out, f"Cold ({_fmt(temp)}°F) - jacket needed", ICON_COAT, MEDIUM, SuggestionCategory.WARMTH)

    return _by_priority(out)[:MAX_BASIC_SUGGESTIONS]


def suggestion_reason(suggestion: Suggestion, weather: WeatherSnapshot) -> str:
    """Short parenthetical explaining which measurement triggered a suggestion."""

    category = suggestion.category
    if category in (SuggestionCategory.WARMTH, SuggestionCategory.LAYERING):
        if weather.feels_like is not None and abs(weather.feels_like - weather.temperature) > 5:
            return f"feels like {_fmt(weather.feels_like)}°F"
        return f"{_fmt(weather.temperature)}°F"
    if category is SuggestionCategory.SUN:
        return f"UV index: {_fmt(weather.uv_index)}" if weather.uv_index is not None else ""
    if category in (SuggestionCategory.PRECIPITATION, SuggestionCategory.TRACTION):
        if weather.precipitation_chance > 0:
            return f"{weather.precipitation_chance}% chance of rain"
        return ""
    if category is SuggestionCategory.WIND:
        return f"wind: {_fmt(weather.wind_speed)} mph" if weather.wind_speed is not None else ""
    if category is SuggestionCategory.HEAT and weather.temperature > 80:
        return f"{_fmt(weather.temperature)}°F"
    return ""


__all__ = [
    "MAX_SUGGESTIONS",
    "MAX_BASIC_SUGGESTIONS",
    "departure_time",
    "generate",
    "generate_basic",
    "nearest_point",
    "select_suggestions",
    "suggestion_reason",
]
