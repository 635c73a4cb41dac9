"""Condition text classification and WMO code mapping."""

import pytest

from logic.conditions import ConditionCategory, classify, condition_from_wmo_code


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Clear", ConditionCategory.CLEAR),
        ("SUNNY", ConditionCategory.CLEAR),
        ("Partly Cloudy", ConditionCategory.PARTLY_CLOUDY),
        ("partially sunny", ConditionCategory.CLEAR),
        ("Rain Showers", ConditionCategory.RAIN),
        ("Light drizzle", ConditionCategory.RAIN),
        ("Sleet", ConditionCategory.SNOW),
        ("Snow flurry", ConditionCategory.SNOW),
        ("Overcast", ConditionCategory.CLOUDY),
        ("Foggy", ConditionCategory.CLOUDY),
        ("Thunderstorm", ConditionCategory.OTHER),
        ("", ConditionCategory.OTHER),
        (None, ConditionCategory.OTHER),
    ],
)
def test_classify(text, expected) -> None:
    assert classify(text) is expected


def test_first_matching_category_wins() -> None:
    # rain keywords are checked before snow keywords
    assert classify("Snow Showers") is ConditionCategory.RAIN
    assert classify("Sunny with clouds") is ConditionCategory.CLEAR


@pytest.mark.parametrize(
    "code, expected",
    [
        (0, "Clear"),
        (2, "Partly Cloudy"),
        (45, "Foggy"),
        (61, "Rainy"),
        (73, "Snowy"),
        (81, "Rain Showers"),
        (86, "Snow Showers"),
        (95, "Thunderstorm"),
        (100, "Partly Cloudy"),
        (None, "Partly Cloudy"),
    ],
)
def test_condition_from_wmo_code(code, expected) -> None:
    assert condition_from_wmo_code(code) == expected


@pytest.mark.parametrize(
    "text",
    [None, "", " ", "Tornado", "Haze", "RAIN", "rAiNy DaY", "12345", "☀️", "Clear\nskies", "x" * 500],
)
def test_classify_always_returns_a_category(text) -> None:
    assert classify(text) in set(ConditionCategory)
