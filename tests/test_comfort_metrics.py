"""Wind chill and heat index coverage."""

import pytest

from logic.comfort import heat_index, wind_chill


@pytest.mark.parametrize("temp_f, wind_mph", [(60, 20), (51, 40), (30, 2), (10, 0)])
def test_wind_chill_returns_air_temperature_outside_formula_range(temp_f: float, wind_mph: float) -> None:
    assert wind_chill(temp_f, wind_mph) == temp_f


def test_wind_chill_applies_nws_formula() -> None:
    assert wind_chill(20, 30) == 1
    assert wind_chill(50, 10) == 46


def test_wind_chill_rounds_negative_values_half_up() -> None:
    assert wind_chill(0, 15) == -19


@pytest.mark.parametrize("temp_f, humidity", [(79, 90), (90, 39), (60, 100)])
def test_heat_index_returns_air_temperature_below_thresholds(temp_f: float, humidity: float) -> None:
    assert heat_index(temp_f, humidity) == temp_f


def test_heat_index_uses_rothfusz_regression() -> None:
    assert heat_index(90, 80) == 113
    assert heat_index(80, 40) == 80


@pytest.mark.parametrize("temp_f", [-30, -10, 0, 15, 32, 45, 50])
def test_wind_chill_never_rises_as_wind_increases(temp_f: float) -> None:
    chills = [wind_chill(temp_f, wind_mph) for wind_mph in range(3, 81)]

    assert chills == sorted(chills, reverse=True)
    assert all(chill <= temp_f for chill in chills)
