from __future__ import annotations

import pytest

from algo.risk.stops import price_to_pips, stop_pips_for, stops_for, target_pips_for
from shared.errors import InvalidRisk
from shared.models.models import Direction


def test_long_stops_are_below_and_above_reference():
    levels = stops_for(Direction.LONG, 1.1000, 0.0015, 2.0, 2.0, 5)
    assert levels.stop == 1.097
    assert levels.target == 1.103


def test_short_stops_are_mirrored():
    levels = stops_for(Direction.SHORT, 1.1000, 0.0015, 2.0, 3.0, 5)
    assert levels.stop == 1.103
    assert levels.target == 1.0955


@pytest.mark.parametrize("precision", [2, 3, 5])
def test_stops_are_already_rounded(precision):
    levels = stops_for(Direction.LONG, 1.23456789, 0.00123456, 1.7, 2.3, precision)
    assert round(levels.stop, precision) == levels.stop
    assert round(levels.target, precision) == levels.target


def test_non_positive_volatility_rejected():
    with pytest.raises(InvalidRisk):
        stops_for(Direction.LONG, 1.1, 0.0, 2.0, 2.0, 5)


def test_pip_conversions():
    assert price_to_pips(-0.003, 0.0001) == pytest.approx(30)
    assert stop_pips_for(0.0015, 2.0, 0.0001) == pytest.approx(30)
    assert target_pips_for(0.0015, 3.0, 0.0001) == pytest.approx(45)
    with pytest.raises(ValueError):
        price_to_pips(0.001, 0)
