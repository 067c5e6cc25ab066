import math

import pytest

from geocivic.services.errors import InvalidCoordinate
from geocivic.utils.geo import Coordinate, coordinate_or_none, distance_meters, validate_coordinate

BENGALURU = Coordinate(12.9716, 77.5946)
ONE_DEGREE_OF_ARC = 6371000.0 * math.pi / 180


def test_same_point_is_zero():
    assert distance_meters(BENGALURU, BENGALURU) == 0.0


def test_one_degree_of_latitude():
    assert distance_meters(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0)) == pytest.approx(ONE_DEGREE_OF_ARC)


def test_distance_is_symmetric():
    delhi = Coordinate(28.6139, 77.2090)
    assert distance_meters(BENGALURU, delhi) == pytest.approx(distance_meters(delhi, BENGALURU))
    assert distance_meters(BENGALURU, delhi) == pytest.approx(1_740_000, rel=0.01)


def test_antipodal_points():
    assert distance_meters(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0)) == pytest.approx(math.pi * 6371000.0)


def test_custom_radius():
    assert distance_meters(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0), radius=1000.0) == pytest.approx(math.pi / 180 * 1000)


@pytest.mark.parametrize("coord", [
    Coordinate(float("nan"), 77.0),
    Coordinate(12.0, float("inf")),
    Coordinate(90.5, 0.0),
    Coordinate(-91.0, 0.0),
    Coordinate(0.0, 180.01),
    Coordinate("north", 0.0),
])
def test_invalid_coordinates_are_rejected(coord):
    with pytest.raises(InvalidCoordinate):
        distance_meters(coord, BENGALURU)


def test_poles_and_dateline_are_valid():
    assert validate_coordinate(Coordinate(90, -180)) == Coordinate(90.0, -180.0)


def test_coordinate_or_none():
    assert coordinate_or_none(None, None) is None
    assert coordinate_or_none(12.97, 77.59) == Coordinate(12.97, 77.59)
    with pytest.raises(InvalidCoordinate):
        coordinate_or_none(12.97, None)
