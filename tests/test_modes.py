#!/usr/bin/env python3
"""
Tests for mode-speed travel-time estimates
"""

import pytest

from stationreach.modes import TravelMode, calculate_travel_times_heuristic, estimate_minutes

from conftest import station_at


def test_estimate_minutes():
    assert estimate_minutes(1.0, TravelMode.WALKING) == pytest.approx(20.0)
    assert estimate_minutes(1.0, TravelMode.BICYCLING) == pytest.approx(8.0)
    assert estimate_minutes(0.0, TravelMode.TRANSIT) == pytest.approx(4.0)
    assert estimate_minutes(1.8, "TRANSIT") == pytest.approx(10.0)


class TestHeuristicTravelTimes:
    """Straight-line estimates over a station list"""

    def test_filters_by_duration(self):
        origin = station_at("origin", 0).coordinates
        stations = [station_at("NEAR", 0.5), station_at("FAR", 3)]

        results = calculate_travel_times_heuristic(origin, stations, TravelMode.WALKING, 30)

        assert [r.station_id for r in results] == ["NEAR"]
        assert results[0].duration_minutes == pytest.approx(10.0)
        assert results[0].distance_meters == 805

    def test_rounded_to_tenth(self):
        origin = station_at("origin", 0).coordinates
        results = calculate_travel_times_heuristic(origin, [station_at("S", 1.234)], TravelMode.TRANSIT, 60)
        assert results[0].duration_minutes == round(results[0].duration_minutes, 1)

    def test_invalid_input(self):
        stations = [station_at("S", 1)]
        assert calculate_travel_times_heuristic((float("nan"), 51.5), stations) == []
        assert calculate_travel_times_heuristic(station_at("o", 0).coordinates, stations, max_duration_minutes=0) == []
