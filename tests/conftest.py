"""
pytest fixtures for stationreach tests
"""
import json
import math
import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from stationreach.config import EARTH_RADIUS_MILES
from stationreach.data.dataset import Line, Station, TransitDataset

# Degrees of latitude spanning exactly one mile along a meridian
DEG_PER_MILE = math.degrees(1 / EARTH_RADIUS_MILES)

BASE_LON = -0.1
BASE_LAT = 51.5


def station_at(station_id, miles_north=0.0, miles_east=0.0, line_codes=(), is_hub=False):
    """Station placed at a mile offset from the base point"""
    lon_scale = math.cos(math.radians(BASE_LAT))
    coords = (BASE_LON + miles_east * DEG_PER_MILE / lon_scale,
              BASE_LAT + miles_north * DEG_PER_MILE)
    return Station(station_id, coords, tuple(line_codes), is_hub=is_hub, display_name=station_id)


@pytest.fixture
def straight_line_dataset():
    """One line A-B-C-D running north, stations one mile apart"""
    stations = [
        station_at("A", 0, line_codes=["red"]),
        station_at("B", 1, line_codes=["red"]),
        station_at("C", 2, line_codes=["red"]),
        station_at("D", 3, line_codes=["red"]),
    ]
    lines = [Line("red", ("A", "B", "C", "D"))]
    return TransitDataset(lines=lines, stations=stations)


@pytest.fixture
def interchange_dataset():
    """
    Two lines meeting at B

    red: A - B, blue: B - C. B is a hub.
    """
    stations = [
        station_at("A", 0, line_codes=["red"]),
        station_at("B", 1, line_codes=["red", "blue"], is_hub=True),
        station_at("C", 1, miles_east=1, line_codes=["blue"]),
    ]
    lines = [Line("red", ("A", "B")), Line("blue", ("B", "C"))]
    return TransitDataset(lines=lines, stations=stations)


@pytest.fixture
def mesh_dataset():
    """Small multi-line network with a loop, a hub and a branch"""
    stations = [
        station_at("N1", 0, 0, ["north", "circle"]),
        station_at("N2", 1, 0, ["north"]),
        station_at("N3", 2, 0, ["north", "east"], is_hub=True),
        station_at("N4", 3, 0, ["north"]),
        station_at("E1", 2, 1, ["east", "circle"]),
        station_at("E2", 2, 2.5, ["east"]),
        station_at("C1", 0.5, 1.5, ["circle"]),
        station_at("X1", 4, 4, ["branch"]),
        station_at("X2", 4.2, 4.1, ["branch"]),
    ]
    lines = [
        Line("north", ("N1", "N2", "N3", "N4")),
        Line("east", ("N3", "E1", "E2")),
        Line("circle", ("N1", "C1", "E1", "N1")),
        Line("branch", ("X1", "X2")),
    ]
    return TransitDataset(lines=lines, stations=stations)


def _station_record(station):
    return {
        "stationId": station.station_id,
        "displayName": station.display_name,
        "position": {"type": "Point", "coordinates": list(station.coordinates)},
        "lineCodes": list(station.line_codes),
        "isInterchange": len(station.line_codes) > 1,
        "isHub": station.is_hub,
    }


def _line_record(line):
    return {"lineCode": line.line_code, "displayName": line.display_name, "stationIds": list(line.station_ids)}


@pytest.fixture
def write_dataset(tmp_path):
    """Write a TransitDataset to a temp data directory and return its path"""
    def _write(dataset, extra_files=None):
        with open(tmp_path / "lines.json", "w", encoding="utf-8") as f:
            json.dump({"lines": [_line_record(l) for l in dataset.lines]}, f)
        with open(tmp_path / "stations.json", "w", encoding="utf-8") as f:
            json.dump({"stations": [_station_record(s) for s in dataset.stations]}, f)
        for name, payload in (extra_files or {}).items():
            with open(tmp_path / name, "w", encoding="utf-8") as f:
                json.dump(payload, f)
        return str(tmp_path)
    return _write
