"""
Straight-line travel-time estimates per mode

Used when no station graph is available: distance at an average speed
plus a fixed overhead.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from ..config import METERS_PER_MILE
from ..data.dataset import Station
from ..geo import Coordinates, distance_miles, is_valid_coordinates


class TravelMode(str, Enum):
    TRANSIT = "TRANSIT"
    WALKING = "WALKING"
    BICYCLING = "BICYCLING"


SPEEDS_MPH: Dict[TravelMode, float] = {
    TravelMode.TRANSIT: 18.0,
    TravelMode.WALKING: 3.0,
    TravelMode.BICYCLING: 10.0,
}

OVERHEAD_MINUTES: Dict[TravelMode, float] = {
    TravelMode.TRANSIT: 4.0,
    TravelMode.WALKING: 0.0,
    TravelMode.BICYCLING: 2.0,
}

DEFAULT_MAX_DURATION_MINUTES = 30.0


@dataclass(frozen=True)
class TravelTimeEstimate:
    station_id: str
    duration_minutes: float
    distance_meters: int


def estimate_minutes(miles: float, mode: TravelMode = TravelMode.TRANSIT) -> float:
    """Minutes to cover a straight-line distance in the given mode"""
    mode = TravelMode(mode)
    return (miles / SPEEDS_MPH[mode]) * 60 + OVERHEAD_MINUTES[mode]


def calculate_travel_times_heuristic(
    origin: Coordinates,
    stations: Sequence[Station],
    mode: TravelMode = TravelMode.TRANSIT,
    max_duration_minutes: float = DEFAULT_MAX_DURATION_MINUTES
) -> List[TravelTimeEstimate]:
    """
    Estimate travel time from origin to every station

    Args:
        origin: (lon, lat)
        stations: candidate stations
        mode: travel mode
        max_duration_minutes: drop stations estimated above this

    Returns:
        Estimates within the duration, in station order
    """
    if not is_valid_coordinates(origin) or max_duration_minutes <= 0:
        return []

    results = []
    for station in stations:
        miles = distance_miles(origin, station.coordinates)
        minutes = round(estimate_minutes(miles, mode), 1)
        if minutes <= max_duration_minutes:
            results.append(TravelTimeEstimate(
                station_id=station.station_id,
                duration_minutes=minutes,
                distance_meters=round(miles * METERS_PER_MILE),
            ))
    return results
