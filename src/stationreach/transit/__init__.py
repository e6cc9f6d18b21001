"""
Shortest-path search and reachability filters
"""

from .solver import Penalties, PathResult, shortest_paths_from
from .proximity import (
    ProximityFilterResult,
    StationLocator,
    derive_line_codes,
    filter_by_duration,
    filter_by_radius,
    find_nearby_stations,
    find_nearest_station,
)

__all__ = [
    "Penalties",
    "PathResult",
    "shortest_paths_from",
    "ProximityFilterResult",
    "StationLocator",
    "derive_line_codes",
    "filter_by_duration",
    "filter_by_radius",
    "find_nearby_stations",
    "find_nearest_station",
]
