"""
Station Reach: travel-time reachability over a rail station network

Builds a weighted station graph from line sequences (or precomputed
timetable edges), answers budget-bounded shortest-path queries, filters
stations by radius or travel time, and serves a static journey cache
generated offline from TfL timetables.
"""

__version__ = "1.0.0"

from .data.dataset import Line, Station, TransitDataset, load_transit_dataset
from .data.graph_builder import StationGraph, build_station_graph
from .geo import distance_meters, distance_miles
from .transit.solver import Penalties, PathResult, shortest_paths_from
from .transit.proximity import ProximityFilterResult, filter_by_duration, filter_by_radius
from .cache.static_journeys import StaticJourneyCache
from .pipeline.reach import ReachabilityEngine

__all__ = [
    "Line",
    "Station",
    "TransitDataset",
    "load_transit_dataset",
    "StationGraph",
    "build_station_graph",
    "distance_meters",
    "distance_miles",
    "Penalties",
    "PathResult",
    "shortest_paths_from",
    "ProximityFilterResult",
    "filter_by_duration",
    "filter_by_radius",
    "StaticJourneyCache",
    "ReachabilityEngine",
]
