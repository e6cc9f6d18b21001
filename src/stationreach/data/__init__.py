"""
Dataset ingestion and station graph construction
"""

from .dataset import (
    Line,
    Station,
    TransitDataLoader,
    TransitDataset,
    create_line_label_map,
    load_stations_csv,
    load_transit_dataset,
)
from .graph_builder import (
    GraphEdge,
    PrecomputedEdge,
    StationGraph,
    StationGraphBuilder,
    build_station_graph,
    heuristic_run_minutes,
    is_graph_available,
)

__all__ = [
    "Line",
    "Station",
    "TransitDataLoader",
    "TransitDataset",
    "create_line_label_map",
    "load_stations_csv",
    "load_transit_dataset",
    "GraphEdge",
    "PrecomputedEdge",
    "StationGraph",
    "StationGraphBuilder",
    "build_station_graph",
    "heuristic_run_minutes",
    "is_graph_available",
]
