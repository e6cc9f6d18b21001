"""
Radius and travel-time reachability filters

Both modes return the reachable station ids plus the sorted union of line
codes serving them. Invalid bounds or coordinates give an empty result.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.spatial import KDTree

from ..config import EARTH_RADIUS_MILES, RADIUS_TOLERANCE_MILES
from ..data.dataset import Line, Station
from ..data.graph_builder import StationGraph, build_station_graph
from ..exceptions import UnknownStationError
from ..geo import Coordinates, distance_miles, is_valid_coordinates
from .solver import Penalties, shortest_paths_from

logger = logging.getLogger(__name__)

Origin = Union[str, Coordinates]

# KDTree candidates re-ranked by haversine
NEAREST_CANDIDATES = 8

# Headroom for the projection error away from the mean latitude
BALL_QUERY_SLACK = 1.25


@dataclass(frozen=True)
class ProximityFilterResult:
    """Reachable stations and the lines serving them"""
    station_ids: Tuple[str, ...] = ()
    line_codes: Tuple[str, ...] = ()
    minutes: Dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.station_ids


@dataclass(frozen=True)
class NearestStation:
    station_id: str
    name: str
    distance_miles: float


def _valid_bound(value: float) -> bool:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and value > 0


def find_nearby_stations(center: Coordinates,
                         radius_miles: float,
                         stations: Sequence[Station]) -> List[str]:
    """Station ids with distance(center, station) <= radius_miles"""
    if not _valid_bound(radius_miles) or not is_valid_coordinates(center):
        return []

    limit = radius_miles + RADIUS_TOLERANCE_MILES
    return [
        s.station_id for s in stations
        if distance_miles(center, s.coordinates) <= limit
    ]


def derive_line_codes(station_ids: Sequence[str], stations: Sequence[Station]) -> Tuple[str, ...]:
    """Sorted unique line codes serving the given stations"""
    wanted = set(station_ids)
    codes = set()
    for station in stations:
        if station.station_id in wanted:
            codes.update(station.line_codes)
    return tuple(sorted(codes))


def filter_by_radius(origin: Coordinates,
                     radius_miles: float,
                     stations: Sequence[Station]) -> ProximityFilterResult:
    """
    Stations within radius_miles of origin (inclusive)

    Args:
        origin: (lon, lat)
        radius_miles: search radius
        stations: all stations

    Returns:
        ProximityFilterResult (empty for radius <= 0 or bad coordinates)
    """
    station_ids = find_nearby_stations(origin, radius_miles, stations)
    if not station_ids:
        return ProximityFilterResult()

    return ProximityFilterResult(
        station_ids=tuple(station_ids),
        line_codes=derive_line_codes(station_ids, stations),
    )


class StationLocator:
    """
    Nearest-station lookup

    KDTree over (lon * cos(lat0), lat) narrows candidates, with lat0 the mean
    station latitude; the haversine distance decides. A ball query around the
    best candidate picks up anything the planar projection ranked too far.
    """

    def __init__(self, stations: Sequence[Station]):
        self.stations = list(stations)
        self.tree: Optional[KDTree] = None
        self.lon_scale = 1.0
        if self.stations:
            coords = np.array([s.coordinates for s in self.stations], dtype=float)
            self.lon_scale = math.cos(math.radians(float(coords[:, 1].mean())))
            self.tree = KDTree(self._project(coords))

    def _project(self, coords: np.ndarray) -> np.ndarray:
        projected = np.array(coords, dtype=float)
        projected[..., 0] *= self.lon_scale
        return projected

    def nearest(self, center: Coordinates) -> Optional[NearestStation]:
        if self.tree is None or not is_valid_coordinates(center):
            return None

        point = self._project(np.array(center, dtype=float))
        k = min(NEAREST_CANDIDATES, len(self.stations))
        _, indices = self.tree.query(point, k=k)
        indices = set(int(i) for i in np.atleast_1d(indices))

        closest = min(distance_miles(center, self.stations[i].coordinates) for i in indices)
        radius_deg = math.degrees(closest / EARTH_RADIUS_MILES) * BALL_QUERY_SLACK
        if radius_deg > 0:
            indices.update(self.tree.query_ball_point(point, radius_deg))

        best = None
        for idx in sorted(indices):
            station = self.stations[int(idx)]
            dist = distance_miles(center, station.coordinates)
            key = (dist, station.station_id)
            if best is None or key < best[0]:
                best = (key, station)

        (dist, _), station = best
        return NearestStation(
            station_id=station.station_id,
            name=station.display_name,
            distance_miles=dist,
        )


def find_nearest_station(center: Coordinates,
                         stations: Sequence[Station]) -> Optional[NearestStation]:
    """Closest station to center, None if there are no stations"""
    return StationLocator(stations).nearest(center)


def filter_by_duration(origin: Origin,
                       max_minutes: float,
                       stations: Sequence[Station],
                       lines: Sequence[Line],
                       graph: Optional[StationGraph] = None,
                       penalties: Optional[Penalties] = None,
                       locator: Optional[StationLocator] = None) -> ProximityFilterResult:
    """
    Stations reachable from origin within max_minutes of network travel

    Args:
        origin: station id, or (lon, lat) snapped to the nearest station
        max_minutes: travel-time budget
        stations: all stations
        lines: all lines (used to build a heuristic graph if none is given)
        graph: prebuilt graph to reuse
        penalties: solver penalties
        locator: prebuilt StationLocator for coordinate origins

    Returns:
        ProximityFilterResult including the origin station at 0 minutes

    Raises:
        UnknownStationError: origin id is not a known station
    """
    if not _valid_bound(max_minutes):
        return ProximityFilterResult()

    if isinstance(origin, str):
        origin_id = origin
        if not any(s.station_id == origin_id for s in stations):
            raise UnknownStationError(origin_id)
    else:
        nearest = (locator or StationLocator(stations)).nearest(origin)
        if nearest is None:
            return ProximityFilterResult()
        origin_id = nearest.station_id
        logger.debug(f"Snapped {origin} to {origin_id} ({nearest.distance_miles:.2f} mi)")

    if graph is None:
        graph = build_station_graph(lines, stations)

    minutes = {origin_id: 0.0}
    if origin_id in graph:
        for result in shortest_paths_from(origin_id, graph, max_minutes, penalties):
            minutes[result.station_id] = result.minutes

    station_ids = tuple(minutes)
    return ProximityFilterResult(
        station_ids=station_ids,
        line_codes=derive_line_codes(station_ids, stations),
        minutes=minutes,
    )
