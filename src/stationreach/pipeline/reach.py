"""
High-level reachability interface
"""

import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import LONDON_BOUNDS, STATIC_CACHE_FILENAME
from ..data.dataset import TransitDataset, create_line_label_map, load_transit_dataset
from ..data.graph_builder import StationGraph, build_station_graph, is_graph_available
from ..exceptions import UnknownStationError
from ..geo import Coordinates, is_valid_coordinates
from ..modes.speeds import TravelMode, TravelTimeEstimate, calculate_travel_times_heuristic
from ..cache.static_journeys import StaticJourney, StaticJourneyCache
from ..transit.proximity import (
    NearestStation,
    Origin,
    ProximityFilterResult,
    StationLocator,
    filter_by_duration,
    filter_by_radius,
)
from ..transit.solver import Penalties, PathResult, minutes_between, shortest_paths_from

logger = logging.getLogger(__name__)


class ReachabilityEngine:
    """
    Caller-owned handle over one network snapshot

    Builds the station graph on first use and keeps it until a dataset with
    different content is supplied. Edges come from the static cache when it
    carries any, otherwise from the line-sequence heuristic.
    """

    def __init__(self,
                 dataset: TransitDataset,
                 static_cache: Optional[StaticJourneyCache] = None,
                 penalties: Optional[Penalties] = None):
        """
        Args:
            dataset: lines and stations
            static_cache: offline journey cache (optional)
            penalties: solver penalties (defaults to the cache's, else zeros)
        """
        self.static_cache = static_cache if static_cache is not None else StaticJourneyCache.empty()
        self.penalties = penalties or self.static_cache.penalties or Penalties()

        self.dataset = dataset
        self._fingerprint = dataset.fingerprint
        self._graph: Optional[StationGraph] = None
        self._locator: Optional[StationLocator] = None

        self.stats = {
            'graph_builds': 0,
            'queries': 0,
            'cache_hits': 0,
        }

    def use_dataset(self, dataset: TransitDataset) -> bool:
        """
        Swap in a dataset; the graph is rebuilt only if its content changed

        Returns:
            True if the memoized graph was invalidated
        """
        fingerprint = dataset.fingerprint
        self.dataset = dataset
        if fingerprint == self._fingerprint:
            return False

        logger.info("Dataset changed, station graph will be rebuilt")
        self._fingerprint = fingerprint
        self._graph = None
        self._locator = None
        return True

    @property
    def graph(self) -> StationGraph:
        if self._graph is None:
            precomputed = self.static_cache.edge_table() or None
            self._graph = build_station_graph(self.dataset.lines, self.dataset.stations, precomputed)
            self.stats['graph_builds'] += 1
        return self._graph

    @property
    def locator(self) -> StationLocator:
        if self._locator is None:
            self._locator = StationLocator(self.dataset.stations)
        return self._locator

    def shortest_paths_from(self, origin_id: str, max_minutes: float) -> List[PathResult]:
        self.stats['queries'] += 1
        return shortest_paths_from(origin_id, self.graph, max_minutes, self.penalties)

    def filter_by_radius(self, origin: Coordinates, radius_miles: float) -> ProximityFilterResult:
        self.stats['queries'] += 1
        return filter_by_radius(origin, radius_miles, self.dataset.stations)

    def filter_by_duration(self, origin: Origin, max_minutes: float) -> ProximityFilterResult:
        self.stats['queries'] += 1
        return filter_by_duration(
            origin, max_minutes,
            self.dataset.stations, self.dataset.lines,
            graph=self.graph,
            penalties=self.penalties,
            locator=self.locator,
        )

    def nearest_station(self, center: Coordinates) -> Optional[NearestStation]:
        return self.locator.nearest(center)

    @property
    def has_network(self) -> bool:
        """True when at least one line links two known stations"""
        return is_graph_available(self.dataset.lines, self.dataset.stations)

    def estimate_travel_times(self,
                              origin: Coordinates,
                              max_minutes: float,
                              mode: TravelMode = TravelMode.TRANSIT) -> List[TravelTimeEstimate]:
        """Straight-line estimates, for datasets without a usable network"""
        self.stats['queries'] += 1
        return calculate_travel_times_heuristic(origin, self.dataset.stations, mode, max_minutes)

    def lookup_journey(self, from_id: str, to_id: str,
                       max_minutes: Optional[float] = None) -> Optional[StaticJourney]:
        """
        Journey time between two stations

        Served from the static cache; with max_minutes set, a cache miss is
        solved live on the graph.
        """
        self.stats['queries'] += 1
        journey = self.static_cache.lookup_journey(from_id, to_id)
        if journey is not None:
            self.stats['cache_hits'] += 1
            return journey
        if max_minutes is None:
            return None

        minutes = minutes_between(from_id, to_id, self.graph, max_minutes, self.penalties)
        if minutes is None:
            return None
        return StaticJourney(from_id, to_id, round(minutes, 1), source="live")

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self.stats)
        stats['stations'] = len(self.dataset.stations)
        stats['lines'] = len(self.dataset.lines)
        stats['cached_journeys'] = len(self.static_cache)
        if self._graph is not None:
            stats['graph'] = self._graph.summary()
        return stats


def create_engine(data_dir: str,
                  cache_path: Optional[str] = None,
                  penalties: Optional[Penalties] = None) -> ReachabilityEngine:
    """
    Load a data directory into an engine

    The static cache defaults to <data_dir>/static-tube-times.json when present.
    """
    dataset = load_transit_dataset(data_dir)

    if cache_path is None:
        default_path = os.path.join(data_dir, STATIC_CACHE_FILENAME)
        cache_path = default_path if os.path.exists(default_path) else None

    static_cache = StaticJourneyCache.load(cache_path) if cache_path else None
    return ReachabilityEngine(dataset, static_cache, penalties)


def parse_origin(value: str) -> Origin:
    """'lon,lat' becomes coordinates, anything else is a station id"""
    parts = value.split(',')
    if len(parts) == 2:
        try:
            return (float(parts[0]), float(parts[1]))
        except ValueError:
            pass
    return value


def _print_result(engine: ReachabilityEngine, result: ProximityFilterResult, limit: int) -> None:
    names = {s.station_id: s.display_name or s.station_id for s in engine.dataset.stations}
    line_labels = create_line_label_map(engine.dataset.lines)

    if result.is_empty:
        print("❌ No stations reachable")
        return

    labels = [line_labels.get(code, code) for code in result.line_codes]
    print(f"🎯 {len(result.station_ids)} stations, lines: {', '.join(labels)}")
    rows: Sequence[Tuple[str, Optional[float]]] = [
        (sid, result.minutes.get(sid)) for sid in result.station_ids
    ]
    if result.minutes:
        rows = sorted(rows, key=lambda r: (r[1], r[0]))
    for i, (sid, minutes) in enumerate(rows[:limit], 1):
        suffix = f" ({minutes:.1f}min)" if minutes is not None else ""
        print(f"  {i}. {names.get(sid, sid)}{suffix}")
    if len(rows) > limit:
        print(f"  ... {len(rows) - limit} more")


def _print_estimates(engine: ReachabilityEngine, estimates: List[TravelTimeEstimate], limit: int) -> None:
    names = {s.station_id: s.display_name or s.station_id for s in engine.dataset.stations}

    if not estimates:
        print("❌ No stations reachable")
        return

    print(f"🎯 {len(estimates)} stations (straight-line estimate)")
    ordered = sorted(estimates, key=lambda e: (e.duration_minutes, e.station_id))
    for i, estimate in enumerate(ordered[:limit], 1):
        print(f"  {i}. {names.get(estimate.station_id, estimate.station_id)} "
              f"({estimate.duration_minutes:.1f}min, {estimate.distance_meters}m)")
    if len(ordered) > limit:
        print(f"  ... {len(ordered) - limit} more")


def cli_main():
    """Command line interface entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='Station network reachability')
    parser.add_argument('--data-dir', required=True, help='Directory with lines.json and stations.json')
    parser.add_argument('--origin', required=True, help="Station id or 'lon,lat'")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument('--radius', type=float, help='Radius in miles')
    group.add_argument('--minutes', type=float, help='Travel-time budget in minutes')
    parser.add_argument('--mode', choices=[m.value for m in TravelMode],
                        help='Straight-line estimate for this mode instead of the network')
    parser.add_argument('--cache', help='Static journey cache JSON')
    parser.add_argument('--limit', type=int, default=20, help='Stations to print')
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s: %(message)s')

    engine = create_engine(args.data_dir, args.cache)
    origin = parse_origin(args.origin)

    if not isinstance(origin, str):
        if not is_valid_coordinates(origin):
            raise SystemExit(f"Invalid coordinates: {args.origin}")
        if not is_valid_coordinates(origin, LONDON_BOUNDS):
            logger.warning(f"Origin {origin} is outside Greater London")

    mode = args.mode
    if args.minutes is not None and mode is None and not engine.has_network:
        logger.warning("No line links two known stations, using straight-line transit estimates")
        mode = TravelMode.TRANSIT.value

    if args.radius is not None or mode is not None:
        if isinstance(origin, str):
            station = engine.dataset.station_map().get(origin)
            if station is None:
                raise SystemExit(str(UnknownStationError(origin)))
            origin = station.coordinates

    if args.radius is not None:
        _print_result(engine, engine.filter_by_radius(origin, args.radius), args.limit)
    elif mode is not None:
        estimates = engine.estimate_travel_times(origin, args.minutes, TravelMode(mode))
        _print_estimates(engine, estimates, args.limit)
    else:
        try:
            result = engine.filter_by_duration(origin, args.minutes)
        except UnknownStationError as e:
            raise SystemExit(str(e))
        _print_result(engine, result, args.limit)


if __name__ == "__main__":
    cli_main()
