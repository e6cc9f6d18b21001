#!/usr/bin/env python3
"""
Offline static journey cache generator

Fetches route sequences and timetables from the TfL API, turns timetable
intervals into station-to-station edges, fills gaps with heuristic edges,
then runs the solver from every station and writes the journey artifact.

Individual fetch failures never abort a run: the affected segments fall back
to heuristic run times and the failure is counted in the artifact metadata.
"""

import argparse
import asyncio
import json
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import httpx
import pandas as pd

from ..config import (
    FETCH_CONCURRENCY,
    MAX_RETRIES,
    REQUEST_TIMEOUT_SEC,
    RETRY_BASE_DELAY_SEC,
    RETRYABLE_STATUS,
    ROUTE_DIRECTIONS,
    STATIC_CACHE_FILENAME,
    STATIC_CACHE_MAX_MINUTES,
    STATIC_CACHE_SOURCE,
    TFL_API_BASE,
    TFL_APP_ID,
    TFL_APP_KEY,
    USER_AGENT,
)
from ..data.dataset import Line, Station, TransitDataset, load_transit_dataset
from ..data.graph_builder import PrecomputedEdge, StationGraph, build_station_graph, heuristic_run_minutes
from ..exceptions import UpstreamFetchError
from ..geo import distance_miles
from ..transit.solver import Penalties, shortest_paths_from
from .static_journeys import StaticGraphEdge, StaticJourney

logger = logging.getLogger(__name__)

GENERATED_WITH = "stationreach.cache.generator"


# ============================================================================
# Timetable API client
# ============================================================================

class TimetableClient:
    """
    TfL API client with retry and bounded concurrency

    At most `concurrency` requests are in flight across all callers sharing
    the instance. Retryable statuses and transport errors are retried with
    Retry-After or linear backoff.
    """

    def __init__(self,
                 client: httpx.AsyncClient,
                 base_url: str = TFL_API_BASE,
                 app_id: Optional[str] = TFL_APP_ID,
                 app_key: Optional[str] = TFL_APP_KEY,
                 max_retries: int = MAX_RETRIES,
                 retry_base_delay: float = RETRY_BASE_DELAY_SEC,
                 concurrency: int = FETCH_CONCURRENCY):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.app_id = app_id
        self.app_key = app_key
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.semaphore = asyncio.Semaphore(concurrency)

        self.request_count = 0

    def _params(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = dict(params or {})
        if self.app_id:
            merged["app_id"] = self.app_id
        if self.app_key:
            merged["app_key"] = self.app_key
        return merged

    async def fetch_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a JSON document

        Raises:
            UpstreamFetchError: non-retryable status, bad JSON, or retries exhausted
        """
        url = f"{self.base_url}{path}"
        attempt = 1

        while True:
            retry_after = None
            async with self.semaphore:
                self.request_count += 1
                try:
                    response = await self.client.get(
                        url,
                        params=self._params(params),
                        headers={"User-Agent": USER_AGENT},
                    )
                except httpx.TransportError as e:
                    reason = f"{type(e).__name__}: {e}"
                    response = None

            if response is not None:
                if response.status_code == 200:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise UpstreamFetchError(url, f"invalid JSON ({e})") from e

                reason = f"status {response.status_code}"
                if response.status_code not in RETRYABLE_STATUS:
                    raise UpstreamFetchError(url, reason)
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))

            if attempt > self.max_retries:
                raise UpstreamFetchError(url, f"{reason} after {attempt} attempts")

            delay = retry_after if retry_after is not None else self.retry_base_delay * attempt
            logger.warning(f"Retrying {url} in {delay:.2f}s ({reason}, attempt {attempt}/{self.max_retries})")
            await asyncio.sleep(delay)
            attempt += 1


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if math.isfinite(seconds) and seconds >= 0 else None


# ============================================================================
# Route and timetable structures
# ============================================================================

@dataclass(frozen=True)
class RouteSequence:
    """Ordered canonical stops of one line branch"""
    line_code: str
    direction: str
    stops: Tuple[str, ...]


@dataclass(frozen=True)
class TimetableRequest:
    line_code: str
    direction: str
    origin_id: str  # raw API stop id


@dataclass(frozen=True)
class TimetableEdge:
    from_station_id: str
    to_station_id: str
    line_code: str
    minutes: float


@dataclass
class RouteData:
    requests: List[TimetableRequest] = field(default_factory=list)
    sequences: List[RouteSequence] = field(default_factory=list)
    covered_stations: Set[str] = field(default_factory=set)
    failures: int = 0


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


# ============================================================================
# Generator
# ============================================================================

class StaticCacheGenerator:
    """
    Build the static journey artifact for a dataset

    With no client every edge comes from the heuristic (offline mode).
    """

    def __init__(self,
                 dataset: TransitDataset,
                 client: Optional[TimetableClient] = None,
                 penalties: Optional[Penalties] = None,
                 max_minutes: float = STATIC_CACHE_MAX_MINUTES,
                 source: str = STATIC_CACHE_SOURCE):
        self.dataset = dataset
        self.client = client
        self.penalties = penalties or Penalties.timetable_defaults()
        self.max_minutes = max_minutes
        self.source = source

        self.station_map: Dict[str, Station] = dataset.station_map()
        self._alias_cache: Dict[str, Optional[str]] = {}

        self.stats = {
            "timetableRequests": 0,
            "timetableEdgesParsed": 0,
            "fallbackEdges": 0,
            "upstreamFailures": 0,
        }

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def resolve_station_id(self, raw_id: Optional[str]) -> Optional[str]:
        """Map an API stop id to a dataset station id via StopPoint lookup"""
        if not raw_id:
            return None
        if raw_id in self.station_map:
            return raw_id
        if raw_id in self._alias_cache:
            return self._alias_cache[raw_id]

        canonical = None
        try:
            data = await self.client.fetch_json(f"/StopPoint/{raw_id}")
        except UpstreamFetchError as e:
            logger.warning(f"Unable to resolve stop {raw_id}: {e}")
            data = None

        if isinstance(data, dict):
            for key in ("id", "stationId", "hubNaptanCode", "naptanId", "stationNaptan", "icsCode"):
                candidate = data.get(key)
                if isinstance(candidate, str) and candidate in self.station_map:
                    canonical = candidate
                    break

        self._alias_cache[raw_id] = canonical
        return canonical

    async def get_route_data(self, line_code: str) -> RouteData:
        """Route sequences and timetable requests for one line"""
        route_data = RouteData()
        seen_requests = set()

        for direction in ROUTE_DIRECTIONS:
            path = f"/Line/{line_code}/Route/Sequence/{direction}"
            try:
                data = await self.client.fetch_json(path, {"serviceTypes": "Regular"})
            except UpstreamFetchError as e:
                logger.warning(f"Failed to fetch route sequence for {line_code} {direction}: {e}")
                route_data.failures += 1
                continue

            routes = _as_list(data.get("orderedLineRoutes")) if isinstance(data, dict) else []
            for route in routes:
                raw_ids = [i for i in _as_list(route.get("naptanIds") if isinstance(route, dict) else None)
                           if isinstance(i, str)]
                if not raw_ids:
                    continue

                resolved: List[str] = []
                for raw_id in raw_ids:
                    canonical = await self.resolve_station_id(raw_id)
                    if canonical is None:
                        continue
                    if resolved and resolved[-1] == canonical:
                        continue
                    resolved.append(canonical)

                if len(resolved) < 2:
                    continue

                route_data.sequences.append(RouteSequence(line_code, direction, tuple(resolved)))
                route_data.covered_stations.update(resolved)

                key = (direction, raw_ids[0])
                if key not in seen_requests:
                    seen_requests.add(key)
                    route_data.requests.append(TimetableRequest(line_code, direction, raw_ids[0]))

        return route_data

    async def fetch_timetable_edges(self, request: TimetableRequest) -> List[TimetableEdge]:
        """
        Edges from one timetable

        Raises:
            UpstreamFetchError: the timetable could not be fetched
        """
        path = f"/Line/{request.line_code}/Timetable/{request.origin_id}"
        data = await self.client.fetch_json(path, {"direction": request.direction})
        if not isinstance(data, dict):
            return []

        stop_alias: Dict[str, str] = {}
        for stop in _as_list(data.get("stops")):
            if not isinstance(stop, dict):
                continue
            identifiers = [stop.get(k) for k in ("stationId", "id", "parentId", "topMostParentId")]
            identifiers = [i for i in identifiers if isinstance(i, str) and i]
            canonical = next((i for i in identifiers if i in self.station_map), None)
            if canonical is None:
                continue
            for identifier in identifiers:
                stop_alias[identifier] = canonical

        def resolve(stop_id: Any) -> Optional[str]:
            if not isinstance(stop_id, str) or not stop_id:
                return None
            if stop_id in self.station_map:
                return stop_id
            # StopPoint resolutions from the route sequences
            return stop_alias.get(stop_id) or self._alias_cache.get(stop_id)

        origin = resolve(request.origin_id)
        if origin is None:
            logger.warning(f"Skipping timetable {request.line_code} {request.origin_id} "
                           f"{request.direction}: unable to resolve origin")
            return []

        timetable = data.get("timetable") if isinstance(data.get("timetable"), dict) else {}
        edges = []
        for route in _as_list(timetable.get("routes")):
            groups = _as_list(route.get("stationIntervals")) if isinstance(route, dict) else []
            for group in groups:
                intervals = _as_list(group.get("intervals")) if isinstance(group, dict) else []
                prev_stop, prev_time = origin, 0.0
                for interval in intervals:
                    if not isinstance(interval, dict):
                        continue
                    stop_id = resolve(interval.get("stopId"))
                    arrival = interval.get("timeToArrival")
                    if stop_id is None or isinstance(arrival, bool) or not isinstance(arrival, (int, float)):
                        continue
                    if not math.isfinite(arrival):
                        continue
                    if stop_id == prev_stop:
                        prev_time = arrival
                        continue
                    minutes = arrival - prev_time
                    if minutes > 0:
                        edges.append(TimetableEdge(prev_stop, stop_id, request.line_code, float(minutes)))
                    prev_stop, prev_time = stop_id, arrival

        return edges

    async def _fetch_edges_or_fallback(self, request: TimetableRequest) -> List[TimetableEdge]:
        try:
            return await self.fetch_timetable_edges(request)
        except UpstreamFetchError as e:
            logger.warning(f"Failed to fetch timetable for {request.line_code} {request.origin_id} "
                           f"{request.direction}: {e}")
            self.stats["upstreamFailures"] += 1
            return []

    async def collect(self, lines: Sequence[Line]) -> Tuple[List[TimetableEdge], List[RouteSequence], Dict[str, Set[str]]]:
        """Fetch route data and timetables for all lines"""
        route_results = await asyncio.gather(*(self.get_route_data(line.line_code) for line in lines))

        requests: List[TimetableRequest] = []
        sequences: List[RouteSequence] = []
        coverage: Dict[str, Set[str]] = {}
        for line, route_data in zip(lines, route_results):
            requests.extend(route_data.requests)
            sequences.extend(route_data.sequences)
            coverage[line.line_code] = route_data.covered_stations
            self.stats["upstreamFailures"] += route_data.failures

        self.stats["timetableRequests"] = len(requests)
        logger.info(f"Generated {len(requests)} timetable requests")

        edge_lists = await asyncio.gather(*(self._fetch_edges_or_fallback(r) for r in requests))
        edges = [edge for edge_list in edge_lists for edge in edge_list]
        self.stats["timetableEdgesParsed"] = len(edges)
        return edges, sequences, coverage

    # ------------------------------------------------------------------
    # Graph + journeys
    # ------------------------------------------------------------------

    def _heuristic_minutes(self, from_id: str, to_id: str) -> Optional[float]:
        a = self.station_map.get(from_id)
        b = self.station_map.get(to_id)
        if a is None or b is None:
            return None
        return heuristic_run_minutes(distance_miles(a.coordinates, b.coordinates))

    def build_graph(self,
                    lines: Sequence[Line],
                    timetable_edges: Iterable[TimetableEdge] = (),
                    sequences: Iterable[RouteSequence] = (),
                    coverage: Optional[Dict[str, Set[str]]] = None) -> StationGraph:
        """
        Merge timetable edges with heuristic edges for uncovered segments

        Segments on a fetched route sequence without a timetable edge, and
        dataset line segments the API did not cover, get heuristic times.
        """
        coverage = coverage or {}
        known: Set[Tuple[str, str, str]] = set()
        table: Dict[str, List[PrecomputedEdge]] = {}

        def add(from_id: str, to_id: str, line_code: str, minutes: float) -> None:
            known.add((from_id, to_id, line_code))
            table.setdefault(from_id, []).append(PrecomputedEdge(to_id, line_code, minutes))

        for edge in timetable_edges:
            add(edge.from_station_id, edge.to_station_id, edge.line_code, edge.minutes)

        fallback = 0
        for sequence in sequences:
            for from_id, to_id in zip(sequence.stops, sequence.stops[1:]):
                if from_id == to_id or (from_id, to_id, sequence.line_code) in known:
                    continue
                minutes = self._heuristic_minutes(from_id, to_id)
                if minutes is None:
                    continue
                add(from_id, to_id, sequence.line_code, minutes)
                fallback += 1

        for line in lines:
            covered = coverage.get(line.line_code, set())
            ids = line.station_ids
            for from_id, to_id in zip(ids, ids[1:]):
                if from_id == to_id or (from_id in covered and to_id in covered):
                    continue
                if (from_id, to_id, line.line_code) in known:
                    continue
                minutes = self._heuristic_minutes(from_id, to_id)
                if minutes is None:
                    continue
                add(from_id, to_id, line.line_code, minutes)
                fallback += 1

        self.stats["fallbackEdges"] = fallback
        logger.info(f"Edges: {self.stats['timetableEdgesParsed']} from timetables, {fallback} heuristic")

        return build_station_graph(lines, self.dataset.stations, precomputed=table)

    def generate_journeys(self, graph: StationGraph) -> List[StaticJourney]:
        """Solve from every station; one journey per reachable pair"""
        journeys = []
        for origin_id in sorted(graph):
            for result in shortest_paths_from(origin_id, graph, self.max_minutes, self.penalties):
                minutes = round(result.minutes, 1)
                if minutes <= 0:
                    continue
                journeys.append(StaticJourney(origin_id, result.station_id, minutes, self.source))
        return journeys

    def build_payload(self, graph: StationGraph, journeys: List[StaticJourney]) -> Dict[str, Any]:
        graph_edges = [
            StaticGraphEdge(from_id, edge.to, edge.line_code, round(edge.run_minutes, 2))
            for from_id, edge in graph.flat_edges()
        ]
        metadata = dict(self.stats)
        metadata.update({
            "graphStations": len(graph),
            "graphEdges": graph.edge_count,
            "boardingWaitMinutes": self.penalties.boarding_wait_minutes,
            "transferWalkMinutes": self.penalties.transfer_walk_minutes,
            "hubWalkMinutes": self.penalties.hub_walk_minutes,
        })

        return {
            "generatedAt": pd.Timestamp.now(tz="UTC").isoformat(),
            "source": self.source,
            "transferPenaltyMinutes": self.penalties.transfer_penalty_minutes,
            "generatedWith": GENERATED_WITH,
            "metadata": metadata,
            "graphEdges": [e.to_dict() for e in graph_edges],
            "journeys": [j.to_dict() for j in journeys],
        }

    async def run(self, modes: Optional[Sequence[str]] = ("tube",)) -> Dict[str, Any]:
        """
        Generate the artifact payload

        Args:
            modes: line modes to include (None for all)

        Returns:
            JSON-serializable artifact
        """
        lines = [line for line in self.dataset.lines if modes is None or line.mode in modes]
        logger.info(f"Generating static journeys for {len(lines)} lines")

        if self.client is not None:
            timetable_edges, sequences, coverage = await self.collect(lines)
        else:
            timetable_edges, sequences, coverage = [], [], {}

        graph = self.build_graph(lines, timetable_edges, sequences, coverage)
        journeys = self.generate_journeys(graph)

        if self.stats["upstreamFailures"]:
            logger.warning(f"{self.stats['upstreamFailures']} upstream fetches failed; "
                           f"affected segments use heuristic times")
        logger.info(f"Generated {len(journeys)} journeys over {len(graph)} stations")
        return self.build_payload(graph, journeys)


async def generate_static_cache(dataset: TransitDataset,
                                offline: bool = False,
                                modes: Optional[Sequence[str]] = ("tube",),
                                penalties: Optional[Penalties] = None,
                                max_minutes: float = STATIC_CACHE_MAX_MINUTES,
                                concurrency: int = FETCH_CONCURRENCY) -> Dict[str, Any]:
    """Generate the artifact, fetching timetables unless offline"""
    if offline:
        return await StaticCacheGenerator(dataset, None, penalties, max_minutes).run(modes)

    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SEC) as http:
        client = TimetableClient(http, concurrency=concurrency)
        generator = StaticCacheGenerator(dataset, client, penalties, max_minutes)
        payload = await generator.run(modes)
        logger.info(f"{client.request_count} API requests made")
        return payload


def write_static_cache(payload: Dict[str, Any], output_path: str) -> None:
    """Write the artifact as JSON"""
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info(f"Wrote {len(payload.get('journeys', []))} journeys to {output_path}")


def cli_main():
    """Command line interface entry point"""
    parser = argparse.ArgumentParser(description='Generate the static journey cache')
    parser.add_argument('--data-dir', required=True, help='Directory with lines.json and stations.json')
    parser.add_argument('--output', help=f'Output path (default: <data-dir>/{STATIC_CACHE_FILENAME})')
    parser.add_argument('--offline', action='store_true', help='Skip the API; heuristic edges only')
    parser.add_argument('--max-minutes', type=float, default=STATIC_CACHE_MAX_MINUTES)
    parser.add_argument('--modes', default='tube', help="Comma-separated line modes, or 'all'")
    parser.add_argument('--concurrency', type=int, default=FETCH_CONCURRENCY)
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s: %(message)s')

    dataset = load_transit_dataset(args.data_dir)
    modes = None if args.modes == 'all' else tuple(m.strip() for m in args.modes.split(',') if m.strip())

    payload = asyncio.run(generate_static_cache(
        dataset,
        offline=args.offline,
        modes=modes,
        max_minutes=args.max_minutes,
        concurrency=args.concurrency,
    ))

    output_path = args.output or os.path.join(args.data_dir, STATIC_CACHE_FILENAME)
    write_static_cache(payload, output_path)

    meta = payload["metadata"]
    print(f"✅ {len(payload['journeys'])} journeys, {meta['graphEdges']} edges "
          f"({meta['fallbackEdges']} heuristic, {meta['upstreamFailures']} upstream failures)")


if __name__ == "__main__":
    cli_main()
