"""
Station graph builder

Builds a directed, symmetric adjacency graph either from a precomputed
timetable edge table or, when none is supplied, from each line's ordered
station sequence with a distance + average speed heuristic.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from ..config import FALLBACK_DWELL_MINUTES, FALLBACK_LINE_SPEED_MPH
from ..geo import distance_meters, distance_miles
from .dataset import Line, Station

logger = logging.getLogger(__name__)

PRECOMPUTED = "precomputed"
HEURISTIC = "heuristic"


@dataclass(frozen=True)
class GraphEdge:
    """Directed edge between adjacent stations"""
    to: str
    line_code: str
    run_minutes: float
    distance_meters: float


@dataclass(frozen=True)
class PrecomputedEdge:
    """One row of a timetable-derived edge table"""
    to_station_id: str
    line_code: str
    minutes: float

    @classmethod
    def from_record(cls, record: Any) -> Optional["PrecomputedEdge"]:
        """Accepts {to|toStationId|destination, lineCode, minutes|runMinutes}"""
        if isinstance(record, PrecomputedEdge):
            return record
        if not isinstance(record, dict):
            return None

        to_id = record.get("toStationId") or record.get("to") or record.get("destination")
        line_code = record.get("lineCode")
        minutes = record.get("minutes", record.get("runMinutes"))

        if not isinstance(to_id, str) or not isinstance(line_code, str) or not line_code:
            return None
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
            return None
        if not math.isfinite(minutes) or minutes <= 0:
            return None

        return cls(to_station_id=to_id, line_code=line_code, minutes=float(minutes))


PrecomputedEdgeTable = Mapping[str, Iterable[Any]]


class StationGraph:
    """
    Read-only station adjacency

    Built once per dataset; callers hold the instance and pass it to the
    solver. Adjacency lists are tuples sorted by (to, line_code).
    """

    def __init__(self, adjacency: Dict[str, Tuple[GraphEdge, ...]], strategy: str,
                 skipped_edges: int = 0, hub_station_ids: Iterable[str] = ()):
        self._adjacency = MappingProxyType(adjacency)
        self.strategy = strategy
        self.skipped_edges = skipped_edges
        self.hub_station_ids = frozenset(hub_station_ids)

    @property
    def adjacency(self) -> Mapping[str, Tuple[GraphEdge, ...]]:
        return self._adjacency

    def edges_from(self, station_id: str) -> Tuple[GraphEdge, ...]:
        return self._adjacency.get(station_id, ())

    def __contains__(self, station_id: object) -> bool:
        return station_id in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def __iter__(self) -> Iterator[str]:
        return iter(self._adjacency)

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adjacency.values())

    def flat_edges(self) -> List[Tuple[str, GraphEdge]]:
        """(from_station_id, edge) pairs in adjacency order"""
        return [(from_id, edge) for from_id, edges in self._adjacency.items() for edge in edges]

    def summary(self) -> Dict[str, Any]:
        """Connectivity statistics for the graph"""
        g = nx.Graph()
        g.add_nodes_from(self._adjacency)
        for from_id, edge in self.flat_edges():
            g.add_edge(from_id, edge.to)

        components = sorted((len(c) for c in nx.connected_components(g)), reverse=True)
        largest = components[0] if components else 0
        coverage = largest / len(g) * 100 if len(g) else 0.0

        stats = {
            "strategy": self.strategy,
            "stations": len(self._adjacency),
            "edges": self.edge_count,
            "components": len(components),
            "largest_component": largest,
            "coverage_pct": round(coverage, 1),
            "skipped_edges": self.skipped_edges,
        }

        if len(g) and coverage < 90:
            logger.warning(f"Low graph connectivity: {largest}/{len(g)} stations ({coverage:.1f}%)")
        return stats


def heuristic_run_minutes(miles: float,
                          speed_mph: float = FALLBACK_LINE_SPEED_MPH,
                          dwell_minutes: float = FALLBACK_DWELL_MINUTES) -> float:
    """Run time for a segment from straight-line distance"""
    return (miles / speed_mph) * 60 + dwell_minutes


class _EdgeIndex:
    """(from, to, line) -> fastest minutes"""

    def __init__(self):
        self.segments: Dict[Tuple[str, str, str], float] = {}

    def record(self, from_id: str, to_id: str, line_code: str, minutes: float) -> None:
        key = (from_id, to_id, line_code)
        current = self.segments.get(key)
        if current is None or minutes < current:
            self.segments[key] = minutes

    def ensure_symmetric(self) -> int:
        """Add reverse segments that are missing; returns count added"""
        additions = [
            (to_id, from_id, line_code, minutes)
            for (from_id, to_id, line_code), minutes in self.segments.items()
            if (to_id, from_id, line_code) not in self.segments
        ]
        for addition in additions:
            self.record(*addition)
        return len(additions)


class StationGraphBuilder:
    """
    Build a StationGraph from lines and stations

    Prefers a precomputed edge table; falls back to the line-sequence
    heuristic when the table is absent or empty.
    """

    def __init__(self,
                 lines: Sequence[Line],
                 stations: Sequence[Station],
                 precomputed: Optional[PrecomputedEdgeTable] = None,
                 speed_mph: float = FALLBACK_LINE_SPEED_MPH,
                 dwell_minutes: float = FALLBACK_DWELL_MINUTES):
        self.lines = lines
        self.station_map = {s.station_id: s for s in stations}
        self.precomputed = precomputed
        self.speed_mph = speed_mph
        self.dwell_minutes = dwell_minutes

        self.skipped = 0

    def build(self) -> StationGraph:
        """
        Build the graph

        Returns:
            StationGraph with symmetric, deterministic adjacency
        """
        index = _EdgeIndex()
        self.skipped = 0

        strategy = HEURISTIC
        if self.precomputed:
            self._add_precomputed_edges(index)
            if index.segments:
                strategy = PRECOMPUTED
            else:
                logger.warning("Precomputed edge table has no usable edges, using heuristic graph")

        if strategy == HEURISTIC:
            self._add_heuristic_edges(index)

        synthesized = index.ensure_symmetric()
        if synthesized:
            logger.debug(f"Synthesized {synthesized} reverse edges")
        if self.skipped:
            logger.warning(f"Skipped {self.skipped} edges with unknown stations or invalid minutes")

        hubs = [sid for sid, s in self.station_map.items() if s.is_hub]
        graph = StationGraph(self._to_adjacency(index), strategy,
                             skipped_edges=self.skipped, hub_station_ids=hubs)
        logger.info(f"Station graph built ({strategy}): {len(graph)} stations, {graph.edge_count} edges")
        return graph

    def _add_precomputed_edges(self, index: _EdgeIndex) -> None:
        for from_id, rows in self.precomputed.items():
            if from_id not in self.station_map:
                self.skipped += sum(1 for _ in rows)
                continue
            for row in rows:
                edge = PrecomputedEdge.from_record(row)
                if edge is None or edge.to_station_id not in self.station_map or edge.to_station_id == from_id:
                    self.skipped += 1
                    continue
                index.record(from_id, edge.to_station_id, edge.line_code, edge.minutes)

    def _add_heuristic_edges(self, index: _EdgeIndex) -> None:
        for line in self.lines:
            ids = line.station_ids
            for a_id, b_id in zip(ids, ids[1:]):
                a = self.station_map.get(a_id)
                b = self.station_map.get(b_id)
                if a is None or b is None:
                    self.skipped += 1
                    continue
                if a_id == b_id:
                    continue

                miles = distance_miles(a.coordinates, b.coordinates)
                minutes = heuristic_run_minutes(miles, self.speed_mph, self.dwell_minutes)
                index.record(a_id, b_id, line.line_code, minutes)
                index.record(b_id, a_id, line.line_code, minutes)

    def _to_adjacency(self, index: _EdgeIndex) -> Dict[str, Tuple[GraphEdge, ...]]:
        buckets: Dict[str, List[GraphEdge]] = {}
        for (from_id, to_id, line_code), minutes in index.segments.items():
            meters = distance_meters(
                self.station_map[from_id].coordinates,
                self.station_map[to_id].coordinates
            )
            buckets.setdefault(from_id, []).append(
                GraphEdge(to=to_id, line_code=line_code, run_minutes=minutes, distance_meters=meters)
            )

        return {
            from_id: tuple(sorted(buckets[from_id], key=lambda e: (e.to, e.line_code)))
            for from_id in sorted(buckets)
        }


def build_station_graph(lines: Sequence[Line],
                        stations: Sequence[Station],
                        precomputed: Optional[PrecomputedEdgeTable] = None,
                        **kwargs) -> StationGraph:
    """Build a StationGraph (precomputed table if available, else heuristic)"""
    return StationGraphBuilder(lines, stations, precomputed, **kwargs).build()


def is_graph_available(lines: Sequence[Line], stations: Sequence[Station]) -> bool:
    """True when at least one line has two known stations"""
    known = {s.station_id for s in stations}
    return any(sum(1 for sid in line.station_ids if sid in known) >= 2 for line in lines)
