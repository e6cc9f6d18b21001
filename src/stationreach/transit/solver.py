"""
Budget-bounded shortest travel-time search

Single-source Dijkstra over (station, arriving line) labels. Tracking the
arriving line per label lets the search charge boarding and transfer
penalties exactly; the per-station answer is its cheapest label, plus the
hub walk when the station is a hub.
"""

import heapq
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..config import BOARDING_WAIT_MINUTES, HUB_WALK_MINUTES, TRANSFER_WALK_MINUTES
from ..data.graph_builder import GraphEdge, StationGraph
from ..exceptions import UnknownStationError

logger = logging.getLogger(__name__)

# Arriving line of the origin label (not yet boarded)
NOT_BOARDED = ""

Label = Tuple[str, str]  # (station_id, arriving line_code)


@dataclass(frozen=True)
class Penalties:
    """Fixed costs added on top of run minutes"""
    boarding_wait_minutes: float = 0.0
    transfer_walk_minutes: float = 0.0
    hub_walk_minutes: float = 0.0

    def __post_init__(self):
        for name in ("boarding_wait_minutes", "transfer_walk_minutes", "hub_walk_minutes"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value}")

    @classmethod
    def timetable_defaults(cls) -> "Penalties":
        """Penalties used for the static journey cache"""
        return cls(
            boarding_wait_minutes=BOARDING_WAIT_MINUTES,
            transfer_walk_minutes=TRANSFER_WALK_MINUTES,
            hub_walk_minutes=HUB_WALK_MINUTES,
        )

    @property
    def transfer_penalty_minutes(self) -> float:
        """Flat cost of changing lines (walk + wait for the next vehicle)"""
        return self.transfer_walk_minutes + self.boarding_wait_minutes

    def step_penalty(self, arriving_line: str, edge_line: str, at_hub: bool) -> float:
        """
        Penalty for taking an edge on edge_line from a node reached on arriving_line

        Boarding at the origin costs the boarding wait; a line change costs
        the transfer walk plus a fresh wait. Either one at a hub adds the hub
        walk. Staying on the same line is free.
        """
        if arriving_line == NOT_BOARDED:
            penalty = self.boarding_wait_minutes
        elif arriving_line != edge_line:
            penalty = self.transfer_walk_minutes + self.boarding_wait_minutes
        else:
            return 0.0

        if at_hub:
            penalty += self.hub_walk_minutes
        return penalty

    def arrival_penalty(self, at_hub: bool) -> float:
        """Walk out of a hub destination; riding through a hub is free"""
        return self.hub_walk_minutes if at_hub else 0.0


@dataclass(frozen=True)
class PathResult:
    """Shortest path to one reached station"""
    station_id: str
    minutes: float
    via: Tuple[str, ...]   # origin ... station_id
    lines: Tuple[str, ...]  # distinct consecutive line codes


def shortest_paths_from(origin_id: str,
                        graph: StationGraph,
                        max_minutes: float,
                        penalties: Optional[Penalties] = None) -> List[PathResult]:
    """
    Shortest travel times from origin_id to every station within max_minutes

    Args:
        origin_id: origin station id (must be in the graph)
        graph: station graph
        max_minutes: cumulative budget; relaxations beyond it are never queued
        penalties: boarding/transfer/hub penalties (zeros if omitted)

    Returns:
        PathResult per reached station (origin excluded), sorted by
        (minutes, station_id)

    Raises:
        UnknownStationError: origin_id is not a graph node
    """
    if origin_id not in graph:
        raise UnknownStationError(origin_id)

    if max_minutes is None or math.isnan(max_minutes) or max_minutes <= 0:
        return []

    penalties = penalties or Penalties()
    hubs = graph.hub_station_ids

    origin: Label = (origin_id, NOT_BOARDED)
    best: Dict[Label, float] = {origin: 0.0}
    parent: Dict[Label, Optional[Label]] = {origin: None}
    settled = set()
    reached: Dict[str, Label] = {}

    heap = [(0.0, origin_id, NOT_BOARDED)]

    while heap:
        cost, station_id, line_code = heapq.heappop(heap)
        label = (station_id, line_code)

        if label in settled:
            continue
        settled.add(label)

        # First settled label per station is the cheapest one
        if station_id != origin_id and station_id not in reached:
            reached[station_id] = label

        at_hub = station_id in hubs
        for edge in graph.edges_from(station_id):
            candidate = cost + edge.run_minutes + penalties.step_penalty(line_code, edge.line_code, at_hub)
            if candidate > max_minutes:
                continue

            next_label = (edge.to, edge.line_code)
            if next_label in settled:
                continue

            previous = best.get(next_label)
            if previous is None or candidate < previous:
                best[next_label] = candidate
                parent[next_label] = label
                heapq.heappush(heap, (candidate, edge.to, edge.line_code))

    results = []
    for station_id, label in reached.items():
        minutes = best[label] + penalties.arrival_penalty(station_id in hubs)
        if minutes > max_minutes:
            continue
        results.append(_build_result(station_id, label, minutes, parent))
    results.sort(key=lambda r: (r.minutes, r.station_id))

    logger.debug(f"Solved from {origin_id}: {len(results)} stations within {max_minutes} min "
                 f"({len(settled)} labels settled)")
    return results


def _build_result(station_id: str,
                  label: Label,
                  minutes: float,
                  parent: Dict[Label, Optional[Label]]) -> PathResult:
    """Walk parent pointers back to the origin"""
    chain: List[Label] = []
    cursor: Optional[Label] = label
    while cursor is not None:
        chain.append(cursor)
        cursor = parent[cursor]
    chain.reverse()

    lines: List[str] = []
    for _, line_code in chain[1:]:
        if not lines or lines[-1] != line_code:
            lines.append(line_code)

    return PathResult(
        station_id=station_id,
        minutes=minutes,
        via=tuple(sid for sid, _ in chain),
        lines=tuple(lines),
    )


def minutes_between(origin_id: str,
                    destination_id: str,
                    graph: StationGraph,
                    max_minutes: float,
                    penalties: Optional[Penalties] = None) -> Optional[float]:
    """Shortest minutes for one pair, None if unreachable within budget"""
    if origin_id == destination_id:
        return 0.0
    for result in shortest_paths_from(origin_id, graph, max_minutes, penalties):
        if result.station_id == destination_id:
            return result.minutes
    return None


def edge_between(graph: StationGraph, from_id: str, to_id: str,
                 line_code: Optional[str] = None) -> Optional[GraphEdge]:
    """First edge from_id -> to_id (optionally on a given line)"""
    for edge in graph.edges_from(from_id):
        if edge.to == to_id and (line_code is None or edge.line_code == line_code):
            return edge
    return None
