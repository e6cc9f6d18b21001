"""
Static journey cache

Read-only lookup over an offline-generated artifact of station-to-station
journey times. Loaded once; lookups are dict hits.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..config import STATIC_CACHE_SOURCE
from ..data.graph_builder import PrecomputedEdge
from ..transit.solver import Penalties

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticJourney:
    from_station_id: str
    to_station_id: str
    minutes: float
    source: str = STATIC_CACHE_SOURCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromStationId": self.from_station_id,
            "toStationId": self.to_station_id,
            "minutes": self.minutes,
            "source": self.source,
        }


@dataclass(frozen=True)
class StaticGraphEdge:
    from_station_id: str
    to_station_id: str
    line_code: str
    run_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromStationId": self.from_station_id,
            "toStationId": self.to_station_id,
            "lineCode": self.line_code,
            "runMinutes": self.run_minutes,
        }


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def _parse_journey(record: Any, default_source: str) -> Optional[StaticJourney]:
    if not isinstance(record, dict):
        return None
    from_id = record.get("fromStationId")
    to_id = record.get("toStationId")
    minutes = _number(record.get("minutes"))
    if not isinstance(from_id, str) or not isinstance(to_id, str) or minutes is None or minutes < 0:
        return None
    source = record.get("source")
    return StaticJourney(from_id, to_id, minutes, source if isinstance(source, str) else default_source)


def _parse_edge(record: Any) -> Optional[StaticGraphEdge]:
    if not isinstance(record, dict):
        return None
    from_id = record.get("fromStationId")
    to_id = record.get("toStationId")
    line_code = record.get("lineCode")
    minutes = _number(record.get("runMinutes"))
    if not all(isinstance(v, str) and v for v in (from_id, to_id, line_code)):
        return None
    if minutes is None or minutes <= 0:
        return None
    return StaticGraphEdge(from_id, to_id, line_code, minutes)


class StaticJourneyCache:
    """
    Point-to-point journey lookup

    The reverse direction of every journey is filled in when the artifact
    does not carry it; a station to itself is always 0 minutes.
    """

    def __init__(self,
                 journeys: List[StaticJourney],
                 graph_edges: Optional[List[StaticGraphEdge]] = None,
                 generated_at: Optional[str] = None,
                 source: str = STATIC_CACHE_SOURCE,
                 metadata: Optional[Dict[str, Any]] = None):
        self.generated_at = generated_at
        self.source = source
        self.metadata = dict(metadata or {})
        self.graph_edges = list(graph_edges or [])

        self._lookup: Dict[Tuple[str, str], StaticJourney] = {}
        for journey in journeys:
            self._lookup[(journey.from_station_id, journey.to_station_id)] = journey
        for journey in journeys:
            reverse_key = (journey.to_station_id, journey.from_station_id)
            if reverse_key not in self._lookup:
                self._lookup[reverse_key] = StaticJourney(
                    from_station_id=journey.to_station_id,
                    to_station_id=journey.from_station_id,
                    minutes=journey.minutes,
                    source=journey.source,
                )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "StaticJourneyCache":
        """Build from the parsed artifact JSON, skipping malformed rows"""
        if not isinstance(payload, dict):
            payload = {}
        source = payload.get("source") if isinstance(payload.get("source"), str) else STATIC_CACHE_SOURCE

        raw_journeys = payload.get("journeys") if isinstance(payload.get("journeys"), list) else []
        raw_edges = payload.get("graphEdges") if isinstance(payload.get("graphEdges"), list) else []

        journeys = [j for j in (_parse_journey(r, source) for r in raw_journeys) if j is not None]
        edges = [e for e in (_parse_edge(r) for r in raw_edges) if e is not None]

        skipped = (len(raw_journeys) - len(journeys)) + (len(raw_edges) - len(edges))
        if skipped:
            logger.warning(f"Skipped {skipped} malformed static cache rows")

        metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
        return cls(journeys, edges, payload.get("generatedAt"), source, metadata)

    @classmethod
    def load(cls, path: str) -> "StaticJourneyCache":
        """Load an artifact file"""
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        cache = cls.from_payload(payload)
        logger.info(f"Static journey cache loaded: {len(cache)} journeys, "
                    f"{len(cache.graph_edges)} edges (generated {cache.generated_at})")
        return cache

    @classmethod
    def empty(cls) -> "StaticJourneyCache":
        return cls([])

    def __len__(self) -> int:
        return len(self._lookup)

    def has_data(self) -> bool:
        return bool(self._lookup)

    def lookup_journey(self, from_id: str, to_id: str) -> Optional[StaticJourney]:
        """Journey from_id -> to_id, None if not cached"""
        if from_id == to_id:
            return StaticJourney(from_id, to_id, 0.0, self.source)
        return self._lookup.get((from_id, to_id))

    def edge_table(self) -> Dict[str, List[PrecomputedEdge]]:
        """Graph edges as a precomputed edge table for the graph builder"""
        table: Dict[str, List[PrecomputedEdge]] = {}
        for edge in self.graph_edges:
            table.setdefault(edge.from_station_id, []).append(
                PrecomputedEdge(edge.to_station_id, edge.line_code, edge.run_minutes)
            )
        return table

    @property
    def penalties(self) -> Optional[Penalties]:
        """Penalties the artifact was generated with, None if not recorded"""
        values = [
            _number(self.metadata.get(key))
            for key in ("boardingWaitMinutes", "transferWalkMinutes", "hubWalkMinutes")
        ]
        if any(v is None or v < 0 for v in values):
            return None
        return Penalties(*values)
