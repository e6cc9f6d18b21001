#!/usr/bin/env python3
"""
Tests for the static journey cache lookup
"""

import json

import pytest

from stationreach.cache.static_journeys import StaticJourney, StaticJourneyCache
from stationreach.config import STATIC_CACHE_SOURCE
from stationreach.data.graph_builder import PRECOMPUTED, build_station_graph
from stationreach.transit.solver import Penalties


@pytest.fixture
def payload():
    return {
        "generatedAt": "2024-06-01T03:00:00+00:00",
        "source": STATIC_CACHE_SOURCE,
        "transferPenaltyMinutes": 11.0,
        "generatedWith": "stationreach.cache.generator",
        "metadata": {
            "boardingWaitMinutes": 4.5,
            "transferWalkMinutes": 6.5,
            "hubWalkMinutes": 4.5,
        },
        "graphEdges": [
            {"fromStationId": "A", "toStationId": "B", "lineCode": "red", "runMinutes": 2.25},
            {"fromStationId": "B", "toStationId": "C", "lineCode": "red", "runMinutes": 3.0},
        ],
        "journeys": [
            {"fromStationId": "A", "toStationId": "B", "minutes": 6.8, "source": STATIC_CACHE_SOURCE},
            {"fromStationId": "A", "toStationId": "C", "minutes": 9.8, "source": STATIC_CACHE_SOURCE},
            {"fromStationId": "C", "toStationId": "A", "minutes": 10.1, "source": STATIC_CACHE_SOURCE},
        ],
    }


class TestLookup:
    """lookup_journey"""

    def test_self_lookup_is_zero(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        journey = cache.lookup_journey("A", "A")
        assert journey.minutes == 0.0
        assert journey.from_station_id == journey.to_station_id == "A"

    def test_self_lookup_on_empty_cache(self):
        """Any id maps to itself at 0 minutes"""
        assert StaticJourneyCache.empty().lookup_journey("UNKNOWN", "UNKNOWN").minutes == 0.0

    def test_direct(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        assert cache.lookup_journey("A", "B") == StaticJourney("A", "B", 6.8, STATIC_CACHE_SOURCE)

    def test_reverse_synthesized(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        reverse = cache.lookup_journey("B", "A")
        assert reverse.minutes == 6.8
        assert reverse.from_station_id == "B"

    def test_explicit_reverse_not_overwritten(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        assert cache.lookup_journey("A", "C").minutes == 9.8
        assert cache.lookup_journey("C", "A").minutes == 10.1

    def test_missing_pair(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        assert cache.lookup_journey("B", "C") is None
        assert cache.lookup_journey("A", "Z") is None

    def test_counts(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        # A-B, B-A, A-C, C-A
        assert len(cache) == 4
        assert cache.has_data()
        assert not StaticJourneyCache.empty().has_data()


class TestPayloadParsing:
    """Malformed artifacts"""

    def test_malformed_rows_skipped(self, payload):
        payload["journeys"].extend([
            {"fromStationId": "A", "minutes": 3},
            {"fromStationId": "A", "toStationId": "D", "minutes": "3"},
            {"fromStationId": "A", "toStationId": "D", "minutes": -1},
            "garbage",
        ])
        payload["graphEdges"].append({"fromStationId": "A", "toStationId": "D", "lineCode": "red", "runMinutes": 0})

        cache = StaticJourneyCache.from_payload(payload)
        assert cache.lookup_journey("A", "D") is None
        assert len(cache.graph_edges) == 2

    def test_not_a_dict(self):
        cache = StaticJourneyCache.from_payload(["nope"])
        assert not cache.has_data()
        assert cache.penalties is None

    def test_source_default(self):
        cache = StaticJourneyCache.from_payload({"journeys": [{"fromStationId": "A", "toStationId": "B", "minutes": 1}]})
        assert cache.lookup_journey("A", "B").source == STATIC_CACHE_SOURCE

    def test_penalties(self, payload):
        cache = StaticJourneyCache.from_payload(payload)
        assert cache.penalties == Penalties.timetable_defaults()

    def test_load(self, payload, tmp_path):
        path = tmp_path / "static-tube-times.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

        cache = StaticJourneyCache.load(str(path))
        assert cache.generated_at == "2024-06-01T03:00:00+00:00"
        assert cache.lookup_journey("B", "A").minutes == 6.8


def test_edge_table_feeds_graph_builder(payload, straight_line_dataset):
    cache = StaticJourneyCache.from_payload(payload)
    table = cache.edge_table()

    assert [e.to_station_id for e in table["A"]] == ["B"]

    graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations, table)
    assert graph.strategy == PRECOMPUTED
    assert {(f, e.to) for f, e in graph.flat_edges()} == {("A", "B"), ("B", "A"), ("B", "C"), ("C", "B")}
