#!/usr/bin/env python3
"""
Tests for the budget-bounded shortest-path solver
"""

import math
import random

import networkx as nx
import pytest

from stationreach.data.dataset import Line, Station
from stationreach.data.graph_builder import build_station_graph
from stationreach.exceptions import UnknownStationError
from stationreach.transit.solver import NOT_BOARDED, Penalties, minutes_between, shortest_paths_from

from conftest import station_at


def reference_minutes(graph, origin_id, penalties):
    """
    Independent shortest times via networkx over (station, line) states
    """
    g = nx.DiGraph()
    origin = (origin_id, NOT_BOARDED)
    stack = [origin]
    seen = {origin}
    while stack:
        station_id, line_code = stack.pop()
        at_hub = station_id in graph.hub_station_ids
        for edge in graph.edges_from(station_id):
            target = (edge.to, edge.line_code)
            weight = edge.run_minutes + penalties.step_penalty(line_code, edge.line_code, at_hub)
            if not g.has_edge((station_id, line_code), target) or g[(station_id, line_code)][target]["weight"] > weight:
                g.add_edge((station_id, line_code), target, weight=weight)
            if target not in seen:
                seen.add(target)
                stack.append(target)

    if origin not in g:
        return {}
    lengths = nx.single_source_dijkstra_path_length(g, origin, weight="weight")
    best = {}
    for (station_id, _), minutes in lengths.items():
        if station_id == origin_id:
            continue
        minutes += penalties.arrival_penalty(station_id in graph.hub_station_ids)
        best[station_id] = min(minutes, best.get(station_id, math.inf))
    return best


def random_network(seed=7, n_stations=30, n_lines=6):
    rng = random.Random(seed)
    stations = [
        station_at(f"S{i:02d}", rng.uniform(0, 8), rng.uniform(0, 8), is_hub=(i % 9 == 0))
        for i in range(n_stations)
    ]
    ids = [s.station_id for s in stations]
    lines = [Line(f"L{j}", tuple(rng.sample(ids, rng.randint(4, 9)))) for j in range(n_lines)]
    return lines, stations


class TestScenarios:
    """Reference journeys"""

    def test_same_line_additive(self, straight_line_dataset):
        """A->C on one line equals A->B plus B->C with no penalties"""
        graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations)

        ab = minutes_between("A", "B", graph, 120)
        bc = minutes_between("B", "C", graph, 120)
        ac = minutes_between("A", "C", graph, 120)

        assert ac == ab + bc

    def test_transfer_adds_penalty(self, interchange_dataset):
        """Changing lines at B costs the transfer walk on top of both legs"""
        graph = build_station_graph(interchange_dataset.lines, interchange_dataset.stations)
        penalties = Penalties(transfer_walk_minutes=6.5)

        ab = minutes_between("A", "B", graph, 120, penalties)
        bc = minutes_between("B", "C", graph, 120, penalties)
        ac = minutes_between("A", "C", graph, 120, penalties)

        assert ac == pytest.approx(ab + bc + 6.5)

    def test_transfer_with_boarding_wait(self, interchange_dataset):
        """Each leg's boarding wait is paid once; the change adds walk only"""
        graph = build_station_graph(interchange_dataset.lines, interchange_dataset.stations)
        penalties = Penalties(boarding_wait_minutes=4.5, transfer_walk_minutes=6.5)

        ab = minutes_between("A", "B", graph, 120, penalties)
        bc = minutes_between("B", "C", graph, 120, penalties)
        ac = minutes_between("A", "C", graph, 120, penalties)

        assert ac == pytest.approx(ab + bc + 6.5)

    def test_hub_walk(self, interchange_dataset):
        """Boarding, changing or ending at a hub adds the hub walk once"""
        graph = build_station_graph(interchange_dataset.lines, interchange_dataset.stations)
        penalties = Penalties(hub_walk_minutes=4.5)

        run_ab = minutes_between("A", "B", graph, 120)
        run_bc = minutes_between("B", "C", graph, 120)

        # Boarding at B (a hub)
        assert minutes_between("B", "C", graph, 120, penalties) == pytest.approx(run_bc + 4.5)
        # Boarding at A, changing at B
        assert minutes_between("A", "C", graph, 120, penalties) == pytest.approx(run_ab + run_bc + 4.5)
        # Ending at B
        assert minutes_between("A", "B", graph, 120, penalties) == pytest.approx(run_ab + 4.5)
        assert minutes_between("C", "B", graph, 120, penalties) == pytest.approx(run_bc + 4.5)

    def test_hub_destination_on_one_line(self):
        stations = [station_at("A", 0), station_at("HUBX", 1, is_hub=True)]
        graph = build_station_graph([Line("red", ("A", "HUBX"))], stations)

        run = minutes_between("A", "HUBX", graph, 120)
        assert minutes_between("A", "HUBX", graph, 120, Penalties(hub_walk_minutes=4.5)) == pytest.approx(run + 4.5)

    def test_riding_through_hub_is_free(self):
        stations = [station_at("A", 0), station_at("B", 1, is_hub=True), station_at("C", 2)]
        graph = build_station_graph([Line("red", ("A", "B", "C"))], stations)

        run = minutes_between("A", "C", graph, 120)
        assert minutes_between("A", "C", graph, 120, Penalties(hub_walk_minutes=4.5)) == pytest.approx(run)

    def test_hub_walk_counts_against_budget(self):
        stations = [station_at("A", 0), station_at("B", 1, is_hub=True)]
        graph = build_station_graph([Line("red", ("A", "B"))], stations)

        run = minutes_between("A", "B", graph, 120)
        assert shortest_paths_from("A", graph, run + 1.0, Penalties(hub_walk_minutes=4.5)) == []

    @pytest.mark.parametrize("budget", [0, -5, float("nan")])
    def test_non_positive_budget(self, straight_line_dataset, budget):
        graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations)
        assert shortest_paths_from("A", graph, budget) == []


class TestSolverBehaviour:
    """Results, pruning and errors"""

    def test_unknown_origin(self, straight_line_dataset):
        graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations)
        with pytest.raises(UnknownStationError) as exc_info:
            shortest_paths_from("NOPE", graph, 30)
        assert exc_info.value.station_id == "NOPE"
        assert isinstance(exc_info.value, KeyError)

    def test_origin_excluded_and_sorted(self, straight_line_dataset):
        graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations)
        results = shortest_paths_from("B", graph, 120)

        assert {r.station_id for r in results} == {"A", "C", "D"}
        assert results[-1].station_id == "D"
        keys = [(r.minutes, r.station_id) for r in results]
        assert keys == sorted(keys)

    def test_budget_prunes(self, straight_line_dataset):
        """Only stations within the budget are returned"""
        graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations)
        one_stop = minutes_between("A", "B", graph, 120)

        results = shortest_paths_from("A", graph, one_stop * 1.5)
        assert [r.station_id for r in results] == ["B"]

    def test_budget_is_inclusive(self, straight_line_dataset):
        graph = build_station_graph(straight_line_dataset.lines, straight_line_dataset.stations)
        one_stop = minutes_between("A", "B", graph, 120)
        assert [r.station_id for r in shortest_paths_from("A", graph, one_stop)] == ["B"]

    def test_path_reconstruction(self, interchange_dataset):
        graph = build_station_graph(interchange_dataset.lines, interchange_dataset.stations)
        results = {r.station_id: r for r in shortest_paths_from("A", graph, 120, Penalties(transfer_walk_minutes=2))}

        assert results["C"].via == ("A", "B", "C")
        assert results["C"].lines == ("red", "blue")
        assert results["B"].lines == ("red",)

    def test_cheaper_transfer_route_wins(self):
        """A longer same-line ride beats a short hop with an expensive change"""
        stations = [station_at("A", 0), station_at("B", 1), station_at("E", 1.5), station_at("C", 2), station_at("D", 2.2)]
        lines = [Line("slow", ("A", "B", "E", "D")), Line("fast", ("A", "C")), Line("link", ("C", "D"))]
        graph = build_station_graph(lines, stations)

        cheap = {r.station_id: r for r in shortest_paths_from("A", graph, 300)}
        costly = {r.station_id: r for r in shortest_paths_from("A", graph, 300, Penalties(transfer_walk_minutes=30))}

        assert cheap["D"].lines == ("fast", "link")
        assert costly["D"].lines == ("slow",)

    def test_deterministic(self, mesh_dataset):
        graph = build_station_graph(mesh_dataset.lines, mesh_dataset.stations)
        penalties = Penalties.timetable_defaults()
        assert shortest_paths_from("N1", graph, 90, penalties) == shortest_paths_from("N1", graph, 90, penalties)


class TestOptimality:
    """Agreement with an independent networkx search"""

    @pytest.mark.parametrize("penalties", [
        Penalties(),
        Penalties(transfer_walk_minutes=6.5),
        Penalties.timetable_defaults(),
    ])
    def test_matches_reference(self, penalties):
        lines, stations = random_network()
        graph = build_station_graph(lines, stations)

        for origin_id in list(graph)[:10]:
            expected = reference_minutes(graph, origin_id, penalties)
            actual = {r.station_id: r.minutes for r in shortest_paths_from(origin_id, graph, 10_000, penalties)}

            assert set(actual) == set(expected)
            for station_id, minutes in expected.items():
                assert actual[station_id] == pytest.approx(minutes)

    def test_budget_completeness(self):
        """Every station the reference reaches within the budget is returned"""
        lines, stations = random_network(seed=11)
        graph = build_station_graph(lines, stations)
        penalties = Penalties.timetable_defaults()
        budget = 25.0

        for origin_id in graph:
            expected = {s for s, m in reference_minutes(graph, origin_id, penalties).items() if m <= budget - 1e-9}
            actual = shortest_paths_from(origin_id, graph, budget, penalties)

            assert expected <= {r.station_id for r in actual}
            assert all(r.minutes <= budget for r in actual)


class TestPenalties:
    """Penalty model"""

    def test_defaults_are_zero(self):
        p = Penalties()
        assert p.step_penalty(NOT_BOARDED, "red", True) == 0.0
        assert p.transfer_penalty_minutes == 0.0

    def test_step_penalty(self):
        p = Penalties(boarding_wait_minutes=4.5, transfer_walk_minutes=6.5, hub_walk_minutes=4.5)
        assert p.step_penalty(NOT_BOARDED, "red", False) == 4.5
        assert p.step_penalty(NOT_BOARDED, "red", True) == 9.0
        assert p.step_penalty("red", "red", True) == 0.0
        assert p.step_penalty("red", "blue", False) == 11.0
        assert p.step_penalty("red", "blue", True) == 15.5
        assert p.transfer_penalty_minutes == 11.0
        assert p.arrival_penalty(True) == 4.5
        assert p.arrival_penalty(False) == 0.0

    @pytest.mark.parametrize("kwargs", [
        {"boarding_wait_minutes": -1},
        {"transfer_walk_minutes": float("nan")},
        {"hub_walk_minutes": float("inf")},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            Penalties(**kwargs)


def test_isolated_origin_reaches_nothing():
    stations = [Station("A", (0.0, 51.0)), Station("B", (0.0, 51.01)), Station("C", (1.0, 51.0)), Station("D", (1.0, 51.01))]
    graph = build_station_graph([Line("l", ("A", "B")), Line("m", ("C", "D"))], stations)
    assert [r.station_id for r in shortest_paths_from("A", graph, 1000)] == ["B"]
