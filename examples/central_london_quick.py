#!/usr/bin/env python3
"""
Quick examples on a small central London network
"""

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '../src'))

from stationreach import Line, Penalties, ReachabilityEngine, Station, TransitDataset


STATIONS = [
    Station("940GZZLUOXC", (-0.1419, 51.5152), ("bakerloo", "central", "victoria"), True, False, "Oxford Circus"),
    Station("940GZZLUGPK", (-0.1428, 51.5067), ("jubilee", "piccadilly", "victoria"), True, False, "Green Park"),
    Station("940GZZLUVIC", (-0.1448, 51.4965), ("circle", "district", "victoria"), True, False, "Victoria"),
    Station("940GZZLUWRR", (-0.1387, 51.5247), ("victoria",), False, False, "Warren Street"),
    Station("940GZZLUEUS", (-0.1334, 51.5282), ("northern", "victoria"), True, False, "Euston"),
    Station("940GZZLUKSX", (-0.1239, 51.5308), ("circle", "northern", "piccadilly", "victoria"), True, True, "King's Cross St. Pancras"),
    Station("940GZZLUTCR", (-0.1303, 51.5165), ("central", "northern"), True, False, "Tottenham Court Road"),
    Station("940GZZLUHBN", (-0.1200, 51.5174), ("central", "piccadilly"), True, False, "Holborn"),
    Station("940GZZLUBND", (-0.1496, 51.5142), ("central", "jubilee"), True, False, "Bond Street"),
    Station("940GZZLUPCC", (-0.1342, 51.5098), ("bakerloo", "piccadilly"), True, False, "Piccadilly Circus"),
]

LINES = [
    Line("victoria", ("940GZZLUVIC", "940GZZLUGPK", "940GZZLUOXC", "940GZZLUWRR", "940GZZLUEUS", "940GZZLUKSX"), "Victoria"),
    Line("central", ("940GZZLUBND", "940GZZLUOXC", "940GZZLUTCR", "940GZZLUHBN"), "Central"),
    Line("piccadilly", ("940GZZLUKSX", "940GZZLUHBN", "940GZZLUPCC", "940GZZLUGPK"), "Piccadilly"),
    Line("northern", ("940GZZLUKSX", "940GZZLUEUS", "940GZZLUTCR"), "Northern"),
    Line("jubilee", ("940GZZLUBND", "940GZZLUGPK"), "Jubilee"),
    Line("bakerloo", ("940GZZLUOXC", "940GZZLUPCC"), "Bakerloo"),
]


def main():
    """Run example queries around Oxford Circus"""

    dataset = TransitDataset(LINES, STATIONS)
    engine = ReachabilityEngine(dataset, penalties=Penalties.timetable_defaults())
    names = {s.station_id: s.display_name for s in STATIONS}

    print("🚇 Station Reach - Central London Examples")
    print("=" * 50)

    for minutes in (10, 15, 20):
        result = engine.filter_by_duration("940GZZLUOXC", minutes)
        print(f"\n📍 Oxford Circus within {minutes} min: {len(result.station_ids)} stations")
        print(f"   Lines: {', '.join(result.line_codes)}")
        for station_id in sorted(result.station_ids, key=lambda s: result.minutes[s]):
            print(f"   {names[station_id]:<28} {result.minutes[station_id]:5.1f}min")

    for radius in (0.5, 1.0):
        result = engine.filter_by_radius((-0.1419, 51.5152), radius)
        print(f"\n📍 Within {radius} mi of Oxford Circus: "
              f"{', '.join(names[s] for s in result.station_ids)}")

    nearest = engine.nearest_station((-0.1357, 51.5154))
    print(f"\n📍 Nearest to Soho Square: {nearest.name} ({nearest.distance_miles:.2f} mi)")

    print(f"\n Graph: {engine.get_stats()['graph']}")


if __name__ == "__main__":
    main()
