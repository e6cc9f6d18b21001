"""
Reachability engine and command line entry point
"""

from .reach import ReachabilityEngine, create_engine, parse_origin

__all__ = ["ReachabilityEngine", "create_engine", "parse_origin"]
