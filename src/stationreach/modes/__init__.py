"""
Travel mode models

Walking, cycling and transit average speeds with fixed overheads, for
straight-line travel-time estimates.
"""

from .speeds import TravelMode, TravelTimeEstimate, calculate_travel_times_heuristic, estimate_minutes

__all__ = ["TravelMode", "TravelTimeEstimate", "calculate_travel_times_heuristic", "estimate_minutes"]
