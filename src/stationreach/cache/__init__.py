"""
Static journey cache: offline generation and runtime lookup
"""

from .static_journeys import StaticGraphEdge, StaticJourney, StaticJourneyCache

__all__ = ["StaticGraphEdge", "StaticJourney", "StaticJourneyCache"]
