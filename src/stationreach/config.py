"""
Tunable constants for station-reach

Every value here can be overridden per call through keyword arguments;
these are the defaults used when nothing else is supplied.
"""

import os

# ============================================================================
# Geography
# ============================================================================

EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.34

# Inclusive radius boundary tolerance (miles)
RADIUS_TOLERANCE_MILES = 1e-9

# Greater London bounds (lon_min, lat_min, lon_max, lat_max)
LONDON_BOUNDS = (-0.6, 51.2, 0.3, 51.7)

# ============================================================================
# Heuristic graph
# ============================================================================

FALLBACK_LINE_SPEED_MPH = 22.0
FALLBACK_DWELL_MINUTES = 0.5

# ============================================================================
# Penalties (minutes)
# ============================================================================

BOARDING_WAIT_MINUTES = 4.5
TRANSFER_WALK_MINUTES = 6.5
HUB_WALK_MINUTES = 4.5

# ============================================================================
# Static journey cache
# ============================================================================

STATIC_CACHE_MAX_MINUTES = 240
STATIC_CACHE_SOURCE = "tfl-timetables-v1"
STATIC_CACHE_FILENAME = "static-tube-times.json"

# ============================================================================
# Offline timetable fetch
# ============================================================================

TFL_API_BASE = "https://api.tfl.gov.uk"
TFL_APP_ID = os.environ.get("TFL_APP_ID")
TFL_APP_KEY = os.environ.get("TFL_APP_KEY")
ROUTE_DIRECTIONS = ("outbound", "inbound")

MAX_RETRIES = 4
RETRY_BASE_DELAY_SEC = 0.75
FETCH_CONCURRENCY = 4
REQUEST_TIMEOUT_SEC = 30.0
RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})
USER_AGENT = "StationReachStaticGenerator/1.0"
