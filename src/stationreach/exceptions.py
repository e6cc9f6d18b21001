"""station-reach exceptions"""


class StationReachError(Exception):
    """Base exception"""
    pass


class UnknownStationError(StationReachError, KeyError):
    """Origin station is not part of the graph or dataset"""

    def __init__(self, station_id: str):
        super().__init__(station_id)
        self.station_id = station_id

    def __str__(self) -> str:
        return f"Unknown station: {self.station_id}"


class UpstreamFetchError(StationReachError):
    """Timetable API call failed after all retries"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Request failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class DatasetError(StationReachError):
    """Required dataset file missing or unreadable"""
    pass
