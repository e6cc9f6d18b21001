"""
Transit dataset loader

Reads lines/stations/metadata JSON (plus optional coordinate overrides) or a
station CSV, validating every record at the boundary. Malformed records are
skipped and counted, never passed on half-filled.
"""

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..exceptions import DatasetError
from ..geo import Coordinates, is_valid_coordinates

logger = logging.getLogger(__name__)

HUB_ID_PREFIX = "HUB"


@dataclass(frozen=True)
class Station:
    """Network station"""
    station_id: str
    coordinates: Coordinates  # (lon, lat)
    line_codes: Tuple[str, ...] = ()
    is_interchange: bool = False
    is_hub: bool = False
    display_name: str = ""

    @classmethod
    def from_record(cls, record: Any) -> Optional["Station"]:
        """Build from a stations.json record, None if malformed"""
        if not isinstance(record, dict):
            return None

        station_id = record.get("stationId")
        if not isinstance(station_id, str) or not station_id:
            return None

        position = record.get("position")
        coords = position.get("coordinates") if isinstance(position, dict) else record.get("coordinates")
        if not is_valid_coordinates(coords):
            return None

        line_codes = record.get("lineCodes") or []
        if not isinstance(line_codes, (list, tuple)):
            return None

        # Explicit flag, else the id prefix
        is_hub = record.get("isHub")
        if not isinstance(is_hub, bool):
            is_hub = station_id.startswith(HUB_ID_PREFIX)

        return cls(
            station_id=station_id,
            coordinates=(float(coords[0]), float(coords[1])),
            line_codes=tuple(str(code) for code in line_codes if code),
            is_interchange=bool(record.get("isInterchange", False)),
            is_hub=is_hub,
            display_name=str(record.get("displayName") or station_id),
        )


@dataclass(frozen=True)
class Line:
    """Transit line with its ordered station sequence"""
    line_code: str
    station_ids: Tuple[str, ...]
    display_name: str = ""
    mode: str = "tube"

    @classmethod
    def from_record(cls, record: Any) -> Optional["Line"]:
        """Build from a lines.json record, None if malformed"""
        if not isinstance(record, dict):
            return None

        line_code = record.get("lineCode")
        if not isinstance(line_code, str) or not line_code:
            return None

        station_ids = record.get("stationIds")
        if not isinstance(station_ids, (list, tuple)):
            return None

        return cls(
            line_code=line_code,
            station_ids=tuple(s for s in station_ids if isinstance(s, str) and s),
            display_name=str(record.get("displayName") or line_code),
            mode=str(record.get("mode") or "tube"),
        )


@dataclass
class TransitDataset:
    """Lines, stations and metadata for one network snapshot"""
    lines: List[Line]
    stations: List[Station]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def station_map(self) -> Dict[str, Station]:
        return {s.station_id: s for s in self.stations}

    def hub_station_ids(self) -> frozenset:
        return frozenset(s.station_id for s in self.stations if s.is_hub)

    @property
    def fingerprint(self) -> str:
        """Content hash; changes whenever topology or coordinates change"""
        digest = hashlib.sha1()
        for line in self.lines:
            digest.update(f"L|{line.line_code}|{','.join(line.station_ids)}\n".encode("utf-8"))
        for s in self.stations:
            digest.update(
                f"S|{s.station_id}|{s.coordinates[0]!r}|{s.coordinates[1]!r}|"
                f"{','.join(s.line_codes)}|{int(s.is_hub)}\n".encode("utf-8")
            )
        return digest.hexdigest()


def parse_stations(records: Sequence[Any]) -> List[Station]:
    """Validate raw station records, dropping malformed ones"""
    stations = []
    skipped = 0
    for record in records:
        station = Station.from_record(record)
        if station is None:
            skipped += 1
            continue
        stations.append(station)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed station records")
    return stations


def parse_lines(records: Sequence[Any]) -> List[Line]:
    """Validate raw line records, dropping malformed ones"""
    lines = []
    skipped = 0
    for record in records:
        line = Line.from_record(record)
        if line is None:
            skipped += 1
            continue
        lines.append(line)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed line records")
    return lines


def apply_overrides(stations: List[Station], overrides: Dict[str, Any]) -> List[Station]:
    """Replace station coordinates from an overrides mapping"""
    applied = 0
    result = []
    for station in stations:
        override = overrides.get(station.station_id)
        coords = override.get("coordinates") if isinstance(override, dict) else None
        if is_valid_coordinates(coords):
            station = replace(station, coordinates=(float(coords[0]), float(coords[1])))
            applied += 1
        result.append(station)

    logger.debug(f"Applied {applied} coordinate overrides")
    return result


class TransitDataLoader:
    """
    Static transit dataset loader

    Expects a directory with lines.json and stations.json, and optionally
    metadata.json and station-overrides.json.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir

    def load(self) -> TransitDataset:
        """
        Load and validate the dataset

        Returns:
            TransitDataset with overrides applied
        """
        lines_raw = self._read_json("lines.json", required=True)
        stations_raw = self._read_json("stations.json", required=True)
        metadata = self._read_json("metadata.json") or {}
        overrides_raw = self._read_json("station-overrides.json") or {}

        lines = parse_lines(_records(lines_raw, "lines"))
        stations = parse_stations(_records(stations_raw, "stations"))

        overrides = overrides_raw.get("overrides") if isinstance(overrides_raw, dict) else None
        if isinstance(overrides, dict) and overrides:
            stations = apply_overrides(stations, overrides)

        logger.info(f"Loaded dataset: {len(lines)} lines, {len(stations)} stations")
        return TransitDataset(lines=lines, stations=stations, metadata=metadata)

    def _read_json(self, filename: str, required: bool = False) -> Any:
        filepath = os.path.join(self.data_dir, filename)
        if not os.path.exists(filepath):
            if required:
                raise DatasetError(f"Dataset file not found: {filepath}")
            logger.debug(f"Optional file not found: {filename}")
            return None

        with open(filepath, "r", encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise DatasetError(f"Invalid JSON in {filepath}: {e}") from e


def _records(payload: Any, key: str) -> List[Any]:
    """Accept either {key: [...]} or a bare list"""
    if isinstance(payload, dict):
        payload = payload.get(key)
    return payload if isinstance(payload, list) else []


def load_transit_dataset(data_dir: str) -> TransitDataset:
    """Shortcut for TransitDataLoader(data_dir).load()"""
    return TransitDataLoader(data_dir).load()


def load_stations_csv(filepath: str) -> List[Station]:
    """
    Load stations from a CSV table

    Columns: stationId, lon, lat, lineCodes (';'-separated), and optionally
    displayName, isInterchange, isHub.
    """
    df = _read_csv_with_encoding_detection(filepath)

    records = []
    for _, row in df.iterrows():
        line_codes = row.get("lineCodes")
        codes = [c.strip() for c in str(line_codes).split(";")] if pd.notna(line_codes) else []
        try:
            coords = [float(row.get("lon")), float(row.get("lat"))]
        except (TypeError, ValueError):
            coords = None

        record = {
            "stationId": str(row["stationId"]) if pd.notna(row.get("stationId")) else None,
            "coordinates": coords,
            "lineCodes": [c for c in codes if c],
            "displayName": row.get("displayName") if pd.notna(row.get("displayName")) else None,
            "isInterchange": _as_bool(row.get("isInterchange")),
        }
        if "isHub" in df.columns and pd.notna(row.get("isHub")):
            record["isHub"] = _as_bool(row.get("isHub"))
        records.append(record)

    return parse_stations(records)


def _read_csv_with_encoding_detection(filepath: str) -> pd.DataFrame:
    """Read CSV trying the common encodings in turn"""
    encodings = ['utf-8-sig', 'utf-8', 'latin-1']

    for encoding in encodings:
        try:
            df = pd.read_csv(filepath, encoding=encoding)
            logger.debug(f"Loaded {filepath} with {encoding}")
            return df
        except (UnicodeDecodeError, UnicodeError):
            continue

    raise DatasetError(f"Could not decode {filepath} with any encoding")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    return bool(value)


def create_line_label_map(lines: Sequence[Line]) -> Dict[str, str]:
    """line_code -> display name"""
    return {line.line_code: line.display_name for line in lines}
