"""
Compact Telemetry Records

Parses the '@' remote stats record format sent by OpenTRV-style devices,
e.g. "@D49;T19C7": sections separated by ';', each keyed by its first character.
"""

import threading
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .exceptions import DuplicateSectionError, MalformedRecordError


class SensorLabel(str, Enum):
    """Single-character section keys."""

    ID = "@"
    TEMPERATURE = "T"
    HUMIDITY = "H"
    LIGHT = "L"
    OCCUPANCY = "O"


def parse_temperature_ddch(raw_temp: str) -> float:
    """Parse temperature of the form ddCh (dd decimal, h a hex sixteenth).

    "19C7" -> 19 + 7/16 = 19.4375
    """
    if len(raw_temp) < 3 or raw_temp[-2] != "C":
        raise MalformedRecordError(f"Bad temperature token: {raw_temp!r}")
    try:
        return int(raw_temp[:-2], 10) + int(raw_temp[-1], 16) / 16.0
    except ValueError as e:
        raise MalformedRecordError(f"Bad temperature token: {raw_temp!r}") from e


class TelemetryRecord:
    """Parsed, immutable form of one compact stats record.

    Safe to share between threads.
    """

    __slots__ = ("_raw", "_sections", "_id", "_by_string", "_lock")

    def __init__(self, raw: str):
        """Parse a record.

        Args:
            raw: Record text, starting with the '@' ID section

        Raises:
            MalformedRecordError: If the record is too short, lacks a leading ID,
                or has an empty section
            DuplicateSectionError: If a section key is repeated, counting the
                leading character of the ID value as a key
        """
        if not isinstance(raw, str) or len(raw) < 2 or raw[0] != SensorLabel.ID.value:
            raise MalformedRecordError(f"Not a stats record: {raw!r}")

        sections = {}
        # The ID value's leading character is also a claimed key
        claimed = set()
        for section in raw.split(";"):
            st = section.strip()
            if not st:
                raise MalformedRecordError(f"Empty section in {raw!r}")
            key = st[0]
            if key in sections or key in claimed:
                raise DuplicateSectionError(f"Duplicate section {key!r} in {raw!r}")
            value = st[1:]
            if not value:
                raise MalformedRecordError(f"Section {key!r} has no value in {raw!r}")
            sections[key] = value
            if key == SensorLabel.ID.value:
                claimed.add(value[0])

        self._raw = raw
        self._sections = MappingProxyType(sections)
        self._id = sections[SensorLabel.ID.value]
        self._by_string: Optional[Mapping[str, str]] = None
        self._lock = threading.Lock()

    @property
    def raw(self) -> str:
        """Record text as received."""
        return self._raw

    @property
    def sections(self) -> Mapping[str, str]:
        """Read-only map from section key to value (key character omitted)."""
        return self._sections

    @property
    def id(self) -> str:
        """Device ID from the '@' section."""
        return self._id

    def map_by_string(self) -> Mapping[str, str]:
        """Read-only map from string label to value, built once on first use."""
        view = self._by_string
        if view is not None:
            return view
        with self._lock:
            if self._by_string is None:
                self._by_string = MappingProxyType({str(k): v for k, v in self._sections.items()})
            return self._by_string

    @property
    def temperature(self) -> Optional[float]:
        """Temperature in °C, or None if the record has none."""
        raw_temp = self._sections.get(SensorLabel.TEMPERATURE.value)
        if raw_temp is None:
            return None
        return parse_temperature_ddch(raw_temp)

    def __eq__(self, other):
        if not isinstance(other, TelemetryRecord):
            return NotImplemented
        return self._raw == other._raw

    def __hash__(self):
        return hash(self._raw)

    def __repr__(self):
        return f"TelemetryRecord({self._raw!r})"

    def __setattr__(self, name, value):
        if hasattr(self, "_lock") and name != "_by_string":
            raise AttributeError(f"{type(self).__name__} is immutable")
        object.__setattr__(self, name, value)
