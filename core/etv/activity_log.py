"""
Device Activity Logs and Household Segmentation

Classifies each local day of a household as control (energy saving features
enabled), normal (disabled) or unusable, from per-device logs.

Devices are grouped into households by grouping.csv in the input directory:

    5013,3015
    5014,3016,3017

Each device's log is <deviceID>.json or <deviceID>.json.gz, one record per line:

    [ "2016-03-31T05:16:39Z", "", {"@":"2d1a","+":7,"tT|C":14,"tS|C":4,"v|%":0} ]
    2016-03-31T05:20:11Z {"@":"2d1a","tS|C":0}
    2016-03-31T05:24:40Z @2d1a;T19C7
"""

import csv
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional
from zoneinfo import ZoneInfo

from .exceptions import MalformedRecordError, MalformedRowError, NoGroupingDataError
from .fileio import find_input, open_text
from .models import SavingStatus, SystemStatus, local_day_index
from .telemetry import SensorLabel, TelemetryRecord

logger = logging.getLogger(__name__)

GROUPING_CSV = "grouping.csv"
LOG_FILE_SUFFIX = ".json"

# JSON stats keys
KEY_SETBACK = "tS|C"  # Current setback in °C; non-zero means saving features are active
KEY_VALVE_OPEN = "v|%"  # Only radiator valves report valve position

DEFAULT_MIN_LOG_HOURS_PER_DAY = 12


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO 8601 UTC timestamp such as 2016-03-31T05:16:39Z."""
    timestamp = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def parse_log_line(line: str) -> Optional[tuple[datetime, Mapping[str, object], str]]:
    """Parse one log line into (UTC timestamp, stats map, raw stats text).

    Returns None for blank lines.

    Raises:
        MalformedRecordError: If the line is in no recognised form
    """
    text = line.strip()
    if not text:
        return None

    try:
        if text.startswith("["):
            entry = json.loads(text)
            if not isinstance(entry, list) or len(entry) < 3 or not isinstance(entry[2], dict):
                raise MalformedRecordError(f"Bad JSON log entry: {text!r}")
            return parse_timestamp(entry[0]), entry[2], json.dumps(entry[2], separators=(",", ":"))

        stamp, _, payload = text.partition(" ")
        payload = payload.strip()
        timestamp = parse_timestamp(stamp)
        if payload.startswith("{"):
            stats = json.loads(payload)
            if not isinstance(stats, dict):
                raise MalformedRecordError(f"Bad JSON stats: {text!r}")
            return timestamp, stats, payload
        if payload.startswith(SensorLabel.ID.value):
            record = TelemetryRecord(payload)
            return timestamp, record.map_by_string(), record.raw
    except (ValueError, TypeError, AttributeError) as e:
        raise MalformedRecordError(f"Bad log line {text!r}: {e}") from e

    raise MalformedRecordError(f"Unrecognised log line: {text!r}")


@dataclass
class DeviceDayActivity:
    """What one device reported during one local day."""

    hours: set[int] = field(default_factory=set)  # Local hours with at least one record
    mode_reported: bool = False
    setback_seen: bool = False

    def status(self, min_hours: int) -> SavingStatus:
        """Classify the day for this device alone."""
        if len(self.hours) < min_hours or not self.mode_reported:
            return SavingStatus.DONT_USE
        return SavingStatus.ENABLED if self.setback_seen else SavingStatus.DISABLED


class DeviceActivityLog:
    """Per-day activity of a single device, built from its log records."""

    def __init__(self, device_id: str, tz: ZoneInfo):
        self.device_id = device_id
        self.tz = tz
        self.days: dict[int, DeviceDayActivity] = {}
        self.is_valve = False
        self.raw_stats_by_utc_timestamp: dict[int, str] = {}
        self.record_count = 0

    def add_stats(self, timestamp: datetime, stats: Mapping[str, object], raw: str):
        """Add one timestamped stats record."""
        day = local_day_index(timestamp, self.tz)
        activity = self.days.setdefault(day, DeviceDayActivity())
        activity.hours.add(timestamp.astimezone(self.tz).hour)

        if KEY_SETBACK in stats:
            setback = stats[KEY_SETBACK]
            if isinstance(setback, bool) or not isinstance(setback, (int, float)):
                raise MalformedRecordError(f"Device {self.device_id}: bad {KEY_SETBACK} value {setback!r}")
            activity.mode_reported = True
            if setback > 0:
                activity.setback_seen = True

        if KEY_VALVE_OPEN in stats:
            self.is_valve = True

        self.raw_stats_by_utc_timestamp.setdefault(int(timestamp.timestamp()), raw)
        self.record_count += 1

    def add_lines(self, lines: Iterable[str]):
        """Add every record from an iterable of log lines."""
        for line_num, line in enumerate(lines, start=1):
            try:
                parsed = parse_log_line(line)
                if parsed is not None:
                    self.add_stats(*parsed)
            except MalformedRecordError as e:
                raise MalformedRecordError(f"Device {self.device_id} line {line_num}: {e}") from e


def load_device_log(directory: str, device_id: str, tz: ZoneInfo) -> Optional[DeviceActivityLog]:
    """Load a device's log from directory, or None if it has none."""
    path = find_input(directory, device_id + LOG_FILE_SUFFIX)
    if path is None:
        return None

    log = DeviceActivityLog(device_id, tz)
    with open_text(path) as f:
        log.add_lines(f)
    logger.debug(f"Device {device_id}: {log.record_count} records over {len(log.days)} days")
    return log


class HouseholdSegmenter:
    """Combines a household's device logs into one per-day saving status.

    A day is usable only if every device in the household covered enough
    hours, reported its operating mode, and all devices agree.
    """

    def __init__(
        self,
        house_id: str,
        device_logs: list[DeviceActivityLog],
        min_log_hours_per_day: int = DEFAULT_MIN_LOG_HOURS_PER_DAY
    ):
        self.house_id = house_id
        self.device_logs = device_logs
        self.min_log_hours_per_day = min_log_hours_per_day

    def classify_day(self, day: int) -> SavingStatus:
        """Household status for one local day."""
        statuses = set()
        for log in self.device_logs:
            activity = log.days.get(day)
            if activity is None:
                return SavingStatus.DONT_USE
            statuses.add(activity.status(self.min_log_hours_per_day))
        if len(statuses) != 1:
            return SavingStatus.DONT_USE
        return statuses.pop()

    def get_status(self) -> SystemStatus:
        """Segmentation of every day any device logged."""
        all_days = sorted(set().union(*(log.days.keys() for log in self.device_logs)))

        raw_stats: dict[int, str] = {}
        for log in self.device_logs:
            for ts, raw in log.raw_stats_by_utc_timestamp.items():
                raw_stats.setdefault(ts, raw)

        return SystemStatus(
            house_id=self.house_id,
            status_by_day={day: self.classify_day(day) for day in all_days},
            valve_else_boiler_by_device={log.device_id: log.is_valve for log in self.device_logs},
            raw_stats_by_utc_timestamp={ts: raw_stats[ts] for ts in sorted(raw_stats)},
        )


def load_grouping(directory: str) -> dict[str, tuple[str, ...]]:
    """Read the house -> devices grouping table.

    Raises:
        NoGroupingDataError: If there is no grouping file (skip segmentation)
        MalformedRowError: If a house or device appears twice, or a row has no devices
    """
    path = find_input(directory, GROUPING_CSV)
    if path is None:
        raise NoGroupingDataError(f"No {GROUPING_CSV} in {directory}")

    grouping: dict[str, tuple[str, ...]] = {}
    owner: dict[str, str] = {}
    with open_text(path) as f:
        rows = csv.reader(f)
        for row in rows:
            cells = [c.strip() for c in row if c.strip()]
            if not cells or cells[0].startswith("#"):
                continue
            house, devices = cells[0], tuple(cells[1:])
            if not devices:
                raise MalformedRowError(f"{GROUPING_CSV} line {rows.line_num}: house {house} has no devices")
            if house in grouping:
                raise MalformedRowError(f"{GROUPING_CSV} line {rows.line_num}: house {house} listed twice")
            for device in devices:
                if device in owner:
                    raise MalformedRowError(
                        f"{GROUPING_CSV} line {rows.line_num}: device {device} already in house {owner[device]}"
                    )
                owner[device] = house
            grouping[house] = devices

    logger.info(f"Loaded grouping for {len(grouping)} household(s), {len(owner)} device(s)")
    return grouping


def load_and_parse_all_logs(
    directory: str,
    tz: ZoneInfo,
    house_ids: Optional[Iterable[str]] = None,
    min_log_hours_per_day: int = DEFAULT_MIN_LOG_HOURS_PER_DAY
) -> dict[str, SystemStatus]:
    """Segment every grouped household from its device logs.

    Args:
        directory: Directory holding grouping.csv and device logs
        tz: Local time zone defining day boundaries
        house_ids: Only segment these households (None = all grouped)
        min_log_hours_per_day: Distinct hours of records a device needs for a usable day

    Returns:
        House ID -> SystemStatus; houses without logs get an empty (all unusable) status

    Raises:
        NoGroupingDataError: If there is no grouping file
    """
    grouping = load_grouping(directory)
    wanted = None if house_ids is None else set(house_ids)

    result: dict[str, SystemStatus] = {}
    for house_id, devices in grouping.items():
        if wanted is not None and house_id not in wanted:
            continue

        logs = []
        missing = []
        for device_id in devices:
            log = load_device_log(directory, device_id, tz)
            if log is None:
                missing.append(device_id)
            else:
                logs.append(log)

        if missing:
            logger.warning(f"House {house_id}: no log data for device(s) {missing}")
            result[house_id] = SystemStatus(house_id=house_id)
            continue

        status = HouseholdSegmenter(house_id, logs, min_log_hours_per_day).get_status()
        logger.info(
            f"House {house_id}: {status.count(SavingStatus.ENABLED)} control, "
            f"{status.count(SavingStatus.DISABLED)} normal, "
            f"{status.count(SavingStatus.DONT_USE)} unusable day(s)"
        )
        result[house_id] = status

    return result
