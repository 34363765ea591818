"""
N-format Bulk Energy Parsing

Per-house cumulative meter readings, one row per reading:

    house_id,received_timestamp,device_timestamp,energy,temperature
    1002,1456790560,1456790400,306.48,-3

device_timestamp is UTC epoch seconds and energy a cumulative kWh meter value.
The reading taken just after local midnight marks the start of each local day;
a day's consumption is the difference to the next day's midnight reading.
"""

import csv
import logging
from datetime import timedelta
from typing import Optional, TextIO
from zoneinfo import ZoneInfo

from .exceptions import DuplicateDayError, MalformedRowError
from .models import DailySeries, day_index, day_index_to_date, utc_seconds_to_local

logger = logging.getLogger(__name__)

DEFAULT_NB_TIMEZONE = "Europe/London"
DEFAULT_MIDNIGHT_TOLERANCE_MINUTES = 15

COL_HOUSE_ID = "house_id"
COL_DEVICE_TIMESTAMP = "device_timestamp"
COL_ENERGY = "energy"


def _column_indexes(header: list[str]) -> tuple[int, int, int]:
    """Find the house, device timestamp and energy columns in the header row."""
    names = [h.strip().lower() for h in header]
    try:
        return (
            names.index(COL_HOUSE_ID),
            names.index(COL_DEVICE_TIMESTAMP),
            names.index(COL_ENERGY),
        )
    except ValueError as e:
        raise MalformedRowError(f"N-format header missing column: {header}") from e


def _midnight_readings(
    reader: TextIO,
    tz: ZoneInfo,
    house_id: Optional[str],
    midnight_tolerance_minutes: int
) -> dict[str, dict[int, float]]:
    """Collect each house's meter reading at local midnight, keyed by local day."""
    rows = csv.reader(reader)
    header = next(rows, None)
    if header is None:
        raise MalformedRowError("N-format data is empty")
    i_house, i_ts, i_energy = _column_indexes(header)
    width = max(i_house, i_ts, i_energy) + 1

    readings: dict[str, dict[int, float]] = {}
    for row in rows:
        if not row or all(not cell.strip() for cell in row):
            continue
        if len(row) < width:
            raise MalformedRowError(f"Line {rows.line_num}: expected at least {width} columns: {row}")

        house = row[i_house].strip()
        if not house.isascii():
            raise MalformedRowError(f"Line {rows.line_num}: house ID {house!r} is not ASCII")
        if house_id is not None and house != house_id:
            continue

        try:
            device_ts = int(row[i_ts].strip())
            energy = float(row[i_energy].strip())
        except ValueError as e:
            raise MalformedRowError(f"Line {rows.line_num}: bad number: {e}") from e

        local = utc_seconds_to_local(device_ts, tz)
        if local.hour * 60 + local.minute >= midnight_tolerance_minutes:
            continue

        day = day_index(local.date())
        by_day = readings.setdefault(house, {})
        if day in by_day:
            raise DuplicateDayError(
                f"Line {rows.line_num}: house {house} has more than one midnight reading for {day}"
            )
        by_day[day] = energy

    return readings


def _daily_kwh(house_id: str, midnight: dict[int, float]) -> DailySeries:
    """Turn midnight meter readings into per-day consumption."""
    kwh: DailySeries = {}
    for day in sorted(midnight):
        next_day = day_index(day_index_to_date(day) + timedelta(days=1))
        if next_day not in midnight:
            continue
        used = midnight[next_day] - midnight[day]
        if used < 0:
            logger.warning(f"House {house_id}: meter went backwards on {day} ({used:.3f} kWh), day dropped")
            continue
        kwh[day] = used
    return kwh


def parse_kwh_by_local_day(
    reader: TextIO,
    house_id: str,
    tz: ZoneInfo,
    midnight_tolerance_minutes: int = DEFAULT_MIDNIGHT_TOLERANCE_MINUTES
) -> DailySeries:
    """Extract one house's daily kWh from N-format data.

    Args:
        reader: N-format CSV text, consumed fully
        house_id: House to extract
        tz: Local time zone defining day boundaries
        midnight_tolerance_minutes: Readings within this many minutes after
            local midnight count as that day's midnight reading

    Returns:
        kWh by local day index, ascending; days without both bounding readings are absent

    Raises:
        DuplicateDayError: Two midnight readings for one local day
        MalformedRowError: Missing columns or unparsable numbers
    """
    readings = _midnight_readings(reader, tz, house_id, midnight_tolerance_minutes)
    kwh = _daily_kwh(house_id, readings.get(house_id, {}))
    logger.debug(f"House {house_id}: {len(kwh)} days of kWh data")
    return kwh


def parse_all_households(
    reader: TextIO,
    tz: ZoneInfo,
    midnight_tolerance_minutes: int = DEFAULT_MIDNIGHT_TOLERANCE_MINUTES
) -> dict[str, DailySeries]:
    """Extract daily kWh for every house in N-format data in one pass."""
    readings = _midnight_readings(reader, tz, None, midnight_tolerance_minutes)
    result = {house: _daily_kwh(house, midnight) for house, midnight in readings.items()}
    logger.info(f"Parsed bulk energy data for {len(result)} household(s)")
    return result
