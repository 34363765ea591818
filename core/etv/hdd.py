"""
Heating Degree Day Extraction

Reads daily HDD CSV data in either of two forms.

Simple:

    Date,HDD,% Estimated
    2016-03-01,6.6,0
    2016-03-02,10.1,0

degreedays.net export, with a quoted preamble and optionally several baselines:

    "Description:","Celsius-based heating degree days for a base temperature of 15.5C"
    "Source:","www.degreedays.net (using temperature data from www.wunderground.com)"
    ...
    "Date","HDD 15","HDD 15.5","HDD 16","% Estimated"
    2016-03-01,6.1,6.6,7.1,0
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, TextIO

from .exceptions import DuplicateDayError, MalformedRowError
from .models import DailySeries, day_index, sorted_series

logger = logging.getLogger(__name__)

DEFAULT_BASE_TEMPERATURE = 15.5

_HDD_COLUMN = re.compile(r"^HDD(?:\s+(-?\d+(?:\.\d+)?)\s*C?)?$", re.IGNORECASE)
_PREAMBLE_BASE = re.compile(r"base temperature of\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE)
_ESTIMATED_COLUMN = "% estimated"
_BASE_TOLERANCE = 1e-6


@dataclass(frozen=True)
class HDDSeries:
    """Daily HDD values for one baseline temperature."""

    base_temperature: float
    by_day: DailySeries
    estimated_days: frozenset[int] = field(default_factory=frozenset)


def _select_hdd_column(header: list[str], base_temperature: float, preamble_base: Optional[float]) -> int:
    """Index of the HDD column for the requested baseline."""
    plain = None
    for i, name in enumerate(header):
        m = _HDD_COLUMN.match(name.strip())
        if not m:
            continue
        if m.group(1) is None:
            if plain is None:
                plain = i
        elif abs(float(m.group(1)) - base_temperature) < _BASE_TOLERANCE:
            return i

    if plain is None:
        raise MalformedRowError(f"No HDD column for base temperature {base_temperature} in {header}")
    if preamble_base is not None and abs(preamble_base - base_temperature) >= _BASE_TOLERANCE:
        raise MalformedRowError(
            f"HDD data is for base temperature {preamble_base}, not {base_temperature}"
        )
    return plain


def extract_simple_hdd(reader: TextIO, base_temperature: float = DEFAULT_BASE_TEMPERATURE) -> HDDSeries:
    """Extract daily HDD keyed by local day index.

    Rows flagged as estimated are included and also listed in estimated_days.

    Args:
        reader: HDD CSV text, consumed fully
        base_temperature: Baseline (°C) the data must be for; selects the column
            when several baselines are present

    Returns:
        HDDSeries with days in ascending order

    Raises:
        MalformedRowError: No header, no suitable HDD column, or bad values
        DuplicateDayError: A date appears twice
    """
    rows = csv.reader(reader)

    preamble_base = None
    header = None
    for row in rows:
        if not row or not row[0].strip():
            continue
        first = row[0].strip()
        if first.lower() == "date":
            header = row
            break
        m = _PREAMBLE_BASE.search(",".join(row))
        if m:
            preamble_base = float(m.group(1))
    if header is None:
        raise MalformedRowError("HDD data has no 'Date' header row")

    hdd_col = _select_hdd_column(header, base_temperature, preamble_base)
    names = [h.strip().lower() for h in header]
    est_col = names.index(_ESTIMATED_COLUMN) if _ESTIMATED_COLUMN in names else None

    values: dict[int, float] = {}
    estimated: set[int] = set()
    for row in rows:
        if not row or all(not cell.strip() for cell in row):
            continue
        try:
            day = day_index(date.fromisoformat(row[0].strip()))
            hdd = float(row[hdd_col].strip())
            is_estimated = (
                est_col is not None and len(row) > est_col and row[est_col].strip() != ""
                and float(row[est_col].strip()) > 0
            )
        except (IndexError, ValueError) as e:
            raise MalformedRowError(f"Line {rows.line_num}: bad HDD row {row}: {e}") from e

        if day in values:
            raise DuplicateDayError(f"Line {rows.line_num}: duplicate HDD date {row[0].strip()}")
        values[day] = hdd
        if is_estimated:
            estimated.add(day)

    by_day = sorted_series(values)
    logger.info(
        f"Extracted {len(by_day)} days of HDD (base {base_temperature}°C), {len(estimated)} estimated"
    )
    return HDDSeries(base_temperature=base_temperature, by_day=by_day, estimated_days=frozenset(estimated))
