"""
ETV Data Models

Immutable per-household inputs, results and segmentation status.
Days are keyed by local day index: the local calendar date as a YYYYMMDD int.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

# Local day index (YYYYMMDD) -> reading, keys in ascending order
DailySeries = dict[int, float]


def day_index(d: date) -> int:
    """Local day index for a calendar date, e.g. 2016-03-01 -> 20160301."""
    return d.year * 10000 + d.month * 100 + d.day


def local_day_index(timestamp: datetime, tz: ZoneInfo) -> int:
    """Local day index of an aware timestamp in the given zone."""
    return day_index(timestamp.astimezone(tz).date())


def utc_seconds_to_local(seconds: int, tz: ZoneInfo) -> datetime:
    """Convert UTC epoch seconds to an aware local datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone(tz)


def day_index_to_date(index: int) -> date:
    """Inverse of day_index()."""
    return date(index // 10000, (index // 100) % 100, index % 100)


def sorted_series(values: dict[int, float]) -> DailySeries:
    """Copy of a day-keyed mapping with keys in ascending order."""
    return {k: values[k] for k in sorted(values)}


class SavingStatus(str, Enum):
    """Energy-saving operating status of a household for one day."""

    ENABLED = "enabled"  # Control period: saving features active
    DISABLED = "disabled"  # Normal period
    DONT_USE = "dont_use"  # Unusable or unknown


@dataclass(frozen=True)
class SystemStatus:
    """Per-day saving status of one household, derived from device logs."""

    house_id: str
    status_by_day: dict[int, SavingStatus] = field(default_factory=dict)
    valve_else_boiler_by_device: dict[str, bool] = field(default_factory=dict)
    raw_stats_by_utc_timestamp: dict[int, str] = field(default_factory=dict)

    def status_for(self, day: int) -> SavingStatus:
        """Status for a day; days without log data are unusable."""
        return self.status_by_day.get(day, SavingStatus.DONT_USE)

    def count(self, status: SavingStatus, days: Optional[Iterable[int]] = None) -> int:
        """Count days with the given status, optionally only among `days`."""
        if days is None:
            return sum(1 for s in self.status_by_day.values() if s is status)
        return sum(1 for d in set(days) if self.status_for(d) is status)


@dataclass(frozen=True)
class ComputationInput:
    """All data needed to compute one household's statistics."""

    house_id: str
    time_zone: ZoneInfo
    kwh_by_day: DailySeries
    hdd_by_day: DailySeries
    status_by_day: Optional[dict[int, SavingStatus]] = None
    raw_stats_by_utc_timestamp: Optional[dict[int, str]] = None
    valve_else_boiler_by_device: Optional[dict[str, bool]] = None

    def with_status(self, status: SystemStatus) -> "ComputationInput":
        """Copy of this input carrying the household's segmentation status."""
        if status.house_id != self.house_id:
            raise ValueError(f"Status for house {status.house_id} applied to house {self.house_id}")
        return replace(
            self,
            status_by_day=dict(status.status_by_day),
            raw_stats_by_utc_timestamp=dict(status.raw_stats_by_utc_timestamp),
            valve_else_boiler_by_device=dict(status.valve_else_boiler_by_device),
        )


@dataclass(frozen=True)
class ComputationResult:
    """Energy vs HDD regression result for one household."""

    house_id: str
    slope: float  # kWh per HDD
    baseline: float  # kWh/day at zero HDD
    r_squared: float
    n: int  # Days with both kWh and HDD data
    efficiency_gain: Optional[float] = None  # Only when segmentation succeeded


def house_sort_key(house_id: str) -> tuple:
    """Deterministic ordering: numeric IDs numerically, then others lexically."""
    stripped = house_id.strip()
    if stripped.isdigit():
        return (0, int(stripped), house_id)
    return (1, 0, house_id)
