"""Pytest configuration and shared fixtures.

Synthetic data covers 2016-01-01 to 2016-02-29, when Europe/London is on
UTC, so local days and UTC days coincide.
"""

import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from etv.models import day_index

START = date(2016, 1, 1)
N_DAYS = 60  # 2016-01-01 .. 2016-02-29


def hdd_for(i: int) -> float:
    """Integer HDD cycling 1..10, so every fit has spread."""
    return float(i % 10 + 1)


def normal_kwh(hdd: float) -> float:
    return 3.0 + 2.0 * hdd


def control_kwh(hdd: float) -> float:
    return 1.0 + 1.5 * hdd


def epoch(d: date, hour: int = 0, minute: int = 0) -> int:
    return int(datetime(d.year, d.month, d.day, hour, minute, tzinfo=timezone.utc).timestamp())


def build_hdd_csv(n_days: int = N_DAYS) -> str:
    lines = ["Date,HDD,% Estimated"]
    for i in range(n_days):
        lines.append(f"{(START + timedelta(days=i)).isoformat()},{hdd_for(i):g},0")
    return "\n".join(lines) + "\n"


def build_nbulk_csv(houses: dict[str, callable], n_days: int = N_DAYS) -> str:
    """N-format data: a reading 5 minutes after each midnight plus an ignored noon reading.

    Args:
        houses: House ID -> function of day offset giving that day's kWh
    """
    lines = ["house_id,received_timestamp,device_timestamp,energy,temperature"]
    for house_id, kwh_for_day in houses.items():
        meter = 100.0
        for i in range(n_days + 1):
            d = START + timedelta(days=i)
            ts = epoch(d, 0, 5)
            lines.append(f"{house_id},{ts + 60},{ts},{meter},-3")
            if i < n_days:
                used = kwh_for_day(i)
                noon = epoch(d, 12)
                lines.append(f"{house_id},{noon + 60},{noon},{meter + used / 2},4")
                meter += used
    return "\n".join(lines) + "\n"


def build_device_log(device_id: str, setback_for_day: callable, n_days: int = N_DAYS) -> str:
    """One JSON array record per hour of every day."""
    lines = []
    for i in range(n_days):
        d = START + timedelta(days=i)
        setback = setback_for_day(i)
        for hour in range(24):
            stamp = f"{d.isoformat()}T{hour:02d}:30:00Z"
            stats = {"@": device_id, "+": hour % 16, "tT|C": 18, "tS|C": setback, "v|%": 0}
            lines.append(f'[ "{stamp}", "", {json.dumps(stats)} ]')
    return "\n".join(lines) + "\n"


def split_kwh(i: int) -> float:
    """Normal consumption for the first half, control for the second."""
    hdd = hdd_for(i)
    return normal_kwh(hdd) if i < N_DAYS // 2 else control_kwh(hdd)


def split_setback(i: int) -> int:
    return 0 if i < N_DAYS // 2 else 4


@pytest.fixture
def london():
    return ZoneInfo("Europe/London")


@pytest.fixture
def all_days():
    """Local day indexes of the synthetic period."""
    return [day_index(START + timedelta(days=i)) for i in range(N_DAYS)]


@pytest.fixture
def basic_input_dir(tmp_path: Path) -> Path:
    """Input directory with HDD and bulk energy data for two exact-fit houses."""
    (tmp_path / "HDD.csv").write_text(build_hdd_csv())
    (tmp_path / "NkWh.csv").write_text(build_nbulk_csv({
        "5013": lambda i: normal_kwh(hdd_for(i)),
        "42": lambda i: 2.0 * normal_kwh(hdd_for(i)),
    }))
    return tmp_path


@pytest.fixture
def segmented_input_dir(tmp_path: Path) -> Path:
    """Input directory for one house whose saving features were enabled half way through."""
    (tmp_path / "HDD.csv").write_text(build_hdd_csv())
    (tmp_path / "NkWh.csv").write_text(build_nbulk_csv({"5013": split_kwh}))
    (tmp_path / "grouping.csv").write_text("5013,3015\n")
    (tmp_path / "3015.json").write_text(build_device_log("3015", split_setback))
    return tmp_path
