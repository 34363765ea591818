"""
Household Input Aggregation

Builds one ComputationInput per household from bulk energy and HDD data.
All households must be in the same time zone and share the same HDD source.
"""

import logging
from typing import TextIO
from zoneinfo import ZoneInfo

from .bulk_energy import DEFAULT_MIDNIGHT_TOLERANCE_MINUTES, parse_all_households, parse_kwh_by_local_day
from .hdd import DEFAULT_BASE_TEMPERATURE, extract_simple_hdd
from .models import ComputationInput

logger = logging.getLogger(__name__)


def gather_data(
    house_id: str,
    nbulk_data: TextIO,
    simple_hdd_data: TextIO,
    tz: ZoneInfo,
    base_temperature: float = DEFAULT_BASE_TEMPERATURE,
    midnight_tolerance_minutes: int = DEFAULT_MIDNIGHT_TOLERANCE_MINUTES
) -> ComputationInput:
    """Input for one household; no segmentation data.

    Args:
        house_id: House to extract
        nbulk_data: N-format bulk energy CSV text
        simple_hdd_data: Daily HDD CSV text
        tz: Local time zone of both data sets
        base_temperature: HDD baseline (°C)
        midnight_tolerance_minutes: See bulk_energy.parse_kwh_by_local_day()
    """
    kwh = parse_kwh_by_local_day(nbulk_data, house_id, tz, midnight_tolerance_minutes)
    hdd = extract_simple_hdd(simple_hdd_data, base_temperature).by_day
    return ComputationInput(house_id=house_id, time_zone=tz, kwh_by_day=kwh, hdd_by_day=hdd)


def gather_data_for_all_households(
    nbulk_data: TextIO,
    simple_hdd_data: TextIO,
    tz: ZoneInfo,
    base_temperature: float = DEFAULT_BASE_TEMPERATURE,
    midnight_tolerance_minutes: int = DEFAULT_MIDNIGHT_TOLERANCE_MINUTES
) -> dict[str, ComputationInput]:
    """Inputs for every household in the bulk data, keyed by house ID.

    Every household gets its own copy of the shared HDD series.
    """
    hdd = extract_simple_hdd(simple_hdd_data, base_temperature).by_day
    kwh_by_house = parse_all_households(nbulk_data, tz, midnight_tolerance_minutes)

    inputs = {
        house_id: ComputationInput(house_id=house_id, time_zone=tz, kwh_by_day=kwh, hdd_by_day=dict(hdd))
        for house_id, kwh in kwh_by_house.items()
    }
    logger.info(f"Gathered input data for {len(inputs)} household(s)")
    return inputs
