"""
Result Quality Filters

Predicates for use with filter(); they never modify their argument.
"""

import math
from typing import Iterable, Optional

from .models import ComputationResult, SavingStatus, SystemStatus

# Minimum days with both kWh and HDD for a usable fit
MIN_DAYS = 30
# Minimum R^2 for a usable fit
MIN_R2 = 0.1
# Plausible slope range (kWh/HDD); lower bound exclusive
MIN_SLOPE = 0.0
MAX_SLOPE = 100.0
# Plausible baseload range (kWh/day)
MIN_BASELINE = -10.0
MAX_BASELINE = 200.0
# Minimum control and normal days each for a segmented comparison
MIN_CONTROL_AND_NORMAL_DAYS = 7


def good_daily_data_results(
    result: ComputationResult,
    min_days: int = MIN_DAYS,
    min_r2: float = MIN_R2,
    min_slope: float = MIN_SLOPE,
    max_slope: float = MAX_SLOPE,
    min_baseline: float = MIN_BASELINE,
    max_baseline: float = MAX_BASELINE
) -> bool:
    """True if the result has enough data, a reasonable fit and no outlier parameters."""
    if result.n < min_days:
        return False
    if not all(math.isfinite(v) for v in (result.slope, result.baseline, result.r_squared)):
        return False
    if result.r_squared < min_r2:
        return False
    if not min_slope < result.slope <= max_slope:
        return False
    return min_baseline <= result.baseline <= max_baseline


def enough_control_and_normal(
    status: SystemStatus,
    days: Optional[Iterable[int]] = None,
    min_days: int = MIN_CONTROL_AND_NORMAL_DAYS
) -> bool:
    """True if the household has enough control and normal days.

    Args:
        status: Household segmentation
        days: Only count these days, e.g. those with both kWh and HDD data
        min_days: Minimum count of each of control and normal days
    """
    if days is not None:
        days = set(days)
    return (
        status.count(SavingStatus.ENABLED, days) >= min_days
        and status.count(SavingStatus.DISABLED, days) >= min_days
    )
