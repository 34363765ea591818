"""
Energy vs HDD Regression

Fits daily space-heating energy against heating degree days per household:

    kWh = baseline + slope * HDD

slope is the household's heat loss in kWh per degree day, baseline the
weather-independent daily load. Population moments are used throughout.

With a per-day saving status, the normal (saving disabled) and control
(saving enabled) days are fitted separately and compared at a reference HDD.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
from scipy import stats

from .filters import MIN_CONTROL_AND_NORMAL_DAYS
from .models import ComputationInput, ComputationResult, DailySeries, SavingStatus

logger = logging.getLogger(__name__)

DEFAULT_MIN_SEGMENT_DAYS = MIN_CONTROL_AND_NORMAL_DAYS
DEFAULT_REFERENCE_HDD = 10.0


@dataclass(frozen=True)
class RegressionFit:
    """Ordinary least squares fit of kWh on HDD."""

    slope: float
    baseline: float
    r_squared: float
    n: int

    @property
    def is_valid(self) -> bool:
        """True if slope and baseline are defined."""
        return math.isfinite(self.slope) and math.isfinite(self.baseline)

    def predict(self, hdd: float) -> float:
        """Predicted daily kWh at the given HDD."""
        return self.baseline + self.slope * hdd


def fit_days(kwh: DailySeries, hdd: DailySeries, days: Iterable[int]) -> RegressionFit:
    """Fit kWh against HDD over the given days.

    Days missing from either series are skipped. Fewer than two points, or no
    spread in HDD, gives NaN slope, baseline and R^2 with the real n.
    """
    used = sorted(d for d in set(days) if d in kwh and d in hdd)
    n = len(used)
    if n < 2:
        return RegressionFit(math.nan, math.nan, math.nan, n)

    x = np.array([hdd[d] for d in used], dtype=float)
    y = np.array([kwh[d] for d in used], dtype=float)
    if np.ptp(x) == 0:
        return RegressionFit(math.nan, math.nan, math.nan, n)

    fit = stats.linregress(x, y)
    return RegressionFit(
        slope=float(fit.slope),
        baseline=float(fit.intercept),
        r_squared=float(fit.rvalue) ** 2,
        n=n,
    )


def joined_days(computation_input: ComputationInput) -> list[int]:
    """Days present in both the kWh and HDD series, ascending."""
    return sorted(computation_input.kwh_by_day.keys() & computation_input.hdd_by_day.keys())


def efficiency_gain(normal: RegressionFit, control: RegressionFit, reference_hdd: float) -> Optional[float]:
    """Ratio of predicted normal to predicted control consumption at reference_hdd.

    Above 1 means the household used less energy with saving features enabled.
    None if either fit is undefined or control consumption is not positive.
    """
    if not (normal.is_valid and control.is_valid):
        return None
    predicted_control = control.predict(reference_hdd)
    if predicted_control <= 0:
        return None
    return normal.predict(reference_hdd) / predicted_control


def compute(
    computation_input: ComputationInput,
    min_segment_days: int = DEFAULT_MIN_SEGMENT_DAYS,
    reference_hdd: float = DEFAULT_REFERENCE_HDD
) -> ComputationResult:
    """Compute one household's regression result.

    Without segmentation status, all joined days are fitted and no gain is
    reported. With status, the reported fit is that of the normal days, and
    efficiency gain is computed when both normal and control days number at
    least min_segment_days.
    """
    kwh = computation_input.kwh_by_day
    hdd = computation_input.hdd_by_day
    days = joined_days(computation_input)

    status_by_day = computation_input.status_by_day
    if status_by_day is None:
        fit = fit_days(kwh, hdd, days)
        logger.debug(
            f"House {computation_input.house_id}: slope={fit.slope:.4f}, baseline={fit.baseline:.4f}, "
            f"R²={fit.r_squared:.4f}, n={fit.n}"
        )
        return ComputationResult(computation_input.house_id, fit.slope, fit.baseline, fit.r_squared, fit.n)

    normal_days = [d for d in days if status_by_day.get(d) is SavingStatus.DISABLED]
    control_days = [d for d in days if status_by_day.get(d) is SavingStatus.ENABLED]
    normal = fit_days(kwh, hdd, normal_days)
    control = fit_days(kwh, hdd, control_days)

    gain = None
    if normal.n >= min_segment_days and control.n >= min_segment_days:
        gain = efficiency_gain(normal, control, reference_hdd)
    else:
        logger.debug(
            f"House {computation_input.house_id}: too few segmented days "
            f"(normal={normal.n}, control={control.n}), no efficiency gain"
        )

    return ComputationResult(
        house_id=computation_input.house_id,
        slope=normal.slope,
        baseline=normal.baseline,
        r_squared=normal.r_squared,
        n=normal.n,
        efficiency_gain=gain,
    )


def compute_all(
    inputs: Iterable[ComputationInput],
    max_workers: int = 1,
    min_segment_days: int = DEFAULT_MIN_SEGMENT_DAYS,
    reference_hdd: float = DEFAULT_REFERENCE_HDD
) -> list[ComputationResult]:
    """Compute results for many households, in input order.

    Households are independent, so with max_workers > 1 they are computed
    in a thread pool; this returns only once every household is done.
    """
    inputs = list(inputs)

    def _one(computation_input: ComputationInput) -> ComputationResult:
        return compute(computation_input, min_segment_days, reference_hdd)

    if max_workers <= 1 or len(inputs) <= 1:
        return [_one(i) for i in inputs]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(_one, inputs))
