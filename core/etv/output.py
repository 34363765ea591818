"""
CSV Output

Per-household statistics and multi-household summary as ASCII CSV text.
Floats are written at single precision with the shortest digits that round-trip,
'.0' on integral values and E notation outside [1e-3, 1e7), so output compares
byte for byte with reference files.
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from .exceptions import OutputError
from .models import ComputationResult

logger = logging.getLogger(__name__)

RESULTS_HEADER = (
    '"house ID","slope energy/HDD","baseload energy","R^2","n","efficiency gain if computed"'
)

SUMMARY_HEADER = (
    '"all households count","households with efficiency gain count","total n",'
    '"mean R^2","sd R^2","mean slope energy/HDD","sd slope energy/HDD",'
    '"mean efficiency gain","sd efficiency gain"'
)


def format_float(value: float) -> str:
    """Render a value as a single precision decimal string.

    1.5532478 -> "1.5532478", 0 -> "0.0", 1e-4 -> "1.0E-4", NaN -> "NaN"
    """
    f = np.float32(value)
    if np.isnan(f):
        return "NaN"
    if np.isinf(f):
        return "Infinity" if f > 0 else "-Infinity"

    magnitude = abs(float(f))
    if magnitude == 0.0 or 1e-3 <= magnitude < 1e7:
        return np.format_float_positional(f, unique=True, trim="0")

    text = np.format_float_scientific(f, unique=True, trim="0", exp_digits=1)
    mantissa, exponent = text.split("e")
    return f"{mantissa}E{int(exponent)}"


def result_to_csv_row(result: ComputationResult) -> str:
    """One quoted CSV row; efficiency gain blank when not computed."""
    gain = "" if result.efficiency_gain is None else format_float(result.efficiency_gain)
    return ",".join([
        '"' + result.house_id.replace('"', '""') + '"',
        format_float(result.slope),
        format_float(result.baseline),
        format_float(result.r_squared),
        str(result.n),
        gain,
    ])


def results_to_csv(results: Iterable[ComputationResult]) -> str:
    """Header plus one row per result, in the given order."""
    lines = [RESULTS_HEADER]
    lines.extend(result_to_csv_row(r) for r in results)
    return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class SummaryStats:
    """Aggregate statistics over a group of segmented households."""

    all_households_count: int
    households_with_gain_count: int
    total_n: int
    r_squared_mean: float
    r_squared_sd: float
    slope_mean: float
    slope_sd: float
    gain_mean: float
    gain_sd: float


def _mean_and_pop_sd(values: list[float]) -> tuple[float, float]:
    """Mean and population standard deviation of the finite values."""
    finite = [v for v in values if v is not None and math.isfinite(v)]
    if not finite:
        return math.nan, math.nan
    arr = np.array(finite, dtype=float)
    return float(arr.mean()), float(arr.std())


def summarize(results: Iterable[ComputationResult]) -> SummaryStats:
    """Summarise a group of household results."""
    results = list(results)
    gains = [r.efficiency_gain for r in results if r.efficiency_gain is not None]

    r2_mean, r2_sd = _mean_and_pop_sd([r.r_squared for r in results])
    slope_mean, slope_sd = _mean_and_pop_sd([r.slope for r in results])
    gain_mean, gain_sd = _mean_and_pop_sd(gains)

    return SummaryStats(
        all_households_count=len(results),
        households_with_gain_count=len(gains),
        total_n=sum(r.n for r in results),
        r_squared_mean=r2_mean,
        r_squared_sd=r2_sd,
        slope_mean=slope_mean,
        slope_sd=slope_sd,
        gain_mean=gain_mean,
        gain_sd=gain_sd,
    )


def summary_to_csv(summary: SummaryStats) -> str:
    """Header plus a single summary row."""
    row = ",".join([
        str(summary.all_households_count),
        str(summary.households_with_gain_count),
        str(summary.total_n),
        format_float(summary.r_squared_mean),
        format_float(summary.r_squared_sd),
        format_float(summary.slope_mean),
        format_float(summary.slope_sd),
        format_float(summary.gain_mean),
        format_float(summary.gain_sd),
    ])
    return SUMMARY_HEADER + "\n" + row + "\n"


def write_csv(path: str, text: str):
    """Write CSV text as ASCII with '\\n' line endings.

    The file is replaced whole; on failure any previous content is kept.

    Raises:
        OutputError: If the text is not ASCII
    """
    try:
        data = text.encode("ascii")
    except UnicodeEncodeError as e:
        raise OutputError(f"Cannot write {path}: non-ASCII output ({e.reason} at {e.start})") from e

    tmp_path = path + ".tmp"
    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    logger.info(f"Wrote {path}")
