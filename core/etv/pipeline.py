"""
ETV Run Orchestration

Drives a whole run from an input directory to an output directory:

    parse -> aggregate -> regress -> filter -> sort -> write
    [grouping present] -> segment -> filter -> regress -> sort -> write

Input and output directories may be the same; all file names are distinct.
Basic outputs are written before segmentation is attempted, so a later
failure keeps them.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import partial
from typing import Iterable, Optional

from .activity_log import GROUPING_CSV, load_and_parse_all_logs
from .exceptions import NoCandidatesError, NoGroupingDataError
from .fileio import open_smart
from .filters import enough_control_and_normal, good_daily_data_results
from .inputs import gather_data_for_all_households
from .models import ComputationInput, ComputationResult, SystemStatus, house_sort_key
from .output import SummaryStats, results_to_csv, summarize, summary_to_csv, write_csv
from .regression import compute_all, joined_days
from .settings import ETVSettings

logger = logging.getLogger(__name__)

# Input file names within the input directory (each may also be gzipped)
INPUT_FILE_HDD = "HDD.csv"
INPUT_FILE_NKWH = "NkWh.csv"

# Output file names within the output directory
OUTPUT_STATS_FILE_BASIC = "basicStatsOut.csv"
OUTPUT_STATS_FILE_FILTERED_BASIC = "basicFilteredStatsOut.csv"
OUTPUT_STATS_FILE_SEGMENTED = "segmentedStatsOut.csv"
OUTPUT_STATS_FILE_MULTIHOUSEHOLD_SUMMARY = "multiHouseholdSummaryStatsOut.csv"


@dataclass
class RunReport:
    """What a run computed and wrote."""

    basic: list[ComputationResult] = field(default_factory=list)
    basic_filtered: list[ComputationResult] = field(default_factory=list)
    segmented: list[ComputationResult] = field(default_factory=list)
    summary: Optional[SummaryStats] = None
    segmentation_attempted: bool = False
    files_written: list[str] = field(default_factory=list)


def sort_by_house_id(results: Iterable[ComputationResult]) -> list[ComputationResult]:
    """Results in deterministic house ID order."""
    return sorted(results, key=lambda r: house_sort_key(r.house_id))


def load_inputs(in_dir: str, settings: ETVSettings) -> dict[str, ComputationInput]:
    """Read the bulk energy and HDD files into per-household inputs."""
    with open_smart(in_dir, INPUT_FILE_NKWH) as nbulk, open_smart(in_dir, INPUT_FILE_HDD) as hdd:
        return gather_data_for_all_households(
            nbulk,
            hdd,
            settings.zone_info,
            base_temperature=settings.hdd_base_temperature,
            midnight_tolerance_minutes=settings.midnight_tolerance_minutes,
        )


def filter_basic(results: Iterable[ComputationResult], settings: ETVSettings) -> list[ComputationResult]:
    """Keep results with adequate data and plausible fits."""
    keep = partial(
        good_daily_data_results,
        min_days=settings.min_days,
        min_r2=settings.min_r2,
        min_slope=settings.min_slope,
        max_slope=settings.max_slope,
        min_baseline=settings.min_baseline,
        max_baseline=settings.max_baseline,
    )
    return [r for r in results if keep(r)]


def filter_segmented(
    statuses: dict[str, SystemStatus],
    inputs: dict[str, ComputationInput],
    settings: ETVSettings
) -> list[SystemStatus]:
    """Keep households with enough control and normal days that also have kWh and HDD data."""
    return [
        status for house_id, status in statuses.items()
        if enough_control_and_normal(
            status,
            days=joined_days(inputs[house_id]),
            min_days=settings.min_control_and_normal_days,
        )
    ]


def _write(out_dir: str, name: str, text: str, report: RunReport):
    path = os.path.join(out_dir, name)
    write_csv(path, text)
    report.files_written.append(name)


def do_computation(in_dir: str, out_dir: str, settings: Optional[ETVSettings] = None) -> RunReport:
    """Process from input to output directory; results sorted by house ID.

    Efficacy (segmented) computation is attempted if a grouping file is present.

    Args:
        in_dir: Directory containing input files; must exist
        out_dir: Directory for output files; must exist and be writable
        settings: Run settings (defaults if None)

    Returns:
        RunReport of results and files written

    Raises:
        NotADirectoryError: If either directory does not exist
        FileNotFoundError: If a required input file is missing
        NoCandidatesError: If filtering leaves no households, after writing
            whatever outputs could be produced
        ETVError: On malformed input data
    """
    if not os.path.isdir(in_dir):
        raise NotADirectoryError(f"Cannot open input directory {in_dir}")
    if not os.path.isdir(out_dir):
        raise NotADirectoryError(f"Cannot open output directory {out_dir}")
    settings = settings or ETVSettings()
    report = RunReport()

    inputs = load_inputs(in_dir, settings)

    # Basic results
    report.basic = sort_by_house_id(compute_all(
        inputs.values(),
        max_workers=settings.max_workers,
        min_segment_days=settings.min_control_and_normal_days,
        reference_hdd=settings.reference_hdd,
    ))
    _write(out_dir, OUTPUT_STATS_FILE_BASIC, results_to_csv(report.basic), report)

    # Basic filtered results
    report.basic_filtered = filter_basic(report.basic, settings)
    _write(out_dir, OUTPUT_STATS_FILE_FILTERED_BASIC, results_to_csv(report.basic_filtered), report)
    logger.info(f"{len(report.basic_filtered)} of {len(report.basic)} household(s) passed basic filtering")

    if not report.basic_filtered:
        raise NoCandidatesError("No candidate households left after filtering.")

    # Segmentation, if log data is available
    stage1_house_ids = {r.house_id for r in report.basic_filtered}
    try:
        statuses = load_and_parse_all_logs(
            in_dir,
            settings.zone_info,
            house_ids=stage1_house_ids,
            min_log_hours_per_day=settings.min_log_hours_per_day,
        )
    except NoGroupingDataError:
        logger.info(f"No grouping file in input dir, so no segmentation attempted: {GROUPING_CSV}")
        return report
    report.segmentation_attempted = True

    enough = filter_segmented(statuses, inputs, settings)
    if not enough:
        raise NoCandidatesError("No candidate households left after attempting to segment.")
    logger.info(f"{len(enough)} household(s) have enough control and normal days")

    segmented_inputs = [inputs[status.house_id].with_status(status) for status in enough]
    report.segmented = sort_by_house_id(compute_all(
        segmented_inputs,
        max_workers=settings.max_workers,
        min_segment_days=settings.min_control_and_normal_days,
        reference_hdd=settings.reference_hdd,
    ))
    _write(out_dir, OUTPUT_STATS_FILE_SEGMENTED, results_to_csv(report.segmented), report)

    report.summary = summarize(report.segmented)
    _write(out_dir, OUTPUT_STATS_FILE_MULTIHOUSEHOLD_SUMMARY, summary_to_csv(report.summary), report)

    return report
