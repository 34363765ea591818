"""
ETV Command Line Driver

    etv IN_DIR OUT_DIR [--config config.yaml] [--log-level INFO]

Reads HDD.csv, NkWh.csv and optional grouping.csv plus device logs from
IN_DIR and writes the statistics CSV files to OUT_DIR.
"""

import argparse
import sys

from loguru import logger

from .exceptions import ETVError, NoCandidatesError
from .log_config import setup_logging
from .pipeline import do_computation
from .settings import load_settings

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_CANDIDATES = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="etv",
        description="Per-household heating energy efficiency statistics from bulk energy and HDD data",
    )
    parser.add_argument("in_dir", help="Directory containing input files")
    parser.add_argument("out_dir", help="Directory for output files (may be the same as in_dir)")
    parser.add_argument("--config", default=None, help="YAML settings file (default: ./config.yaml if present)")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run from the command line; returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        settings = load_settings(args.config)
        logger.info(f"ETV run: {args.in_dir} -> {args.out_dir} (time zone {settings.time_zone})")
        report = do_computation(args.in_dir, args.out_dir, settings)
    except NoCandidatesError as e:
        logger.error(f"{e}")
        return EXIT_NO_CANDIDATES
    except (ETVError, OSError) as e:
        logger.error(f"ETV run failed: {e}")
        return EXIT_ERROR

    logger.info(f"Wrote {', '.join(report.files_written)}")
    if not report.segmentation_attempted:
        logger.info("No segmentation attempted")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
