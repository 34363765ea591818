"""
ETV Custom Exceptions

Simple exception hierarchy for error handling.
"""


class ETVError(Exception):
    """Base exception for ETV."""

    pass


class ConfigurationError(ETVError):
    """Configuration is invalid."""

    pass


class MalformedRecordError(ETVError):
    """Telemetry or log record cannot be parsed."""

    pass


class DuplicateSectionError(MalformedRecordError):
    """Telemetry record repeats a section key."""

    pass


class MalformedRowError(ETVError):
    """CSV row is missing a column or has an unparsable field."""

    pass


class DuplicateDayError(ETVError):
    """Two input rows map to the same local day."""

    pass


class NoGroupingDataError(ETVError):
    """House/device grouping table is absent; segmentation is skipped."""

    pass


class NoCandidatesError(ETVError):
    """Filtering left no households to report on."""

    pass


class OutputError(ETVError):
    """Results cannot be written in the output format."""

    pass
