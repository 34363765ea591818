"""Tests for CSV output formatting and summary statistics."""

import math

import pytest

from etv.exceptions import OutputError
from etv.models import ComputationResult
from etv.output import (
    RESULTS_HEADER,
    SUMMARY_HEADER,
    format_float,
    result_to_csv_row,
    results_to_csv,
    summarize,
    summary_to_csv,
    write_csv,
)


class TestFormatFloat:

    @pytest.mark.parametrize("value,expected", [
        (1.5532478, "1.5532478"),
        (0.62608224, "0.62608224"),
        (2.0, "2.0"),
        (0.0, "0.0"),
        (-3.25, "-3.25"),
        (100.0, "100.0"),
        (0.001, "0.001"),
        (1e-4, "1.0E-4"),
        (1.5e-5, "1.5E-5"),
        (1e7, "1.0E7"),
        (math.nan, "NaN"),
        (math.inf, "Infinity"),
    ])
    def test_java_float_form(self, value, expected):
        assert format_float(value) == expected

    def test_single_precision(self):
        assert format_float(1.0 / 3.0) == "0.33333334"


class TestResultRows:

    def test_basic_row(self):
        result = ComputationResult("5013", 1.5532478, 1.3065631, 0.62608224, 156)
        assert result_to_csv_row(result) == '"5013",1.5532478,1.3065631,0.62608224,156,'

    def test_row_with_gain(self):
        result = ComputationResult("5013", 1.138506, 5.764153, 0.24607657, 10, 1.9855182)
        assert result_to_csv_row(result) == '"5013",1.138506,5.764153,0.24607657,10,1.9855182'

    def test_embedded_quote_doubled(self):
        result = ComputationResult('5"13', 2.0, 3.0, 1.0, 40)
        assert result_to_csv_row(result) == '"5""13",2.0,3.0,1.0,40,'

    def test_undefined_fit(self):
        result = ComputationResult("7", math.nan, math.nan, math.nan, 1)
        assert result_to_csv_row(result) == '"7",NaN,NaN,NaN,1,'

    def test_results_csv(self):
        results = [
            ComputationResult("5013", 1.5532478, 1.3065631, 0.62608224, 156),
            ComputationResult("5014", 2.0, 3.0, 1.0, 40),
        ]
        assert results_to_csv(results) == (
            RESULTS_HEADER + "\n"
            '"5013",1.5532478,1.3065631,0.62608224,156,\n'
            '"5014",2.0,3.0,1.0,40,\n'
        )

    def test_empty_results_csv(self):
        assert results_to_csv([]) == RESULTS_HEADER + "\n"


class TestSummary:

    def test_single_household(self):
        result = ComputationResult("5013", 1.138506, 5.764153, 0.24607657, 10, 1.9855182)
        text = summary_to_csv(summarize([result]))

        assert text == SUMMARY_HEADER + "\n" + "1,1,10,0.24607657,0.0,1.138506,0.0,1.9855182,0.0\n"

    def test_population_sd(self):
        results = [
            ComputationResult("1", 1.0, 0.0, 0.5, 30, 1.2),
            ComputationResult("2", 3.0, 0.0, 0.7, 40, None),
        ]
        summary = summarize(results)

        assert summary.all_households_count == 2
        assert summary.households_with_gain_count == 1
        assert summary.total_n == 70
        assert summary.slope_mean == pytest.approx(2.0)
        assert summary.slope_sd == pytest.approx(1.0)
        assert summary.r_squared_mean == pytest.approx(0.6)
        assert summary.r_squared_sd == pytest.approx(0.1)
        assert summary.gain_mean == pytest.approx(1.2)
        assert summary.gain_sd == 0.0

    def test_no_gains(self):
        summary = summarize([ComputationResult("1", 1.0, 0.0, 0.5, 30)])
        assert summary.households_with_gain_count == 0
        assert math.isnan(summary.gain_mean)
        assert summary_to_csv(summary).endswith(",NaN,NaN\n")

    def test_empty(self):
        summary = summarize([])
        assert summary.all_households_count == 0
        assert summary.total_n == 0
        assert math.isnan(summary.r_squared_mean)


class TestWriteCsv:

    def test_ascii_lf(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(str(path), RESULTS_HEADER + "\n")
        assert path.read_bytes() == (RESULTS_HEADER + "\n").encode("ascii")

    def test_non_ascii_keeps_previous_file(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(str(path), RESULTS_HEADER + "\n")

        with pytest.raises(OutputError):
            write_csv(str(path), RESULTS_HEADER + '\n"Hé1",1.0,1.0,1.0,30,\n')

        assert path.read_text() == RESULTS_HEADER + "\n"
        assert not (tmp_path / "out.csv.tmp").exists()
