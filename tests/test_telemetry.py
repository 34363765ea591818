"""Tests for compact telemetry record parsing."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from etv.exceptions import DuplicateSectionError, MalformedRecordError
from etv.telemetry import SensorLabel, TelemetryRecord, parse_temperature_ddch


class TestParseTemperature:

    def test_hex_sixteenths(self):
        assert parse_temperature_ddch("19C7") == 19.4375

    def test_whole_degrees(self):
        assert parse_temperature_ddch("20C0") == 20.0

    def test_upper_hex_digit(self):
        assert parse_temperature_ddch("5Cf") == 5 + 15 / 16

    @pytest.mark.parametrize("raw", ["19", "197", "19X7", "C7", "abC1", "19Cg"])
    def test_malformed(self, raw):
        with pytest.raises(MalformedRecordError):
            parse_temperature_ddch(raw)


class TestTelemetryRecord:

    def test_parse_id_and_temperature(self):
        record = TelemetryRecord("@D49;T19C7")

        assert record.id == "D49"
        assert record.temperature == 19.4375
        assert record.sections == {"@": "D49", "T": "19C7"}
        assert record.raw == "@D49;T19C7"

    def test_id_only(self):
        record = TelemetryRecord("@D49")
        assert record.id == "D49"
        assert record.temperature is None

    def test_whitespace_around_sections(self):
        record = TelemetryRecord("@D49; T19C7 ;H52")
        assert record.sections["T"] == "19C7"
        assert record.sections["H"] == "52"

    def test_id_leading_character_claims_key(self):
        """A later section keyed by the ID's first character is a duplicate."""
        with pytest.raises(DuplicateSectionError):
            TelemetryRecord("@D49;T19C7;D50")

    def test_id_leading_character_alone_is_fine(self):
        record = TelemetryRecord("@D49;T19C7;H52")
        assert record.id == "D49"
        assert "D" not in record.sections

    def test_duplicate_section(self):
        with pytest.raises(DuplicateSectionError):
            TelemetryRecord("@D49;T19C7;T20C0")

    def test_duplicate_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            TelemetryRecord("@D49;@D50")

    @pytest.mark.parametrize("raw", ["", "@", "D49;T19C7", "@D49;;T19C7", "@D49;T", "@D49;"])
    def test_malformed(self, raw):
        with pytest.raises(MalformedRecordError):
            TelemetryRecord(raw)

    def test_not_a_string(self):
        with pytest.raises(MalformedRecordError):
            TelemetryRecord(None)

    def test_sections_read_only(self):
        record = TelemetryRecord("@D49;T19C7")
        with pytest.raises(TypeError):
            record.sections["T"] = "0C0"

    def test_immutable(self):
        record = TelemetryRecord("@D49;T19C7")
        with pytest.raises(AttributeError):
            record._raw = "@X"

    def test_equality_and_hash(self):
        a = TelemetryRecord("@D49;T19C7")
        b = TelemetryRecord("@D49;T19C7")
        c = TelemetryRecord("@D49;T19C8")

        assert a == b
        assert hash(a) == hash(b)
        assert a != c
        assert len({a, b, c}) == 2

    def test_map_by_string(self):
        record = TelemetryRecord("@D49;T19C7")
        by_string = record.map_by_string()

        assert by_string == {"@": "D49", "T": "19C7"}
        assert by_string[SensorLabel.TEMPERATURE.value] == "19C7"
        assert record.map_by_string() is by_string

    def test_map_by_string_concurrent(self):
        """All threads see one and the same map."""
        record = TelemetryRecord("@D49;T19C7;H52;L130")

        with ThreadPoolExecutor(max_workers=8) as executor:
            views = list(executor.map(lambda _: record.map_by_string(), range(64)))

        assert all(v is views[0] for v in views)
        assert views[0] == {"@": "D49", "T": "19C7", "H": "52", "L": "130"}
