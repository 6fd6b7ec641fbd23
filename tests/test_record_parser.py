"""
Tests for header resolution and data line parsing.
"""

from pathlib import Path

import pytest

from isocensus.core.diagnostics import Diagnostics
from isocensus.core.exceptions import ParseError, ParseErrorKind, SchemaError
from isocensus.model.channels import ChannelSchema
from isocensus.parsing.layout import ReportLayout, ResolvedLayout, read_header
from isocensus.parsing.record_parser import parse_line, parse_lines

EXAMPLE_DIR = Path(__file__).parent / "example"
TABULAR_REPORT = EXAMPLE_DIR / "itraq4_report.tsv"


def tsv(*fields):
    return "\t".join(str(f) for f in fields)


@pytest.fixture
def schema():
    return ChannelSchema.establish(["126", "127", "128"])


class TestReadHeader:
    """Tests for resolving the fixed columns of a header."""

    def test_default_columns(self):
        header = tsv("protein_id", "peptide_sequence", "charge_state", "quality_score", "126", "127")
        resolved, schema = read_header(header)

        assert resolved.fixed_column_count == 4
        assert resolved.quality_index == 3
        assert resolved.unique_index is None
        assert schema.labels == ("126", "127")

    def test_columns_in_any_order(self):
        """Test that fixed columns are matched by name, not position."""
        header = tsv("charge_state", "Protein_ID", "unique", "peptide_sequence", "126", "127")
        resolved, schema = read_header(header)

        assert resolved.charge_index == 0
        assert resolved.protein_index == 1
        assert resolved.unique_index == 2
        assert resolved.peptide_index == 3
        assert resolved.quality_index is None
        assert schema.labels == ("126", "127")

    def test_custom_layout(self):
        layout = ReportLayout(
            delimiter=",",
            protein_column="Locus",
            peptide_column="Sequence",
            charge_column="z",
            quality_column=None,
            unique_column=None,
        )
        resolved, schema = read_header("Locus,Sequence,z,114,115", layout)

        assert resolved.delimiter == ","
        assert resolved.fixed_column_count == 3
        assert schema.labels == ("114", "115")

    def test_missing_required_column(self):
        with pytest.raises(SchemaError, match="charge_state"):
            read_header(tsv("protein_id", "peptide_sequence", "126", "127"))

    def test_repeated_fixed_column(self):
        with pytest.raises(SchemaError, match="more than once"):
            read_header(tsv("protein_id", "peptide_sequence", "charge_state", "protein_id", "126"))

    def test_duplicate_channel(self):
        with pytest.raises(SchemaError, match="Duplicate"):
            read_header(tsv("protein_id", "peptide_sequence", "charge_state", "126", "126"))

    def test_no_channels(self):
        with pytest.raises(SchemaError):
            read_header(tsv("protein_id", "peptide_sequence", "charge_state"))

    def test_empty_header(self):
        with pytest.raises(SchemaError, match="empty"):
            read_header("   \n")


class TestPlexLayout:
    """Tests for checking header channels against a labeling scheme."""

    def test_matching_labels_kept(self):
        header = tsv("protein_id", "peptide_sequence", "charge_state", "TMT126", "TMT127", "128", "129", "130", "131")
        _, schema = read_header(header, ReportLayout(plex="tmt6plex"))

        assert schema.labels == ("TMT126", "TMT127", "128", "129", "130", "131")

    def test_unknown_labels_renamed(self):
        """Test that labels outside the scheme take the scheme's names."""
        header = tsv("protein_id", "peptide_sequence", "charge_state", "114.1", "115.1", "116.1", "117.1")
        _, schema = read_header(header, ReportLayout(plex="itraq4plex"), reference="115")

        assert schema.labels == ("114", "115", "116", "117")
        assert schema.reference_index() == 1

    def test_channel_count_mismatch(self):
        header = tsv("protein_id", "peptide_sequence", "charge_state", "114", "115")
        with pytest.raises(SchemaError, match="2 channels"):
            read_header(header, ReportLayout(plex="itraq4plex"))

    def test_channel_order_mismatch(self):
        header = tsv("protein_id", "peptide_sequence", "charge_state", "115", "114", "116", "117")
        with pytest.raises(SchemaError, match="do not match"):
            read_header(header, ReportLayout(plex="itraq4plex"))

    def test_unknown_plex(self):
        header = tsv("protein_id", "peptide_sequence", "charge_state", "114")
        with pytest.raises(SchemaError, match="Unknown isobaric"):
            read_header(header, ReportLayout(plex="tmt99plex"))


class TestParseLine:
    """Tests for parsing a single data line with the default layout."""

    def test_valid_line(self, schema):
        record = parse_line(tsv("P1", "K.PEPTIDEK.A", 2, 0.95, 100, 200.5, 300) + "\n", schema, line_number=7)

        assert record.protein_id == "P1"
        assert record.peptide_sequence == "K.PEPTIDEK.A"
        assert record.charge_state == 2
        assert record.quality_score == 0.95
        assert record.channel_intensities == (100.0, 200.5, 300.0)
        assert record.unique is None
        assert record.line_number == 7

    def test_parse_is_deterministic(self, schema):
        """Test that parsing the same line twice gives equal records."""
        line = tsv("P1", "K.PEPTIDEK.A", 3, "", 1e3, "", "x")
        assert parse_line(line, schema) == parse_line(line, schema)

    @pytest.mark.parametrize("value", ["", "  ", "NA", "abc", "nan", "inf"])
    def test_missing_intensity(self, schema, value):
        """Test that empty or non-numeric values become missing, not errors."""
        record = parse_line(tsv("P1", "PEPTIDE", 2, 0.9, 100, value, 300), schema)

        assert record.channel_intensities == (100.0, None, 300.0)
        assert record.missing_count() == 1

    def test_zero_intensity_is_present(self, schema):
        record = parse_line(tsv("P1", "PEPTIDE", 2, 0.9, 0, 1, 2), schema)
        assert record.channel_intensities[0] == 0.0

    def test_negative_intensity(self, schema):
        """Test that a negative intensity rejects the whole line."""
        with pytest.raises(ParseError) as excinfo:
            parse_line(tsv("P1", "PEPTIDE", 2, 0.9, 100, -1, 300), schema, line_number=4)

        assert excinfo.value.kind == ParseErrorKind.INVALID_INTENSITY
        assert excinfo.value.line_number == 4
        assert "127" in str(excinfo.value)

    @pytest.mark.parametrize(
        "fields",
        [
            ("P1", "PEPTIDE", 2, 0.9, 100, 200),
            ("P1", "PEPTIDE", 2, 0.9, 100, 200, 300, 400),
        ],
    )
    def test_field_count_mismatch(self, schema, fields):
        with pytest.raises(ParseError) as excinfo:
            parse_line(tsv(*fields), schema)
        assert excinfo.value.kind == ParseErrorKind.COLUMN_COUNT_MISMATCH

    @pytest.mark.parametrize(
        "fields",
        [
            ("", "PEPTIDE", 2, 0.9, 1, 2, 3),
            ("P1", " ", 2, 0.9, 1, 2, 3),
            ("P1", "PEPTIDE", "", 0.9, 1, 2, 3),
            ("P1", "PEPTIDE", 0, 0.9, 1, 2, 3),
            ("P1", "PEPTIDE", -2, 0.9, 1, 2, 3),
            ("P1", "PEPTIDE", "2.5", 0.9, 1, 2, 3),
        ],
    )
    def test_missing_required_field(self, schema, fields):
        with pytest.raises(ParseError) as excinfo:
            parse_line(tsv(*fields), schema)
        assert excinfo.value.kind == ParseErrorKind.MISSING_REQUIRED_FIELD

    def test_quality_is_lenient(self, schema):
        record = parse_line(tsv("P1", "PEPTIDE", 2, "n/a", 1, 2, 3), schema)
        assert record.quality_score is None

    @pytest.mark.parametrize(
        "flag,expected",
        [("1", True), ("U", True), ("yes", True), ("0", False), ("", False), ("maybe", None)],
    )
    def test_unique_flag(self, flag, expected):
        resolved, schema = read_header(tsv("protein_id", "peptide_sequence", "charge_state", "unique", "126"))
        record = parse_line(tsv("P1", "PEPTIDE", 2, flag, 10), schema, resolved)
        assert record.unique is expected


class TestParseLines:
    """Tests for parsing a whole report body."""

    @pytest.fixture
    def report(self):
        lines = TABULAR_REPORT.read_text().splitlines()
        resolved, schema = read_header(lines[0])
        return lines[1:], resolved, schema

    def test_example_report(self, report):
        """Test that malformed lines are skipped and accounted for."""
        lines, resolved, schema = report
        records, diagnostics = parse_lines(lines, schema, resolved)

        assert len(records) == 6
        assert diagnostics.skipped_lines == 3
        assert diagnostics.blank_lines == 1
        assert diagnostics.error_counts == {
            "COLUMN_COUNT_MISMATCH": 1,
            "MISSING_REQUIRED_FIELD": 1,
            "INVALID_INTENSITY": 1,
        }
        assert [r.line_number for r in records] == [2, 3, 4, 5, 7, 11]
        assert [s.line_number for s in diagnostics.samples] == [8, 9, 10]

    def test_skipped_count_matches_malformed(self, schema):
        """Test that N lines with M malformed ones give N - M records."""
        good = [tsv("P%d" % i, "PEPTIDE", 2, 0.9, i, i, i) for i in range(1, 8)]
        bad = [
            tsv("P9", "PEPTIDE", 2, 0.9, 1, 2),
            tsv("P9", "PEPTIDE", 2, 0.9, 1, -2, 3),
            tsv("", "PEPTIDE", 2, 0.9, 1, 2, 3),
        ]
        lines = good[:3] + bad[:1] + good[3:] + bad[1:]
        records, diagnostics = parse_lines(lines, schema)

        assert len(records) == len(lines) - len(bad)
        assert diagnostics.skipped_lines == len(bad)
        assert [r.protein_id for r in records] == ["P%d" % i for i in range(1, 8)]

    def test_accumulates_into_given_report(self, schema):
        diagnostics = Diagnostics()
        diagnostics.skipped_lines = 2
        _, returned = parse_lines([tsv("P1", "PEPTIDE", 2, 0.9, 1, 2)], schema, diagnostics=diagnostics)

        assert returned is diagnostics
        assert diagnostics.skipped_lines == 3

    def test_sample_size_limit(self, schema):
        lines = [tsv("P1", "PEPTIDE", 2, 0.9, 1)] * 5
        records, diagnostics = parse_lines(lines, schema, diagnostics=Diagnostics(sample_size=2))

        assert records == ()
        assert diagnostics.skipped_lines == 5
        assert len(diagnostics.samples) == 2

    def test_explicit_line_numbers(self, schema):
        lines = [tsv("P1", "PEPTIDE", 2, 0.9, 1, 2, 3), tsv("P2", "PEPTIDE", 2, 0.9, 1, 2, 3)]
        records, _ = parse_lines(lines, schema, line_numbers=[12, 40])
        assert [r.line_number for r in records] == [12, 40]

    def test_parallel_matches_serial(self, report):
        """Test that worker processes give the same records and diagnostics."""
        lines, resolved, schema = report
        serial, serial_diag = parse_lines(lines, schema, resolved, n_workers=1)
        parallel, parallel_diag = parse_lines(lines, schema, resolved, n_workers=2)

        assert parallel == serial
        assert parallel_diag.summary() == serial_diag.summary()

    def test_default_layout(self):
        assert ResolvedLayout.default().expected_field_count(ChannelSchema.establish(["a", "b"])) == 6
