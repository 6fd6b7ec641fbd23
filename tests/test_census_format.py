"""
Tests for the native Census report reader.
"""

from pathlib import Path

import pytest

from isocensus.core.exceptions import CensusFormatError, ParseErrorKind
from isocensus.parsing.census import CensusProtein, census_to_tabular, channel_label, is_census_report
from isocensus.parsing.layout import ReportLayout, read_header
from isocensus.pipeline.dataset import Dataset

EXAMPLE_DIR = Path(__file__).parent / "example"
CENSUS_REPORT = EXAMPLE_DIR / "census_itraq4.txt"


def tsv(*fields):
    return "\t".join(str(f) for f in fields)


class TestHelpers:
    """Tests for line classification helpers."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("H\tCensus report\n", True),
            ("H\n", True),
            ("protein_id\tpeptide_sequence", False),
            ("Hello\tworld", False),
        ],
    )
    def test_is_census_report(self, line, expected):
        assert is_census_report(line) is expected

    @pytest.mark.parametrize(
        "column,expected",
        [
            ("m/z_126.127726_int", "126.127726"),
            ("m/z_114.1_int", "114.1"),
            ("m/z_127N", "127N"),
            ("norm_m/z_126.127726_int", None),
            ("SEQUENCE", None),
        ],
    )
    def test_channel_label(self, column, expected):
        assert channel_label(column) == expected


class TestCensusToTabular:
    """Tests for flattening the example Census report."""

    @pytest.fixture
    def table(self):
        return census_to_tabular(CENSUS_REPORT.read_text().splitlines())

    def test_channel_labels(self, table):
        assert table.channel_labels == ("114.1", "115.1", "116.1", "117.1")

    def test_header(self, table):
        resolved, schema = read_header(table.header)

        assert schema.labels == table.channel_labels
        assert resolved.unique_index == 3
        assert resolved.quality_index is None

    def test_header_named_after_plex(self, table):
        """Test that reporter m/z columns take the labeling scheme's channel names."""
        _, schema = read_header(table.header, ReportLayout(plex="itraq4plex"))

        assert schema.labels == ("114", "115", "116", "117")

    def test_rows(self, table):
        """Test that every peptide entry carries its protein's locus."""
        assert len(table.rows) == 3
        assert table.line_numbers == [5, 6, 8]
        assert table.rows[0].split("\t") == [
            "P00001", "K.LVNELTEFAK.T", "2", "1", "1000", "1100", "900", "1200",
        ]
        assert table.rows[1].split("\t")[:4] == ["P00001", "R.HPYFYAPELLYYANK.Y", "3", "0"]
        assert table.rows[2].split("\t")[0] == "Reverse_P00002"

    def test_short_peptide_line(self, table):
        assert len(table.failures) == 1
        failure = table.failures[0]
        assert failure.kind == ParseErrorKind.COLUMN_COUNT_MISMATCH
        assert failure.line_number == 9

    def test_proteins(self, table):
        assert [p.accession for p in table.proteins] == ["P00001", "Reverse_P00002"]
        assert table.proteins[0].fields["DESCRIPTION"] == "Protein one"
        assert table.proteins[0].fields["SPEC_COUNT"] == "2"

    def test_protein_info(self, table):
        assert table.protein_info() == {
            "P00001": {
                "description": "Protein one",
                "census_spectral_count": 2,
                "census_sequence_count": 2,
            },
            "Reverse_P00002": {
                "description": "Decoy entry",
                "census_spectral_count": 1,
                "census_sequence_count": 1,
            },
        }

    def test_protein_metadata_values(self):
        protein = CensusProtein(
            "P1",
            4,
            {"SEQUENCE COVERAGE": "25.5%", "MOLWT": "n/a", "SPECTRUM COUNT": "7", "LENGTH": "300"},
        )
        assert protein.metadata() == {
            "sequence_coverage": 25.5,
            "molecular_weight": None,
            "census_spectral_count": 7,
        }

    def test_custom_layout_names(self):
        layout = ReportLayout(protein_column="Locus", unique_column=None)
        table = census_to_tabular(CENSUS_REPORT.read_text().splitlines(), layout)

        assert table.header.split("\t")[:3] == ["Locus", "peptide_sequence", "charge_state"]
        assert len(table.rows[0].split("\t")) == 3 + 4


class TestMalformedCensus:
    """Tests for structural errors in Census reports."""

    def test_peptide_before_protein(self):
        lines = [
            tsv("H", "SLINE", "UNIQUE", "SEQUENCE", "CS", "m/z_126_int", "norm_m/z_126_int"),
            tsv("S", "U", "K.PEPTIDE.R", 2, 100, 0.5),
        ]
        with pytest.raises(CensusFormatError, match="precedes"):
            census_to_tabular(lines)

    def test_unknown_tag(self):
        lines = [
            tsv("H", "SLINE", "UNIQUE", "SEQUENCE", "CS", "m/z_126_int", "norm_m/z_126_int"),
            tsv("X", "something"),
        ]
        with pytest.raises(CensusFormatError, match="unexpected tag"):
            census_to_tabular(lines)

    def test_no_channels(self):
        lines = [tsv("H", "SLINE", "UNIQUE", "SEQUENCE", "CS"), tsv("P", "P1")]
        with pytest.raises(CensusFormatError, match="no reporter ion"):
            census_to_tabular(lines)

    def test_sline_without_sequence(self):
        lines = [tsv("H", "SLINE", "UNIQUE", "CS", "m/z_126_int")]
        with pytest.raises(CensusFormatError, match="SEQUENCE"):
            census_to_tabular(lines)


class TestPeptideHeader:
    """Tests for reports whose peptide columns are not fully named."""

    def test_missing_sline_is_fatal(self):
        """Test that a report without a peptide header cannot be read."""
        lines = [
            tsv("H", "m/z_126_int", "norm_m/z_126_int", "m/z_127_int", "norm_m/z_127_int"),
            tsv("P", "P1"),
            tsv("S", "U", "K.PEPTIDER.A", 100, 0.4, 150, 0.6),
        ]
        with pytest.raises(CensusFormatError, match="H SLINE"):
            census_to_tabular(lines)

    def test_missing_sline_without_peptides(self):
        with pytest.raises(CensusFormatError, match="H SLINE"):
            census_to_tabular([tsv("H", "Census report"), tsv("P", "P1")])

    def test_missing_charge_column_is_reported(self):
        lines = [
            tsv("H", "SLINE", "UNIQUE", "SEQUENCE", "m/z_126_int", "norm_m/z_126_int"),
            tsv("P", "P1"),
            tsv("S", "U", "K.PEPTIDER.A", 100, 0.4),
        ]
        dataset = Dataset.from_lines(lines)

        assert len(dataset) == 0
        assert dataset.diagnostics.error_counts["MISSING_REQUIRED_FIELD"] == 1


class TestCensusDataset:
    """Tests for reading Census reports through the dataset controller."""

    def test_from_file(self):
        with open(CENSUS_REPORT) as f:
            dataset = Dataset.from_lines(f)

        assert len(dataset) == 3
        assert dataset.schema.labels == ("114.1", "115.1", "116.1", "117.1")
        assert dataset.diagnostics.skipped_lines == 1
        assert [r.unique for r in dataset.records] == [True, False, True]
        assert [r.line_number for r in dataset.records] == [5, 6, 8]
        assert dataset.records[0].channel_intensities == (1000.0, 1100.0, 900.0, 1200.0)
