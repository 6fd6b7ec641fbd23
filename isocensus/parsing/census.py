"""
Reader for native Census reports.

A Census report is a sequence of blocks: ``H`` header lines, then for every
protein a ``P`` line followed by the ``S`` lines of its peptides. The
``H\tPLINE`` and ``H\tSLINE`` header lines name the columns of ``P`` and
``S`` lines. This module flattens such a report into tabular lines that the
standard record parser understands, so both input formats share one parsing
and diagnostics path.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from isocensus.core.constants import (
    CENSUS_CHANNEL_PREFIX,
    CENSUS_CHANNEL_SUFFIX,
    CENSUS_CHARGE_COLUMNS,
    CENSUS_HEADER,
    CENSUS_LOCUS,
    CENSUS_NORM_CHANNEL_PREFIX,
    CENSUS_PEPTIDE,
    CENSUS_PEPTIDE_HEADER,
    CENSUS_PROTEIN,
    CENSUS_PROTEIN_FIELDS,
    CENSUS_PROTEIN_HEADER,
    CENSUS_SEQUENCE,
    CENSUS_SEQUENCE_COUNT,
    CENSUS_SPECTRAL_COUNT,
    CENSUS_UNIQUE,
    CENSUS_UNIQUE_FLAG,
    DESCRIPTION,
)
from isocensus.core.exceptions import CensusFormatError, ParseErrorKind, ParseFailure
from isocensus.core.logger import get_logger
from isocensus.parsing.layout import ReportLayout

logger = get_logger("isocensus.parsing.census")

_CENSUS_DELIMITER = "\t"


@dataclass
class CensusProtein:
    """
    Protein entry of a Census report.

    Attributes
    ----------
    accession : str
        Protein locus.
    line_number : int
        Line of the ``P`` entry.
    fields : dict
        Remaining ``P`` line columns by header name (spectral count,
        coverage, description, ...), empty when there is no ``PLINE`` header.
    """

    accession: str
    line_number: int
    fields: Dict[str, str] = field(default_factory=dict)

    def metadata(self) -> Dict[str, Any]:
        """
        Known ``P`` line columns as protein table values.

        Counts are integers, coverage (a trailing ``%`` is dropped) and
        molecular weight are floats; values that do not parse are None.
        Unknown columns are left out.
        """
        info: Dict[str, Any] = {}
        for name, value in self.fields.items():
            column = CENSUS_PROTEIN_FIELDS.get(name.strip().replace(" ", "_"))
            if column is None:
                continue
            value = value.strip()
            if column == DESCRIPTION:
                info[column] = value
            elif column in (CENSUS_SPECTRAL_COUNT, CENSUS_SEQUENCE_COUNT):
                info[column] = _metadata_number(value, int)
            else:
                info[column] = _metadata_number(value.rstrip("%"), float)
        return info


def _metadata_number(value: str, kind):
    try:
        return kind(value)
    except ValueError:
        return None


@dataclass
class CensusTable:
    """
    Tabular rendering of a Census report.

    Attributes
    ----------
    header : str
        Tabular header line: fixed columns followed by channel labels.
    rows : list[str]
        One tabular line per ``S`` entry that could be laid out.
    line_numbers : list[int]
        Source line of every row.
    failures : list[ParseFailure]
        ``S`` entries too malformed to lay out as a row.
    proteins : list[CensusProtein]
        ``P`` entries in report order.
    channel_labels : tuple[str, ...]
        Reporter ion labels taken from the header.
    """

    header: str
    rows: List[str] = field(default_factory=list)
    line_numbers: List[int] = field(default_factory=list)
    failures: List[ParseFailure] = field(default_factory=list)
    proteins: List[CensusProtein] = field(default_factory=list)
    channel_labels: Tuple[str, ...] = ()

    def protein_info(self) -> Dict[str, Dict[str, Any]]:
        """Metadata of every protein with known ``P`` line columns, by accession."""
        info: Dict[str, Dict[str, Any]] = {}
        for protein in self.proteins:
            metadata = protein.metadata()
            if metadata:
                info.setdefault(protein.accession, metadata)
        return info


def is_census_report(first_line: str) -> bool:
    """Whether a report starting with ``first_line`` is in native Census format."""
    return first_line.startswith(CENSUS_HEADER + _CENSUS_DELIMITER) or first_line.rstrip(
        "\r\n"
    ) == CENSUS_HEADER


def channel_label(column: str) -> Optional[str]:
    """
    Reporter label of a raw intensity column.

    ``m/z_126.127726_int`` gives ``126.127726``; normalized columns and any
    other column give None.
    """
    column = column.strip()
    if column.startswith(CENSUS_NORM_CHANNEL_PREFIX) or not column.startswith(
        CENSUS_CHANNEL_PREFIX
    ):
        return None
    label = column[len(CENSUS_CHANNEL_PREFIX):]
    if label.endswith(CENSUS_CHANNEL_SUFFIX):
        label = label[: -len(CENSUS_CHANNEL_SUFFIX)]
    return label or None


class _PeptideColumns:
    """Positions of the interesting ``S`` line fields, counted after the tag."""

    def __init__(self, unique, sequence, charge, channels, labels, width):
        self.unique = unique
        self.sequence = sequence
        self.charge = charge
        self.channels = channels
        self.labels = labels
        self.width = width

    @classmethod
    def from_sline(cls, columns: List[str]) -> "_PeptideColumns":
        names = [c.strip().upper() for c in columns]
        if CENSUS_SEQUENCE not in names:
            raise CensusFormatError(f"{CENSUS_PEPTIDE_HEADER} header has no {CENSUS_SEQUENCE} column")
        charge = next((names.index(c) for c in CENSUS_CHARGE_COLUMNS if c in names), None)
        if charge is None:
            logger.warning(
                "%s header has no charge state column; peptide entries will be rejected",
                CENSUS_PEPTIDE_HEADER,
            )
        channels = []
        labels = []
        for position, column in enumerate(columns):
            label = channel_label(column)
            if label is not None:
                channels.append(position)
                labels.append(label)
        return cls(
            unique=names.index(CENSUS_UNIQUE) if CENSUS_UNIQUE in names else None,
            sequence=names.index(CENSUS_SEQUENCE),
            charge=charge,
            channels=tuple(channels),
            labels=tuple(labels),
            width=len(columns),
        )


def _missing_sline() -> CensusFormatError:
    return CensusFormatError(
        f"Census report has no '{CENSUS_HEADER} {CENSUS_PEPTIDE_HEADER}' header; "
        "peptide columns and charge states cannot be read without it"
    )


def census_to_tabular(lines: Iterable[str], layout: Optional[ReportLayout] = None) -> CensusTable:
    """
    Flatten a Census report into tabular lines.

    Parameters
    ----------
    lines : Iterable[str]
        All lines of the report, header lines included.
    layout : ReportLayout, optional
        Column names and delimiter of the produced table.

    Returns
    -------
    CensusTable
        Header, rows and per-row source line numbers.

    Raises
    ------
    CensusFormatError
        If a line starts with an unknown tag, a peptide appears before any
        protein, or the report has no peptide header naming its channels.
    """
    layout = layout or ReportLayout()
    delimiter = layout.delimiter

    peptide_columns: Optional[_PeptideColumns] = None
    protein_columns: Optional[List[str]] = None
    current: Optional[CensusProtein] = None
    proteins: List[CensusProtein] = []
    rows: List[str] = []
    line_numbers: List[int] = []
    failures: List[ParseFailure] = []

    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        fields = line.split(_CENSUS_DELIMITER)
        tag = fields[0]

        if tag == CENSUS_HEADER:
            kind = fields[1].strip() if len(fields) > 1 else ""
            if kind == CENSUS_PROTEIN_HEADER:
                protein_columns = [c.strip().upper() for c in fields[2:]]
            elif kind == CENSUS_PEPTIDE_HEADER:
                peptide_columns = _PeptideColumns.from_sline(fields[2:])
            continue

        if tag == CENSUS_PROTEIN:
            accession_at = 0
            if protein_columns and CENSUS_LOCUS in protein_columns:
                accession_at = protein_columns.index(CENSUS_LOCUS)
            values = fields[1:]
            accession = values[accession_at].strip() if accession_at < len(values) else ""
            extra = {}
            if protein_columns:
                extra = {
                    name: value
                    for name, value in zip(protein_columns, values)
                    if name != CENSUS_LOCUS
                }
            current = CensusProtein(accession=accession, line_number=line_number, fields=extra)
            proteins.append(current)
            continue

        if tag == CENSUS_PEPTIDE:
            if current is None:
                raise CensusFormatError(f"Peptide entry at line {line_number} precedes any protein entry")
            if peptide_columns is None:
                raise _missing_sline()

            values = fields[1:]
            if len(values) != peptide_columns.width:
                failures.append(
                    ParseFailure(
                        ParseErrorKind.COLUMN_COUNT_MISMATCH,
                        f"expected {peptide_columns.width} peptide fields, found {len(values)}",
                        line_number,
                        line,
                    )
                )
                continue

            row = [current.accession, values[peptide_columns.sequence]]
            row.append("" if peptide_columns.charge is None else values[peptide_columns.charge])
            if layout.unique_column:
                flag = "" if peptide_columns.unique is None else values[peptide_columns.unique]
                row.append("1" if flag.strip() == CENSUS_UNIQUE_FLAG else "0")
            row.extend(values[i] for i in peptide_columns.channels)
            rows.append(delimiter.join(row))
            line_numbers.append(line_number)
            continue

        raise CensusFormatError(f"Line {line_number} starts with unexpected tag {tag[:1]!r}")

    if peptide_columns is None:
        raise _missing_sline()
    labels = peptide_columns.labels
    if not labels:
        raise CensusFormatError("Census header names no reporter ion channels")

    fixed = [layout.protein_column, layout.peptide_column, layout.charge_column]
    if layout.unique_column:
        fixed.append(layout.unique_column)
    header = delimiter.join(fixed + list(labels))

    logger.info(
        "Read Census report: %d proteins, %d peptide entries, %d channels",
        len(proteins),
        len(rows) + len(failures),
        len(labels),
    )
    return CensusTable(
        header=header,
        rows=rows,
        line_numbers=line_numbers,
        failures=failures,
        proteins=proteins,
        channel_labels=tuple(labels),
    )
