"""
Column layout of tabular quantification reports.

A report starts with a header line: a leading run of fixed columns, matched
by name in any order, followed by one column per channel. The column names
and the delimiter are configuration.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Tuple

from isocensus.core.constants import (
    CHARGE_STATE,
    DEFAULT_DELIMITER,
    PEPTIDE_SEQUENCE,
    PROTEIN_ID,
    QUALITY_SCORE,
    UNIQUE,
)
from isocensus.core.exceptions import SchemaError
from isocensus.core.logger import get_logger
from isocensus.model.channels import ChannelSchema
from isocensus.model.labeling import canonical_label

logger = get_logger("isocensus.parsing.layout")

_REQUIRED_ROLES = ("protein", "peptide", "charge")


@dataclass(frozen=True)
class ReportLayout:
    """
    Configured column names and delimiter of a tabular report.

    Attributes
    ----------
    delimiter : str
        Field separator, tab by default.
    protein_column : str
        Name of the protein identifier column (required).
    peptide_column : str
        Name of the peptide sequence column (required).
    charge_column : str
        Name of the charge state column (required).
    quality_column : str, optional
        Name of the quality score column, used when present in the header.
    unique_column : str, optional
        Name of the peptide uniqueness column, used when present in the header.
    plex : str, optional
        Isobaric labeling scheme of the report, e.g. ``tmt10plex``. The
        report must carry exactly its channels; unrecognised channel labels
        (such as Census m/z columns) are renamed after the scheme.
    """

    delimiter: str = DEFAULT_DELIMITER
    protein_column: str = PROTEIN_ID
    peptide_column: str = PEPTIDE_SEQUENCE
    charge_column: str = CHARGE_STATE
    quality_column: Optional[str] = QUALITY_SCORE
    unique_column: Optional[str] = UNIQUE
    plex: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ReportLayout":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> dict:
        return asdict(self)

    def role_names(self) -> dict:
        """Map lower-cased column names to their role."""
        roles = {
            self.protein_column: "protein",
            self.peptide_column: "peptide",
            self.charge_column: "charge",
            self.quality_column: "quality",
            self.unique_column: "unique",
        }
        return {name.strip().lower(): role for name, role in roles.items() if name}


@dataclass(frozen=True)
class ResolvedLayout:
    """
    Column positions of one report, resolved from its header.

    Attributes
    ----------
    delimiter : str
        Field separator.
    protein_index : int
        Position of the protein identifier.
    peptide_index : int
        Position of the peptide sequence.
    charge_index : int
        Position of the charge state.
    quality_index : int, optional
        Position of the quality score, None when the report has none.
    unique_index : int, optional
        Position of the uniqueness flag, None when the report has none.
    fixed_column_count : int
        Number of leading non-channel columns; channels follow them.
    """

    delimiter: str
    protein_index: int
    peptide_index: int
    charge_index: int
    quality_index: Optional[int]
    unique_index: Optional[int]
    fixed_column_count: int

    @classmethod
    def default(cls, delimiter: str = DEFAULT_DELIMITER) -> "ResolvedLayout":
        """``protein_id, peptide_sequence, charge_state, quality_score`` then channels."""
        return cls(
            delimiter=delimiter,
            protein_index=0,
            peptide_index=1,
            charge_index=2,
            quality_index=3,
            unique_index=None,
            fixed_column_count=4,
        )

    def expected_field_count(self, schema: ChannelSchema) -> int:
        return self.fixed_column_count + schema.channel_count()


def split_line(line: str, delimiter: str) -> list:
    """Split a raw line into fields, dropping the line terminator."""
    return line.rstrip("\r\n").split(delimiter)


def resolve_header(header_fields: Tuple[str, ...], layout: ReportLayout) -> ResolvedLayout:
    """
    Locate the fixed columns in a header.

    Parameters
    ----------
    header_fields : tuple[str, ...]
        Fields of the header line.
    layout : ReportLayout
        Configured column names.

    Returns
    -------
    ResolvedLayout
        Positions of the fixed columns.

    Raises
    ------
    SchemaError
        If a fixed column repeats or a required column is missing.
    """
    roles = layout.role_names()
    positions = {}
    for position, field in enumerate(header_fields):
        role = roles.get(field.strip().lower())
        if role is None:
            break
        if role in positions:
            raise SchemaError(f"Column '{field.strip()}' appears more than once in the header")
        positions[role] = position

    missing = [role for role in _REQUIRED_ROLES if role not in positions]
    if missing:
        names = {
            "protein": layout.protein_column,
            "peptide": layout.peptide_column,
            "charge": layout.charge_column,
        }
        raise SchemaError(
            "Header is missing required column(s): "
            + ", ".join(names[role] for role in missing)
        )

    return ResolvedLayout(
        delimiter=layout.delimiter,
        protein_index=positions["protein"],
        peptide_index=positions["peptide"],
        charge_index=positions["charge"],
        quality_index=positions.get("quality"),
        unique_index=positions.get("unique"),
        fixed_column_count=len(positions),
    )


def apply_plex(schema: ChannelSchema, plex: str) -> ChannelSchema:
    """
    Check a header schema against a known isobaric labeling scheme.

    Labels written in the scheme's terms (``126``, ``TMT127N``, ...) must
    name its channels in order. Labels the scheme does not know, such as
    Census reporter m/z values, are replaced by the scheme's labels.

    Raises
    ------
    SchemaError
        If the scheme is unknown, or the channels do not match it.
    """
    expected = ChannelSchema.from_plex(plex)
    if schema.channel_count() != expected.channel_count():
        raise SchemaError(
            f"Report has {schema.channel_count()} channels, {plex} has {expected.channel_count()}"
        )
    found = [canonical_label(label) for label in schema.labels]
    if not set(found) & set(expected.labels):
        logger.info("Naming %d channels after %s: %s", len(found), plex, list(expected.labels))
        return expected
    if found != list(expected.labels):
        raise SchemaError(
            f"Report channels {list(schema.labels)} do not match {plex} {list(expected.labels)}"
        )
    return schema


def read_header(
    header_line: str,
    layout: Optional[ReportLayout] = None,
    reference: Optional[str] = None,
) -> Tuple[ResolvedLayout, ChannelSchema]:
    """
    Establish the column layout and channel schema of a report.

    Parameters
    ----------
    header_line : str
        First line of the report.
    layout : ReportLayout, optional
        Configured column names, defaults to ``ReportLayout()``.
    reference : str, optional
        Label of the reference channel.

    Returns
    -------
    tuple[ResolvedLayout, ChannelSchema]
        Resolved positions and the established schema.

    Raises
    ------
    SchemaError
        If the header is malformed or its channels do not match
        ``layout.plex``.
    """
    layout = layout or ReportLayout()
    if not header_line.strip():
        raise SchemaError("Report header is empty")

    fields = tuple(split_line(header_line, layout.delimiter))
    resolved = resolve_header(fields, layout)
    channel_fields = fields[resolved.fixed_column_count:]
    if layout.plex:
        schema = apply_plex(ChannelSchema.establish(channel_fields), layout.plex)
        if reference is not None:
            schema = schema.with_reference(reference)
    else:
        schema = ChannelSchema.establish(channel_fields, reference=reference)

    logger.debug(
        "Header resolved: %d fixed columns, %d channels %s (scheme %s)",
        resolved.fixed_column_count,
        schema.channel_count(),
        list(schema.labels),
        schema.label_scheme(),
    )
    return resolved, schema
