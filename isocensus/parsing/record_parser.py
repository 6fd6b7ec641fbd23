"""
Parsing of tabular data lines into quantification records.

``parse_line`` is a pure function of the line, the channel schema and the
resolved layout, so data lines can be parsed in parallel.
"""

import math
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from isocensus.core.constants import UNIQUE_FALSE, UNIQUE_TRUE
from isocensus.core.diagnostics import Diagnostics, ensure_diagnostics
from isocensus.core.exceptions import ParseError, ParseErrorKind, ParseFailure
from isocensus.core.logger import get_logger, log_execution_time
from isocensus.core.parallel import chunked, parallel_map
from isocensus.model.channels import ChannelSchema
from isocensus.model.records import QuantificationRecord
from isocensus.parsing.layout import ResolvedLayout, split_line

logger = get_logger("isocensus.parsing")

# Upper bound on the number of lines shipped to a worker in one task.
_LINES_PER_TASK = 5000


def _parse_intensity(
    value: str, label: str, line_number: Optional[int], line: str
) -> Optional[float]:
    value = value.strip()
    if not value:
        return None
    try:
        intensity = float(value)
    except ValueError:
        return None
    if math.isnan(intensity) or math.isinf(intensity):
        return None
    if intensity < 0:
        raise ParseError(
            ParseErrorKind.INVALID_INTENSITY,
            f"negative intensity {value} on channel '{label}'",
            line_number,
            line,
        )
    return intensity


def _parse_quality(value: str) -> Optional[float]:
    value = value.strip()
    if not value:
        return None
    try:
        quality = float(value)
    except ValueError:
        return None
    return None if math.isnan(quality) else quality


def _parse_unique(value: str) -> Optional[bool]:
    value = value.strip().lower()
    if value in UNIQUE_TRUE:
        return True
    if value in UNIQUE_FALSE:
        return False
    return None


def parse_line(
    raw_line: str,
    schema: ChannelSchema,
    layout: Optional[ResolvedLayout] = None,
    line_number: Optional[int] = None,
) -> QuantificationRecord:
    """
    Convert one data line into a record.

    Parameters
    ----------
    raw_line : str
        The data line, with or without its line terminator.
    schema : ChannelSchema
        Channel schema of the report.
    layout : ResolvedLayout, optional
        Column positions; defaults to ``ResolvedLayout.default()``.
    line_number : int, optional
        Line number reported in errors and kept on the record.

    Returns
    -------
    QuantificationRecord
        The parsed record.

    Raises
    ------
    ParseError
        If the field count is wrong, a required field is missing or invalid,
        or an intensity is negative.
    """
    layout = layout or ResolvedLayout.default()
    line = raw_line.rstrip("\r\n")
    fields = split_line(line, layout.delimiter)

    expected = layout.expected_field_count(schema)
    if len(fields) != expected:
        raise ParseError(
            ParseErrorKind.COLUMN_COUNT_MISMATCH,
            f"expected {expected} fields, found {len(fields)}",
            line_number,
            line,
        )

    protein_id = fields[layout.protein_index].strip()
    if not protein_id:
        raise ParseError(
            ParseErrorKind.MISSING_REQUIRED_FIELD, "protein id is empty", line_number, line
        )
    peptide_sequence = fields[layout.peptide_index].strip()
    if not peptide_sequence:
        raise ParseError(
            ParseErrorKind.MISSING_REQUIRED_FIELD, "peptide sequence is empty", line_number, line
        )

    charge_text = fields[layout.charge_index].strip()
    try:
        charge_state = int(charge_text)
    except ValueError:
        charge_state = 0
    if charge_state <= 0:
        raise ParseError(
            ParseErrorKind.MISSING_REQUIRED_FIELD,
            f"charge state {charge_text!r} is not a positive integer",
            line_number,
            line,
        )

    offset = layout.fixed_column_count
    intensities = tuple(
        _parse_intensity(fields[offset + channel.index], channel.label, line_number, line)
        for channel in schema
    )

    quality = None
    if layout.quality_index is not None:
        quality = _parse_quality(fields[layout.quality_index])
    unique = None
    if layout.unique_index is not None:
        unique = _parse_unique(fields[layout.unique_index])

    return QuantificationRecord(
        protein_id=protein_id,
        peptide_sequence=peptide_sequence,
        charge_state=charge_state,
        channel_intensities=intensities,
        quality_score=quality,
        unique=unique,
        line_number=line_number,
    )


ParseOutcome = Union[QuantificationRecord, ParseFailure]


def _parse_numbered(
    numbered_lines: Sequence[Tuple[int, str]],
    schema: ChannelSchema,
    layout: ResolvedLayout,
) -> List[ParseOutcome]:
    outcomes = []
    for line_number, line in numbered_lines:
        try:
            outcomes.append(parse_line(line, schema, layout, line_number))
        except ParseError as e:
            outcomes.append(e.failure)
    return outcomes


def _parse_task(task) -> List[ParseOutcome]:
    numbered_lines, schema, layout = task
    return _parse_numbered(numbered_lines, schema, layout)


@log_execution_time(logger)
def parse_lines(
    lines: Iterable[str],
    schema: ChannelSchema,
    layout: Optional[ResolvedLayout] = None,
    n_workers: int = 1,
    diagnostics: Optional[Diagnostics] = None,
    first_line_number: int = 2,
    line_numbers: Optional[Sequence[int]] = None,
) -> Tuple[Tuple[QuantificationRecord, ...], Diagnostics]:
    """
    Parse the data lines of a report.

    Malformed lines are skipped and accounted for in the diagnostics; blank
    lines are ignored.

    Parameters
    ----------
    lines : Iterable[str]
        Data lines, without the header.
    schema : ChannelSchema
        Channel schema of the report.
    layout : ResolvedLayout, optional
        Column positions; defaults to ``ResolvedLayout.default()``.
    n_workers : int
        Number of worker processes; 1 parses in-process.
    diagnostics : Diagnostics, optional
        Report to accumulate into; a new one is created when omitted.
    first_line_number : int
        Line number of the first data line (the header is line 1).
    line_numbers : Sequence[int], optional
        Explicit source line number of every entry of ``lines``, used when
        the lines were extracted from a larger file.

    Returns
    -------
    tuple[tuple[QuantificationRecord, ...], Diagnostics]
        Records in input order and the diagnostics report.
    """
    layout = layout or ResolvedLayout.default()
    diagnostics = ensure_diagnostics(diagnostics)

    numbered = []
    if line_numbers is None:
        numbered_source = enumerate(lines, start=first_line_number)
    else:
        numbered_source = zip(line_numbers, lines)
    for line_number, line in numbered_source:
        if not line.strip():
            diagnostics.blank_lines += 1
            continue
        numbered.append((line_number, line))

    if n_workers > 1 and len(numbered) > 1:
        n_tasks = max(n_workers, -(-len(numbered) // _LINES_PER_TASK))
        tasks = [(chunk, schema, layout) for chunk in chunked(numbered, n_tasks)]
        outcomes = [o for part in parallel_map(_parse_task, tasks, n_workers) for o in part]
    else:
        outcomes = _parse_numbered(numbered, schema, layout)

    records = []
    for outcome in outcomes:
        if isinstance(outcome, ParseFailure):
            diagnostics.record_failure(outcome)
            logger.debug("Skipping line %s: %s", outcome.line_number, outcome.message)
        else:
            records.append(outcome)

    if diagnostics.skipped_lines:
        logger.warning(
            "Skipped %d malformed line(s) of %d: %s",
            diagnostics.skipped_lines,
            len(numbered),
            dict(diagnostics.error_counts),
        )
    logger.info("Parsed %d records", len(records))
    return tuple(records), diagnostics
