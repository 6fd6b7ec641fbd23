"""
Evaluation of filter criteria against quantification records.

A single recursive evaluator covers the closed set of criteria defined in
:mod:`isocensus.model.criteria`. Evaluation is side-effect free, so the
order in which ``And``/``Or`` operands are visited never changes the result.
"""

from typing import Iterable, Optional, Set, Tuple

import numpy as np

from isocensus.core.diagnostics import Diagnostics
from isocensus.core.logger import get_logger
from isocensus.model.channels import ChannelSchema
from isocensus.model.criteria import (
    And,
    ChannelCV,
    ChannelIntensityThreshold,
    ChargeStateIn,
    Criterion,
    FilterCriteria,
    MissingChannelBound,
    Not,
    Or,
    ProteinExclude,
    QualityThreshold,
    SequenceExclude,
    SequenceMatch,
    TotalIntensityThreshold,
    Tryptic,
    Unique,
)
from isocensus.model.records import QuantificationRecord

logger = get_logger("isocensus.filtering")


def _compare(value: float, threshold: float, comparison: str) -> bool:
    if comparison == ">=":
        return value >= threshold
    return value <= threshold


def _channel_value(record: QuantificationRecord, channel: int) -> Optional[float]:
    if channel < 0 or channel >= len(record.channel_intensities):
        return None
    return record.channel_intensities[channel]


def coefficient_of_variation(values) -> Optional[float]:
    """
    Population coefficient of variation of ``values``.

    Returns None for an empty collection or a zero mean.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return None
    mean = arr.mean()
    if mean == 0:
        return None
    return float(arr.std() / mean)


def evaluate(predicate: FilterCriteria, record: QuantificationRecord) -> bool:
    """
    Decide whether a record satisfies a predicate.

    Parameters
    ----------
    predicate : FilterCriteria
        Criterion tree to evaluate.
    record : QuantificationRecord
        Record under test.

    Returns
    -------
    bool
        True if the record passes. A criterion referring to a channel the
        record does not have evaluates to False.

    Raises
    ------
    TypeError
        If ``predicate`` is not a known criterion.
    """
    if isinstance(predicate, And):
        return all(evaluate(operand, record) for operand in predicate.operands)
    if isinstance(predicate, Or):
        return any(evaluate(operand, record) for operand in predicate.operands)
    if isinstance(predicate, Not):
        return not evaluate(predicate.operand, record)

    if isinstance(predicate, QualityThreshold):
        if record.quality_score is None:
            return False
        return _compare(record.quality_score, predicate.threshold, predicate.comparison)
    if isinstance(predicate, MissingChannelBound):
        return record.missing_count() <= predicate.max_missing
    if isinstance(predicate, ChannelIntensityThreshold):
        value = _channel_value(record, predicate.channel)
        if value is None:
            return False
        return _compare(value, predicate.threshold, predicate.comparison)
    if isinstance(predicate, ChargeStateIn):
        return record.charge_state in predicate.charges
    if isinstance(predicate, TotalIntensityThreshold):
        return record.total_intensity() >= predicate.minimum
    if isinstance(predicate, ChannelCV):
        n_channels = len(record.channel_intensities)
        if any(c < 0 or c >= n_channels for c in predicate.channels):
            return False
        values = [
            record.channel_intensities[c]
            for c in predicate.channels
            if record.channel_intensities[c] is not None
        ]
        cv = coefficient_of_variation(values)
        return cv is not None and cv < predicate.max_cv
    if isinstance(predicate, SequenceMatch):
        return predicate.pattern in record.peptide_sequence
    if isinstance(predicate, SequenceExclude):
        return predicate.pattern not in record.peptide_sequence
    if isinstance(predicate, Tryptic):
        return record.is_tryptic()
    if isinstance(predicate, Unique):
        return record.unique is True
    if isinstance(predicate, ProteinExclude):
        return not any(pattern in record.protein_id for pattern in predicate.patterns)

    raise TypeError(f"Unknown filter criterion: {predicate!r}")


def referenced_channels(predicate: FilterCriteria) -> Set[int]:
    """
    Collect the channel indices a predicate refers to.

    Parameters
    ----------
    predicate : FilterCriteria
        Criterion tree.

    Returns
    -------
    set[int]
        0-based channel indices.
    """
    if isinstance(predicate, (And, Or)):
        channels = set()
        for operand in predicate.operands:
            channels |= referenced_channels(operand)
        return channels
    if isinstance(predicate, Not):
        return referenced_channels(predicate.operand)
    if isinstance(predicate, ChannelIntensityThreshold):
        return {predicate.channel}
    if isinstance(predicate, ChannelCV):
        return set(predicate.channels)
    return set()


def check_channels(
    predicate: Criterion, schema: ChannelSchema, diagnostics: Optional[Diagnostics] = None
) -> Tuple[int, ...]:
    """
    Report channels referenced by ``predicate`` that ``schema`` lacks.

    Such criteria always evaluate to False. They are logged and recorded in
    ``diagnostics``; they are never an error.

    Returns
    -------
    tuple[int, ...]
        The missing channel indices, sorted.
    """
    missing = tuple(sorted(c for c in referenced_channels(predicate) if not schema.has_index(c)))
    if missing:
        message = (
            f"filter references channel(s) {list(missing)} outside the "
            f"{schema.channel_count()}-channel schema and rejects every record"
        )
        logger.warning("Degenerate filter: %s", message)
        if diagnostics is not None:
            diagnostics.record_degenerate_filter(message)
    return missing


def apply(
    predicate: Optional[FilterCriteria],
    records: Iterable[QuantificationRecord],
    schema: Optional[ChannelSchema] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[QuantificationRecord, ...]:
    """
    Keep the records that satisfy a predicate.

    Parameters
    ----------
    predicate : FilterCriteria, optional
        Criterion tree; None keeps every record.
    records : Iterable[QuantificationRecord]
        Records to filter.
    schema : ChannelSchema, optional
        When given, channel references are checked against it.
    diagnostics : Diagnostics, optional
        Receives degenerate filter reports.

    Returns
    -------
    tuple[QuantificationRecord, ...]
        Passing records, in input order.
    """
    records = tuple(records)
    if predicate is None:
        return records
    if schema is not None:
        check_channels(predicate, schema, diagnostics)

    passed = tuple(record for record in records if evaluate(predicate, record))
    logger.debug("Filter kept %d of %d records", len(passed), len(records))
    return passed
