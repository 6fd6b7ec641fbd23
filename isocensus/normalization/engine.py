"""
Channel scaling and reference ratios.

Scaling works on a records x channels float matrix in which missing values
are NaN. The scaling functions are registered on the members of
:class:`~isocensus.model.normalization.NormalizationMethod`.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from isocensus.core.diagnostics import Diagnostics, ensure_diagnostics
from isocensus.core.exceptions import SchemaError
from isocensus.core.logger import get_logger, log_execution_time
from isocensus.model.channels import ChannelSchema
from isocensus.model.normalization import NormalizationMethod, NormalizationProfile
from isocensus.model.records import QuantificationRecord

logger = get_logger("isocensus.normalization")


def records_to_matrix(records: Sequence[QuantificationRecord], n_channels: int) -> np.ndarray:
    """Stack record intensities into a float matrix with NaN for missing values."""
    matrix = np.full((len(records), n_channels), np.nan, dtype=float)
    for i, record in enumerate(records):
        for j, value in enumerate(record.channel_intensities[:n_channels]):
            if value is not None:
                matrix[i, j] = value
    return matrix


def _row_values(row: np.ndarray) -> Tuple[Optional[float], ...]:
    return tuple(None if math.isnan(v) else float(v) for v in row)


def channel_medians(matrix: np.ndarray) -> np.ndarray:
    """Median of the present values of each channel, NaN for empty channels."""
    medians = np.full(matrix.shape[1], np.nan)
    for j in range(matrix.shape[1]):
        column = matrix[:, j]
        present = column[~np.isnan(column)]
        if present.size:
            medians[j] = np.median(present)
    return medians


def _median_factors(
    matrix: np.ndarray, schema: ChannelSchema, diagnostics: Optional[Diagnostics]
) -> np.ndarray:
    medians = channel_medians(matrix)
    factors = np.ones(matrix.shape[1])
    observed = medians[~np.isnan(medians)]
    if observed.size == 0:
        return factors

    grand_median = float(np.median(observed))
    for channel in schema:
        median = medians[channel.index]
        if np.isnan(median) or median == 0:
            logger.warning(
                "Channel '%s' has %s, leaving it unscaled",
                channel.label,
                "no present values" if np.isnan(median) else "a zero median",
            )
            if diagnostics is not None:
                diagnostics.record_unscaled_channel(channel.label)
            continue
        factors[channel.index] = grand_median / median
    return factors


@NormalizationMethod.NONE.register_scaling_fn
def _scale_none(matrix, schema, diagnostics):
    return matrix.copy()


@NormalizationMethod.MEDIAN.register_scaling_fn
def _scale_median(matrix, schema, diagnostics):
    factors = _median_factors(matrix, schema, diagnostics)
    logger.debug("Median scale factors: %s", dict(zip(schema.labels, factors.round(4))))
    return matrix * factors


@NormalizationMethod.TOTAL.register_scaling_fn
def _scale_total(matrix, schema, diagnostics):
    totals = np.nansum(matrix, axis=1)
    has_values = (~np.isnan(matrix)).any(axis=1)
    zero_total = has_values & (totals == 0)
    n_zero = int(zero_total.sum())
    if n_zero:
        logger.warning("%d record(s) have zero total intensity, fractions left undefined", n_zero)
        if diagnostics is not None:
            diagnostics.zero_total_records += n_zero

    scaled = np.full_like(matrix, np.nan)
    valid = totals > 0
    scaled[valid] = matrix[valid] / totals[valid, np.newaxis]
    return scaled


def channel_scale_factors(
    records: Sequence[QuantificationRecord],
    schema: ChannelSchema,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[float, ...]:
    """
    Median scaling factor of every channel.

    Parameters
    ----------
    records : Sequence[QuantificationRecord]
        Working record set.
    schema : ChannelSchema
        Channel schema of the records.
    diagnostics : Diagnostics, optional
        Receives the channels left unscaled.

    Returns
    -------
    tuple[float, ...]
        Grand median of channel medians divided by each channel median; 1.0
        for channels without present values or with a zero median.
    """
    matrix = records_to_matrix(records, schema.channel_count())
    return tuple(float(f) for f in _median_factors(matrix, schema, diagnostics))


def log2_ratios(values: Sequence[Optional[float]], reference_index: int) -> Tuple[Optional[float], ...]:
    """
    log2 ratio of every channel against the reference channel.

    Undefined ratios are None: all of them when the reference value is
    missing or zero, the reference position itself, and channels whose value
    is missing or zero.
    """
    reference = values[reference_index]
    if reference is None or reference <= 0:
        return tuple(None for _ in values)
    return tuple(
        None if i == reference_index or v is None or v <= 0 else math.log2(v / reference)
        for i, v in enumerate(values)
    )


@log_execution_time(logger)
def normalize(
    records: Sequence[QuantificationRecord],
    profile: NormalizationProfile,
    schema: ChannelSchema,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[QuantificationRecord, ...]:
    """
    Scale record intensities and compute reference ratios.

    Parameters
    ----------
    records : Sequence[QuantificationRecord]
        Working record set; never modified.
    profile : NormalizationProfile
        Scaling method and optional reference channel label.
    schema : ChannelSchema
        Channel schema of the records.
    diagnostics : Diagnostics, optional
        Receives unscaled channels and zero-total records.

    Returns
    -------
    tuple[QuantificationRecord, ...]
        New records in input order.

    Raises
    ------
    SchemaError
        If the reference channel is not part of the schema.
    """
    diagnostics = ensure_diagnostics(diagnostics)
    records = tuple(records)

    reference_index = None
    if profile.reference_channel is not None:
        reference_index = schema.index_of(profile.reference_channel)
        if reference_index is None:
            raise SchemaError(
                f"Reference channel '{profile.reference_channel}' is not in {list(schema.labels)}"
            )

    if not records:
        return records

    logger.info(
        "Normalizing %d records with %s%s",
        len(records),
        profile.method.description.lower(),
        f", ratios against '{profile.reference_channel}'" if reference_index is not None else "",
    )
    matrix = records_to_matrix(records, schema.channel_count())
    scaled = profile.method.scale(matrix, schema, diagnostics)

    normalized = []
    for record, row in zip(records, scaled):
        values = _row_values(row)
        ratios = None if reference_index is None else log2_ratios(values, reference_index)
        normalized.append(record.with_intensities(values).with_ratios(ratios))
    return tuple(normalized)
