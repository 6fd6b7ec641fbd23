"""
DataFrame views of records and aggregates, and table writers.
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
import pyarrow as pa
from pyarrow import parquet as pq

from isocensus.core.constants import (
    CHARGE_STATE,
    CONTRIBUTING_PEPTIDES,
    COUNT_SUFFIX,
    DESCRIPTION,
    LINE_NUMBER,
    PEPTIDE_SEQUENCE,
    PROTEIN_ID,
    PROTEIN_METADATA_COLUMNS,
    QUALITY_SCORE,
    RATIO_PREFIX,
    SEQUENCE_COUNT,
    UNIQUE,
)
from isocensus.core.logger import get_logger
from isocensus.model.channels import ChannelSchema
from isocensus.model.records import ProteinAggregate, QuantificationRecord

logger = get_logger("isocensus.pipeline.frames")

SUPPORTED_TABLE_FORMATS = (".tsv", ".csv", ".parquet")


def _floats(values):
    return [np.nan if v is None else v for v in values]


def records_to_frame(records: Sequence[QuantificationRecord], schema: ChannelSchema) -> pd.DataFrame:
    """
    Tabulate records, one row per record.

    Columns are the fixed record fields, one intensity column per channel
    label and, when the records carry ratios, one ``log2_ratio_<label>``
    column per channel. Missing values are NaN.
    """
    labels = list(schema.labels)
    with_ratios = any(r.ratios is not None for r in records)
    rows = []
    for record in records:
        row = [
            record.protein_id,
            record.peptide_sequence,
            record.charge_state,
            np.nan if record.quality_score is None else record.quality_score,
            record.unique,
            record.line_number,
        ]
        row.extend(_floats(record.channel_intensities))
        if with_ratios:
            row.extend(_floats(record.ratios or (None,) * len(labels)))
        rows.append(row)

    columns = [PROTEIN_ID, PEPTIDE_SEQUENCE, CHARGE_STATE, QUALITY_SCORE, UNIQUE, LINE_NUMBER]
    columns += labels
    if with_ratios:
        columns += [RATIO_PREFIX + label for label in labels]
    df = pd.DataFrame(rows, columns=columns)
    df[labels] = df[labels].astype(float)
    return df


def aggregates_to_frame(
    aggregates: Sequence[ProteinAggregate],
    schema: ChannelSchema,
    protein_info: Optional[Mapping[str, Dict[str, Any]]] = None,
) -> pd.DataFrame:
    """
    Tabulate protein aggregates, one row per protein.

    Columns are the protein id, the Census protein metadata columns that
    ``protein_info`` provides (description, reported counts, coverage,
    molecular weight), the record and sequence counts, one value column per
    channel label, one ``<label>_n`` contributor count per channel and, when
    present, the ``log2_ratio_<label>`` columns.
    """
    labels = list(schema.labels)
    with_ratios = any(a.per_channel_ratios is not None for a in aggregates)
    rows = []
    for agg in aggregates:
        row = [agg.protein_id, agg.contributing_peptide_count, agg.sequence_count]
        row.extend(_floats(agg.per_channel_values))
        row.extend(agg.per_channel_contributing_count)
        if with_ratios:
            row.extend(_floats(agg.per_channel_ratios or (None,) * len(labels)))
        rows.append(row)

    columns = [PROTEIN_ID, CONTRIBUTING_PEPTIDES, SEQUENCE_COUNT]
    columns += labels
    columns += [label + COUNT_SUFFIX for label in labels]
    if with_ratios:
        columns += [RATIO_PREFIX + label for label in labels]
    df = pd.DataFrame(rows, columns=columns)
    df[labels] = df[labels].astype(float)
    if protein_info:
        _insert_protein_info(df, protein_info)
    return df


def _insert_protein_info(df: pd.DataFrame, protein_info: Mapping[str, Dict[str, Any]]) -> None:
    present = [c for c in PROTEIN_METADATA_COLUMNS if any(c in info for info in protein_info.values())]
    for position, column in enumerate(present, start=1):
        values = [protein_info.get(p, {}).get(column) for p in df[PROTEIN_ID]]
        if column != DESCRIPTION:
            values = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce")
        df.insert(position, column, values)


def write_table(df: pd.DataFrame, output: Union[str, Path]) -> None:
    """
    Write a table, choosing the format from the file extension.

    Parameters
    ----------
    df : pd.DataFrame
        Table to write.
    output : str or Path
        ``.tsv``, ``.csv`` or ``.parquet`` path.

    Raises
    ------
    ValueError
        If the extension is not supported.
    """
    output = Path(output)
    suffix = output.suffix.lower()
    if suffix not in SUPPORTED_TABLE_FORMATS:
        raise ValueError(
            f"Unsupported output format: {suffix}. Use one of {', '.join(SUPPORTED_TABLE_FORMATS)}"
        )
    if not output.parent.exists():
        output.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".parquet":
        table = pa.Table.from_pandas(df, preserve_index=False)
        pq.write_table(table, output)
    elif suffix == ".csv":
        df.to_csv(output, index=False)
    else:
        df.to_csv(output, sep="\t", index=False)
    logger.info("Wrote %d rows to %s", len(df), output)
