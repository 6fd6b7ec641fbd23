"""
Protein-level aggregation of peptide records.

Records are sharded by a stable hash of their protein id. Each shard is
accumulated independently, optionally in worker processes, and the partial
collections are merged at a single barrier before any protein value is
combined. Output order is the order in which proteins first appear in the
input, whatever the number of workers.
"""

import zlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from isocensus.core.diagnostics import Diagnostics, ensure_diagnostics
from isocensus.core.logger import get_logger, log_execution_time
from isocensus.core.parallel import parallel_map
from isocensus.model.channels import ChannelSchema
from isocensus.model.records import ProteinAggregate, QuantificationRecord
from isocensus.model.summarization import DEFAULT_TRIM_FRACTION, SummarizationMethod

logger = get_logger("isocensus.aggregation")


def shard_of(protein_id: str, n_shards: int) -> int:
    """Stable shard number of a protein id."""
    return zlib.crc32(protein_id.encode("utf-8")) % n_shards


@dataclass
class _ProteinPartial:
    """Values collected for one protein within one shard."""

    first_position: int
    n_channels: int
    record_count: int = 0
    sequences: Set[str] = field(default_factory=set)
    values: List[List[float]] = field(default_factory=list)
    ratios: List[List[float]] = field(default_factory=list)
    has_ratios: bool = False

    def __post_init__(self):
        if not self.values:
            self.values = [[] for _ in range(self.n_channels)]
            self.ratios = [[] for _ in range(self.n_channels)]

    def add(self, record: QuantificationRecord) -> None:
        self.record_count += 1
        self.sequences.add(record.peptide_sequence)
        for j, value in enumerate(record.channel_intensities[: self.n_channels]):
            if value is not None:
                self.values[j].append(value)
        if record.ratios is not None:
            self.has_ratios = True
            for j, ratio in enumerate(record.ratios[: self.n_channels]):
                if ratio is not None:
                    self.ratios[j].append(ratio)

    def merge(self, other: "_ProteinPartial") -> "_ProteinPartial":
        self.first_position = min(self.first_position, other.first_position)
        self.record_count += other.record_count
        self.sequences |= other.sequences
        for j in range(self.n_channels):
            self.values[j].extend(other.values[j])
            self.ratios[j].extend(other.ratios[j])
        self.has_ratios = self.has_ratios or other.has_ratios
        return self


def _accumulate(task) -> Dict[str, _ProteinPartial]:
    """Collect the values of one shard: ``task`` is ``(positioned_records, n_channels)``."""
    positioned, n_channels = task
    partials: Dict[str, _ProteinPartial] = {}
    for position, record in positioned:
        partial = partials.get(record.protein_id)
        if partial is None:
            partial = _ProteinPartial(first_position=position, n_channels=n_channels)
            partials[record.protein_id] = partial
        partial.add(record)
    return partials


class Aggregator:
    """
    Combine peptide records into protein aggregates.

    Parameters
    ----------
    method : SummarizationMethod or str
        How the values of one protein and channel are combined.
    min_contributors : int
        Minimum number of present values for a channel to get a value.
    trim_fraction : float
        Fraction dropped from each end by ``TRIMMED_MEAN``.
    n_workers : int
        Number of worker processes used to accumulate shards.
    """

    def __init__(
        self,
        method=SummarizationMethod.MEDIAN,
        min_contributors: int = 1,
        trim_fraction: float = DEFAULT_TRIM_FRACTION,
        n_workers: int = 1,
    ):
        if isinstance(method, str):
            method = SummarizationMethod.from_str(method)
        if min_contributors < 1:
            raise ValueError("min_contributors must be at least 1")
        if not 0 <= trim_fraction < 0.5:
            raise ValueError("trim_fraction must be in [0, 0.5)")
        self.method = method
        self.min_contributors = min_contributors
        self.trim_fraction = trim_fraction
        self.n_workers = n_workers

    def _combine(self, values: Sequence[float]) -> Optional[float]:
        if len(values) < self.min_contributors:
            return None
        return self.method.aggregate(values, trim_fraction=self.trim_fraction)

    def _partition(
        self, records: Sequence[QuantificationRecord], n_channels: int
    ) -> Dict[str, _ProteinPartial]:
        n_shards = max(1, self.n_workers)
        shards: List[List[Tuple[int, QuantificationRecord]]] = [[] for _ in range(n_shards)]
        for position, record in enumerate(records):
            shards[shard_of(record.protein_id, n_shards)].append((position, record))

        tasks = [(shard, n_channels) for shard in shards if shard]
        partial_maps = parallel_map(_accumulate, tasks, self.n_workers)

        # Barrier: every shard has reported before anything is combined.
        merged: Dict[str, _ProteinPartial] = {}
        for partials in partial_maps:
            for protein_id, partial in partials.items():
                if protein_id in merged:
                    merged[protein_id].merge(partial)
                else:
                    merged[protein_id] = partial
        return merged

    @log_execution_time(logger)
    def aggregate(
        self,
        records: Sequence[QuantificationRecord],
        schema: ChannelSchema,
        diagnostics: Optional[Diagnostics] = None,
    ) -> Tuple[ProteinAggregate, ...]:
        """
        Aggregate records by protein id.

        Parameters
        ----------
        records : Sequence[QuantificationRecord]
            Filtered (and possibly normalized) records.
        schema : ChannelSchema
            Channel schema of the records.
        diagnostics : Diagnostics, optional
            Receives the number of protein/channel cells left empty.

        Returns
        -------
        tuple[ProteinAggregate, ...]
            One aggregate per distinct protein id, in first-seen order.
        """
        diagnostics = ensure_diagnostics(diagnostics)
        records = tuple(records)
        n_channels = schema.channel_count()

        merged = self._partition(records, n_channels)
        ordered = sorted(merged.items(), key=lambda item: item[1].first_position)

        aggregates = []
        underflow = 0
        for protein_id, partial in ordered:
            values = tuple(self._combine(v) for v in partial.values)
            underflow += sum(1 for v in values if v is None)
            ratios = None
            if partial.has_ratios:
                ratios = tuple(self._combine(r) for r in partial.ratios)
            aggregates.append(
                ProteinAggregate(
                    protein_id=protein_id,
                    per_channel_values=values,
                    contributing_peptide_count=partial.record_count,
                    per_channel_contributing_count=tuple(len(v) for v in partial.values),
                    per_channel_ratios=ratios,
                    sequence_count=len(partial.sequences),
                )
            )

        diagnostics.aggregation_underflow += underflow
        if underflow:
            logger.info(
                "%d protein/channel value(s) had fewer than %d contributor(s)",
                underflow,
                self.min_contributors,
            )
        logger.info(
            "Aggregated %d records into %d proteins (%s)",
            len(records),
            len(aggregates),
            self.method.name.lower(),
        )
        return tuple(aggregates)

    def __repr__(self) -> str:
        return (
            f"Aggregator(method={self.method.name}, min_contributors={self.min_contributors}, "
            f"trim_fraction={self.trim_fraction}, n_workers={self.n_workers})"
        )


def aggregate(
    records: Sequence[QuantificationRecord],
    schema: ChannelSchema,
    method=SummarizationMethod.MEDIAN,
    min_contributors: int = 1,
    trim_fraction: float = DEFAULT_TRIM_FRACTION,
    n_workers: int = 1,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[ProteinAggregate, ...]:
    """Aggregate records with a one-off :class:`Aggregator`."""
    aggregator = Aggregator(
        method=method,
        min_contributors=min_contributors,
        trim_fraction=trim_fraction,
        n_workers=n_workers,
    )
    return aggregator.aggregate(records, schema, diagnostics=diagnostics)
