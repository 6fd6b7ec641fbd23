"""
Dataset controller: a parsed report moving through the pipeline stages.

Every transform returns a new :class:`Dataset`; the records of earlier
stages stay available, so a parsed dataset can be filtered or normalized
again with different settings without re-parsing.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, Iterable, Optional, Sequence, Set, Tuple, Union

from isocensus.aggregation.aggregator import Aggregator
from isocensus.core.constants import DEFAULT_DIAGNOSTICS_SAMPLE_SIZE
from isocensus.core.diagnostics import Diagnostics
from isocensus.core.exceptions import SchemaError
from isocensus.core.logger import get_logger
from isocensus.filtering.base import FilterResult
from isocensus.filtering.pipeline import FilterPipeline
from isocensus.model.channels import ChannelSchema
from isocensus.model.criteria import Criterion, ProteinRule
from isocensus.model.normalization import NormalizationProfile
from isocensus.model.records import ProteinAggregate, QuantificationRecord
from isocensus.normalization.engine import normalize
from isocensus.parsing.census import census_to_tabular, is_census_report
from isocensus.parsing.layout import ReportLayout, ResolvedLayout, read_header
from isocensus.parsing.record_parser import parse_lines

logger = get_logger("isocensus.pipeline.dataset")


class DatasetStage(Enum):
    """Processing stage of a dataset's records."""

    PARSED = auto()
    FILTERED = auto()
    NORMALIZED = auto()
    AGGREGATED = auto()

    @classmethod
    def from_str(cls, name: str) -> "DatasetStage":
        name_ = name.lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(name)


def _fork(diagnostics: Diagnostics) -> Diagnostics:
    return Diagnostics(sample_size=diagnostics.sample_size).merge(diagnostics)


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Records of one report at one pipeline stage.

    Attributes
    ----------
    schema : ChannelSchema
        Channel schema established from the report header.
    layout : ResolvedLayout
        Column positions of the report.
    records : tuple[QuantificationRecord, ...]
        Records in report order.
    stage : DatasetStage
        How far the records have been processed.
    diagnostics : Diagnostics
        Non-fatal problems met so far.
    filter_results : tuple[FilterResult, ...]
        Per-step results of the last filtering.
    proteins : tuple[ProteinAggregate, ...]
        Protein aggregates, set once the dataset is aggregated.
    protein_info : dict
        Protein metadata by accession, read from Census ``P`` lines.
    """

    schema: ChannelSchema
    layout: ResolvedLayout
    records: Tuple[QuantificationRecord, ...]
    stage: DatasetStage = DatasetStage.PARSED
    diagnostics: Diagnostics = None
    filter_results: Tuple[FilterResult, ...] = ()
    proteins: Tuple[ProteinAggregate, ...] = ()
    protein_info: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        if self.diagnostics is None:
            object.__setattr__(self, "diagnostics", Diagnostics())

    @classmethod
    def from_lines(
        cls,
        lines: Union[str, Iterable[str]],
        layout: Optional[ReportLayout] = None,
        reference: Optional[str] = None,
        n_workers: int = 1,
        diagnostics_sample_size: int = DEFAULT_DIAGNOSTICS_SAMPLE_SIZE,
    ) -> "Dataset":
        """
        Parse a report.

        Tabular reports and native Census reports are both accepted; the
        format is detected from the first line.

        Parameters
        ----------
        lines : str or Iterable[str]
            Report text or its lines, header first.
        layout : ReportLayout, optional
            Column names and delimiter of tabular reports.
        reference : str, optional
            Label of the reference channel.
        n_workers : int
            Number of worker processes used for parsing.
        diagnostics_sample_size : int
            Number of rejected lines kept as samples.

        Returns
        -------
        Dataset
            The parsed dataset.

        Raises
        ------
        SchemaError
            If the report is empty or its header is unusable.
        """
        if isinstance(lines, str):
            lines = lines.splitlines()
        lines = list(lines)
        if not lines:
            raise SchemaError("Report is empty")

        layout = layout or ReportLayout()
        diagnostics = Diagnostics(sample_size=diagnostics_sample_size)
        protein_info: Dict[str, Dict[str, Any]] = {}

        if is_census_report(lines[0]):
            table = census_to_tabular(lines, layout)
            resolved, schema = read_header(table.header, layout, reference=reference)
            for failure in table.failures:
                diagnostics.record_failure(failure)
            records, diagnostics = parse_lines(
                table.rows,
                schema,
                resolved,
                n_workers=n_workers,
                diagnostics=diagnostics,
                line_numbers=table.line_numbers,
            )
            protein_info = table.protein_info()
        else:
            resolved, schema = read_header(lines[0], layout, reference=reference)
            records, diagnostics = parse_lines(
                lines[1:], schema, resolved, n_workers=n_workers, diagnostics=diagnostics
            )

        return cls(
            schema=schema,
            layout=resolved,
            records=records,
            diagnostics=diagnostics,
            protein_info=protein_info,
        )

    def filter(
        self,
        criteria: Optional[Criterion] = None,
        protein_rules: Sequence[ProteinRule] = (),
    ) -> "Dataset":
        """
        Keep the records passing ``criteria`` and the protein rules.

        Parameters
        ----------
        criteria : Criterion, optional
            Record-level criterion; None keeps every record.
        protein_rules : Sequence[ProteinRule]
            Protein-level rules evaluated on the records passing ``criteria``.

        Returns
        -------
        Dataset
            Filtered dataset.
        """
        if self.stage in (DatasetStage.NORMALIZED, DatasetStage.AGGREGATED):
            raise ValueError("Filter a dataset before normalizing or aggregating it")

        diagnostics = _fork(self.diagnostics)
        pipeline = FilterPipeline.from_rules(criteria, protein_rules)
        records, results = pipeline.apply(self.records, schema=self.schema, diagnostics=diagnostics)
        logger.info("Filtering kept %d of %d records", len(records), len(self.records))
        return replace(
            self,
            records=records,
            stage=DatasetStage.FILTERED,
            diagnostics=diagnostics,
            filter_results=tuple(results),
        )

    def normalize(self, profile: NormalizationProfile) -> "Dataset":
        """
        Scale intensities and compute reference ratios.

        Parameters
        ----------
        profile : NormalizationProfile
            Scaling method and optional reference channel.

        Returns
        -------
        Dataset
            Normalized dataset.

        Raises
        ------
        SchemaError
            If the reference channel is not part of the schema.
        """
        if self.stage in (DatasetStage.NORMALIZED, DatasetStage.AGGREGATED):
            raise ValueError(f"Dataset is already {self.stage.name.lower()}")

        diagnostics = _fork(self.diagnostics)
        records = normalize(self.records, profile, self.schema, diagnostics=diagnostics)
        return replace(self, records=records, stage=DatasetStage.NORMALIZED, diagnostics=diagnostics)

    def aggregate(self, aggregator: Optional[Aggregator] = None) -> "Dataset":
        """
        Combine the records into protein aggregates.

        Parameters
        ----------
        aggregator : Aggregator, optional
            Aggregation settings; median with one contributor by default.

        Returns
        -------
        Dataset
            Aggregated dataset; its ``proteins`` are in first-seen protein
            order and its diagnostics add the aggregation underflow to a
            copy of this dataset's report.
        """
        if self.stage == DatasetStage.AGGREGATED:
            raise ValueError("Dataset is already aggregated; aggregate the earlier stage again")
        aggregator = aggregator or Aggregator()
        diagnostics = _fork(self.diagnostics)
        proteins = aggregator.aggregate(self.records, self.schema, diagnostics=diagnostics)
        return replace(
            self,
            stage=DatasetStage.AGGREGATED,
            diagnostics=diagnostics,
            proteins=tuple(proteins),
        )

    def protein_ids(self) -> Set[str]:
        """Distinct protein ids of the records."""
        return {record.protein_id for record in self.records}

    def aggregate_map(self, aggregator: Optional[Aggregator] = None) -> Dict[str, ProteinAggregate]:
        """Protein aggregates keyed by protein id."""
        return {a.protein_id: a for a in self.aggregate(aggregator).proteins}

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        return (
            f"Dataset(stage={self.stage.name}, records={len(self.records)}, "
            f"channels={list(self.schema.labels)}, {self.diagnostics!r})"
        )
