"""
End-to-end pipeline: report lines to protein aggregates.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from isocensus.core.diagnostics import Diagnostics
from isocensus.core.logger import get_logger, log_execution_time
from isocensus.filtering.base import FilterResult
from isocensus.model.channels import ChannelSchema
from isocensus.model.normalization import NormalizationMethod
from isocensus.model.records import ProteinAggregate, QuantificationRecord
from isocensus.pipeline.config import PipelineConfig
from isocensus.pipeline.dataset import Dataset
from isocensus.pipeline.frames import aggregates_to_frame, records_to_frame

logger = get_logger("isocensus.pipeline")


@dataclass
class PipelineResult:
    """
    Output of one pipeline run.

    Attributes
    ----------
    schema : ChannelSchema
        Channel schema of the report.
    records : tuple[QuantificationRecord, ...]
        Filtered and normalized records.
    proteins : tuple[ProteinAggregate, ...]
        Protein aggregates in first-seen order.
    diagnostics : Diagnostics
        Everything that was dropped or degraded along the way.
    filter_results : tuple[FilterResult, ...]
        Per-step filter results.
    protein_info : dict
        Census protein metadata by accession, empty for tabular reports.
    """

    schema: ChannelSchema
    records: Tuple[QuantificationRecord, ...]
    proteins: Tuple[ProteinAggregate, ...]
    diagnostics: Diagnostics
    filter_results: Tuple[FilterResult, ...] = field(default_factory=tuple)
    protein_info: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def records_frame(self):
        return records_to_frame(self.records, self.schema)

    def proteins_frame(self):
        return aggregates_to_frame(self.proteins, self.schema, self.protein_info)


class CensusPipeline:
    """
    Parse, filter, normalize and aggregate one report.

    Parameters
    ----------
    config : PipelineConfig, optional
        Pipeline configuration; defaults are used when omitted.

    Examples
    --------
    >>> from isocensus.pipeline import CensusPipeline, PipelineConfig
    >>> from isocensus.model import NormalizationProfile, NormalizationMethod
    >>>
    >>> config = PipelineConfig(
    ...     normalization=NormalizationProfile(NormalizationMethod.TOTAL, "126"),
    ... )
    >>> result = CensusPipeline(config).run(open("census.txt"))
    >>> result.diagnostics.summary()
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    @log_execution_time(logger, level=logging.INFO)
    def run(self, lines: Union[str, Iterable[str]]) -> PipelineResult:
        """
        Execute the pipeline.

        Parameters
        ----------
        lines : str or Iterable[str]
            Report text or lines, header first.

        Returns
        -------
        PipelineResult
            Records, aggregates and diagnostics.

        Raises
        ------
        SchemaError
            If the report header is unusable or the reference channel is
            unknown.
        FilterSyntaxError
            If the configured rule text does not parse.
        """
        config = self.config
        rules = config.filter_rules()

        dataset = Dataset.from_lines(
            lines,
            layout=config.layout,
            n_workers=config.n_workers,
            diagnostics_sample_size=config.diagnostics_sample_size,
        )
        logger.info(
            "Parsed %d records over %d channels %s",
            len(dataset),
            dataset.schema.channel_count(),
            list(dataset.schema.labels),
        )

        profile = config.normalization
        if profile.reference_channel is not None:
            dataset = replace(dataset, schema=dataset.schema.with_reference(profile.reference_channel))

        if rules:
            dataset = dataset.filter(rules.criteria, rules.protein_rules)

        if profile.method != NormalizationMethod.NONE or profile.computes_ratios:
            dataset = dataset.normalize(profile)

        dataset = dataset.aggregate(config.build_aggregator())

        if dataset.diagnostics.has_issues:
            logger.warning("Pipeline finished with issues: %s", dataset.diagnostics.summary())
        return PipelineResult(
            schema=dataset.schema,
            records=dataset.records,
            proteins=dataset.proteins,
            diagnostics=dataset.diagnostics,
            filter_results=dataset.filter_results,
            protein_info=dataset.protein_info,
        )

    def run_file(self, path: Union[str, Path]) -> PipelineResult:
        """Execute the pipeline on a report file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Report not found: {path}")
        logger.info("Reading report %s", path)
        with open(path, "r") as f:
            return self.run(f)


def read_census(
    source: Union[str, Iterable[str]],
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """
    Run the pipeline on report text or lines.

    Parameters
    ----------
    source : str or Iterable[str]
        Report text or its lines.
    config : PipelineConfig, optional
        Pipeline configuration.

    Returns
    -------
    PipelineResult
        Records, aggregates and diagnostics.
    """
    return CensusPipeline(config).run(source)
