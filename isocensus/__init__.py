"""
isocensus - Census isobaric quantification reports to protein abundances.

This package parses the reporter-ion reports Census produces for TMT and
iTRAQ experiments, filters peptide records, normalizes channel intensities
and aggregates them into protein-level estimates, reporting every dropped
or degraded value in a diagnostics report.
"""

__version__ = "0.1.0"

from isocensus.core.logger import initialize_logging

# Library loggers stay silent until an application configures logging.
initialize_logging()

from isocensus.model import (
    Channel,
    ChannelSchema,
    NormalizationMethod,
    NormalizationProfile,
    ProteinAggregate,
    QuantificationRecord,
    SummarizationMethod,
)
from isocensus.core.diagnostics import Diagnostics
from isocensus.pipeline import (
    CensusPipeline,
    Dataset,
    PipelineConfig,
    PipelineResult,
    read_census,
)

__all__ = [
    "__version__",
    # Model
    "Channel",
    "ChannelSchema",
    "NormalizationMethod",
    "NormalizationProfile",
    "ProteinAggregate",
    "QuantificationRecord",
    "SummarizationMethod",
    # Pipeline
    "CensusPipeline",
    "Dataset",
    "Diagnostics",
    "PipelineConfig",
    "PipelineResult",
    "read_census",
]
