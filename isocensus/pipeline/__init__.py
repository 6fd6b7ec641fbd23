"""
Pipelines for Census quantification reports.

This module provides the dataset controller, the pipeline configuration and
the end-to-end pipeline from report lines to protein aggregates.
"""

from isocensus.pipeline.dataset import Dataset, DatasetStage
from isocensus.pipeline.config import (
    PipelineConfig,
    generate_example_config,
    load_pipeline_config,
    save_pipeline_config,
)
from isocensus.pipeline.census_pipeline import CensusPipeline, PipelineResult, read_census
from isocensus.pipeline.frames import aggregates_to_frame, records_to_frame, write_table

__all__ = [
    # Dataset
    "Dataset",
    "DatasetStage",
    # Configuration
    "PipelineConfig",
    "generate_example_config",
    "load_pipeline_config",
    "save_pipeline_config",
    # Pipeline
    "CensusPipeline",
    "PipelineResult",
    "read_census",
    # Frames
    "aggregates_to_frame",
    "records_to_frame",
    "write_table",
]
