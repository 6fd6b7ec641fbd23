"""
CLI command running the quantification pipeline on one report.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from isocensus.core.exceptions import CensusError
from isocensus.filtering.expression import load_filter_rules
from isocensus.pipeline.census_pipeline import CensusPipeline
from isocensus.pipeline.config import PipelineConfig, load_pipeline_config
from isocensus.pipeline.frames import SUPPORTED_TABLE_FORMATS, write_table

logger = logging.getLogger(__name__)

NORMALIZATION_METHODS = ["none", "median", "total"]
SUMMARIZATION_METHODS = ["median", "trimmed_mean", "mean", "sum", "max"]


def _check_table_path(ctx, param, value: Optional[Path]) -> Optional[Path]:
    if value is not None and value.suffix.lower() not in SUPPORTED_TABLE_FORMATS:
        raise click.BadParameter(f"use one of {', '.join(SUPPORTED_TABLE_FORMATS)}")
    return value


@click.command("quantify", short_help="Quantify proteins from a Census report")
@click.option(
    "-i",
    "--input",
    "report",
    help="Census report, native or tabular",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-c",
    "--config",
    help="Pipeline configuration file (.yaml, .yml or .json)",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--rules",
    help="Filter rule file in the protein:/peptide: block syntax",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--normalization",
    help="Channel scaling method (overrides the configuration)",
    type=click.Choice(NORMALIZATION_METHODS, case_sensitive=False),
)
@click.option("--reference", help="Reference channel label for log2 ratios")
@click.option(
    "--summarization",
    help="Protein summarization method (overrides the configuration)",
    type=click.Choice(SUMMARIZATION_METHODS, case_sensitive=False),
)
@click.option(
    "--min-contributors",
    help="Minimum present values for a protein channel value",
    type=click.IntRange(min=1),
)
@click.option(
    "--trim-fraction",
    help="Fraction trimmed from each end by trimmed_mean",
    type=click.FloatRange(min=0.0, max=0.5, max_open=True),
)
@click.option("--workers", help="Worker processes for parsing and aggregation", type=click.IntRange(min=1))
@click.option(
    "-o",
    "--output",
    help="Protein table (.tsv, .csv or .parquet)",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    callback=_check_table_path,
)
@click.option(
    "--peptides-output",
    help="Also write the filtered, normalized peptide records (.tsv, .csv or .parquet)",
    type=click.Path(dir_okay=False, path_type=Path),
    callback=_check_table_path,
)
def quantify(
    report: Path,
    config: Optional[Path],
    rules: Optional[Path],
    normalization: Optional[str],
    reference: Optional[str],
    summarization: Optional[str],
    min_contributors: Optional[int],
    trim_fraction: Optional[float],
    workers: Optional[int],
    output: Path,
    peptides_output: Optional[Path],
) -> None:
    """
    Parse, filter, normalize and aggregate a Census report.

    Settings come from the configuration file when given; command line
    options override it. A diagnostics summary of dropped lines, degenerate
    filters and empty protein channels is printed at the end.
    """
    try:
        pipeline_config = load_pipeline_config(config) if config else PipelineConfig()
        rule_text = None
        if rules:
            # Parse eagerly so syntax errors surface before the report is read.
            load_filter_rules(rules)
            rule_text = "\n".join(filter(None, [pipeline_config.rule_text, rules.read_text()]))
        pipeline_config = pipeline_config.with_overrides(
            normalization=normalization,
            reference_channel=reference,
            summarization=summarization,
            min_contributors=min_contributors,
            trim_fraction=trim_fraction,
            n_workers=workers,
            rule_text=rule_text,
        )
        result = CensusPipeline(pipeline_config).run_file(report)
    except CensusError as e:
        raise click.ClickException(str(e)) from e

    write_table(result.proteins_frame(), output)
    if peptides_output:
        write_table(result.records_frame(), peptides_output)

    summary = result.diagnostics.summary()
    click.echo(
        f"{len(result.proteins)} proteins from {len(result.records)} records "
        f"({summary['skipped_lines']} lines skipped)"
    )
    if result.diagnostics.has_issues:
        click.echo(json.dumps(summary, indent=2))
