"""
Pipeline configuration and its YAML/JSON file I/O.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from isocensus.aggregation.aggregator import Aggregator
from isocensus.core.constants import DEFAULT_DIAGNOSTICS_SAMPLE_SIZE
from isocensus.core.exceptions import ConfigError, FilterSyntaxError
from isocensus.core.logger import get_logger
from isocensus.filtering.expression import FilterRules, parse_filter_rules
from isocensus.filtering.mapping import (
    criteria_from_dict,
    criteria_to_dict,
    protein_rules_from_dict,
    protein_rules_to_dict,
)
from isocensus.model.criteria import And, Criterion, ProteinRule
from isocensus.model.labeling import IsobaricLabel
from isocensus.model.normalization import NormalizationMethod, NormalizationProfile
from isocensus.model.summarization import DEFAULT_TRIM_FRACTION, SummarizationMethod
from isocensus.parsing.layout import ReportLayout

logger = get_logger("isocensus.pipeline.config")


@dataclass
class PipelineConfig:
    """
    Configuration of one pipeline run.

    Attributes
    ----------
    layout : ReportLayout
        Delimiter and fixed column names of tabular reports.
    criteria : Criterion, optional
        Record-level filter criterion.
    protein_rules : tuple[ProteinRule, ...]
        Protein-level spectral and sequence count rules.
    rule_text : str, optional
        Filter rules in the text rule language, combined with ``criteria``
        and ``protein_rules``.
    normalization : NormalizationProfile
        Scaling method and reference channel.
    summarization : SummarizationMethod
        How peptide values are combined per protein and channel.
    min_contributors : int
        Minimum number of present values for a protein channel value.
    trim_fraction : float
        Fraction trimmed from each end by the trimmed mean.
    n_workers : int
        Worker processes for parsing and aggregation.
    diagnostics_sample_size : int
        Number of rejected lines kept as samples in the diagnostics.
    """

    layout: ReportLayout = field(default_factory=ReportLayout)
    criteria: Optional[Criterion] = None
    protein_rules: Tuple[ProteinRule, ...] = ()
    rule_text: Optional[str] = None
    normalization: NormalizationProfile = field(default_factory=NormalizationProfile)
    summarization: SummarizationMethod = SummarizationMethod.MEDIAN
    min_contributors: int = 1
    trim_fraction: float = DEFAULT_TRIM_FRACTION
    n_workers: int = 1
    diagnostics_sample_size: int = DEFAULT_DIAGNOSTICS_SAMPLE_SIZE

    def __post_init__(self):
        if self.min_contributors < 1:
            raise ConfigError("min_contributors must be at least 1")
        if not 0 <= self.trim_fraction < 0.5:
            raise ConfigError("trim_fraction must be in [0, 0.5)")
        if self.n_workers < 1:
            raise ConfigError("workers must be at least 1")
        if self.diagnostics_sample_size < 0:
            raise ConfigError("diagnostics_sample_size must be non-negative")
        if not self.layout.delimiter:
            raise ConfigError("delimiter must not be empty")
        if self.layout.plex:
            try:
                IsobaricLabel.from_str(self.layout.plex)
            except KeyError:
                raise ConfigError(f"Unknown isobaric labeling scheme '{self.layout.plex}'") from None

    def filter_rules(self) -> FilterRules:
        """
        Combine ``criteria``, ``protein_rules`` and ``rule_text``.

        Raises
        ------
        FilterSyntaxError
            If ``rule_text`` does not parse.
        """
        peptide = []
        protein = list(self.protein_rules)
        if self.criteria is not None:
            peptide.append(self.criteria)
        if self.rule_text:
            parsed = parse_filter_rules(self.rule_text)
            peptide.extend(parsed.peptide_criteria)
            protein.extend(parsed.protein_rules)
        return FilterRules(peptide_criteria=tuple(peptide), protein_rules=tuple(protein))

    def build_aggregator(self) -> Aggregator:
        return Aggregator(
            method=self.summarization,
            min_contributors=self.min_contributors,
            trim_fraction=self.trim_fraction,
            n_workers=self.n_workers,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PipelineConfig":
        """
        Create a configuration from nested plain data.

        Parameters
        ----------
        data : dict
            Mapping with optional ``layout``, ``filters``, ``normalization``
            and ``aggregation`` sections plus ``workers`` and
            ``diagnostics_sample_size``.

        Returns
        -------
        PipelineConfig
            The configuration.

        Raises
        ------
        ConfigError
            If a value is invalid.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        layout = ReportLayout.from_dict(data.get("layout") or {})
        filters = data.get("filters") or {}
        normalization = data.get("normalization") or {}
        aggregation = data.get("aggregation") or {}

        try:
            criteria = criteria_from_dict(filters.get("criteria"))
            protein_rules = protein_rules_from_dict(filters.get("protein"))
            profile = NormalizationProfile.from_dict(normalization)
            summarization = SummarizationMethod.from_str(aggregation.get("method", "median"))
        except KeyError as e:
            raise ConfigError(f"Unknown method name {e}") from None
        except FilterSyntaxError as e:
            raise ConfigError(f"Invalid filter criteria: {e}") from None

        return cls(
            layout=layout,
            criteria=criteria,
            protein_rules=protein_rules,
            rule_text=filters.get("rules"),
            normalization=profile,
            summarization=summarization,
            min_contributors=int(aggregation.get("min_contributors", 1)),
            trim_fraction=float(aggregation.get("trim_fraction", DEFAULT_TRIM_FRACTION)),
            n_workers=int(data.get("workers", 1)),
            diagnostics_sample_size=int(
                data.get("diagnostics_sample_size", DEFAULT_DIAGNOSTICS_SAMPLE_SIZE)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Describe the configuration as nested plain data."""
        filters: Dict[str, Any] = {}
        if self.criteria is not None:
            filters["criteria"] = criteria_to_dict(self.criteria)
        if self.protein_rules:
            filters["protein"] = protein_rules_to_dict(self.protein_rules)
        if self.rule_text:
            filters["rules"] = self.rule_text
        return {
            "layout": self.layout.to_dict(),
            "filters": filters,
            "normalization": self.normalization.to_dict(),
            "aggregation": {
                "method": self.summarization.name.lower(),
                "min_contributors": self.min_contributors,
                "trim_fraction": self.trim_fraction,
            },
            "workers": self.n_workers,
            "diagnostics_sample_size": self.diagnostics_sample_size,
        }

    def with_overrides(self, **overrides) -> "PipelineConfig":
        """
        Return a copy with command line style overrides applied.

        Keys whose value is None are ignored. Recognized keys are
        ``normalization``, ``reference_channel``, ``summarization``,
        ``min_contributors``, ``trim_fraction``, ``n_workers``, ``rule_text``
        and ``criteria``.
        """
        overrides = {k: v for k, v in overrides.items() if v is not None}
        profile = self.normalization
        if "normalization" in overrides or "reference_channel" in overrides:
            method = overrides.pop("normalization", profile.method)
            if not isinstance(method, NormalizationMethod):
                method = NormalizationMethod.from_str(method)
            profile = NormalizationProfile(
                method=method,
                reference_channel=overrides.pop("reference_channel", profile.reference_channel),
            )
        summarization = overrides.pop("summarization", self.summarization)
        if not isinstance(summarization, SummarizationMethod):
            summarization = SummarizationMethod.from_str(summarization)
        criteria = overrides.pop("criteria", None)
        if criteria is not None and self.criteria is not None:
            criteria = And((self.criteria, criteria))

        return PipelineConfig(
            layout=self.layout,
            criteria=criteria if criteria is not None else self.criteria,
            protein_rules=self.protein_rules,
            rule_text=overrides.pop("rule_text", self.rule_text),
            normalization=profile,
            summarization=summarization,
            min_contributors=overrides.pop("min_contributors", self.min_contributors),
            trim_fraction=overrides.pop("trim_fraction", self.trim_fraction),
            n_workers=overrides.pop("n_workers", self.n_workers),
            diagnostics_sample_size=self.diagnostics_sample_size,
        )


def _format_for(path: Path, format: Optional[str]) -> str:
    if format is not None:
        return format.lower()
    if path.suffix.lower() == ".json":
        return "json"
    return "yaml"


def load_pipeline_config(config_path: Union[str, Path]) -> PipelineConfig:
    """
    Load a pipeline configuration from a YAML or JSON file.

    Parameters
    ----------
    config_path : Union[str, Path]
        Path to configuration file (.yaml, .yml, or .json).

    Returns
    -------
    PipelineConfig
        Loaded configuration.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ConfigError
        If the format is unsupported or the content is invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    with open(config_path, "r") as f:
        if suffix in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from None
        elif suffix == ".json":
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in {config_path}: {e}") from None
        else:
            raise ConfigError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    logger.info("Loaded pipeline configuration from %s", config_path)
    return PipelineConfig.from_dict(data)


def save_pipeline_config(
    config: PipelineConfig,
    output_path: Union[str, Path],
    format: Optional[str] = None,
) -> None:
    """
    Save a pipeline configuration to YAML or JSON.

    Parameters
    ----------
    config : PipelineConfig
        Configuration to save.
    output_path : Union[str, Path]
        Output file path.
    format : str, optional
        'yaml' or 'json'; inferred from the extension if not provided.
    """
    output_path = Path(output_path)
    data = config.to_dict()

    if _format_for(output_path, format) == "json":
        with open(output_path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        with open(output_path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info("Saved pipeline configuration to %s", output_path)


_EXAMPLE_YAML = """\
# isocensus pipeline configuration

# Column names and delimiter of tabular reports. Native Census reports
# (starting with 'H' header lines) are detected automatically.
layout:
  delimiter: "\\t"
  protein_column: protein_id
  peptide_column: peptide_sequence
  charge_column: charge_state
  quality_column: quality_score   # optional, used when present in the header
  unique_column: unique           # optional, used when present in the header
  # plex: tmt10plex               # check channels against a labeling scheme

# Record and protein filters. Channels are numbered from 1.
filters:
  criteria:
    all:
      - max_missing: 1
      - charge: [2, 3, 4]
      # - min_quality: 0.9       # needs a quality column; native Census reports have none
      # - channel_cv: {channels: [1, 2, 3], max_cv: 0.05}
      # - sequence_exclude: C
      # - exclude_proteins: [Reverse, contaminant]
  protein:
    spectral_counts: 2          # minimum records per protein
    sequence_counts: 1          # minimum distinct peptides per protein
  # Rules may also be given in the text rule language:
  # rules: |
  #   peptide:
  #     tryptic
  #     unique

# Channel scaling: none, median or total, plus an optional reference
# channel label for log2 ratios.
normalization:
  method: median
  reference_channel: null

# Protein aggregation: median, trimmed_mean, mean, sum or max.
aggregation:
  method: median
  min_contributors: 1
  trim_fraction: 0.1

workers: 1                       # worker processes for parsing and aggregation
diagnostics_sample_size: 10      # rejected lines kept as samples
"""


def generate_example_config(
    output_path: Union[str, Path],
    format: Optional[str] = None,
) -> None:
    """
    Write an example configuration file with comments.

    Parameters
    ----------
    output_path : Union[str, Path]
        Output file path.
    format : str, optional
        'yaml' or 'json'; inferred from the extension if not provided. JSON
        output carries no comments.
    """
    output_path = Path(output_path)
    if _format_for(output_path, format) == "json":
        example = PipelineConfig.from_dict(yaml.safe_load(_EXAMPLE_YAML))
        save_pipeline_config(example, output_path, format="json")
    else:
        output_path.write_text(_EXAMPLE_YAML)
    logger.info("Generated example configuration at %s", output_path)
