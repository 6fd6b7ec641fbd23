"""
Tests for pipeline configuration loading, saving and overrides.
"""

import json
from pathlib import Path

import pytest
import yaml

from isocensus.core.exceptions import ConfigError
from isocensus.model.criteria import (
    And,
    ChargeStateIn,
    MinSequenceCount,
    MinSpectralCount,
    MissingChannelBound,
    ProteinExclude,
    QualityThreshold,
    Tryptic,
)
from isocensus.model.normalization import NormalizationMethod, NormalizationProfile
from isocensus.model.summarization import SummarizationMethod
from isocensus.parsing.layout import ReportLayout
from isocensus.pipeline import (
    CensusPipeline,
    PipelineConfig,
    generate_example_config,
    load_pipeline_config,
    save_pipeline_config,
)

EXAMPLE_DIR = Path(__file__).parent / "example"


class TestPipelineConfig:
    """Tests for building configurations from plain data."""

    def test_defaults(self):
        config = PipelineConfig.from_dict(None)

        assert config.layout == ReportLayout()
        assert config.criteria is None
        assert config.normalization == NormalizationProfile()
        assert config.summarization == SummarizationMethod.MEDIAN
        assert config.n_workers == 1
        assert not config.filter_rules()

    def test_from_dict(self):
        config = PipelineConfig.from_dict(
            {
                "layout": {"delimiter": ",", "protein_column": "Locus", "ignored": 1},
                "filters": {
                    "criteria": {"max_missing": 1},
                    "protein": {"spectral_counts": 2},
                    "rules": "peptide:\n  tryptic\n",
                },
                "normalization": {"method": "median", "reference_channel": "126"},
                "aggregation": {"method": "trimmed_mean", "min_contributors": 2, "trim_fraction": 0.2},
                "workers": 4,
            }
        )

        assert config.layout.delimiter == ","
        assert config.layout.protein_column == "Locus"
        assert config.layout.plex is None
        assert config.normalization == NormalizationProfile(NormalizationMethod.MEDIAN, "126")
        assert config.summarization == SummarizationMethod.TRIMMED_MEAN
        assert config.min_contributors == 2
        assert config.trim_fraction == 0.2
        assert config.n_workers == 4

        rules = config.filter_rules()
        assert rules.peptide_criteria == (MissingChannelBound(1), Tryptic())
        assert rules.protein_rules == (MinSpectralCount(2),)

        aggregator = config.build_aggregator()
        assert aggregator.min_contributors == 2
        assert aggregator.n_workers == 4

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"normalization": {"method": "quantile"}}, "Unknown method"),
            ({"aggregation": {"method": "maxlfq"}}, "Unknown method"),
            ({"filters": {"criteria": {"bogus": 1}}}, "Invalid filter"),
            ({"filters": {"criteria": {"max_missing": -1}}}, "Invalid filter"),
            ({"filters": {"criteria": {"tryptic": "no"}}}, "Invalid filter"),
            ({"aggregation": {"min_contributors": 0}}, "min_contributors"),
            ({"aggregation": {"trim_fraction": 0.5}}, "trim_fraction"),
            ({"workers": 0}, "workers"),
            ({"layout": {"delimiter": ""}}, "delimiter"),
            ({"layout": {"plex": "tmt99plex"}}, "Unknown isobaric"),
            (["not", "a", "mapping"], "mapping"),
        ],
    )
    def test_invalid(self, data, message):
        with pytest.raises(ConfigError, match=message):
            PipelineConfig.from_dict(data)

    def test_switched_off_flags_keep_records(self):
        config = PipelineConfig.from_dict({"filters": {"criteria": {"tryptic": False, "unique": False}}})

        assert config.criteria is None
        result = CensusPipeline(config).run_file(EXAMPLE_DIR / "itraq4_report.tsv")
        assert len(result.records) == 6

    def test_plex_names_census_channels(self):
        config = PipelineConfig.from_dict({"layout": {"plex": "iTRAQ4plex"}})

        result = CensusPipeline(config).run_file(EXAMPLE_DIR / "census_itraq4.txt")
        assert result.schema.labels == ("114", "115", "116", "117")
        columns = list(result.proteins_frame().columns)
        assert "114" in columns and "117_n" in columns

    def test_to_dict_round_trip(self):
        config = PipelineConfig(
            criteria=And((QualityThreshold(0.9), ChargeStateIn((2, 3)))),
            protein_rules=(MinSpectralCount(2), MinSequenceCount(1)),
            normalization=NormalizationProfile(NormalizationMethod.TOTAL, "127N"),
            summarization=SummarizationMethod.SUM,
            n_workers=2,
        )
        assert PipelineConfig.from_dict(config.to_dict()) == config

    def test_with_overrides(self):
        base = PipelineConfig(
            criteria=MissingChannelBound(1),
            normalization=NormalizationProfile(NormalizationMethod.MEDIAN, "126"),
        )
        config = base.with_overrides(
            normalization="total",
            reference_channel=None,
            summarization="max",
            min_contributors=3,
            criteria=Tryptic(),
            n_workers=None,
        )

        assert config.normalization == NormalizationProfile(NormalizationMethod.TOTAL, "126")
        assert config.summarization == SummarizationMethod.MAX
        assert config.min_contributors == 3
        assert config.criteria == And((MissingChannelBound(1), Tryptic()))
        assert config.n_workers == 1
        assert base.summarization == SummarizationMethod.MEDIAN

    def test_with_overrides_reference_only(self):
        config = PipelineConfig().with_overrides(reference_channel="114")
        assert config.normalization == NormalizationProfile(NormalizationMethod.NONE, "114")


class TestConfigFiles:
    """Tests for reading and writing configuration files."""

    @pytest.mark.parametrize("name", ["pipeline.yaml", "pipeline.yml", "pipeline.json"])
    def test_save_and_load(self, tmp_path, name):
        config = PipelineConfig(
            criteria=ProteinExclude(("Reverse",)),
            normalization=NormalizationProfile(NormalizationMethod.MEDIAN),
            rule_text="protein:\n  sequence_counts = 2\n",
        )
        path = tmp_path / name
        save_pipeline_config(config, path)

        assert load_pipeline_config(path) == config

    def test_saved_json_is_json(self, tmp_path):
        path = tmp_path / "config.json"
        save_pipeline_config(PipelineConfig(), path)
        data = json.loads(path.read_text())
        assert data["aggregation"]["method"] == "median"

    def test_load_example_file(self):
        config = load_pipeline_config(EXAMPLE_DIR / "pipeline.yaml")

        assert config.normalization == NormalizationProfile(NormalizationMethod.TOTAL, "114")
        rules = config.filter_rules()
        assert rules.peptide_criteria == (MissingChannelBound(1), ProteinExclude(("Reverse",)))
        assert rules.protein_rules == (MinSpectralCount(2),)

    def test_example_file_drives_pipeline(self):
        config = load_pipeline_config(EXAMPLE_DIR / "pipeline.yaml")
        result = CensusPipeline(config).run_file(EXAMPLE_DIR / "itraq4_report.tsv")

        assert [p.protein_id for p in result.proteins] == ["P00001", "P00002"]
        assert all(r.ratios is not None for r in result.records)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_pipeline_config(tmp_path / "missing.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("workers = 1\n")
        with pytest.raises(ConfigError, match="Unsupported"):
            load_pipeline_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("filters: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_pipeline_config(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_pipeline_config(path)


class TestExampleConfig:
    """Tests for the generated example configuration."""

    def test_generate_yaml(self, tmp_path):
        path = tmp_path / "example.yaml"
        generate_example_config(path)

        assert path.read_text().startswith("#")
        config = load_pipeline_config(path)
        assert config.layout.delimiter == "\t"
        assert config.normalization.method == NormalizationMethod.MEDIAN
        assert config.protein_rules == (MinSpectralCount(2), MinSequenceCount(1))
        assert isinstance(config.criteria, And)

    def test_generated_config_keeps_census_records(self, tmp_path):
        """Test that the example configuration does not reject reports without a quality column."""
        path = tmp_path / "example.yaml"
        generate_example_config(path)

        result = CensusPipeline(load_pipeline_config(path)).run_file(EXAMPLE_DIR / "census_itraq4.txt")

        assert [r.protein_id for r in result.records] == ["P00001", "P00001"]

    def test_generate_json(self, tmp_path):
        path = tmp_path / "example.json"
        generate_example_config(path)

        data = json.loads(path.read_text())
        assert data["normalization"]["method"] == "median"
        assert load_pipeline_config(path) == PipelineConfig.from_dict(
            yaml.safe_load((tmp_path / "example.json").read_text())
        )
