"""
Tests for protein aggregation.
"""

import math

import pytest

from isocensus.aggregation import Aggregator, aggregate, shard_of
from isocensus.core.diagnostics import Diagnostics
from isocensus.model.channels import ChannelSchema
from isocensus.model.records import ProteinAggregate, QuantificationRecord
from isocensus.model.summarization import SummarizationMethod


def make_record(protein, values, sequence="K.PEPTIDEK.A", ratios=None):
    return QuantificationRecord(
        protein_id=protein,
        peptide_sequence=sequence,
        charge_state=2,
        channel_intensities=tuple(values),
        ratios=ratios,
    )


@pytest.fixture
def schema():
    return ChannelSchema.establish(["126", "127"])


@pytest.fixture
def records():
    return (
        make_record("P2", (5.0, 50.0), "K.AAK.L"),
        make_record("P1", (10.0, None), "K.BBK.L"),
        make_record("P3", (None, None), "K.CCK.L"),
        make_record("P1", (11.0, 7.0), "K.BBK.L"),
        make_record("P2", (6.0, 60.0), "K.DDK.L"),
        make_record("P1", (9.0, 8.0), "K.EEK.L"),
        make_record("P1", (1000.0, None), "K.FFK.L"),
    )


class TestSummarizationMethod:
    """Tests for combining one protein/channel value collection."""

    @pytest.mark.parametrize(
        "method,expected",
        [
            (SummarizationMethod.MEDIAN, 10.5),
            (SummarizationMethod.MEAN, 257.5),
            (SummarizationMethod.SUM, 1030.0),
            (SummarizationMethod.MAX, 1000.0),
        ],
    )
    def test_methods(self, method, expected):
        assert method.aggregate([10.0, 11.0, 9.0, 1000.0]) == pytest.approx(expected)

    def test_trimmed_mean(self):
        values = [1.0, 2.0, 3.0, 4.0, 100.0]
        assert SummarizationMethod.TRIMMED_MEAN.aggregate(values, trim_fraction=0.2) == pytest.approx(3.0)
        assert SummarizationMethod.TRIMMED_MEAN.aggregate(values, trim_fraction=0.0) == pytest.approx(22.0)

    @pytest.mark.parametrize("name", ["trimmed_mean", "Trimmed-Mean", "MEDIAN", "sum"])
    def test_from_str(self, name):
        assert isinstance(SummarizationMethod.from_str(name), SummarizationMethod)

    def test_from_str_unknown(self):
        with pytest.raises(KeyError):
            SummarizationMethod.from_str("maxlfq")


class TestAggregator:
    """Tests for grouping records by protein."""

    def test_grouping_complete(self, schema, records):
        """Test that output protein ids are exactly the distinct input ids."""
        proteins = Aggregator().aggregate(records, schema)

        assert {p.protein_id for p in proteins} == {r.protein_id for r in records}
        assert len(proteins) == 3

    def test_first_seen_order(self, schema, records):
        proteins = Aggregator().aggregate(records, schema)
        assert [p.protein_id for p in proteins] == ["P2", "P1", "P3"]

    def test_median_robust_to_outlier(self, schema, records):
        """Test that one outlier does not drag the median away from the bulk."""
        p1 = Aggregator().aggregate(records, schema)[1]

        assert 9.0 <= p1.per_channel_values[0] <= 11.0
        assert p1.per_channel_values[1] == pytest.approx(7.5)

    def test_counts(self, schema, records):
        p2, p1, p3 = Aggregator().aggregate(records, schema)

        assert p1.contributing_peptide_count == 4
        assert p1.sequence_count == 3
        assert p1.per_channel_contributing_count == (4, 2)
        assert p2.per_channel_contributing_count == (2, 2)
        assert p3.per_channel_contributing_count == (0, 0)

    def test_all_missing_protein(self, schema, records):
        diagnostics = Diagnostics()
        p3 = Aggregator().aggregate(records, schema, diagnostics)[2]

        assert p3.per_channel_values == (None, None)
        assert diagnostics.aggregation_underflow == 2

    def test_min_contributors(self, schema, records):
        diagnostics = Diagnostics()
        p2, p1, p3 = Aggregator(min_contributors=3).aggregate(records, schema, diagnostics)

        assert p1.per_channel_values[0] == pytest.approx(10.5)
        assert p1.per_channel_values[1] is None
        assert p2.per_channel_values == (None, None)
        assert diagnostics.aggregation_underflow == 5

    def test_method_by_name(self, schema, records):
        p2 = Aggregator(method="sum").aggregate(records, schema)[0]
        assert p2.per_channel_values == (11.0, 110.0)

    def test_ratios_aggregated(self, schema):
        records = (
            make_record("P1", (1.0, 2.0), ratios=(None, 1.0)),
            make_record("P1", (1.0, 4.0), ratios=(None, 2.0)),
            make_record("P2", (None, 4.0), ratios=(None, None)),
        )
        p1, p2 = Aggregator().aggregate(records, schema)

        assert p1.per_channel_ratios == (None, 1.5)
        assert p2.per_channel_ratios == (None, None)

    def test_no_ratios(self, schema, records):
        assert all(p.per_channel_ratios is None for p in Aggregator().aggregate(records, schema))

    def test_empty_input(self, schema):
        assert Aggregator().aggregate((), schema) == ()

    @pytest.mark.parametrize(
        "kwargs",
        [{"min_contributors": 0}, {"trim_fraction": 0.5}, {"trim_fraction": -0.1}],
    )
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            Aggregator(**kwargs)

    def test_parallel_matches_serial(self, schema, records):
        """Test that sharded aggregation over worker processes gives the same aggregates."""
        many = records * 20
        serial = Aggregator(n_workers=1).aggregate(many, schema)
        parallel = Aggregator(n_workers=3).aggregate(many, schema)

        assert [p.protein_id for p in parallel] == [p.protein_id for p in serial]
        for a, b in zip(serial, parallel):
            assert a.contributing_peptide_count == b.contributing_peptide_count
            assert a.per_channel_contributing_count == b.per_channel_contributing_count
            assert a.sequence_count == b.sequence_count
            assert a.per_channel_values == pytest.approx(b.per_channel_values)

    def test_module_function(self, schema, records):
        proteins = aggregate(records, schema, method=SummarizationMethod.MAX)
        assert proteins[1].per_channel_values == (1000.0, 8.0)

    def test_shard_is_stable(self):
        assert shard_of("P00001", 4) == shard_of("P00001", 4)
        assert 0 <= shard_of("P00001", 4) < 4
        assert shard_of("anything", 1) == 0


class TestProteinAggregate:
    """Tests for aggregate helpers."""

    def test_relative_abundance(self):
        aggregate_ = ProteinAggregate("P1", (1.0, None, 3.0), 2, (2, 0, 2))
        assert aggregate_.relative_abundance() == pytest.approx((0.25, None, 0.75))

    def test_relative_abundance_zero(self):
        aggregate_ = ProteinAggregate("P1", (0.0, None), 1, (1, 0))
        assert aggregate_.relative_abundance() == (None, None)

    def test_finite_values(self, schema, records):
        for protein in Aggregator(method="mean").aggregate(records, schema):
            assert all(v is None or math.isfinite(v) for v in protein.per_channel_values)
