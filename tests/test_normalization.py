"""
Tests for channel scaling and reference ratios.
"""

import math

import numpy as np
import pytest

from isocensus.core.diagnostics import Diagnostics
from isocensus.core.exceptions import SchemaError
from isocensus.model.channels import ChannelSchema
from isocensus.model.normalization import NormalizationMethod, NormalizationProfile
from isocensus.model.records import QuantificationRecord
from isocensus.normalization import channel_scale_factors, log2_ratios, normalize


def make_record(values, protein="P1", sequence="K.PEPTIDEK.A"):
    return QuantificationRecord(
        protein_id=protein,
        peptide_sequence=sequence,
        charge_state=2,
        channel_intensities=tuple(values),
    )


def present_median(records, channel):
    values = [r.channel_intensities[channel] for r in records if r.channel_intensities[channel] is not None]
    return float(np.median(values))


@pytest.fixture
def schema():
    return ChannelSchema.establish(["126", "127", "128"])


@pytest.fixture
def records():
    return (
        make_record((100.0, 220.0, 50.0)),
        make_record((200.0, 410.0, None)),
        make_record((150.0, None, 80.0)),
        make_record((400.0, 900.0, 60.0)),
        make_record((None, 300.0, 75.0)),
    )


class TestNormalizationMethod:
    """Tests for method names and profiles."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("median", NormalizationMethod.MEDIAN),
            ("TOTAL", NormalizationMethod.TOTAL),
            ("total_intensity", NormalizationMethod.TOTAL),
            ("total-intensity", NormalizationMethod.TOTAL),
            ("none", NormalizationMethod.NONE),
            (None, NormalizationMethod.NONE),
        ],
    )
    def test_from_str(self, name, expected):
        assert NormalizationMethod.from_str(name) == expected

    def test_from_str_unknown(self):
        with pytest.raises(KeyError):
            NormalizationMethod.from_str("quantile")

    def test_profile_dict(self):
        profile = NormalizationProfile.from_dict({"method": "median", "reference_channel": "126"})

        assert profile.method == NormalizationMethod.MEDIAN
        assert profile.computes_ratios
        assert profile.to_dict() == {"method": "median", "reference_channel": "126"}
        assert not NormalizationProfile().computes_ratios


class TestMedianScaling:
    """Tests for median scaling."""

    def test_channel_medians_equal_grand_median(self, schema, records):
        """Test that every scaled channel median equals the grand median of channel medians."""
        medians = [present_median(records, j) for j in range(3)]
        grand = float(np.median(medians))

        scaled = normalize(records, NormalizationProfile(NormalizationMethod.MEDIAN), schema)

        for j in range(3):
            assert present_median(scaled, j) == pytest.approx(grand)

    def test_missing_values_stay_missing(self, schema, records):
        scaled = normalize(records, NormalizationProfile(NormalizationMethod.MEDIAN), schema)
        for before, after in zip(records, scaled):
            assert [v is None for v in before.channel_intensities] == [
                v is None for v in after.channel_intensities
            ]

    def test_records_not_mutated(self, schema, records):
        """Test that normalization returns new records and keeps the input."""
        before = tuple(records)
        scaled = normalize(records, NormalizationProfile(NormalizationMethod.MEDIAN), schema)

        assert records == before
        assert scaled != records
        assert [r.protein_id for r in scaled] == [r.protein_id for r in records]

    def test_empty_channel_left_unscaled(self):
        schema = ChannelSchema.establish(["126", "127"])
        records = (make_record((10.0, None)), make_record((30.0, None)))
        diagnostics = Diagnostics()

        factors = channel_scale_factors(records, schema, diagnostics)

        assert factors == (1.0, 1.0)
        assert diagnostics.unscaled_channels == ["127"]

    def test_zero_median_channel_left_unscaled(self):
        schema = ChannelSchema.establish(["126", "127"])
        records = (make_record((10.0, 0.0)), make_record((30.0, 0.0)))
        diagnostics = Diagnostics()

        scaled = normalize(records, NormalizationProfile(NormalizationMethod.MEDIAN), schema, diagnostics)

        assert [r.channel_intensities[1] for r in scaled] == [0.0, 0.0]
        assert diagnostics.unscaled_channels == ["127"]

    def test_scale_factors(self, schema, records):
        factors = channel_scale_factors(records, schema)
        # Channel medians are 175, 355 and 67.5; their median is 175.
        assert factors == pytest.approx((1.0, 175.0 / 355.0, 175.0 / 67.5))


class TestTotalScaling:
    """Tests for total-intensity scaling."""

    def test_fractions_sum_to_one(self, schema, records):
        scaled = normalize(records, NormalizationProfile(NormalizationMethod.TOTAL), schema)

        for record in scaled:
            assert sum(record.present_values()) == pytest.approx(1.0)
        assert scaled[0].channel_intensities == pytest.approx((100 / 370, 220 / 370, 50 / 370))

    def test_zero_total_is_undefined(self, schema):
        records = (make_record((0.0, 0.0, None)), make_record((None, None, None)))
        diagnostics = Diagnostics()

        scaled = normalize(records, NormalizationProfile(NormalizationMethod.TOTAL), schema, diagnostics)

        assert scaled[0].channel_intensities == (None, None, None)
        assert scaled[1].channel_intensities == (None, None, None)
        assert diagnostics.zero_total_records == 1


class TestRatios:
    """Tests for log2 ratios against the reference channel."""

    def test_log2_ratios(self):
        ratios = log2_ratios((100.0, 200.0, 50.0, None, 0.0), 0)
        assert ratios == (None, 1.0, -1.0, None, None)

    @pytest.mark.parametrize("reference", [None, 0.0])
    def test_undefined_reference(self, reference):
        """Test that a missing or zero reference leaves every ratio undefined."""
        ratios = log2_ratios((reference, 200.0, 50.0), 0)
        assert ratios == (None, None, None)

    def test_normalize_with_reference(self, schema, records):
        profile = NormalizationProfile(NormalizationMethod.NONE, reference_channel="127")

        result = normalize(records, profile, schema)

        assert result[0].channel_intensities == records[0].channel_intensities
        assert result[0].ratios == pytest.approx((math.log2(100 / 220), None, math.log2(50 / 220)))
        assert result[2].ratios == (None, None, None)
        for record in result:
            assert all(r is None or math.isfinite(r) for r in record.ratios)

    def test_ratios_unchanged_by_total_scaling(self, schema, records):
        plain = normalize(records, NormalizationProfile(NormalizationMethod.NONE, "126"), schema)
        total = normalize(records, NormalizationProfile(NormalizationMethod.TOTAL, "126"), schema)

        for a, b in zip(plain, total):
            assert [r is None for r in a.ratios] == [r is None for r in b.ratios]
            assert [r for r in a.ratios if r is not None] == pytest.approx(
                [r for r in b.ratios if r is not None]
            )

    def test_no_reference_no_ratios(self, schema, records):
        result = normalize(records, NormalizationProfile(NormalizationMethod.MEDIAN), schema)
        assert all(r.ratios is None for r in result)

    def test_unknown_reference(self, schema, records):
        with pytest.raises(SchemaError, match="131"):
            normalize(records, NormalizationProfile(NormalizationMethod.NONE, "131"), schema)

    def test_empty_records(self, schema):
        assert normalize((), NormalizationProfile(NormalizationMethod.MEDIAN, "126"), schema) == ()
