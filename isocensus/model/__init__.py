"""
Data models and enumerations for the isocensus package.

This module provides:
- Isobaric labeling schemes and the channel schema
- Peptide-level records and protein-level aggregates
- Filter criteria
- Normalization and summarization methods
"""

from isocensus.model.labeling import (
    IsobaricLabel,
    IsobaricLabelSpec,
    TMT6plex,
    TMT10plex,
    TMT11plex,
    TMT16plex,
    ITRAQ4plex,
    ITRAQ8plex,
)
from isocensus.model.channels import Channel, ChannelSchema
from isocensus.model.records import QuantificationRecord, ProteinAggregate
from isocensus.model.criteria import (
    Criterion,
    FilterCriteria,
    QualityThreshold,
    MissingChannelBound,
    ChannelIntensityThreshold,
    ChargeStateIn,
    TotalIntensityThreshold,
    ChannelCV,
    SequenceMatch,
    SequenceExclude,
    Tryptic,
    Unique,
    ProteinExclude,
    And,
    Or,
    Not,
    MinSpectralCount,
    MinSequenceCount,
    ProteinRule,
)
from isocensus.model.normalization import NormalizationMethod, NormalizationProfile
from isocensus.model.summarization import SummarizationMethod

__all__ = [
    # Labeling
    "IsobaricLabel",
    "IsobaricLabelSpec",
    "TMT6plex",
    "TMT10plex",
    "TMT11plex",
    "TMT16plex",
    "ITRAQ4plex",
    "ITRAQ8plex",
    # Channels
    "Channel",
    "ChannelSchema",
    # Records
    "QuantificationRecord",
    "ProteinAggregate",
    # Criteria
    "Criterion",
    "FilterCriteria",
    "QualityThreshold",
    "MissingChannelBound",
    "ChannelIntensityThreshold",
    "ChargeStateIn",
    "TotalIntensityThreshold",
    "ChannelCV",
    "SequenceMatch",
    "SequenceExclude",
    "Tryptic",
    "Unique",
    "ProteinExclude",
    "And",
    "Or",
    "Not",
    "MinSpectralCount",
    "MinSequenceCount",
    "ProteinRule",
    # Normalization
    "NormalizationMethod",
    "NormalizationProfile",
    # Summarization
    "SummarizationMethod",
]
