"""
Normalization of channel intensities.

This module provides median and total-intensity scaling and log2 ratios
against a reference channel.
"""

from isocensus.normalization.engine import (
    channel_medians,
    channel_scale_factors,
    log2_ratios,
    normalize,
    records_to_matrix,
)

__all__ = [
    "channel_medians",
    "channel_scale_factors",
    "log2_ratios",
    "normalize",
    "records_to_matrix",
]
