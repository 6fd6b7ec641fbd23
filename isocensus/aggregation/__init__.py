"""
Protein-level aggregation.

This module provides the sharded aggregator that combines the records of
each protein into a :class:`~isocensus.model.records.ProteinAggregate`.
"""

from isocensus.aggregation.aggregator import Aggregator, aggregate, shard_of

__all__ = [
    "Aggregator",
    "aggregate",
    "shard_of",
]
