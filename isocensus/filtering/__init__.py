"""
Record filtering for the isocensus package.

This module provides:
- The criterion evaluator and order-preserving ``apply``
- Protein-level spectral and sequence count rules
- The text rule language and the YAML/JSON criteria mapping
- Filter steps and the filter pipeline
"""

from isocensus.filtering.engine import (
    apply,
    check_channels,
    coefficient_of_variation,
    evaluate,
    referenced_channels,
)
from isocensus.filtering.protein import apply_protein_rules, protein_counts
from isocensus.filtering.expression import FilterRules, load_filter_rules, parse_filter_rules
from isocensus.filtering.mapping import (
    criteria_from_dict,
    criteria_to_dict,
    protein_rules_from_dict,
    protein_rules_to_dict,
)
from isocensus.filtering.base import (
    BaseFilter,
    CriteriaFilter,
    FilterLevel,
    FilterResult,
    ProteinRuleFilter,
)
from isocensus.filtering.pipeline import FilterPipeline

__all__ = [
    # Evaluation
    "apply",
    "check_channels",
    "coefficient_of_variation",
    "evaluate",
    "referenced_channels",
    # Protein rules
    "apply_protein_rules",
    "protein_counts",
    # Rule text
    "FilterRules",
    "load_filter_rules",
    "parse_filter_rules",
    # Mapping
    "criteria_from_dict",
    "criteria_to_dict",
    "protein_rules_from_dict",
    "protein_rules_to_dict",
    # Steps
    "BaseFilter",
    "CriteriaFilter",
    "FilterLevel",
    "FilterResult",
    "ProteinRuleFilter",
    "FilterPipeline",
]
