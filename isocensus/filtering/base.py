"""
Filter steps operating on record collections.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Sequence, Tuple

from isocensus.core.diagnostics import Diagnostics
from isocensus.core.logger import get_logger
from isocensus.filtering import engine
from isocensus.filtering.mapping import criteria_to_dict, protein_rules_to_dict
from isocensus.filtering.protein import apply_protein_rules
from isocensus.model.channels import ChannelSchema
from isocensus.model.criteria import Criterion, ProteinRule
from isocensus.model.records import QuantificationRecord

logger = get_logger("isocensus.filtering")

Records = Tuple[QuantificationRecord, ...]


class FilterLevel(Enum):
    """Levels at which filtering can be applied."""

    PEPTIDE = auto()
    PROTEIN = auto()

    @classmethod
    def from_str(cls, name: str) -> "FilterLevel":
        """Convert string to enum value (case-insensitive)."""
        name_ = name.lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(f"Unknown filter level: {name}")


@dataclass
class FilterResult:
    """
    Result of applying a filter.

    Attributes
    ----------
    input_count : int
        Number of records before filtering.
    output_count : int
        Number of records after filtering.
    removed_count : int
        Number of records removed.
    filter_name : str
        Name of the filter that was applied.
    filter_level : FilterLevel
        Level at which filtering was applied.
    details : dict, optional
        Additional details about the filter operation.
    """

    input_count: int
    output_count: int
    removed_count: int
    filter_name: str
    filter_level: FilterLevel
    details: Optional[dict] = field(default_factory=dict)

    @property
    def removal_rate(self) -> float:
        """Calculate the fraction of records removed."""
        if self.input_count == 0:
            return 0.0
        return self.removed_count / self.input_count

    def __repr__(self) -> str:
        return (
            f"FilterResult({self.filter_name}: "
            f"{self.removed_count}/{self.input_count} removed "
            f"({self.removal_rate:.1%}))"
        )


class BaseFilter(ABC):
    """
    Abstract base class for record filters.

    Implementations provide ``name``, ``level`` and ``apply``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the filter name."""

    @property
    @abstractmethod
    def level(self) -> FilterLevel:
        """Return the filter level."""

    @abstractmethod
    def apply(
        self,
        records: Sequence[QuantificationRecord],
        schema: Optional[ChannelSchema] = None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> Tuple[Records, FilterResult]:
        """
        Apply the filter to a record collection.

        Parameters
        ----------
        records : Sequence[QuantificationRecord]
            Input records.
        schema : ChannelSchema, optional
            Channel schema the records follow.
        diagnostics : Diagnostics, optional
            Receives non-fatal problems.

        Returns
        -------
        Tuple[tuple[QuantificationRecord, ...], FilterResult]
            Kept records, in input order, and the filter result.
        """

    def _create_result(
        self,
        input_count: int,
        output_count: int,
        details: Optional[dict] = None,
    ) -> FilterResult:
        """Helper to create a FilterResult."""
        return FilterResult(
            input_count=input_count,
            output_count=output_count,
            removed_count=input_count - output_count,
            filter_name=self.name,
            filter_level=self.level,
            details=details or {},
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class CriteriaFilter(BaseFilter):
    """Keep records satisfying a criterion tree."""

    def __init__(self, criteria: Criterion, name: Optional[str] = None):
        self.criteria = criteria
        self._name = name

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        return type(self.criteria).__name__

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.PEPTIDE

    def apply(self, records, schema=None, diagnostics=None):
        records = tuple(records)
        kept = engine.apply(self.criteria, records, schema=schema, diagnostics=diagnostics)
        return kept, self._create_result(
            len(records), len(kept), {"criteria": criteria_to_dict(self.criteria)}
        )

    def __repr__(self) -> str:
        return f"CriteriaFilter({self.criteria!r})"


class ProteinRuleFilter(BaseFilter):
    """Drop the records of proteins failing spectral or sequence count rules."""

    def __init__(self, rules: Sequence[ProteinRule]):
        self.rules = tuple(rules)

    @property
    def name(self) -> str:
        return "ProteinRules"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.PROTEIN

    def apply(self, records, schema=None, diagnostics=None):
        records = tuple(records)
        kept = apply_protein_rules(self.rules, records)
        proteins_in = len({r.protein_id for r in records})
        proteins_out = len({r.protein_id for r in kept})
        return kept, self._create_result(
            len(records),
            len(kept),
            {
                "rules": protein_rules_to_dict(self.rules),
                "proteins_removed": proteins_in - proteins_out,
            },
        )

    def __repr__(self) -> str:
        return f"ProteinRuleFilter({list(self.rules)!r})"
