"""
Filter pipeline for running several record filters in sequence.
"""

from typing import List, Optional, Sequence, Tuple

from isocensus.core.diagnostics import Diagnostics
from isocensus.core.logger import get_logger
from isocensus.filtering.base import (
    BaseFilter,
    CriteriaFilter,
    FilterResult,
    ProteinRuleFilter,
    Records,
)
from isocensus.filtering.expression import FilterRules
from isocensus.model.channels import ChannelSchema
from isocensus.model.criteria import Criterion, ProteinRule
from isocensus.model.records import QuantificationRecord

logger = get_logger("isocensus.filtering.pipeline")


class FilterPipeline:
    """
    Pipeline applying record filters in order.

    Peptide criteria are usually added first and protein rules last, so
    protein counts reflect the records that survived peptide filtering.
    """

    def __init__(self, name: str = "default"):
        """
        Initialize the filter pipeline.

        Parameters
        ----------
        name : str, optional
            Name for the pipeline (for logging).
        """
        self.name = name
        self.filters: List[BaseFilter] = []

    @classmethod
    def from_rules(
        cls,
        criteria: Optional[Criterion] = None,
        protein_rules: Sequence[ProteinRule] = (),
        name: str = "default",
    ) -> "FilterPipeline":
        """
        Build a pipeline from a criterion and protein rules.

        Parameters
        ----------
        criteria : Criterion, optional
            Record-level criterion.
        protein_rules : Sequence[ProteinRule]
            Protein-level rules applied after ``criteria``.
        name : str
            Pipeline name.

        Returns
        -------
        FilterPipeline
            The pipeline.
        """
        pipeline = cls(name=name)
        if criteria is not None:
            pipeline.add_filter(CriteriaFilter(criteria))
        if protein_rules:
            pipeline.add_filter(ProteinRuleFilter(protein_rules))
        return pipeline

    @classmethod
    def from_filter_rules(cls, rules: FilterRules, name: str = "default") -> "FilterPipeline":
        return cls.from_rules(rules.criteria, rules.protein_rules, name=name)

    def add_filter(self, filter_obj: BaseFilter) -> "FilterPipeline":
        """
        Add a filter to the pipeline.

        Parameters
        ----------
        filter_obj : BaseFilter
            Filter to add.

        Returns
        -------
        FilterPipeline
            Self for method chaining.
        """
        self.filters.append(filter_obj)
        return self

    def add_filters(self, filters: List[BaseFilter]) -> "FilterPipeline":
        """
        Add multiple filters to the pipeline.

        Returns
        -------
        FilterPipeline
            Self for method chaining.
        """
        self.filters.extend(filters)
        return self

    def apply(
        self,
        records: Sequence[QuantificationRecord],
        schema: Optional[ChannelSchema] = None,
        diagnostics: Optional[Diagnostics] = None,
        stop_on_empty: bool = True,
    ) -> Tuple[Records, List[FilterResult]]:
        """
        Apply all filters in the pipeline.

        Parameters
        ----------
        records : Sequence[QuantificationRecord]
            Input records.
        schema : ChannelSchema, optional
            Channel schema, used to report degenerate criteria.
        diagnostics : Diagnostics, optional
            Receives non-fatal problems.
        stop_on_empty : bool, optional
            Whether to stop once no records are left.

        Returns
        -------
        Tuple[tuple[QuantificationRecord, ...], List[FilterResult]]
            Kept records in input order and the result of each filter.
        """
        results = []
        current = tuple(records)

        logger.debug("Starting filter pipeline '%s' with %d filters", self.name, len(self.filters))

        for filter_obj in self.filters:
            if stop_on_empty and not current:
                logger.warning(
                    "Pipeline '%s': no records left, stopping at filter '%s'",
                    self.name,
                    filter_obj.name,
                )
                break

            current, result = filter_obj.apply(current, schema=schema, diagnostics=diagnostics)
            results.append(result)
            logger.debug(
                "Pipeline '%s': %s removed %d/%d (%.1f%%)",
                self.name,
                result.filter_name,
                result.removed_count,
                result.input_count,
                result.removal_rate * 100,
            )

        return current, results

    def summary(self, results: List[FilterResult]) -> dict:
        """
        Generate a summary of filter results.

        Parameters
        ----------
        results : List[FilterResult]
            Results from apply().

        Returns
        -------
        dict
            Summary statistics.
        """
        if not results:
            return {"total_input": 0, "total_output": 0, "total_removed": 0}

        total_input = results[0].input_count
        total_output = results[-1].output_count
        total_removed = total_input - total_output

        return {
            "pipeline_name": self.name,
            "total_input": total_input,
            "total_output": total_output,
            "total_removed": total_removed,
            "total_removal_rate": total_removed / total_input if total_input > 0 else 0.0,
            "filters_applied": len(results),
            "filter_details": [
                {
                    "name": r.filter_name,
                    "level": r.filter_level.name.lower(),
                    "removed": r.removed_count,
                    "removal_rate": r.removal_rate,
                }
                for r in results
            ],
        }

    def __len__(self) -> int:
        return len(self.filters)

    def __repr__(self) -> str:
        filter_names = [f.name for f in self.filters]
        return f"FilterPipeline(name='{self.name}', filters={filter_names})"
