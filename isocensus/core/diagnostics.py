"""
Diagnostics report returned alongside pipeline output.

Record-level problems never abort a run. They are accumulated here so the
caller can see how much data was lost and why.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from isocensus.core.constants import DEFAULT_DIAGNOSTICS_SAMPLE_SIZE
from isocensus.core.exceptions import ParseFailure


@dataclass
class Diagnostics:
    """
    Accumulated non-fatal problems of one pipeline run.

    Attributes
    ----------
    sample_size : int
        Maximum number of failures kept in ``samples``.
    skipped_lines : int
        Number of data lines dropped by the parser.
    blank_lines : int
        Number of empty lines ignored by the parser.
    error_counts : Counter
        Dropped lines per ``ParseErrorKind`` name.
    samples : list[ParseFailure]
        The first ``sample_size`` failures.
    degenerate_filters : list[str]
        Criteria that reference channels missing from the schema.
    unscaled_channels : list[str]
        Channels left unscaled by median normalization.
    zero_total_records : int
        Records whose total intensity was zero during total-intensity scaling.
    aggregation_underflow : int
        Protein/channel cells left empty for lack of contributors.
    """

    sample_size: int = DEFAULT_DIAGNOSTICS_SAMPLE_SIZE
    skipped_lines: int = 0
    blank_lines: int = 0
    error_counts: Counter = field(default_factory=Counter)
    samples: List[ParseFailure] = field(default_factory=list)
    degenerate_filters: List[str] = field(default_factory=list)
    unscaled_channels: List[str] = field(default_factory=list)
    zero_total_records: int = 0
    aggregation_underflow: int = 0

    def record_failure(self, failure: ParseFailure) -> None:
        """Account for one dropped data line."""
        self.skipped_lines += 1
        self.error_counts[failure.kind.name] += 1
        if len(self.samples) < self.sample_size:
            self.samples.append(failure)

    def record_degenerate_filter(self, message: str) -> None:
        if message not in self.degenerate_filters:
            self.degenerate_filters.append(message)

    def record_unscaled_channel(self, label: str) -> None:
        if label not in self.unscaled_channels:
            self.unscaled_channels.append(label)

    def merge(self, other: "Diagnostics") -> "Diagnostics":
        """
        Fold another report into this one.

        Parameters
        ----------
        other : Diagnostics
            Report to merge.

        Returns
        -------
        Diagnostics
            Self for method chaining.
        """
        self.skipped_lines += other.skipped_lines
        self.blank_lines += other.blank_lines
        self.error_counts.update(other.error_counts)
        room = self.sample_size - len(self.samples)
        if room > 0:
            self.samples.extend(other.samples[:room])
        for message in other.degenerate_filters:
            self.record_degenerate_filter(message)
        for label in other.unscaled_channels:
            self.record_unscaled_channel(label)
        self.zero_total_records += other.zero_total_records
        self.aggregation_underflow += other.aggregation_underflow
        return self

    @property
    def has_issues(self) -> bool:
        return bool(
            self.skipped_lines
            or self.degenerate_filters
            or self.unscaled_channels
            or self.zero_total_records
            or self.aggregation_underflow
        )

    def summary(self) -> dict:
        """
        Summarize the report as plain data.

        Returns
        -------
        dict
            Counts and sampled failures.
        """
        return {
            "skipped_lines": self.skipped_lines,
            "blank_lines": self.blank_lines,
            "errors": dict(self.error_counts),
            "samples": [
                {
                    "line_number": s.line_number,
                    "kind": s.kind.name,
                    "message": s.message,
                    "line": s.line,
                }
                for s in self.samples
            ],
            "degenerate_filters": list(self.degenerate_filters),
            "unscaled_channels": list(self.unscaled_channels),
            "zero_total_records": self.zero_total_records,
            "aggregation_underflow": self.aggregation_underflow,
        }

    def __repr__(self) -> str:
        return (
            f"Diagnostics(skipped_lines={self.skipped_lines}, "
            f"errors={dict(self.error_counts)}, "
            f"aggregation_underflow={self.aggregation_underflow})"
        )


def ensure_diagnostics(diagnostics: Optional[Diagnostics]) -> Diagnostics:
    """Return ``diagnostics`` or a fresh report when it is None."""
    return diagnostics if diagnostics is not None else Diagnostics()
