"""
Report parsing for the isocensus package.

This module provides:
- Header layout resolution and channel schema establishment
- The per-line record parser and the ordered batch parser
- The native Census report reader
"""

from isocensus.parsing.layout import (
    ReportLayout,
    ResolvedLayout,
    read_header,
    resolve_header,
    split_line,
)
from isocensus.parsing.record_parser import parse_line, parse_lines
from isocensus.parsing.census import (
    CensusProtein,
    CensusTable,
    census_to_tabular,
    is_census_report,
)

__all__ = [
    # Layout
    "ReportLayout",
    "ResolvedLayout",
    "read_header",
    "resolve_header",
    "split_line",
    # Records
    "parse_line",
    "parse_lines",
    # Census
    "CensusProtein",
    "CensusTable",
    "census_to_tabular",
    "is_census_report",
]
