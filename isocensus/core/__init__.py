"""
Core modules for the isocensus package.

This module provides fundamental utilities including constants, logging,
exceptions, the diagnostics report and the parallel map helper.
"""

from isocensus.core.constants import (
    PROTEIN_ID,
    PEPTIDE_SEQUENCE,
    CHARGE_STATE,
    QUALITY_SCORE,
    UNIQUE,
    DEFAULT_DELIMITER,
)
from isocensus.core.exceptions import (
    CensusError,
    SchemaError,
    CensusFormatError,
    FilterSyntaxError,
    ConfigError,
    ParseError,
    ParseErrorKind,
    ParseFailure,
)
from isocensus.core.diagnostics import Diagnostics
from isocensus.core.logger import get_logger, configure_logging, log_execution_time
from isocensus.core.parallel import parallel_map

__all__ = [
    # Constants
    "PROTEIN_ID",
    "PEPTIDE_SEQUENCE",
    "CHARGE_STATE",
    "QUALITY_SCORE",
    "UNIQUE",
    "DEFAULT_DELIMITER",
    # Errors
    "CensusError",
    "SchemaError",
    "CensusFormatError",
    "FilterSyntaxError",
    "ConfigError",
    "ParseError",
    "ParseErrorKind",
    "ParseFailure",
    # Diagnostics
    "Diagnostics",
    # Logger
    "get_logger",
    "configure_logging",
    "log_execution_time",
    # Parallel
    "parallel_map",
]
