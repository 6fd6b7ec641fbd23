"""
Constants used throughout the isocensus package.

This module defines the default column names of tabular reports, the Census
native line markers and the column names used for DataFrame views.
"""

# Tabular report columns
PROTEIN_ID = "protein_id"
PEPTIDE_SEQUENCE = "peptide_sequence"
CHARGE_STATE = "charge_state"
QUALITY_SCORE = "quality_score"
UNIQUE = "unique"

DEFAULT_DELIMITER = "\t"

# DataFrame view columns
CONTRIBUTING_PEPTIDES = "contributing_peptides"
SEQUENCE_COUNT = "sequence_count"
LINE_NUMBER = "line_number"
COUNT_SUFFIX = "_n"
RATIO_PREFIX = "log2_ratio_"

# Census native report markers
CENSUS_HEADER = "H"
CENSUS_PROTEIN = "P"
CENSUS_PEPTIDE = "S"
CENSUS_PROTEIN_HEADER = "PLINE"
CENSUS_PEPTIDE_HEADER = "SLINE"
CENSUS_LOCUS = "LOCUS"
CENSUS_UNIQUE = "UNIQUE"
CENSUS_SEQUENCE = "SEQUENCE"
CENSUS_CHARGE_COLUMNS = ("CS", "CHARGE")
CENSUS_UNIQUE_FLAG = "U"
CENSUS_CHANNEL_PREFIX = "m/z_"
CENSUS_NORM_CHANNEL_PREFIX = "norm_m/z_"
CENSUS_CHANNEL_SUFFIX = "_int"

# Protein table columns filled from Census P line metadata
DESCRIPTION = "description"
CENSUS_SPECTRAL_COUNT = "census_spectral_count"
CENSUS_SEQUENCE_COUNT = "census_sequence_count"
SEQUENCE_COVERAGE = "sequence_coverage"
MOLECULAR_WEIGHT = "molecular_weight"
PROTEIN_METADATA_COLUMNS = (
    DESCRIPTION,
    CENSUS_SPECTRAL_COUNT,
    CENSUS_SEQUENCE_COUNT,
    SEQUENCE_COVERAGE,
    MOLECULAR_WEIGHT,
)

# PLINE column names (spaces read as underscores) for each metadata column
CENSUS_PROTEIN_FIELDS = {
    "DESCRIPTION": DESCRIPTION,
    "SPEC_COUNT": CENSUS_SPECTRAL_COUNT,
    "SPECTRUM_COUNT": CENSUS_SPECTRAL_COUNT,
    "SEQ_COUNT": CENSUS_SEQUENCE_COUNT,
    "SEQUENCE_COUNT": CENSUS_SEQUENCE_COUNT,
    "SEQ_COVERAGE": SEQUENCE_COVERAGE,
    "SEQUENCE_COVERAGE": SEQUENCE_COVERAGE,
    "COVERAGE": SEQUENCE_COVERAGE,
    "MOLWT": MOLECULAR_WEIGHT,
    "MOLECULAR_WEIGHT": MOLECULAR_WEIGHT,
}

# Protein accessions flagged by the "exclude_reverse" rule
REVERSE_PATTERNS = ("Reverse",)

# Truthy/falsy spellings of a uniqueness column
UNIQUE_TRUE = frozenset({"u", "1", "true", "yes", "y", "unique"})
UNIQUE_FALSE = frozenset({"", "0", "false", "no", "n"})

DEFAULT_DIAGNOSTICS_SAMPLE_SIZE = 10
