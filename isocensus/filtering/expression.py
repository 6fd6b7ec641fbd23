"""
Text rule language for peptide and protein filters.

Rules are grouped in ``protein:`` and ``peptide:`` blocks, one command per
line. Channels are numbered from 1, as they are in Census reports::

    protein:
        spectral_counts = 10
        sequence_counts = 2
        exclude_reverse
    peptide:
        channel_cv = 1, 2, 6, 7 0.05
        channel_intensity = 1 1000
        sequence_exclude = C
        tryptic
        unique

Peptide rules are combined with a logical AND. Lines starting with ``#``
are comments.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from isocensus.core.constants import REVERSE_PATTERNS
from isocensus.core.exceptions import FilterSyntaxError
from isocensus.core.logger import get_logger
from isocensus.model.criteria import (
    And,
    ChannelCV,
    ChannelIntensityThreshold,
    ChargeStateIn,
    Criterion,
    MinSequenceCount,
    MinSpectralCount,
    MissingChannelBound,
    ProteinExclude,
    ProteinRule,
    QualityThreshold,
    SequenceExclude,
    SequenceMatch,
    TotalIntensityThreshold,
    Tryptic,
    Unique,
)

logger = get_logger("isocensus.filtering.expression")

PROTEIN_SECTION = "protein"
PEPTIDE_SECTION = "peptide"


@dataclass(frozen=True)
class FilterRules:
    """
    Parsed filter rules.

    Attributes
    ----------
    peptide_criteria : tuple[Criterion, ...]
        Record-level criteria, all of which must pass.
    protein_rules : tuple[ProteinRule, ...]
        Protein-level rules checked after record filtering.
    """

    peptide_criteria: Tuple[Criterion, ...] = ()
    protein_rules: Tuple[ProteinRule, ...] = ()

    @property
    def criteria(self) -> Optional[Criterion]:
        """The peptide criteria as one predicate, None when there are none."""
        if not self.peptide_criteria:
            return None
        if len(self.peptide_criteria) == 1:
            return self.peptide_criteria[0]
        return And(self.peptide_criteria)

    def __bool__(self) -> bool:
        return bool(self.peptide_criteria or self.protein_rules)


class _Line:
    """One command line of a rule text."""

    def __init__(self, number: int, command: str, argument: Optional[str]):
        self.number = number
        self.command = command
        self.argument = argument

    def error(self, message: str) -> FilterSyntaxError:
        return FilterSyntaxError(f"line {self.number}: {message}")

    def require_argument(self) -> str:
        if self.argument is None:
            raise self.error(f"'{self.command}' expects '='")
        if not self.argument:
            raise self.error(f"'{self.command}' expects a value after '='")
        return self.argument

    def forbid_argument(self) -> None:
        if self.argument is not None:
            raise self.error(f"'{self.command}' takes no value")

    def parse_number(self, text: str, kind=float):
        try:
            return kind(text)
        except ValueError:
            raise self.error(f"'{text}' is not a valid {kind.__name__} for '{self.command}'") from None

    def channel(self, text: str) -> int:
        channel = self.parse_number(text, int)
        if channel < 1:
            raise self.error(f"channel numbers start at 1, got {channel}")
        return channel - 1

    def list_items(self, text: str) -> List[str]:
        items = [item.strip() for item in text.split(",")]
        if not all(items):
            raise self.error(f"malformed list '{text}' for '{self.command}'")
        return items


def _split_command(number: int, text: str) -> _Line:
    if "=" in text:
        command, argument = text.split("=", 1)
        return _Line(number, command.strip(), argument.strip())
    parts = text.split(None, 1)
    if len(parts) > 1:
        raise FilterSyntaxError(f"line {number}: '{parts[0]}' expects '=' before '{parts[1]}'")
    return _Line(number, text.strip(), None)


def _protein_rule(line: _Line) -> Union[ProteinRule, Criterion]:
    if line.command == "spectral_counts":
        return MinSpectralCount(line.parse_number(line.require_argument(), int))
    if line.command == "sequence_counts":
        return MinSequenceCount(line.parse_number(line.require_argument(), int))
    if line.command == "exclude_reverse":
        line.forbid_argument()
        return ProteinExclude(REVERSE_PATTERNS)
    raise line.error(f"unknown protein rule '{line.command}'")


def _peptide_criterion(line: _Line) -> Criterion:
    command = line.command
    if command == "tryptic":
        line.forbid_argument()
        return Tryptic()
    if command == "unique":
        line.forbid_argument()
        return Unique()

    argument = line.require_argument()
    if command == "total_intensity":
        return TotalIntensityThreshold(line.parse_number(argument))
    if command == "channel_intensity":
        parts = argument.split()
        if len(parts) != 2:
            raise line.error("'channel_intensity' expects a channel and a cutoff")
        return ChannelIntensityThreshold(line.channel(parts[0]), line.parse_number(parts[1]))
    if command == "channel_cv":
        parts = argument.rsplit(None, 1)
        if len(parts) != 2:
            raise line.error("'channel_cv' expects a channel list and a cutoff")
        channels_text, cutoff = parts
        channels = tuple(line.channel(c) for c in line.list_items(channels_text))
        return ChannelCV(channels, line.parse_number(cutoff))
    if command == "sequence_match":
        return SequenceMatch(argument)
    if command == "sequence_exclude":
        return SequenceExclude(argument)
    if command == "min_quality":
        return QualityThreshold(line.parse_number(argument), ">=")
    if command == "max_quality":
        return QualityThreshold(line.parse_number(argument), "<=")
    if command == "max_missing":
        return MissingChannelBound(line.parse_number(argument, int))
    if command == "charge":
        return ChargeStateIn(tuple(line.parse_number(c, int) for c in line.list_items(argument)))
    raise line.error(f"unknown peptide rule '{command}'")


def parse_filter_rules(text: str) -> FilterRules:
    """
    Parse a rule text.

    Parameters
    ----------
    text : str
        Rule text with ``protein:`` and ``peptide:`` blocks.

    Returns
    -------
    FilterRules
        The parsed rules.

    Raises
    ------
    FilterSyntaxError
        On an unknown command, a missing ``=``, a malformed number or a
        command outside of any block.
    """
    section = None
    peptide: List[Criterion] = []
    protein: List[ProteinRule] = []

    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.split("#", 1)[0].strip()
        if not stripped:
            continue
        heading = stripped.rstrip(":").strip().lower()
        if heading in (PROTEIN_SECTION, PEPTIDE_SECTION):
            section = heading
            continue
        if section is None:
            raise FilterSyntaxError(
                f"line {number}: rule '{stripped}' outside of a 'protein:' or 'peptide:' block"
            )

        line = _split_command(number, stripped)
        try:
            if section == PROTEIN_SECTION:
                rule = _protein_rule(line)
                if isinstance(rule, ProteinExclude):
                    peptide.append(rule)
                else:
                    protein.append(rule)
            else:
                peptide.append(_peptide_criterion(line))
        except ValueError as e:
            raise line.error(str(e)) from None

    rules = FilterRules(peptide_criteria=tuple(peptide), protein_rules=tuple(protein))
    logger.debug(
        "Parsed %d peptide and %d protein rule(s)", len(rules.peptide_criteria), len(rules.protein_rules)
    )
    return rules


def load_filter_rules(path: Union[str, Path]) -> FilterRules:
    """Read and parse a rule file."""
    return parse_filter_rules(Path(path).read_text())
