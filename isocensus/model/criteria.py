"""
Filter criteria model.

Criteria form a small, closed predicate language: primitive conditions on a
record combined with ``And``/``Or``/``Not``. Every variant is a frozen
dataclass; evaluation lives in :mod:`isocensus.filtering.engine`.

Criteria can be combined with the ``&``, ``|`` and ``~`` operators::

    criteria = QualityThreshold(0.9) & ~SequenceMatch("C") & ChargeStateIn((2, 3))
"""

from dataclasses import dataclass
from typing import Tuple, Union

_COMPARISONS = (">=", "<=")


class Criterion:
    """Base class of all filter criteria."""

    def __and__(self, other: "Criterion") -> "And":
        return And((self, other))

    def __or__(self, other: "Criterion") -> "Or":
        return Or((self, other))

    def __invert__(self) -> "Not":
        return Not(self)


def _check_comparison(comparison: str) -> None:
    if comparison not in _COMPARISONS:
        raise ValueError(f"comparison must be one of {_COMPARISONS}, got {comparison!r}")


@dataclass(frozen=True)
class QualityThreshold(Criterion):
    """Pass records whose quality score compares to ``threshold``; missing scores fail."""

    threshold: float
    comparison: str = ">="

    def __post_init__(self):
        _check_comparison(self.comparison)


@dataclass(frozen=True)
class MissingChannelBound(Criterion):
    """Pass records with at most ``max_missing`` missing channels."""

    max_missing: int

    def __post_init__(self):
        if self.max_missing < 0:
            raise ValueError("max_missing must be non-negative")


@dataclass(frozen=True)
class ChannelIntensityThreshold(Criterion):
    """Pass records whose intensity on ``channel`` (0-based) compares to ``threshold``."""

    channel: int
    threshold: float
    comparison: str = ">="

    def __post_init__(self):
        _check_comparison(self.comparison)


@dataclass(frozen=True)
class ChargeStateIn(Criterion):
    """Pass records whose charge state is one of ``charges``."""

    charges: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, "charges", tuple(sorted(set(self.charges))))


@dataclass(frozen=True)
class TotalIntensityThreshold(Criterion):
    """Pass records whose summed intensity is at least ``minimum``."""

    minimum: float


@dataclass(frozen=True)
class ChannelCV(Criterion):
    """
    Pass records whose coefficient of variation across ``channels`` is below ``max_cv``.

    The CV is the population standard deviation over the mean of the present
    values on the listed (0-based) channels.
    """

    channels: Tuple[int, ...]
    max_cv: float

    def __post_init__(self):
        object.__setattr__(self, "channels", tuple(self.channels))


@dataclass(frozen=True)
class SequenceMatch(Criterion):
    """Pass records whose peptide sequence contains ``pattern``."""

    pattern: str


@dataclass(frozen=True)
class SequenceExclude(Criterion):
    """Pass records whose peptide sequence does not contain ``pattern``."""

    pattern: str


@dataclass(frozen=True)
class Tryptic(Criterion):
    """Pass records with two tryptic termini."""


@dataclass(frozen=True)
class Unique(Criterion):
    """Pass records flagged as unique peptides."""


@dataclass(frozen=True)
class ProteinExclude(Criterion):
    """Pass records whose protein id contains none of ``patterns``."""

    patterns: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "patterns", tuple(self.patterns))


@dataclass(frozen=True)
class And(Criterion):
    """All operands must pass. An empty ``And`` passes everything."""

    operands: Tuple[Criterion, ...]

    def __post_init__(self):
        object.__setattr__(self, "operands", tuple(self.operands))


@dataclass(frozen=True)
class Or(Criterion):
    """At least one operand must pass. An empty ``Or`` passes nothing."""

    operands: Tuple[Criterion, ...]

    def __post_init__(self):
        object.__setattr__(self, "operands", tuple(self.operands))


@dataclass(frozen=True)
class Not(Criterion):
    """Negation of ``operand``."""

    operand: Criterion


FilterCriteria = Union[
    QualityThreshold,
    MissingChannelBound,
    ChannelIntensityThreshold,
    ChargeStateIn,
    TotalIntensityThreshold,
    ChannelCV,
    SequenceMatch,
    SequenceExclude,
    Tryptic,
    Unique,
    ProteinExclude,
    And,
    Or,
    Not,
]

PRIMITIVE_CRITERIA = (
    QualityThreshold,
    MissingChannelBound,
    ChannelIntensityThreshold,
    ChargeStateIn,
    TotalIntensityThreshold,
    ChannelCV,
    SequenceMatch,
    SequenceExclude,
    Tryptic,
    Unique,
    ProteinExclude,
)


@dataclass(frozen=True)
class MinSpectralCount:
    """Keep proteins with at least ``minimum`` passing records."""

    minimum: int


@dataclass(frozen=True)
class MinSequenceCount:
    """Keep proteins with at least ``minimum`` distinct passing peptide sequences."""

    minimum: int


ProteinRule = Union[MinSpectralCount, MinSequenceCount]
