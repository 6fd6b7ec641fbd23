"""
Exception types raised by the isocensus package.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class CensusError(Exception):
    """Base class for all isocensus errors."""


class SchemaError(CensusError):
    """The channel schema or report header is unusable. Fatal for a dataset."""


class CensusFormatError(SchemaError):
    """A Census native report is structurally malformed."""


class FilterSyntaxError(CensusError):
    """A filter rule text or criteria mapping could not be understood."""


class ConfigError(CensusError):
    """A pipeline configuration is invalid."""


class ParseErrorKind(Enum):
    """Reasons a single data line is rejected."""

    COLUMN_COUNT_MISMATCH = auto()
    INVALID_INTENSITY = auto()
    MISSING_REQUIRED_FIELD = auto()

    @classmethod
    def from_str(cls, name: str) -> "ParseErrorKind":
        name_ = name.lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(name)


@dataclass(frozen=True)
class ParseFailure:
    """
    Description of a rejected data line.

    Plain data so it can cross process boundaries when parsing in parallel.

    Attributes
    ----------
    kind : ParseErrorKind
        Why the line was rejected.
    message : str
        Human readable detail.
    line_number : int, optional
        1-based line number in the source report.
    line : str, optional
        The offending raw line.
    """

    kind: ParseErrorKind
    message: str
    line_number: Optional[int] = None
    line: Optional[str] = None


class ParseError(CensusError):
    """A single data line could not be turned into a record."""

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
    ):
        super().__init__(message)
        self.failure = ParseFailure(kind, message, line_number, line)

    @property
    def kind(self) -> ParseErrorKind:
        return self.failure.kind

    @property
    def line_number(self) -> Optional[int]:
        return self.failure.line_number

    def __str__(self) -> str:
        if self.failure.line_number is None:
            return f"{self.kind.name}: {self.failure.message}"
        return f"line {self.failure.line_number}: {self.kind.name}: {self.failure.message}"
