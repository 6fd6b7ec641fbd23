"""
Isobaric labeling schemes.

This module provides the reporter channel layouts of the common TMT and iTRAQ
multiplexes, used to build a channel schema from explicit configuration and
to recognise which plex a report header describes.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import ClassVar, Iterable, Iterator, Optional

_LABEL_PREFIX = re.compile(r"^(tmt|itraq)[\s_-]*", re.IGNORECASE)


def canonical_label(label: str) -> str:
    """
    Strip whitespace and a ``TMT``/``iTRAQ`` prefix from a channel label.

    ``"TMT127N"``, ``"tmt_127n"`` and ``"127N"`` all become ``"127N"``.
    """
    return _LABEL_PREFIX.sub("", label.strip()).upper()


class IsobaricLabel(Enum):
    """
    An enumeration of isobaric labeling schemes.

    Attributes
    ----------
    TMT6plex : auto
        TMT 6-plex.
    TMT10plex : auto
        TMT 10-plex.
    TMT11plex : auto
        TMT 11-plex.
    TMT16plex : auto
        TMTpro 16-plex.
    ITRAQ4plex : auto
        iTRAQ 4-plex.
    ITRAQ8plex : auto
        iTRAQ 8-plex.
    """

    TMT6plex = auto()
    TMT10plex = auto()
    TMT11plex = auto()
    TMT16plex = auto()

    ITRAQ4plex = auto()
    ITRAQ8plex = auto()

    @classmethod
    def from_str(cls, name: str) -> "IsobaricLabel":
        """
        Convert a string representation to an IsobaricLabel enum member.

        Parameters
        ----------
        name : str
            The name of the isobaric label, case-insensitive.

        Returns
        -------
        IsobaricLabel
            The corresponding enum member.

        Raises
        ------
        KeyError
            If the provided name does not match any isobaric label.
        """
        name_ = name.lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(name)

    @classmethod
    def classify(cls, labels: Iterable[str]) -> Optional["IsobaricLabel"]:
        """
        Find the plex whose channel labels are exactly ``labels``.

        Parameters
        ----------
        labels : Iterable[str]
            Channel labels, with or without a ``TMT``/``iTRAQ`` prefix.

        Returns
        -------
        IsobaricLabel, optional
            The matching scheme, or None when the labels match no known plex.
        """
        wanted = [canonical_label(label) for label in labels]
        for member in cls:
            if list(member.channels()) == wanted:
                return member
        return None

    def channels(self) -> "IsobaricLabelSpec":
        """
        Retrieve the channel specifications for the isobaric label.

        Returns
        -------
        IsobaricLabelSpec
            The channel specifications for the current isobaric label.
        """
        return IsobaricLabelSpec.registry[self.name]


@dataclass
class IsobaricLabelSpec(Mapping[str, int]):
    """
    Reporter channels of one isobaric labeling scheme.

    This class provides dictionary-like access from channel label to its
    0-based position and maintains a registry of all instances.

    Attributes
    ----------
    registry : ClassVar[dict[str, IsobaricLabelSpec]]
        A class-level registry of all isobaric label specifications.
    name : str
        The name of the isobaric label.
    channels : dict[str, int]
        A mapping of channel labels to their 0-based positions.
    """

    registry: ClassVar[dict[str, "IsobaricLabelSpec"]] = {}

    name: str
    channels: dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self.registry[self.name] = self

    @classmethod
    def from_labels(cls, name: str, labels: Iterable[str]) -> "IsobaricLabelSpec":
        return cls(name, {label: i for i, label in enumerate(labels)})

    def __getitem__(self, key: str) -> int:
        return self.channels[key]

    def __iter__(self) -> Iterator[str]:
        yield from self.channels

    def __len__(self) -> int:
        return len(self.channels)


TMT16plex = IsobaricLabelSpec.from_labels(
    "TMT16plex",
    [
        "126", "127N", "127C", "128N", "128C", "129N", "129C", "130N",
        "130C", "131N", "131C", "132N", "132C", "133N", "133C", "134N",
    ],
)

TMT11plex = IsobaricLabelSpec.from_labels(
    "TMT11plex",
    ["126", "127N", "127C", "128N", "128C", "129N", "129C", "130N", "130C", "131N", "131C"],
)

TMT10plex = IsobaricLabelSpec.from_labels(
    "TMT10plex",
    ["126", "127N", "127C", "128N", "128C", "129N", "129C", "130N", "130C", "131"],
)

TMT6plex = IsobaricLabelSpec.from_labels(
    "TMT6plex", ["126", "127", "128", "129", "130", "131"]
)

ITRAQ4plex = IsobaricLabelSpec.from_labels("ITRAQ4plex", ["114", "115", "116", "117"])

ITRAQ8plex = IsobaricLabelSpec.from_labels(
    "ITRAQ8plex", ["113", "114", "115", "116", "117", "118", "119", "121"]
)
