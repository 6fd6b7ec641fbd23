"""
Channel schema of a multiplexed dataset.

A schema is established once per dataset, from the report header or from an
explicit plex, and is immutable afterwards. It is passed explicitly to every
parsing, filtering, normalization and aggregation call.
"""

from dataclasses import dataclass, replace
from typing import Iterator, Optional, Sequence, Tuple, Union

from isocensus.core.exceptions import SchemaError
from isocensus.model.labeling import IsobaricLabel, canonical_label


@dataclass(frozen=True)
class Channel:
    """
    One reporter channel.

    Attributes
    ----------
    index : int
        0-based position of the channel in every record.
    label : str
        Channel label, e.g. ``"126"`` or ``"127N"``.
    is_reference : bool
        Whether this channel is the denominator of ratio computation.
    """

    index: int
    label: str
    is_reference: bool = False


@dataclass(frozen=True)
class ChannelSchema:
    """Ordered, immutable set of channels."""

    channels: Tuple[Channel, ...]

    def __post_init__(self):
        if not self.channels:
            raise SchemaError("A channel schema needs at least one channel")
        seen_labels = set()
        for position, channel in enumerate(self.channels):
            if channel.index != position:
                raise SchemaError(
                    f"Channel '{channel.label}' has index {channel.index}, expected {position}"
                )
            if channel.label in seen_labels:
                raise SchemaError(f"Duplicate channel label '{channel.label}'")
            seen_labels.add(channel.label)
        if sum(1 for c in self.channels if c.is_reference) > 1:
            raise SchemaError("At most one channel can be the reference")

    @classmethod
    def establish(
        cls, header_fields: Sequence[str], reference: Optional[str] = None
    ) -> "ChannelSchema":
        """
        Build a schema from the channel-label columns of a header line.

        Parameters
        ----------
        header_fields : Sequence[str]
            Channel labels in column order.
        reference : str, optional
            Label of the reference channel.

        Returns
        -------
        ChannelSchema
            The established schema.

        Raises
        ------
        SchemaError
            If there are no labels, a label is blank or duplicated, or the
            reference label is absent.
        """
        labels = [field.strip() for field in header_fields]
        if not labels:
            raise SchemaError("Header contains no channel columns")
        for position, label in enumerate(labels):
            if not label:
                raise SchemaError(f"Channel column {position + 1} has a blank label")
        if reference is not None and reference.strip() not in labels:
            raise SchemaError(f"Reference channel '{reference}' is not in {labels}")

        ref = reference.strip() if reference is not None else None
        return cls(
            tuple(
                Channel(index=i, label=label, is_reference=(label == ref))
                for i, label in enumerate(labels)
            )
        )

    @classmethod
    def from_plex(
        cls, plex: Union[IsobaricLabel, str], reference: Optional[str] = None
    ) -> "ChannelSchema":
        """
        Build a schema from a known isobaric labeling scheme.

        Parameters
        ----------
        plex : IsobaricLabel or str
            The scheme, e.g. ``IsobaricLabel.TMT10plex`` or ``"tmt10plex"``.
        reference : str, optional
            Label of the reference channel.
        """
        if isinstance(plex, str):
            try:
                plex = IsobaricLabel.from_str(plex)
            except KeyError:
                raise SchemaError(f"Unknown isobaric labeling scheme '{plex}'") from None
        labels = list(plex.channels())
        if reference is not None:
            reference = canonical_label(reference)
        return cls.establish(labels, reference=reference)

    def channel_count(self) -> int:
        return len(self.channels)

    def index_of(self, label: str) -> Optional[int]:
        """
        Find the position of a channel by label.

        Exact labels are tried first, then labels compared without a
        ``TMT``/``iTRAQ`` prefix.
        """
        label = label.strip()
        for channel in self.channels:
            if channel.label == label:
                return channel.index
        wanted = canonical_label(label)
        for channel in self.channels:
            if canonical_label(channel.label) == wanted:
                return channel.index
        return None

    def reference_index(self) -> Optional[int]:
        for channel in self.channels:
            if channel.is_reference:
                return channel.index
        return None

    def with_reference(self, label: Optional[str]) -> "ChannelSchema":
        """
        Return a copy of the schema with ``label`` as the reference channel.

        Raises
        ------
        SchemaError
            If the label is not part of the schema.
        """
        index = None
        if label is not None:
            index = self.index_of(label)
            if index is None:
                raise SchemaError(f"Reference channel '{label}' is not in {list(self.labels)}")
        return ChannelSchema(
            tuple(replace(c, is_reference=(c.index == index)) for c in self.channels)
        )

    def label_scheme(self) -> Optional[IsobaricLabel]:
        return IsobaricLabel.classify(self.labels)

    def has_index(self, index: int) -> bool:
        return 0 <= index < len(self.channels)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(c.label for c in self.channels)

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.channels)

    def __len__(self) -> int:
        return len(self.channels)

    def __getitem__(self, index: int) -> Channel:
        return self.channels[index]

    def __repr__(self) -> str:
        ref = self.reference_index()
        ref_label = self.channels[ref].label if ref is not None else None
        return f"ChannelSchema(labels={list(self.labels)}, reference={ref_label!r})"

