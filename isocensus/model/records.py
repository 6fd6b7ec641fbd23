"""
Peptide-level records and protein-level aggregates.

Both types are frozen: every transform returns a new value so a parsed
collection can be re-filtered or re-normalized without re-parsing.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

OptionalValues = Tuple[Optional[float], ...]


@dataclass(frozen=True)
class QuantificationRecord:
    """
    One peptide-level (or scan-level) reporter-ion measurement.

    Attributes
    ----------
    protein_id : str
        Identifier of the parent protein/locus.
    peptide_sequence : str
        Peptide sequence, possibly with flanking residues (``K.PEPTIDE.R``)
        and modification markers.
    charge_state : int
        Precursor charge, always positive.
    channel_intensities : tuple[Optional[float], ...]
        One non-negative intensity per channel, None when missing.
    quality_score : float, optional
        Confidence metric carried over from the report.
    unique : bool, optional
        Whether the peptide maps to a single protein; None when the report
        does not say.
    ratios : tuple[Optional[float], ...], optional
        log2 ratios against the reference channel, set by normalization.
    line_number : int, optional
        Source line of the record in the report.
    """

    protein_id: str
    peptide_sequence: str
    charge_state: int
    channel_intensities: OptionalValues
    quality_score: Optional[float] = None
    unique: Optional[bool] = None
    ratios: Optional[OptionalValues] = None
    line_number: Optional[int] = None

    def missing_count(self) -> int:
        return sum(1 for v in self.channel_intensities if v is None)

    def present_values(self) -> Tuple[float, ...]:
        return tuple(v for v in self.channel_intensities if v is not None)

    def total_intensity(self) -> float:
        """Sum of the present channel intensities."""
        return float(sum(self.present_values()))

    def fractions(self) -> OptionalValues:
        """
        Each present intensity divided by the record's total intensity.

        Returns all None when the total is zero.
        """
        total = self.total_intensity()
        if total <= 0:
            return tuple(None for _ in self.channel_intensities)
        return tuple(None if v is None else v / total for v in self.channel_intensities)

    def is_tryptic(self) -> bool:
        """
        Whether both peptide termini are tryptic.

        Uses the ``X.SEQUENCE.Y`` notation: the residue before the first dot
        must be K, R or ``-`` (protein N-terminus), and the sequence must end
        in K or R unless the peptide is at the protein C-terminus (``.-``).
        """
        sequence = self.peptide_sequence
        parts = sequence.split(".")
        if len(parts) < 3:
            return False
        c_terminal = sequence.endswith("-")
        front = sequence[:1] in ("K", "R", "-")
        core = parts[1]
        end = bool(core) and (core[-1] in ("K", "R") or c_terminal)
        return front and end

    def with_intensities(self, intensities: Sequence[Optional[float]]) -> "QuantificationRecord":
        return replace(self, channel_intensities=tuple(intensities))

    def with_ratios(self, ratios: Optional[Sequence[Optional[float]]]) -> "QuantificationRecord":
        return replace(self, ratios=None if ratios is None else tuple(ratios))


@dataclass(frozen=True)
class ProteinAggregate:
    """
    Protein-level quantification built by the aggregator.

    Attributes
    ----------
    protein_id : str
        Protein identifier shared by all contributing records.
    per_channel_values : tuple[Optional[float], ...]
        Combined intensity per channel, None when too few records contributed.
    contributing_peptide_count : int
        Number of records grouped under this protein.
    per_channel_contributing_count : tuple[int, ...]
        Number of present values that fed each channel.
    per_channel_ratios : tuple[Optional[float], ...], optional
        Combined log2 ratio per channel when the records carried ratios.
    sequence_count : int
        Number of distinct peptide sequences among the contributing records.
    """

    protein_id: str
    per_channel_values: OptionalValues
    contributing_peptide_count: int
    per_channel_contributing_count: Tuple[int, ...]
    per_channel_ratios: Optional[OptionalValues] = None
    sequence_count: int = 0

    def relative_abundance(self) -> OptionalValues:
        """
        Each channel value divided by the sum of the present channel values.

        Returns all None when the sum is zero.
        """
        present = [v for v in self.per_channel_values if v is not None]
        total = sum(present)
        if not present or total <= 0:
            return tuple(None for _ in self.per_channel_values)
        return tuple(None if v is None else v / total for v in self.per_channel_values)
