"""
Protein-level rules evaluated on the records that survived peptide filtering.
"""

from collections import defaultdict
from typing import Dict, Iterable, Sequence, Set, Tuple

from isocensus.core.logger import get_logger
from isocensus.model.criteria import MinSequenceCount, MinSpectralCount, ProteinRule
from isocensus.model.records import QuantificationRecord

logger = get_logger("isocensus.filtering.protein")


def protein_counts(records: Iterable[QuantificationRecord]) -> Dict[str, Tuple[int, int]]:
    """
    Count records and distinct peptide sequences per protein.

    Returns
    -------
    dict
        ``protein_id -> (spectral_count, sequence_count)``.
    """
    spectra: Dict[str, int] = defaultdict(int)
    sequences: Dict[str, Set[str]] = defaultdict(set)
    for record in records:
        spectra[record.protein_id] += 1
        sequences[record.protein_id].add(record.peptide_sequence)
    return {pid: (spectra[pid], len(sequences[pid])) for pid in spectra}


def passes_protein_rule(rule: ProteinRule, spectral_count: int, sequence_count: int) -> bool:
    if isinstance(rule, MinSpectralCount):
        return spectral_count >= rule.minimum
    if isinstance(rule, MinSequenceCount):
        return sequence_count >= rule.minimum
    raise TypeError(f"Unknown protein rule: {rule!r}")


def apply_protein_rules(
    rules: Sequence[ProteinRule], records: Iterable[QuantificationRecord]
) -> Tuple[QuantificationRecord, ...]:
    """
    Drop every record of proteins that fail any rule.

    Parameters
    ----------
    rules : Sequence[ProteinRule]
        Rules that all must hold for a protein to be kept.
    records : Iterable[QuantificationRecord]
        Records, typically already peptide-filtered.

    Returns
    -------
    tuple[QuantificationRecord, ...]
        Records of the kept proteins, in input order.
    """
    records = tuple(records)
    if not rules:
        return records

    counts = protein_counts(records)
    kept = {
        pid
        for pid, (spectral, sequence) in counts.items()
        if all(passes_protein_rule(rule, spectral, sequence) for rule in rules)
    }
    logger.debug("Protein rules kept %d of %d proteins", len(kept), len(counts))
    return tuple(record for record in records if record.protein_id in kept)
