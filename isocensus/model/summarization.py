"""
Summarization strategy enumerations for the isocensus package.

This module provides an enumeration of the strategies used to combine the
peptide values of one protein and channel into a protein-level value.
"""

from enum import Enum, auto
from typing import Sequence

import numpy as np
from scipy import stats

DEFAULT_TRIM_FRACTION = 0.1


class SummarizationMethod(Enum):
    """
    Enumeration of value combination methods.

    Attributes
    ----------
    MEDIAN : auto
        Median of the peptide values; robust to single-peptide outliers.
    TRIMMED_MEAN : auto
        Mean after dropping a fraction of values from each end.
    MEAN : auto
        Mean of the peptide values.
    SUM : auto
        Sum of the peptide values.
    MAX : auto
        Maximum peptide value.
    """

    MEDIAN = auto()
    TRIMMED_MEAN = auto()
    MEAN = auto()
    SUM = auto()
    MAX = auto()

    @classmethod
    def from_str(cls, name: str) -> "SummarizationMethod":
        """
        Convert a string to a SummarizationMethod.

        Parameters
        ----------
        name : str
            The name of the summarization method.

        Returns
        -------
        SummarizationMethod
            The summarization method.

        Raises
        ------
        KeyError
            If the name does not match any summarization method.
        """
        name_ = name.lower().replace("-", "_").replace(" ", "_")
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(name)

    def aggregate(self, values: Sequence[float], trim_fraction: float = DEFAULT_TRIM_FRACTION) -> float:
        """
        Combine a non-empty collection of values.

        Parameters
        ----------
        values : Sequence[float]
            The values to combine.
        trim_fraction : float
            Fraction cut from each end by TRIMMED_MEAN.

        Returns
        -------
        float
            The combined value.
        """
        arr = np.asarray(values, dtype=float)
        if self == SummarizationMethod.MEDIAN:
            return float(np.median(arr))
        elif self == SummarizationMethod.TRIMMED_MEAN:
            return float(stats.trim_mean(arr, trim_fraction))
        elif self == SummarizationMethod.MEAN:
            return float(arr.mean())
        elif self == SummarizationMethod.SUM:
            return float(arr.sum())
        elif self == SummarizationMethod.MAX:
            return float(arr.max())
        else:
            raise ValueError(f"Unknown summarization method: {self}")

    @property
    def description(self) -> str:
        """
        Get a human-readable description of the summarization method.

        Returns
        -------
        str
            Description of the summarization method.
        """
        descriptions = {
            SummarizationMethod.MEDIAN: "Median of peptide values",
            SummarizationMethod.TRIMMED_MEAN: "Mean after trimming both tails",
            SummarizationMethod.MEAN: "Mean (average) of peptide values",
            SummarizationMethod.SUM: "Sum of peptide values",
            SummarizationMethod.MAX: "Maximum peptide value",
        }
        return descriptions.get(self, "Unknown method")
