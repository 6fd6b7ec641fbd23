"""
Normalization method enumeration and profile.

This module provides the channel scaling strategies and the profile that
selects one of them together with an optional reference channel. Scaling
functions register themselves on the enum members, see
:mod:`isocensus.normalization.engine`.
"""

from dataclasses import dataclass, asdict
from enum import Enum, auto
from typing import Callable, Optional

_method_registry: dict = {}


class NormalizationMethod(Enum):
    """
    Enumeration of channel scaling strategies.

    Attributes
    ----------
    NONE : auto
        Intensities are left as they are.
    MEDIAN : auto
        Equalize channel medians across the record set, keeping the grand
        median of channel medians as the overall scale.
    TOTAL : auto
        Divide every intensity by its record's total intensity.
    """

    NONE = auto()
    MEDIAN = auto()
    TOTAL = auto()

    @classmethod
    def from_str(cls, name: Optional[str]) -> "NormalizationMethod":
        """
        Get the normalization method from a string.

        Parameters
        ----------
        name : str
            The name of the normalization method. ``"total_intensity"`` is
            accepted for TOTAL, None means NONE.

        Returns
        -------
        NormalizationMethod
            The normalization method.

        Raises
        ------
        KeyError
            If the name does not match any normalization method.
        """
        if name is None:
            return cls.NONE
        name_ = name.lower().replace("-", "_")
        if name_ == "total_intensity":
            return cls.TOTAL
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(name)

    def register_scaling_fn(self, fn: Callable) -> Callable:
        """
        Register the scaling function implementing this method.

        Parameters
        ----------
        fn : Callable
            ``fn(matrix, schema, diagnostics) -> matrix`` working on a
            records x channels float array with NaN for missing values.

        Returns
        -------
        Callable
            The registered function.
        """
        _method_registry[self] = fn
        return fn

    def scale(self, matrix, schema, diagnostics):
        """Apply the registered scaling function."""
        try:
            fn = _method_registry[self]
        except KeyError:
            raise NotImplementedError(f"No scaling function registered for {self.name}") from None
        return fn(matrix, schema, diagnostics)

    @property
    def description(self) -> str:
        descriptions = {
            NormalizationMethod.NONE: "No scaling",
            NormalizationMethod.MEDIAN: "Median scaling of channels",
            NormalizationMethod.TOTAL: "Total-intensity scaling of records",
        }
        return descriptions.get(self, "Unknown method")


@dataclass(frozen=True)
class NormalizationProfile:
    """
    Normalization settings of one pipeline run.

    Attributes
    ----------
    method : NormalizationMethod
        Scaling strategy.
    reference_channel : str, optional
        When set, log2 ratios against this channel are computed after scaling.
    """

    method: NormalizationMethod = NormalizationMethod.NONE
    reference_channel: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizationProfile":
        """Create a profile from ``{"method": ..., "reference_channel": ...}``."""
        method = data.get("method")
        if not isinstance(method, NormalizationMethod):
            method = NormalizationMethod.from_str(method)
        return cls(method=method, reference_channel=data.get("reference_channel"))

    def to_dict(self) -> dict:
        d = asdict(self)
        d["method"] = self.method.name.lower()
        return d

    @property
    def computes_ratios(self) -> bool:
        return self.reference_channel is not None
