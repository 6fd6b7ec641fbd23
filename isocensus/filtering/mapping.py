"""
Translation between filter criteria and plain YAML/JSON data.

Composite criteria are written as ``{"all": [...]}``, ``{"any": [...]}`` and
``{"not": ...}``; primitive criteria are single-key mappings such as
``{"min_quality": 0.9}`` or ``{"channel_cv": {"channels": [1, 2], "max_cv": 0.05}}``.
A bare list is read as ``all``. Channels are numbered from 1, matching the
text rule language.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from isocensus.core.exceptions import FilterSyntaxError
from isocensus.model.criteria import (
    And,
    ChannelCV,
    ChannelIntensityThreshold,
    ChargeStateIn,
    Criterion,
    MinSequenceCount,
    MinSpectralCount,
    MissingChannelBound,
    Not,
    Or,
    ProteinExclude,
    ProteinRule,
    QualityThreshold,
    SequenceExclude,
    SequenceMatch,
    TotalIntensityThreshold,
    Tryptic,
    Unique,
)


def _channel(value: Any) -> int:
    try:
        channel = int(value)
    except (TypeError, ValueError):
        raise FilterSyntaxError(f"Invalid channel number {value!r}") from None
    if channel < 1:
        raise FilterSyntaxError(f"Channel numbers start at 1, got {channel}")
    return channel - 1


def _number(key: str, value: Any, kind=float):
    if isinstance(value, bool):
        raise FilterSyntaxError(f"'{key}' expects a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise FilterSyntaxError(f"'{key}' expects a number, got {value!r}") from None


def _as_list(key: str, value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


def _flag(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise FilterSyntaxError(f"'{key}' expects true or false, got {value!r}")
    return value


def _leaf(key: str, value: Any) -> Optional[Criterion]:
    if key == "min_quality":
        return QualityThreshold(_number(key, value), ">=")
    if key == "max_quality":
        return QualityThreshold(_number(key, value), "<=")
    if key == "max_missing":
        return MissingChannelBound(_number(key, value, int))
    if key == "charge":
        return ChargeStateIn(tuple(_number(key, c, int) for c in _as_list(key, value)))
    if key == "total_intensity":
        return TotalIntensityThreshold(_number(key, value))
    if key == "channel_intensity":
        if not isinstance(value, dict) or "channel" not in value or "threshold" not in value:
            raise FilterSyntaxError("'channel_intensity' expects {channel, threshold}")
        return ChannelIntensityThreshold(
            _channel(value["channel"]),
            _number(key, value["threshold"]),
            value.get("comparison", ">="),
        )
    if key == "channel_cv":
        if not isinstance(value, dict) or "channels" not in value or "max_cv" not in value:
            raise FilterSyntaxError("'channel_cv' expects {channels, max_cv}")
        channels = tuple(_channel(c) for c in _as_list(key, value["channels"]))
        return ChannelCV(channels, _number(key, value["max_cv"]))
    if key == "sequence_match":
        return SequenceMatch(str(value))
    if key == "sequence_exclude":
        return SequenceExclude(str(value))
    if key == "tryptic":
        return Tryptic() if _flag(key, value) else None
    if key == "unique":
        return Unique() if _flag(key, value) else None
    if key == "exclude_proteins":
        return ProteinExclude(tuple(str(p) for p in _as_list(key, value)))
    raise FilterSyntaxError(f"Unknown filter criterion '{key}'")


def _combine(combinator, items: List[Any]) -> Optional[Criterion]:
    # Empty and switched-off operands are dropped; a single operand stands alone.
    operands = [criteria_from_dict(item) for item in items]
    operands = [o for o in operands if o is not None]
    if not operands:
        return None
    return operands[0] if len(operands) == 1 else combinator(tuple(operands))


def criteria_from_dict(data: Any) -> Optional[Criterion]:
    """
    Build a criterion tree from plain data.

    Parameters
    ----------
    data : dict, list or None
        Criteria description.

    Returns
    -------
    Criterion, optional
        The criterion, None when ``data`` is None or empty.

    Raises
    ------
    FilterSyntaxError
        If the description is malformed.
    """
    if data is None:
        return None
    if isinstance(data, (list, tuple)):
        return _combine(And, data)
    if not isinstance(data, dict):
        raise FilterSyntaxError(f"Cannot read filter criteria from {data!r}")
    if not data:
        return None

    if len(data) > 1:
        # Several keys in one mapping are combined with AND.
        return _combine(And, [{k: v} for k, v in data.items()])

    (key, value), = data.items()
    if key == "all":
        return _combine(And, _as_list(key, value))
    if key == "any":
        return _combine(Or, _as_list(key, value))
    if key == "not":
        operand = criteria_from_dict(value)
        if operand is None:
            raise FilterSyntaxError("'not' needs an operand")
        return Not(operand)
    try:
        return _leaf(key, value)
    except ValueError as e:
        raise FilterSyntaxError(f"Invalid '{key}' criterion: {e}") from None


def criteria_to_dict(criterion: Optional[Criterion]) -> Optional[Dict[str, Any]]:
    """
    Describe a criterion tree as plain data, the inverse of :func:`criteria_from_dict`.

    Raises
    ------
    TypeError
        If ``criterion`` is not a known criterion.
    """
    if criterion is None:
        return None
    if isinstance(criterion, And):
        return {"all": [criteria_to_dict(o) for o in criterion.operands]}
    if isinstance(criterion, Or):
        return {"any": [criteria_to_dict(o) for o in criterion.operands]}
    if isinstance(criterion, Not):
        return {"not": criteria_to_dict(criterion.operand)}
    if isinstance(criterion, QualityThreshold):
        key = "min_quality" if criterion.comparison == ">=" else "max_quality"
        return {key: criterion.threshold}
    if isinstance(criterion, MissingChannelBound):
        return {"max_missing": criterion.max_missing}
    if isinstance(criterion, ChargeStateIn):
        return {"charge": list(criterion.charges)}
    if isinstance(criterion, TotalIntensityThreshold):
        return {"total_intensity": criterion.minimum}
    if isinstance(criterion, ChannelIntensityThreshold):
        return {
            "channel_intensity": {
                "channel": criterion.channel + 1,
                "threshold": criterion.threshold,
                "comparison": criterion.comparison,
            }
        }
    if isinstance(criterion, ChannelCV):
        return {"channel_cv": {"channels": [c + 1 for c in criterion.channels], "max_cv": criterion.max_cv}}
    if isinstance(criterion, SequenceMatch):
        return {"sequence_match": criterion.pattern}
    if isinstance(criterion, SequenceExclude):
        return {"sequence_exclude": criterion.pattern}
    if isinstance(criterion, Tryptic):
        return {"tryptic": True}
    if isinstance(criterion, Unique):
        return {"unique": True}
    if isinstance(criterion, ProteinExclude):
        return {"exclude_proteins": list(criterion.patterns)}
    raise TypeError(f"Unknown filter criterion: {criterion!r}")


def protein_rules_from_dict(data: Optional[Dict[str, Any]]) -> Tuple[ProteinRule, ...]:
    """
    Read protein rules from ``{"spectral_counts": n, "sequence_counts": m}``.

    Raises
    ------
    FilterSyntaxError
        On an unknown key or a non-integer count.
    """
    if not data:
        return ()
    rules = []
    for key, value in data.items():
        if value is None:
            continue
        if key == "spectral_counts":
            rules.append(MinSpectralCount(_number(key, value, int)))
        elif key == "sequence_counts":
            rules.append(MinSequenceCount(_number(key, value, int)))
        else:
            raise FilterSyntaxError(f"Unknown protein rule '{key}'")
    return tuple(rules)


def protein_rules_to_dict(rules: Sequence[ProteinRule]) -> Dict[str, int]:
    data = {}
    for rule in rules:
        if isinstance(rule, MinSpectralCount):
            data["spectral_counts"] = rule.minimum
        elif isinstance(rule, MinSequenceCount):
            data["sequence_counts"] = rule.minimum
    return data
