"""
Type-aware moments and cumulative mass functions of a marginal distribution.

The measurement type of the variable decides what is defined:
- nominal: mode only (no ordering, so no median, CMF or mean).
- ordinal: mode, median and CMF along the declared state order.
- numerical: all of the above plus mean and variance, ordered by value.
"""

from __future__ import annotations
import math
from typing import Iterable, List, Mapping, Optional

from .constants import CMF_SIGNIFICANT_DIGITS, NORMALIZATION_TOLERANCE, TIE_TOLERANCE
from .datatypes import Distribution, MeasurementType, Moments, VariableInfo
from .distributions import parse_number


def natural_sort_states(states: Iterable[str]) -> List[str]:
    """Numeric-looking states by value first, then the rest lexicographically."""
    numeric = []
    other = []
    for s in states:
        x = parse_number(s)
        if x is None:
            other.append(s)
        else:
            numeric.append((x, s))
    numeric.sort()
    return [s for _, s in numeric] + sorted(other)


def order_states(states: Iterable[str], variable: VariableInfo) -> List[str]:
    """Order states the way the variable's measurement type implies.

    Ordinal states follow the declared state space; states missing from it go
    last, lexicographically. Nominal states are returned sorted only for a
    deterministic presentation.
    """
    states = list(states)
    if variable.measurement_type == MeasurementType.NUMERICAL:
        return natural_sort_states(states)
    if variable.measurement_type == MeasurementType.ORDINAL:
        rank = {s: i for i, s in enumerate(variable.state_space)}
        listed = sorted((s for s in states if s in rank), key=lambda s: rank[s])
        unlisted = sorted(s for s in states if s not in rank)
        return listed + unlisted
    return sorted(states)


def _as_number(state: str):
    x = parse_number(state)
    if x is None:
        return state
    return int(x) if x.is_integer() else x


def calculate_moments(marginal: Mapping[str, float], variable: VariableInfo) -> Moments:
    """Mode always; median for ordinal/numerical; mean and variance for numerical."""
    moments = Moments()
    if not marginal:
        return moments

    ordered = order_states(marginal.keys(), variable)
    top = max(marginal.values())
    modes = [s for s in ordered if math.isclose(marginal[s], top, rel_tol=0.0, abs_tol=TIE_TOLERANCE)]
    if variable.measurement_type == MeasurementType.NUMERICAL:
        moments.mode = [_as_number(s) for s in modes]
    else:
        moments.mode = modes

    if variable.measurement_type == MeasurementType.NOMINAL:
        return moments

    moments.median = _median(marginal, ordered)

    if variable.measurement_type == MeasurementType.ORDINAL:
        return moments

    values = [(parse_number(s), p) for s, p in marginal.items()]
    values = [(x, p) for x, p in values if x is not None]
    if values:
        mean = sum(x * p for x, p in values)
        moments.mean = mean
        moments.variance = sum(p * (x - mean) ** 2 for x, p in values)
    return moments


def _median(marginal: Mapping[str, float], ordered: List[str]) -> Optional[str]:
    cum = 0.0
    for s in ordered:
        cum += marginal[s]
        if cum >= 0.5 - NORMALIZATION_TOLERANCE:
            return s
    return None


def _round_significant(x: float, digits: int = CMF_SIGNIFICANT_DIGITS) -> float:
    return float(f"{x:.{digits}g}")


def calculate_cmf(marginal: Mapping[str, float], variable: VariableInfo) -> Distribution:
    """Cumulative mass along the type-dependent order; empty for nominal variables."""
    if variable.measurement_type == MeasurementType.NOMINAL:
        return {}
    cmf: Distribution = {}
    cum = 0.0
    for s in order_states(marginal.keys(), variable):
        cum += marginal[s]
        cmf[s] = _round_significant(cum)
    return cmf
