"""
Empirical distributions from tabular rows.

Cross-sectional rows are independent joint samples, so marginals are sums of
the joint distribution. Time-series rows are consecutive time steps of one
trace; there each marginal is counted from its own column so that values seen
at different times are not conflated through the joint.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Mapping, Sequence, Union

from .constants import KEY_SEPARATOR
from .datatypes import AnalysisMode, Distribution, DistributionAnalysis, VariableInfo
from .distributions import as_state, counts, is_missing, marginalize, normalize
from .errors import InvalidInputError
from .moments import calculate_cmf, calculate_moments

logger = logging.getLogger(__name__)


def validate_rows(rows: Sequence[Sequence], variables: Sequence[VariableInfo]) -> None:
    """Fail fast on empty input, arity mismatches and undeclared states."""
    if not variables:
        raise InvalidInputError("No variables (headers) given.")
    if not rows:
        raise InvalidInputError("No data rows given.")
    names = [v.name for v in variables]
    if len(set(names)) != len(names):
        raise InvalidInputError(f"Duplicate variable names: {names}")
    n = len(variables)
    for r, row in enumerate(rows):
        if len(row) != n:
            raise InvalidInputError(f"Row {r} has {len(row)} values, expected {n} ({', '.join(names)}).")
        for v, value in zip(variables, row):
            if not is_missing(value) and KEY_SEPARATOR in as_state(value):
                raise InvalidInputError(f"Row {r}: state {as_state(value)!r} contains {KEY_SEPARATOR!r}.")
            if v.state_space and not is_missing(value) and as_state(value) not in v.state_space:
                raise InvalidInputError(
                    f"Row {r}: state {as_state(value)!r} is not in the state space of '{v.name}'."
                )


def describe_distribution(
    variables: Sequence[VariableInfo],
    joint: Distribution,
    marginals: Mapping[str, Distribution],
) -> DistributionAnalysis:
    """Attach per-variable moments and CMFs to a joint/marginals pair."""
    moments = {v.name: calculate_moments(marginals[v.name], v) for v in variables}
    cmfs = {v.name: calculate_cmf(marginals[v.name], v) for v in variables}
    return DistributionAnalysis(
        variables=list(variables),
        joint=joint,
        marginals=dict(marginals),
        moments=moments,
        cmfs=cmfs,
    )


def build_empirical_distribution(
    rows: Sequence[Sequence],
    variables: Sequence[VariableInfo],
    mode: Union[AnalysisMode, str] = AnalysisMode.CROSS_SECTIONAL,
) -> DistributionAnalysis:
    """Joint, marginals, moments and CMFs of a table of observations.

    Rows with a missing cell do not enter the joint distribution. In
    time-series mode a missing cell only drops that cell from its column's
    marginal.
    """
    mode = AnalysisMode(mode)
    if mode == AnalysisMode.ENSEMBLE:
        raise InvalidInputError("Ensemble data is analyzed with analyze_self_dependence, not as a table.")
    validate_rows(rows, variables)

    complete = [tuple(row) for row in rows if not any(is_missing(x) for x in row)]
    if len(complete) < len(rows):
        logger.warning("Skipped %d of %d rows with missing values in the joint distribution",
                       len(rows) - len(complete), len(rows))
    joint = normalize(counts(complete))

    marginals: Dict[str, Distribution] = {}
    for i, v in enumerate(variables):
        if mode == AnalysisMode.CROSS_SECTIONAL:
            marginals[v.name] = marginalize(joint, i)
        else:
            column: List = [row[i] for row in rows if not is_missing(row[i])]
            marginals[v.name] = normalize(counts(column))
    logger.debug("Empirical joint over %s has %d observed combinations", [v.name for v in variables], len(joint))
    return describe_distribution(variables, joint, marginals)
