"""
Pairwise dependence between the variables of a cross-sectional dataset.

- conditional_distribution_table: P(target | conditioned) from a joint.
- conditional_moments: E and Var of a numerical target per conditioning state.
- dependence_pairs: mutual information for every pair, plus Pearson and
  distance correlation when both variables are numerical.
"""

from __future__ import annotations
import logging
from itertools import combinations
from typing import List, Mapping, Optional, Sequence

import numpy as np

from .datatypes import (
    ConditionalMoments,
    ConditionalTable,
    DependenceAnalysis,
    DependencePair,
    DistributionAnalysis,
    MeasurementType,
    VariableInfo,
)
from .distributions import (
    counts,
    distance_correlation,
    is_missing,
    make_key,
    marginalize,
    mutual_information,
    normalize,
    parse_number,
    pearson_correlation,
)
from .moments import calculate_moments, order_states

logger = logging.getLogger(__name__)


def _states_of(variable: VariableInfo, observed) -> List[str]:
    extra = [s for s in observed if s not in variable.state_space]
    return order_states(list(variable.state_space) + extra, variable)


def conditional_distribution_table(
    joint: Mapping[str, float],
    variables: Sequence[VariableInfo],
    target: str,
    conditioned: str,
) -> ConditionalTable:
    """Rows are conditioning states, columns target states; unseen rows are zero."""
    names = [v.name for v in variables]
    ti, ci = names.index(target), names.index(conditioned)
    pair = marginalize(joint, (ci, ti))
    cond_marginal = marginalize(joint, ci)
    target_states = _states_of(variables[ti], marginalize(joint, ti).keys())
    cond_states = _states_of(variables[ci], cond_marginal.keys())
    matrix = np.zeros((len(cond_states), len(target_states)), dtype=float)
    for r, cs in enumerate(cond_states):
        total = cond_marginal.get(cs, 0.0)
        if total <= 0:
            continue
        for c, ts in enumerate(target_states):
            matrix[r, c] = pair.get(make_key((cs, ts)), 0.0) / total
    return ConditionalTable(
        title=f"P({target} | {conditioned})",
        target=target,
        conditioned=(conditioned,),
        target_states=target_states,
        conditioned_combinations=[(s,) for s in cond_states],
        matrix=matrix,
    )


def conditional_moments(table: ConditionalTable, target: VariableInfo) -> Optional[ConditionalMoments]:
    """E(target | c) and Var(target | c) per row; None for non-numerical targets."""
    if target.measurement_type != MeasurementType.NUMERICAL:
        return None
    expectations: List[Optional[float]] = []
    variances: List[Optional[float]] = []
    for row in table.matrix:
        dist = {s: float(p) for s, p in zip(table.target_states, row) if p > 0}
        m = calculate_moments(dist, target)
        expectations.append(m.mean)
        variances.append(m.variance)
    return ConditionalMoments(
        target=table.target,
        conditioned=table.conditioned[0],
        conditioned_states=[c[0] for c in table.conditioned_combinations],
        expectations=expectations,
        variances=variances,
    )


def dependence_pairs(rows: Sequence[Sequence], variables: Sequence[VariableInfo]) -> List[DependencePair]:
    pairs: List[DependencePair] = []
    for i, j in combinations(range(len(variables)), 2):
        vi, vj = variables[i], variables[j]
        complete = [(row[i], row[j]) for row in rows if not is_missing(row[i]) and not is_missing(row[j])]
        pair = DependencePair(first=vi.name, second=vj.name)
        pair.mutual_information = mutual_information(normalize(counts(complete)))
        if vi.measurement_type == MeasurementType.NUMERICAL and vj.measurement_type == MeasurementType.NUMERICAL:
            numeric = [(parse_number(a), parse_number(b)) for a, b in complete]
            numeric = [(a, b) for a, b in numeric if a is not None and b is not None]
            xs = [a for a, _ in numeric]
            ys = [b for _, b in numeric]
            pair.pearson_correlation = pearson_correlation(xs, ys)
            pair.distance_correlation = distance_correlation(xs, ys)
        logger.debug("Dependence %s~%s: MI=%s r=%s dcor=%s", vi.name, vj.name,
                     pair.mutual_information, pair.pearson_correlation, pair.distance_correlation)
        pairs.append(pair)
    return pairs


def analyze_dependence(analysis: DistributionAnalysis, rows: Sequence[Sequence]) -> DependenceAnalysis:
    """Pairs, conditional tables in both directions and conditional moments."""
    variables = analysis.variables
    out = DependenceAnalysis(pairs=dependence_pairs(rows, variables))
    for a, b in combinations(variables, 2):
        for target, cond in ((a, b), (b, a)):
            table = conditional_distribution_table(analysis.joint, variables, target.name, cond.name)
            out.conditional_tables.append(table)
            moments = conditional_moments(table, target)
            if moments is not None:
                out.conditional_moments.append(moments)
    return out
