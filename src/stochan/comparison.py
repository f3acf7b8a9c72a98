"""
Model-versus-empirical comparison and ranking.

Every valid model is scored against the empirical joint with Hellinger and
Jensen-Shannon distance; datasets with at least one numerical variable also
get the mean-squared error between marginals, averaged over the numerical
variables. For each metric the minimum wins (ties all win), and the best
model is the first one reaching the highest win count.
"""

from __future__ import annotations
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .constants import KEY_SEPARATOR, TIE_TOLERANCE
from .datatypes import (
    ComparisonMetric,
    ComparisonResult,
    Distribution,
    DistributionAnalysis,
    MeasurementType,
    ModelResult,
    TransitionModelResult,
)
from .distributions import (
    hellinger_distance,
    jensen_shannon_distance,
    kl_divergence,
    mean_squared_error,
    split_key,
)
from .models import ModelDef, TransitionMatrixModel, evaluate_model

logger = logging.getLogger(__name__)

HELLINGER = "Hellinger Distance"
JENSEN_SHANNON = "Jensen-Shannon Distance"
MSE = "Mean Squared Error"


def _align_joint(joint: Distribution, from_names: Sequence[str], to_names: Sequence[str]) -> Distribution:
    """Re-key a joint distribution from one variable order to another."""
    if list(from_names) == list(to_names):
        return dict(joint)
    idx = [list(from_names).index(n) for n in to_names]
    out: Distribution = {}
    for key, p in joint.items():
        parts = split_key(key)
        new_key = KEY_SEPARATOR.join(parts[i] for i in idx)
        out[new_key] = out.get(new_key, 0.0) + p
    return out


def score_model(empirical: DistributionAnalysis, model: DistributionAnalysis) -> Dict[str, float]:
    """Raw metric values of one model against the empirical analysis."""
    emp_names = [v.name for v in empirical.variables]
    model_joint = _align_joint(model.joint, [v.name for v in model.variables], emp_names)
    scores = {
        HELLINGER: hellinger_distance(model_joint, empirical.joint),
        JENSEN_SHANNON: jensen_shannon_distance(model_joint, empirical.joint),
    }
    numerical = [v.name for v in empirical.variables if v.measurement_type == MeasurementType.NUMERICAL]
    if numerical:
        errors = [mean_squared_error(model.marginals.get(n, {}), empirical.marginals[n]) for n in numerical]
        errors = [e for e in errors if e is not None]
        if errors:
            scores[MSE] = float(np.mean(errors))
    return scores


def _rank(results: List[ModelResult]) -> Optional[str]:
    metric_names: List[str] = []
    for r in results:
        for name in r.metrics:
            if name not in metric_names:
                metric_names.append(name)
    for name in metric_names:
        holders = [r for r in results if name in r.metrics]
        best = min(r.metrics[name].value for r in holders)
        for r in holders:
            if math.isclose(r.metrics[name].value, best, rel_tol=0.0, abs_tol=TIE_TOLERANCE):
                r.metrics[name].is_winner = True
                r.wins += 1
    if not results:
        return None
    top = max(r.wins for r in results)
    return next(r.name for r in results if r.wins == top)


def compare_models(empirical: DistributionAnalysis, models: Sequence[ModelDef]) -> ComparisonResult:
    """Score and rank the valid models; invalid ones are listed in ``excluded``."""
    out = ComparisonResult()
    emp_names = sorted(v.name for v in empirical.variables)
    for m in models:
        if not m.validate():
            logger.warning("Model '%s' excluded from comparison: %s", m.name, m.validation_error)
            out.excluded[m.name] = m.validation_error
            continue
        if sorted(v.name for v in m.variables) != emp_names:
            msg = f"Model variables {[v.name for v in m.variables]} do not match dataset variables {emp_names}."
            logger.warning("Model '%s' excluded from comparison: %s", m.name, msg)
            out.excluded[m.name] = msg
            continue
        analysis = evaluate_model(m)
        scores = score_model(empirical, analysis)
        logger.debug("Model '%s' scores: %s", m.name, scores)
        aligned = _align_joint(analysis.joint, [v.name for v in m.variables], [v.name for v in empirical.variables])
        out.results.append(ModelResult(
            name=m.name,
            model_id=m.id,
            distributions=analysis,
            metrics={k: ComparisonMetric(metric_name=k, value=v) for k, v in scores.items()},
            kl_divergence=kl_divergence(empirical.joint, aligned),
        ))
    out.best_model_name = _rank(out.results)
    return out


# ----------------------
# Transition-matrix models
# ----------------------

def compare_transition_models(
    states: Sequence[str],
    empirical_matrix: np.ndarray,
    models: Sequence[TransitionMatrixModel],
) -> Tuple[List[TransitionModelResult], Optional[str]]:
    """Average row-wise Hellinger distance of each model to the empirical matrix.

    Only rows whose model entries are all set take part; a model with no
    usable row scores math.inf.
    """
    states = list(states)
    results: List[TransitionModelResult] = []
    for m in models:
        if not m.validate():
            logger.warning("Transition model '%s' excluded: %s", m.name, m.validation_error)
            continue
        total = 0.0
        used = 0
        for i, s in enumerate(states):
            model_row = m.row_distribution(s)
            if model_row is None:
                logger.warning("Transition model '%s': row '%s' skipped (unset entries or unknown state)", m.name, s)
                continue
            emp_row = dict(zip(states, (float(p) for p in empirical_matrix[i])))
            total += hellinger_distance(emp_row, model_row)
            used += 1
        avg = total / used if used > 0 else math.inf
        results.append(TransitionModelResult(name=m.name, model_id=m.id, avg_hellinger_distance=avg))
    if not results:
        return results, None
    best = min(r.avg_hellinger_distance for r in results)
    best_name = None
    for r in results:
        if math.isclose(r.avg_hellinger_distance, best, rel_tol=0.0, abs_tol=TIE_TOLERANCE):
            r.is_winner = True
            if best_name is None:
                best_name = r.name
    return results, best_name
