"""
Entry point tying the components together for one dataset.

Cross-sectional and time-series tables go through the empirical builder,
model comparison, per-variable Markov analysis (time-series) and dependence
analysis (cross-sectional with several variables). Ensemble tables (first
column time labels, one column per realization) get the pooled transition
matrix, transition-model ranking and, on request, the self-dependence
analysis.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .comparison import compare_models, compare_transition_models
from .constants import DEFAULT_MAX_SEQUENCES, MARKOV_DISTANCE_THRESHOLD
from .datatypes import AnalysisMode, AnalysisResult, VariableInfo
from .dependence import analyze_dependence
from .empirical import build_empirical_distribution
from .errors import InvalidInputError
from .markov import analyze_markov, ensemble_transition_matrix, observed_states
from .models import ModelDef, TransitionMatrixModel
from .order import analyze_self_dependence
from .tabular import ensemble_traces

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOptions:
    run_order_test: bool = False
    max_sequences: Optional[int] = DEFAULT_MAX_SEQUENCES
    markov_threshold: float = MARKOV_DISTANCE_THRESHOLD


def analyze_stochastic_process(
    headers: Sequence[str],
    rows: Sequence[Sequence],
    variables: Optional[Sequence[VariableInfo]] = None,
    mode: Union[AnalysisMode, str] = AnalysisMode.CROSS_SECTIONAL,
    models: Sequence[ModelDef] = (),
    transition_models: Sequence[TransitionMatrixModel] = (),
    options: Optional[AnalysisOptions] = None,
) -> AnalysisResult:
    """Run every analysis that applies to ``mode`` and collect the results.

    ``variables`` is required for tabular modes (in header order) and ignored
    for ensembles, whose state space is the sorted set of observed states.
    """
    options = options or AnalysisOptions()
    mode = AnalysisMode(mode)
    if not headers or not rows:
        raise InvalidInputError("The dataset must have headers and at least one row.")
    result = AnalysisResult(mode=mode, headers=list(headers))

    if mode == AnalysisMode.ENSEMBLE:
        if len(headers) < 2:
            raise InvalidInputError("Ensemble data needs a time column and at least one instance column.")
        time_labels, traces = ensemble_traces(rows)
        if len(time_labels) < 2:
            raise InvalidInputError("Ensemble data must have at least 2 time points and 1 instance.")
        states = observed_states(traces)
        result.ensemble_states = states
        _, result.ensemble_transition_matrix = ensemble_transition_matrix(traces, states)
        if transition_models:
            result.transition_model_results, result.best_transition_model_name = compare_transition_models(
                states, result.ensemble_transition_matrix, transition_models
            )
        if options.run_order_test:
            result.self_dependence = analyze_self_dependence(
                traces,
                states,
                time_labels,
                max_sequences=options.max_sequences,
                threshold=options.markov_threshold,
            )
        return result

    if variables is None:
        raise InvalidInputError("Variable definitions are required for tabular analysis.")
    if [v.name for v in variables] != list(headers):
        raise InvalidInputError(f"Variables {[v.name for v in variables]} do not match headers {list(headers)}.")

    result.empirical = build_empirical_distribution(rows, variables, mode)
    result.comparison = compare_models(result.empirical, models)
    if result.comparison.best_model_name is not None:
        logger.info("Best model: %s", result.comparison.best_model_name)

    if mode == AnalysisMode.TIME_SERIES:
        for i, v in enumerate(variables):
            result.markov[v.name] = analyze_markov([row[i] for row in rows])
    elif len(variables) > 1:
        result.dependence = analyze_dependence(result.empirical, rows)
    return result
