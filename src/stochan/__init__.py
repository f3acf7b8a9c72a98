"""
Stochastic process analyzer: empirical distributions, model comparison and
memory-order (Markov) analysis of discrete data.

Distribution functions (keys are states joined by "|"):
- counts, normalize, marginalize
- entropy, kl_divergence, jensen_shannon_divergence/distance,
  hellinger_distance, mean_squared_error, mutual_information (all in bits)
- pearson_correlation, distance_correlation

Analysis functions:
- build_empirical_distribution: joint, marginals, moments and CMFs of a table
- compare_models: score user models against the empirical joint and rank them
- analyze_dependence: pairwise MI, correlations and conditional tables
- analyze_markov / ensemble_transition_matrix: transition matrices and
  stationary distributions
- analyze_self_dependence: order-k chain-rule reconstructions of an ensemble
  compared with the full past
- analyze_stochastic_process: runs whatever applies to one dataset
"""

from .errors import StochanError, InvalidInputError, ResourceExceeded, AnalysisCancelled
from .datatypes import (
    AnalysisMode,
    AnalysisResult,
    ConditionalTable,
    DistributionAnalysis,
    MeasurementType,
    Moments,
    OrderResult,
    SelfDependenceAnalysis,
    VariableInfo,
)
from .distributions import (
    counts,
    normalize,
    marginalize,
    entropy,
    kl_divergence,
    jensen_shannon_divergence,
    jensen_shannon_distance,
    hellinger_distance,
    mean_squared_error,
    mutual_information,
    pearson_correlation,
    distance_correlation,
)
from .moments import calculate_moments, calculate_cmf
from .empirical import build_empirical_distribution
from .models import ProbabilityTable, ModelDef, TransitionMatrixModel, evaluate_model
from .comparison import compare_models, compare_transition_models
from .dependence import analyze_dependence, conditional_distribution_table
from .markov import (
    stationary_distribution,
    transition_matrix,
    ensemble_transition_matrix,
    analyze_markov,
    sample_markov,
    sample_ensemble,
    random_markov_biased,
)
from .order import ConditionalCache, estimate_sequence_count, analyze_self_dependence
from .analysis import AnalysisOptions, analyze_stochastic_process
from .report import to_jsonable

__all__ = [
    "StochanError",
    "InvalidInputError",
    "ResourceExceeded",
    "AnalysisCancelled",
    "AnalysisMode",
    "AnalysisResult",
    "ConditionalTable",
    "DistributionAnalysis",
    "MeasurementType",
    "Moments",
    "OrderResult",
    "SelfDependenceAnalysis",
    "VariableInfo",
    "counts",
    "normalize",
    "marginalize",
    "entropy",
    "kl_divergence",
    "jensen_shannon_divergence",
    "jensen_shannon_distance",
    "hellinger_distance",
    "mean_squared_error",
    "mutual_information",
    "pearson_correlation",
    "distance_correlation",
    "calculate_moments",
    "calculate_cmf",
    "build_empirical_distribution",
    "ProbabilityTable",
    "ModelDef",
    "TransitionMatrixModel",
    "evaluate_model",
    "compare_models",
    "compare_transition_models",
    "analyze_dependence",
    "conditional_distribution_table",
    "stationary_distribution",
    "transition_matrix",
    "ensemble_transition_matrix",
    "analyze_markov",
    "sample_markov",
    "sample_ensemble",
    "random_markov_biased",
    "ConditionalCache",
    "estimate_sequence_count",
    "analyze_self_dependence",
    "AnalysisOptions",
    "analyze_stochastic_process",
    "to_jsonable",
]
