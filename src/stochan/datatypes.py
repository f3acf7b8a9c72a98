"""
Value objects exchanged between the engine's components.

All of these are recomputed on every analysis run; nothing here is cached
across calls. Distributions are plain dicts mapping a composite state key
(states joined by KEY_SEPARATOR in a fixed variable order) to a probability.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .errors import InvalidInputError

Distribution = Dict[str, float]


class MeasurementType(str, Enum):
    NUMERICAL = "numerical"
    ORDINAL = "ordinal"
    NOMINAL = "nominal"


class AnalysisMode(str, Enum):
    CROSS_SECTIONAL = "cross-sectional"
    TIME_SERIES = "time-series"
    ENSEMBLE = "ensemble"


@dataclass(frozen=True)
class VariableInfo:
    """A named variable, its declared states and how its states are measured.

    The order of ``state_space`` matters only for ordinal variables.
    """

    name: str
    state_space: Tuple[str, ...] = ()
    measurement_type: MeasurementType = MeasurementType.NOMINAL

    def __post_init__(self):
        states = tuple(str(s) for s in self.state_space)
        if len(set(states)) != len(states):
            raise InvalidInputError(f"State space of '{self.name}' has duplicate entries: {list(states)}")
        try:
            mtype = MeasurementType(self.measurement_type)
        except ValueError:
            raise InvalidInputError(
                f"Unknown measurement type {self.measurement_type!r} for '{self.name}'"
            ) from None
        object.__setattr__(self, "state_space", states)
        object.__setattr__(self, "measurement_type", mtype)


@dataclass
class Moments:
    mean: Optional[float] = None
    variance: Optional[float] = None
    median: Optional[str] = None
    mode: List[object] = field(default_factory=list)


@dataclass
class DistributionAnalysis:
    """Joint, marginals, moments and CMFs for one dataset or one model."""

    variables: List[VariableInfo]
    joint: Distribution
    marginals: Dict[str, Distribution]
    moments: Dict[str, Moments]
    cmfs: Dict[str, Distribution]


@dataclass
class ComparisonMetric:
    metric_name: str
    value: float
    is_winner: bool = False


@dataclass
class ModelResult:
    name: str
    model_id: str
    distributions: DistributionAnalysis
    metrics: Dict[str, ComparisonMetric] = field(default_factory=dict)
    wins: int = 0
    kl_divergence: Optional[float] = None


@dataclass
class ComparisonResult:
    results: List[ModelResult] = field(default_factory=list)
    best_model_name: Optional[str] = None
    excluded: Dict[str, str] = field(default_factory=dict)


@dataclass
class ConditionalTable:
    """P(target | conditioned...) with one matrix row per conditioning combination."""

    title: str
    target: str
    conditioned: Tuple[str, ...]
    target_states: List[str]
    conditioned_combinations: List[Tuple[str, ...]]
    matrix: np.ndarray


@dataclass
class ConditionalMoments:
    target: str
    conditioned: str
    conditioned_states: List[str]
    expectations: List[Optional[float]]
    variances: List[Optional[float]]


@dataclass
class DependencePair:
    first: str
    second: str
    mutual_information: Optional[float] = None
    pearson_correlation: Optional[float] = None
    distance_correlation: Optional[float] = None


@dataclass
class DependenceAnalysis:
    pairs: List[DependencePair] = field(default_factory=list)
    conditional_tables: List[ConditionalTable] = field(default_factory=list)
    conditional_moments: List[ConditionalMoments] = field(default_factory=list)


@dataclass
class MarkovResult:
    states: List[str]
    transition_matrix: np.ndarray
    stationary_distribution: Distribution


@dataclass
class TransitionModelResult:
    name: str
    model_id: str
    avg_hellinger_distance: float
    is_winner: bool = False


@dataclass
class OrderResult:
    order: int
    hellinger_distance: float
    jensen_shannon_distance: float


@dataclass
class SelfDependenceAnalysis:
    orders: List[OrderResult]
    conclusion: str
    conditional_tables: Dict[int, List[ConditionalTable]]
    joint_distributions: Dict[int, Distribution]
    states: List[str] = field(default_factory=list)
    time_labels: List[str] = field(default_factory=list)


@dataclass
class AnalysisResult:
    mode: AnalysisMode
    headers: List[str]
    empirical: Optional[DistributionAnalysis] = None
    comparison: Optional[ComparisonResult] = None
    markov: Dict[str, MarkovResult] = field(default_factory=dict)
    dependence: Optional[DependenceAnalysis] = None
    ensemble_states: List[str] = field(default_factory=list)
    ensemble_transition_matrix: Optional[np.ndarray] = None
    transition_model_results: List[TransitionModelResult] = field(default_factory=list)
    best_transition_model_name: Optional[str] = None
    self_dependence: Optional[SelfDependenceAnalysis] = None
