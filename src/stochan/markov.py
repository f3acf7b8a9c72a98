"""
Markov chain utilities for observed traces.

This module provides:
- Row-stochastic normalization that leaves rows without outgoing transitions
  all-zero, and the stationary distribution via power iteration.
- Empirical transition matrices from a single trace and pooled over an
  ensemble of traces, over the sorted set of observed states.
- A Markov sampler with explicit RNG threading and random biased transition
  matrices, used to synthesize ensembles for demos and tests.
"""

from __future__ import annotations
from typing import List, Sequence, Tuple
import numpy as np

from .datatypes import MarkovResult
from .distributions import as_state, is_missing
from .moments import natural_sort_states


def _row_stochastic(T: np.ndarray) -> np.ndarray:
    """Return a row-stochastic copy of T (rows sum to 1, zero rows stay zero)."""
    T = np.asarray(T, dtype=float)
    rs = T.sum(axis=1, keepdims=True)
    rs[rs == 0.0] = 1.0
    return T / rs


def stationary_distribution(T: np.ndarray, tol: float = 1e-12, max_iter: int = 200_000) -> np.ndarray:
    """Compute a stationary distribution of a finite-state Markov chain.

    Power iteration on the lazy chain (I + T) / 2, which has the same fixed
    points as T but does not oscillate on periodic chains. Rows without
    outgoing transitions are treated as absorbing for this computation only.
    """
    T = _row_stochastic(T)
    k = T.shape[0]
    if k == 0:
        return np.zeros(0, dtype=float)
    dead = np.flatnonzero(T.sum(axis=1) == 0.0)
    T[dead, dead] = 1.0
    L = 0.5 * (np.eye(k) + T)
    pi = np.ones(k, dtype=float) / k
    for _ in range(max_iter):
        pi_new = pi @ L
        if np.linalg.norm(pi_new - pi, 1) < tol:
            pi = pi_new
            break
        pi = pi_new
    s = float(pi.sum())
    if not np.isfinite(s) or s == 0:
        pi = np.ones(k, dtype=float) / k
    else:
        pi = pi / s
    return pi


def _count_transitions(traces: Sequence[Sequence], states: Sequence[str]) -> np.ndarray:
    index = {s: i for i, s in enumerate(states)}
    C = np.zeros((len(states), len(states)), dtype=float)
    for trace in traces:
        for t in range(len(trace) - 1):
            a, b = trace[t], trace[t + 1]
            if is_missing(a) or is_missing(b):
                continue
            i = index.get(as_state(a))
            j = index.get(as_state(b))
            if i is not None and j is not None:
                C[i, j] += 1.0
    return C


def observed_states(traces: Sequence[Sequence]) -> List[str]:
    """Sorted set of distinct non-missing states across traces."""
    seen = {as_state(x) for trace in traces for x in trace if not is_missing(x)}
    return natural_sort_states(seen)


def transition_matrix(trace: Sequence) -> Tuple[List[str], np.ndarray]:
    """Empirical one-step transition matrix of a single trace.

    Rows are normalized by their outgoing totals; a state never left stays
    an all-zero row.
    """
    states = observed_states([trace])
    return states, _row_stochastic(_count_transitions([trace], states))


def ensemble_transition_matrix(traces: Sequence[Sequence], states: Sequence[str] | None = None) -> Tuple[List[str], np.ndarray]:
    """Transition matrix pooled over all consecutive pairs of all traces."""
    states = list(states) if states is not None else observed_states(traces)
    return states, _row_stochastic(_count_transitions(traces, states))


def analyze_markov(trace: Sequence) -> MarkovResult:
    states, T = transition_matrix(trace)
    pi = stationary_distribution(T)
    return MarkovResult(
        states=states,
        transition_matrix=T,
        stationary_distribution={s: float(p) for s, p in zip(states, pi)},
    )


def sample_markov(
    T: np.ndarray,
    n: int,
    init: np.ndarray | None = None,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Sample a length-n path of state indices from a finite-state Markov chain.

    - T is row-stochastic; if not, it is normalized.
    - init is an optional initial distribution; otherwise the stationary pi.
    - rng threads randomness for reproducibility across demos/tests.
    """
    T = _row_stochastic(T)
    if rng is None:
        rng = np.random.default_rng()
    k = T.shape[0]
    if init is None:
        pi = stationary_distribution(T)
    else:
        pi = np.asarray(init, dtype=float)
        s = float(pi.sum())
        pi = (pi / s) if s != 0 else np.ones(k) / k
    x = np.zeros(n, dtype=int)
    if n == 0:
        return x
    x[0] = rng.choice(np.arange(k), p=pi)
    for t in range(1, n):
        x[t] = rng.choice(np.arange(k), p=T[x[t - 1]])
    return x


def sample_ensemble(
    T: np.ndarray,
    states: Sequence,
    n_traces: int,
    n_steps: int,
    init: np.ndarray | None = None,
    rng: np.random.Generator | None = None,
) -> List[List[str]]:
    """Sample independent traces of length n_steps, labelled with ``states``."""
    if rng is None:
        rng = np.random.default_rng()
    labels = [as_state(s) for s in states]
    return [
        [labels[i] for i in sample_markov(T, n_steps, init=init, rng=rng)]
        for _ in range(int(n_traces))
    ]


def random_markov_biased(
    k: int,
    delta: float = 0.4,
    min_prob: float = 1e-6,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Construct an irreducible, mildly biased kxk transition matrix.

    - Draws a random row-stochastic matrix, then biases i->i+1 over i->i-1.
    - Floors all entries to min_prob and renormalizes to avoid zeros.
    """
    if rng is None:
        rng = np.random.default_rng()
    G = rng.gamma(shape=1.0, scale=1.0, size=(k, k))
    T = G / G.sum(axis=1, keepdims=True)
    for i in range(k):
        T[i, (i + 1) % k] *= 1.0 + delta
        T[i, (i - 1) % k] *= 1.0 - 0.5 * delta
    T = T / T.sum(axis=1, keepdims=True)
    T = np.maximum(T, min_prob)
    T = T / T.sum(axis=1, keepdims=True)
    return T
