"""
Self-dependence (memory order) analysis of an ensemble of traces.

For every candidate order k the joint distribution over all T time points is
rebuilt with the chain rule, conditioning each X_t only on the k most recent
points:

    P_k(x_0..x_{T-1}) = P(x_0) * prod_{t>=1} P(x_t | x_{t-min(t,k)}..x_{t-1})

The order T-1 reconstruction conditions on the whole past and therefore
equals the empirical joint of the ensemble; it is the reference every lower
order is compared with (Hellinger and Jensen-Shannon distance).

Cost: the reconstruction ranges over the |S|**T sequences of the state
space. Sequences are extended time step by time step and dropped as soon as
a factor is zero, so the stored result only covers the support of the data,
but the worst case stays exponential in T. estimate_sequence_count() gives
the pre-flight figure and analyze_self_dependence() raises ResourceExceeded
above ``max_sequences``.

The conclusion uses a fixed distance threshold on the order-1 result. It is
a heuristic, not a hypothesis test, and carries no significance level.
"""

from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .constants import DEFAULT_MAX_SEQUENCES, KEY_SEPARATOR, MARKOV_DISTANCE_THRESHOLD
from .datatypes import ConditionalTable, Distribution, OrderResult, SelfDependenceAnalysis
from .distributions import (as_state, counts, hellinger_distance, is_missing, is_normalized,
                            jensen_shannon_distance, normalize)
from .errors import AnalysisCancelled, InvalidInputError, ResourceExceeded
from .markov import observed_states

logger = logging.getLogger(__name__)

Trace = List[Optional[str]]


class ConditionalCache:
    """Conditional distributions P(X_t | window before t) of one ensemble.

    Entries are keyed by (t, window) and map a conditioning key (the window's
    states joined by KEY_SEPARATOR) to a distribution over X_t. One instance
    belongs to one analysis run; it is never shared between datasets.
    """

    def __init__(self, traces: Sequence[Trace]):
        self.traces = traces
        self._store: Dict[Tuple[int, int], Dict[str, Distribution]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._store)

    def get(self, t: int, window: int) -> Dict[str, Distribution]:
        key = (int(t), int(window))
        cached = self._store.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        result = self._compute(*key)
        self._store[key] = result
        return result

    def _compute(self, t: int, window: int) -> Dict[str, Distribution]:
        if window < 1 or window > t:
            raise ValueError(f"window must be in 1..{t}, got {window}")
        grouped: Dict[str, Dict[str, float]] = {}
        for trace in self.traces:
            past = trace[t - window:t]
            target = trace[t]
            if target is None or any(s is None for s in past):
                continue
            cond = KEY_SEPARATOR.join(past)
            bucket = grouped.setdefault(cond, {})
            bucket[target] = bucket.get(target, 0.0) + 1.0
        return {cond: normalize(c) for cond, c in grouped.items()}


def estimate_sequence_count(n_states: int, n_steps: int) -> int:
    """Number of candidate sequences |S|**T enumerated per order."""
    return int(n_states) ** int(n_steps)


def _prepare_traces(traces: Sequence[Sequence], states: Sequence[str]) -> Tuple[List[Trace], int]:
    if not traces:
        raise InvalidInputError("The ensemble has no traces.")
    n_steps = max(len(tr) for tr in traces)
    if n_steps < 2:
        raise InvalidInputError("Ensemble data must have at least 2 time points.")
    allowed = set(states)
    prepared: List[Trace] = []
    short = 0
    incomplete = 0
    for i, trace in enumerate(traces):
        row: Trace = []
        for value in trace:
            if is_missing(value):
                row.append(None)
                continue
            s = as_state(value)
            if s not in allowed:
                raise InvalidInputError(f"Trace {i}: state {s!r} is not in the state space {list(states)}.")
            row.append(s)
        if len(row) < n_steps:
            short += 1
            row.extend([None] * (n_steps - len(row)))
        if any(s is None for s in row):
            incomplete += 1
        prepared.append(row)
    if short:
        logger.warning("%d of %d traces are shorter than %d time points; their tail is treated as missing",
                       short, len(prepared), n_steps)
    if incomplete:
        logger.warning("%d of %d traces have missing values and are skipped wherever a conditional touches them",
                       incomplete, len(prepared))
    return prepared, n_steps


def _check_cancel(should_cancel: Optional[Callable[[], bool]]) -> None:
    if should_cancel is not None and should_cancel():
        raise AnalysisCancelled("Order analysis cancelled by caller.")


def joint_for_order(
    order: int,
    states: Sequence[str],
    initial: Distribution,
    cache: ConditionalCache,
    n_steps: int,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> Distribution:
    """Chain-rule joint over all n_steps points with lookback limited to ``order``.

    Only sequences with strictly positive probability are kept. Keys are the
    sequences' states joined by KEY_SEPARATOR, in Cartesian-product order.
    """
    frontier: List[Tuple[Tuple[str, ...], float]] = [
        ((s,), initial[s]) for s in states if initial.get(s, 0.0) > 0.0
    ]
    for t in range(1, n_steps):
        _check_cancel(should_cancel)
        window = min(t, order)
        conditionals = cache.get(t, window)
        extended: List[Tuple[Tuple[str, ...], float]] = []
        for prefix, p in frontier:
            dist = conditionals.get(KEY_SEPARATOR.join(prefix[t - window:]))
            if not dist:
                continue
            for s in states:
                q = dist.get(s, 0.0)
                if q > 0.0:
                    extended.append((prefix + (s,), p * q))
        frontier = extended
        if not frontier:
            break
    return {KEY_SEPARATOR.join(seq): p for seq, p in frontier}


def conditional_tables_for_order(
    order: int,
    states: Sequence[str],
    cache: ConditionalCache,
    n_steps: int,
    time_labels: Sequence[str],
) -> List[ConditionalTable]:
    """P(X_t | lookback) tables for t = 1..T-1 over the observed lookback combinations."""
    rank = {s: i for i, s in enumerate(states)}
    tables: List[ConditionalTable] = []
    for t in range(1, n_steps):
        window = min(t, order)
        conditionals = cache.get(t, window)
        combos = sorted(
            (tuple(k.split(KEY_SEPARATOR)) for k in conditionals),
            key=lambda c: [rank[s] for s in c],
        )
        matrix = np.array(
            [[conditionals[KEY_SEPARATOR.join(c)].get(s, 0.0) for s in states] for c in combos],
            dtype=float,
        ).reshape(len(combos), len(states))
        conditioned = tuple(time_labels[t - window:t])
        tables.append(ConditionalTable(
            title=f"P({time_labels[t]} | {', '.join(conditioned)})",
            target=time_labels[t],
            conditioned=conditioned,
            target_states=list(states),
            conditioned_combinations=combos,
            matrix=matrix,
        ))
    return tables


def markov_conclusion(orders: Sequence[OrderResult], threshold: float = MARKOV_DISTANCE_THRESHOLD) -> str:
    """Plain-language verdict from the order-1 result and a fixed distance threshold."""
    if not orders:
        return (
            "The analysis could not be completed: at least 3 time points are needed to compare "
            "a 1st-order reconstruction with the full-past reconstruction."
        )
    first = orders[0]
    hd = first.hellinger_distance
    jsd = first.jensen_shannon_distance
    if 0.0 <= hd <= threshold and 0.0 <= jsd <= threshold:
        return (
            f"The process appears to be Markovian (1st-order). The Hellinger distance ({hd:.4f}) and "
            f"Jensen-Shannon distance ({jsd:.4f}) between the 1st-order reconstruction and the full-past "
            f"reconstruction are both within 0 to {threshold:g}, so the next state depends mainly on the "
            f"current one. This is a fixed heuristic threshold, not a significance test."
        )
    return (
        f"The Markovian assumption likely does not hold. At least one distance falls outside 0 to "
        f"{threshold:g} (Hellinger: {hd:.4f}, Jensen-Shannon: {jsd:.4f}), so states before the most "
        f"recent one carry information about the next. This is a fixed heuristic threshold, not a "
        f"significance test."
    )


def analyze_self_dependence(
    traces: Sequence[Sequence],
    states: Optional[Sequence] = None,
    time_labels: Optional[Sequence] = None,
    max_sequences: Optional[int] = DEFAULT_MAX_SEQUENCES,
    threshold: float = MARKOV_DISTANCE_THRESHOLD,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> SelfDependenceAnalysis:
    """Compare order-k chain-rule reconstructions (k = 1..T-2) with the full past.

    - traces: realizations of the same process, one sequence per trace,
      aligned on time; missing values (None, '', NaN) exclude a trace from
      every conditional that touches that point.
    - states: shared state space (defaults to the sorted observed states).
    - time_labels: one label per time point (defaults to '0'..'T-1').
    - max_sequences: raise ResourceExceeded when |S|**T exceeds it (None
      disables the check).
    - should_cancel: polled between time steps; raises AnalysisCancelled.
    """
    if states is None:
        states = observed_states(traces)
    states = [as_state(s) for s in states]
    if len(set(states)) != len(states):
        raise InvalidInputError(f"State space has duplicate entries: {states}")
    if not states:
        raise InvalidInputError("The state space is empty.")
    if any(KEY_SEPARATOR in s for s in states):
        raise InvalidInputError(f"States may not contain {KEY_SEPARATOR!r}: {states}")
    prepared, n_steps = _prepare_traces(traces, states)
    if time_labels is None:
        labels = [str(t) for t in range(n_steps)]
    else:
        labels = [as_state(x) for x in time_labels]
        if len(labels) != n_steps:
            raise InvalidInputError(f"Got {len(labels)} time labels for {n_steps} time points.")

    estimated = estimate_sequence_count(len(states), n_steps)
    if max_sequences is not None and estimated > max_sequences:
        raise ResourceExceeded(estimated, max_sequences)

    logger.info("Order analysis: |S|=%d, T=%d, %d traces, up to %d sequences per order",
                len(states), n_steps, len(prepared), estimated)
    cache = ConditionalCache(prepared)
    initial = normalize(counts(tr[0] for tr in prepared if tr[0] is not None))

    joints: Dict[int, Distribution] = {}
    for order in range(1, n_steps):
        _check_cancel(should_cancel)
        joints[order] = joint_for_order(order, states, initial, cache, n_steps, should_cancel)
        logger.debug("Order %d joint support: %d sequences", order, len(joints[order]))
        if joints[order] and not is_normalized(joints[order]):
            logger.warning("Order %d reconstruction covers %.4f of the probability mass (missing values)",
                           order, sum(joints[order].values()))

    reference = joints[n_steps - 1]
    orders = [
        OrderResult(
            order=k,
            hellinger_distance=hellinger_distance(joints[k], reference),
            jensen_shannon_distance=jensen_shannon_distance(joints[k], reference),
        )
        for k in range(1, n_steps - 1)
    ]
    tables = {
        k: conditional_tables_for_order(k, states, cache, n_steps, labels)
        for k in range(1, n_steps)
    }
    logger.debug("Conditional cache: %d entries, %d hits, %d misses", len(cache), cache.hits, cache.misses)
    logger.info("Order analysis done: %d orders compared with the full past", len(orders))
    return SelfDependenceAnalysis(
        orders=orders,
        conclusion=markov_conclusion(orders, threshold),
        conditional_tables=tables,
        joint_distributions=joints,
        states=states,
        time_labels=labels,
    )
