"""
Discrete distribution primitives over composite state keys.

Provides:
- State/key helpers: as_state, is_missing, parse_number, make_key, split_key.
- Counting and normalization: counts, normalize, marginalize.
- Information measures in bits: entropy, kl_divergence,
  jensen_shannon_divergence/distance, mutual_information.
- Distances between distributions: hellinger_distance, mean_squared_error.
- Sample dependence statistics: pearson_correlation, distance_correlation.

Missing keys are probability 0 everywhere. Degenerate inputs give None rather
than raising; kl_divergence returns math.inf when P is not absolutely
continuous with respect to Q.
"""

from __future__ import annotations
import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .constants import KEY_SEPARATOR, NORMALIZATION_TOLERANCE
from .datatypes import Distribution


# ----------------------
# States and keys
# ----------------------

def is_missing(value) -> bool:
    """True for None, blank strings and NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return False


def as_state(value) -> str:
    """Canonical string form of a state (integral floats lose their '.0')."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(state) -> Optional[float]:
    """Return the finite float a state spells, or None if it is not numeric."""
    if isinstance(state, (int, float, np.integer, np.floating)) and not isinstance(state, bool):
        x = float(state)
        return x if math.isfinite(x) else None
    try:
        x = float(str(state).strip())
    except ValueError:
        return None
    return x if math.isfinite(x) else None


def make_key(states: Sequence) -> str:
    return KEY_SEPARATOR.join(as_state(s) for s in states)


def split_key(key: str) -> List[str]:
    return key.split(KEY_SEPARATOR)


# ----------------------
# Counting
# ----------------------

def counts(observations: Iterable) -> Dict[str, float]:
    """Unnormalized counts; tuple/list observations are joined into composite keys."""
    out: Dict[str, float] = {}
    for obs in observations:
        key = make_key(obs) if isinstance(obs, (tuple, list)) else as_state(obs)
        out[key] = out.get(key, 0.0) + 1.0
    return out


def normalize(count_map: Mapping[str, float]) -> Distribution:
    """Divide by the total; an all-zero (or empty) input gives an empty mapping."""
    total = float(sum(count_map.values()))
    if total == 0.0:
        return {}
    return {k: float(v) / total for k, v in count_map.items()}


def marginalize(joint: Mapping[str, float], positions: Union[int, Sequence[int]]) -> Distribution:
    """Sum a joint distribution onto the key positions listed (in that order)."""
    if isinstance(positions, int):
        positions = (positions,)
    out: Distribution = {}
    for key, p in joint.items():
        parts = split_key(key)
        sub = KEY_SEPARATOR.join(parts[i] for i in positions)
        out[sub] = out.get(sub, 0.0) + p
    return out


def is_normalized(dist: Mapping[str, float], tol: float = NORMALIZATION_TOLERANCE) -> bool:
    return abs(sum(dist.values()) - 1.0) <= tol


# ----------------------
# Information measures (bits)
# ----------------------

def entropy(dist: Mapping[str, float]) -> float:
    """Shannon entropy in bits; 0*log(0) counts as 0."""
    h = 0.0
    for p in dist.values():
        if p > 0:
            h -= p * math.log2(p)
    return h


def kl_divergence(p: Mapping[str, float], q: Mapping[str, float]) -> float:
    """D(P||Q) in bits, math.inf if some P[k] > 0 has Q[k] == 0."""
    d = 0.0
    for key, pk in p.items():
        if pk <= 0:
            continue
        qk = q.get(key, 0.0)
        if qk <= 0:
            return math.inf
        d += pk * math.log2(pk / qk)
    return d


def jensen_shannon_divergence(p: Mapping[str, float], q: Mapping[str, float]) -> float:
    """Symmetric, finite JSD in bits against the midpoint M = (P+Q)/2."""
    keys = set(p) | set(q)
    m = {k: 0.5 * (p.get(k, 0.0) + q.get(k, 0.0)) for k in keys}
    jsd = 0.5 * kl_divergence(p, m) + 0.5 * kl_divergence(q, m)
    return max(0.0, jsd)


def jensen_shannon_distance(p: Mapping[str, float], q: Mapping[str, float]) -> float:
    return math.sqrt(jensen_shannon_divergence(p, q))


def hellinger_distance(p: Mapping[str, float], q: Mapping[str, float]) -> float:
    """Hellinger distance over the union of keys, in [0, 1]."""
    s = 0.0
    for key in set(p) | set(q):
        s += (math.sqrt(max(p.get(key, 0.0), 0.0)) - math.sqrt(max(q.get(key, 0.0), 0.0))) ** 2
    return min(1.0, math.sqrt(s) / math.sqrt(2.0))


def mean_squared_error(p: Mapping[str, float], q: Mapping[str, float]) -> Optional[float]:
    """Mean of squared probability differences over the union of keys."""
    keys = set(p) | set(q)
    if not keys:
        return None
    return sum((p.get(k, 0.0) - q.get(k, 0.0)) ** 2 for k in keys) / len(keys)


def mutual_information(joint: Mapping[str, float], positions: Tuple[int, int] = (0, 1)) -> Optional[float]:
    """I(X;Y) in bits from a joint whose keys hold X and Y at ``positions``.

    Returns None when the joint is empty or its keys do not have both
    positions (e.g. a single-variable dataset).
    """
    if not joint:
        return None
    i, j = positions
    width = max(i, j) + 1
    if any(len(split_key(k)) < width for k in joint):
        return None
    pair = marginalize(joint, (i, j))
    px = marginalize(joint, i)
    py = marginalize(joint, j)
    mi = 0.0
    for key, pxy in pair.items():
        if pxy <= 0:
            continue
        x, y = split_key(key)
        mi += pxy * math.log2(pxy / (px[x] * py[y]))
    return max(0.0, mi)


# ----------------------
# Sample dependence statistics
# ----------------------

def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """Pearson r in [-1, 1]; None on length mismatch or a constant series."""
    if len(xs) != len(ys) or len(xs) < 2:
        return None
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    sxx = float(np.dot(dx, dx))
    syy = float(np.dot(dy, dy))
    if sxx == 0.0 or syy == 0.0:
        return None
    r = float(np.dot(dx, dy)) / math.sqrt(sxx * syy)
    return float(np.clip(r, -1.0, 1.0))


def _double_center(d: np.ndarray) -> np.ndarray:
    """A_ij = d_ij - mean_row_i - mean_col_j + grand_mean."""
    return d - d.mean(axis=1, keepdims=True) - d.mean(axis=0, keepdims=True) + d.mean()


def distance_correlation(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """Sample distance correlation (V-statistics) clamped to [0, 1].

    None with fewer than two paired observations or when either series has
    zero distance variance.
    """
    if len(xs) != len(ys) or len(xs) < 2:
        return None
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    a = _double_center(np.abs(x[:, None] - x[None, :]))
    b = _double_center(np.abs(y[:, None] - y[None, :]))
    v_xy = float((a * b).mean())
    v_xx = float((a * a).mean())
    v_yy = float((b * b).mean())
    if v_xx <= 0.0 or v_yy <= 0.0:
        return None
    dcor = math.sqrt(max(v_xy, 0.0)) / math.sqrt(math.sqrt(v_xx) * math.sqrt(v_yy))
    return float(np.clip(dcor, 0.0, 1.0))
