"""
JSON-safe rendering of analysis results.

Infinite divergences are legitimate results; they serialize to the
INFINITY_MARKER string (and its negative) instead of the non-standard
``Infinity`` literal or NaN, and from_json_number() restores them.
"""

from __future__ import annotations
import dataclasses
import math
from enum import Enum
from typing import Any, Optional

import numpy as np

from .constants import INFINITY_MARKER


def _float(x: float) -> Any:
    if math.isnan(x):
        return None
    if math.isinf(x):
        return INFINITY_MARKER if x > 0 else "-" + INFINITY_MARKER
    return x


def to_jsonable(obj: Any) -> Any:
    """Recursively convert results into values json.dumps accepts."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, np.ndarray):
        return to_jsonable(obj.tolist())
    if isinstance(obj, np.generic):
        return to_jsonable(obj.item())
    if isinstance(obj, bool) or obj is None or isinstance(obj, (str, int)):
        return obj
    if isinstance(obj, float):
        return _float(obj)
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in obj]
    return str(obj)


def from_json_number(value: Any) -> Optional[float]:
    """Inverse of the float handling in to_jsonable."""
    if value is None:
        return None
    if value == INFINITY_MARKER:
        return math.inf
    if value == "-" + INFINITY_MARKER:
        return -math.inf
    return float(value)


def format_metric(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    if math.isinf(value):
        return "∞" if value > 0 else "-∞"
    return f"{value:.4f}"
