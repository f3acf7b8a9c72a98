"""
Host-side helpers for tabular input: CSV loading, ensemble detection and a
default measurement-type classification that the user can override.
"""

from __future__ import annotations
import csv
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .datatypes import MeasurementType, VariableInfo
from .distributions import as_state, is_missing, parse_number
from .errors import InvalidInputError
from .moments import natural_sort_states


def load_table(path: str) -> Tuple[List[str], List[List[str]]]:
    """Read a CSV file into (headers, rows) with stripped string cells."""
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        lines = [[cell.strip() for cell in line] for line in reader]
    lines = [line for line in lines if any(cell for cell in line)]
    if not lines:
        raise InvalidInputError(f"{path} is empty.")
    headers, rows = lines[0], lines[1:]
    if not rows:
        raise InvalidInputError(f"{path} has a header row but no data.")
    return headers, rows


def is_ensemble_table(headers: Sequence[str]) -> bool:
    """Ensemble layout: a 'time' column followed by 'instance...' columns."""
    if len(headers) < 2:
        return False
    return headers[0].strip().lower() == "time" and headers[1].strip().lower().startswith("instance")


def ensemble_traces(rows: Sequence[Sequence]) -> Tuple[List[str], List[list]]:
    """Split ensemble rows into time labels and one trace per instance column."""
    time_labels = [as_state(row[0]) for row in rows]
    n_instances = max(len(row) for row in rows) - 1
    traces = [[row[c] if c < len(row) else None for row in rows] for c in range(1, n_instances + 1)]
    return time_labels, traces


def classify_variables(
    headers: Sequence[str],
    rows: Sequence[Sequence],
    overrides: Optional[Mapping[str, str]] = None,
) -> List[VariableInfo]:
    """Default VariableInfo per column; ``overrides`` (name -> type) win.

    A column is numerical when every non-missing cell parses as a number and
    nominal otherwise. State spaces are the observed states, numeric-aware
    sorted. An override may fix the state order as ``type:s1,s2,...``; the
    listed states come first, in that order, followed by any other observed
    states.
    """
    overrides = dict(overrides or {})
    unknown = set(overrides) - set(headers)
    if unknown:
        raise InvalidInputError(f"Type overrides for unknown variables: {sorted(unknown)}")
    out: List[VariableInfo] = []
    for i, name in enumerate(headers):
        cells = [row[i] for row in rows if i < len(row) and not is_missing(row[i])]
        states = natural_sort_states({as_state(c) for c in cells})
        if name in overrides:
            mtype, _, order = overrides[name].partition(":")
            declared = [s.strip() for s in order.split(",") if s.strip()]
            states = declared + [s for s in states if s not in declared]
        elif cells and all(parse_number(c) is not None for c in cells):
            mtype = MeasurementType.NUMERICAL
        else:
            mtype = MeasurementType.NOMINAL
        out.append(VariableInfo(name=name, state_space=tuple(states), measurement_type=mtype))
    return out


def parse_type_overrides(items: Sequence[str]) -> Dict[str, str]:
    """Parse ['NAME=ordinal', 'NAME=ordinal:low,mid,high', ...] into a mapping.

    The type is lowercased; a state order after ':' keeps its case.
    """
    out: Dict[str, str] = {}
    for item in items:
        name, sep, mtype = item.partition("=")
        if not sep or not name.strip():
            raise InvalidInputError(f"Type override must look like NAME=TYPE, got {item!r}")
        mtype, colon, order = mtype.partition(":")
        out[name.strip()] = mtype.strip().lower() + (":" + order.strip() if colon else "")
    return out
