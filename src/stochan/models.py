"""
Theoretical models declared by the user.

- ProbabilityTable: validated (state tuple -> probability) entries over a
  fixed list of variables. Shape errors raise InvalidInputError on
  construction; a table that merely fails to sum to one is still a table.
- ModelDef: a named table whose sum-to-one check is recorded on the model
  (validation_error) instead of raised, so one bad model never aborts the
  analysis of the others.
- evaluate_model: reshapes a model into the same DistributionAnalysis as the
  empirical builder so that comparisons are format-agnostic.
- TransitionMatrixModel: a user-declared transition matrix for ensemble data.
"""

from __future__ import annotations
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from .constants import PROBABILITY_SUM_TOLERANCE
from .datatypes import Distribution, DistributionAnalysis, VariableInfo
from .distributions import as_state, make_key, marginalize
from .empirical import describe_distribution
from .errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbabilityTable:
    variables: Tuple[VariableInfo, ...]
    entries: Tuple[Tuple[Tuple[str, ...], float], ...] = ()

    def __post_init__(self):
        variables = tuple(self.variables)
        if not variables:
            raise InvalidInputError("A probability table needs at least one variable.")
        seen = set()
        clean = []
        for states, prob in self.entries:
            states = tuple(as_state(s) for s in states)
            if len(states) != len(variables):
                raise InvalidInputError(
                    f"Entry {states} has {len(states)} states, expected {len(variables)}."
                )
            for v, s in zip(variables, states):
                if v.state_space and s not in v.state_space:
                    raise InvalidInputError(f"State {s!r} is not in the state space of '{v.name}'.")
            if states in seen:
                raise InvalidInputError(f"Duplicate entry for states {states}.")
            try:
                prob = float(prob)
            except (TypeError, ValueError):
                raise InvalidInputError(f"Probability for {states} is not a number: {prob!r}") from None
            if not math.isfinite(prob) or prob < 0:
                raise InvalidInputError(f"Probability for {states} must be finite and >= 0, got {prob}.")
            seen.add(states)
            clean.append((states, prob))
        object.__setattr__(self, "variables", variables)
        object.__setattr__(self, "entries", tuple(clean))

    @classmethod
    def from_records(cls, variables: Sequence[VariableInfo], records: Sequence[Mapping]) -> "ProbabilityTable":
        """Build from [{"states": {var: state}, "probability": p}, ...]."""
        entries = []
        for i, rec in enumerate(records):
            if not isinstance(rec, Mapping) or "states" not in rec or "probability" not in rec:
                raise InvalidInputError(f"Record {i} must have 'states' and 'probability' fields.")
            states = rec["states"]
            if not isinstance(states, Mapping):
                raise InvalidInputError(f"Record {i}: 'states' must map variable names to states.")
            missing = [v.name for v in variables if v.name not in states]
            if missing:
                raise InvalidInputError(f"Record {i} has no state for {missing}.")
            entries.append((tuple(states[v.name] for v in variables), rec["probability"]))
        return cls(tuple(variables), tuple(entries))

    @classmethod
    def from_json(cls, variables: Sequence[VariableInfo], text: str) -> "ProbabilityTable":
        try:
            records = json.loads(text or "[]")
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Probability table is not valid JSON: {e}") from e
        if not isinstance(records, list):
            raise InvalidInputError("Probability table JSON must be a list of records.")
        return cls.from_records(variables, records)

    @property
    def total(self) -> float:
        return float(sum(p for _, p in self.entries))

    def with_probability(self, states: Sequence, probability: float) -> "ProbabilityTable":
        """Copy with one entry set (added if absent)."""
        key = tuple(as_state(s) for s in states)
        entries = [(s, p) for s, p in self.entries if s != key]
        entries.append((key, probability))
        return ProbabilityTable(self.variables, tuple(entries))

    def as_distribution(self) -> Distribution:
        return {make_key(states): p for states, p in self.entries}


@dataclass
class ModelDef:
    """A named theoretical model; re-validated whenever its probabilities change."""

    name: str
    variables: List[VariableInfo]
    table: Optional[ProbabilityTable] = None
    id: str = field(default_factory=lambda: uuid4().hex)
    validation_error: Optional[str] = None

    def __post_init__(self):
        self.variables = list(self.variables)
        if self.table is None:
            self.table = ProbabilityTable(tuple(self.variables))
        self.validate()

    @property
    def is_valid(self) -> bool:
        return self.validation_error is None

    def validate(self) -> bool:
        total = self.table.total
        if not self.table.entries:
            self.validation_error = "Model has no probabilities."
        elif abs(total - 1.0) > PROBABILITY_SUM_TOLERANCE:
            self.validation_error = f"Probabilities sum to {total:.4f}, expected 1."
        else:
            self.validation_error = None
        return self.validation_error is None

    def set_probability(self, states: Sequence, probability: float) -> bool:
        self.table = self.table.with_probability(states, probability)
        return self.validate()

    def sync_variables(self, variables: Sequence[VariableInfo]) -> bool:
        """Adopt the dataset's variables; reset probabilities if keys became invalid.

        Returns True when the probabilities were discarded.
        """
        variables = list(variables)
        old = {v.name: v.state_space for v in self.variables}
        new = {v.name: v.state_space for v in variables}
        reset = old != new
        self.variables = variables
        if reset:
            self.table = ProbabilityTable(tuple(variables))
        else:
            self.table = ProbabilityTable(tuple(variables), self.table.entries)
        self.validate()
        return reset


def _widen_variables(variables: Sequence[VariableInfo], records) -> List[VariableInfo]:
    """Model-side copies of ``variables`` whose state spaces also hold the states the records use.

    A model may put mass on states the sample never showed; those states are
    appended after the declared ones.
    """
    extra: Dict[str, List[str]] = {v.name: [] for v in variables}
    for rec in records:
        states = rec.get("states") if isinstance(rec, Mapping) else None
        if not isinstance(states, Mapping):
            continue
        for v in variables:
            if v.name not in states:
                continue
            s = as_state(states[v.name])
            if v.state_space and s not in v.state_space and s not in extra[v.name]:
                extra[v.name].append(s)
    return [
        VariableInfo(v.name, v.state_space + tuple(extra[v.name]), v.measurement_type) if extra[v.name] else v
        for v in variables
    ]


def model_from_dict(data: Mapping, variables: Sequence[VariableInfo]) -> ModelDef:
    """Build a ModelDef from {"id"?, "name", "entries": [...]}."""
    if not isinstance(data, Mapping):
        raise InvalidInputError(f"Model definition must be a JSON object, got {type(data).__name__}.")
    if "name" not in data:
        raise InvalidInputError("Model definition needs a 'name'.")
    records = data.get("entries", [])
    if not isinstance(records, list):
        raise InvalidInputError(f"Model '{data['name']}': 'entries' must be a list of records.")
    model_vars = _widen_variables(variables, records)
    table = ProbabilityTable.from_records(model_vars, records)
    kwargs = {"id": str(data["id"])} if "id" in data else {}
    return ModelDef(name=str(data["name"]), variables=model_vars, table=table, **kwargs)


def evaluate_model(model: ModelDef) -> DistributionAnalysis:
    """Joint, marginals, moments and CMFs implied by a model's table."""
    joint = model.table.as_distribution()
    marginals = {v.name: marginalize(joint, i) for i, v in enumerate(model.variables)}
    return describe_distribution(model.variables, joint, marginals)


# ----------------------
# Transition-matrix models
# ----------------------

@dataclass
class TransitionMatrixModel:
    """A declared transition matrix over ``states``; ``None`` marks an unset entry."""

    name: str
    states: List[str]
    matrix: List[List[Optional[float]]]
    id: str = field(default_factory=lambda: uuid4().hex)
    validation_error: Optional[str] = None

    def __post_init__(self):
        self.states = [as_state(s) for s in self.states]
        matrix = []
        for i, row in enumerate(self.matrix):
            if not isinstance(row, (list, tuple)):
                raise InvalidInputError(f"Transition model '{self.name}': row {i} is not a list.")
            cells = []
            for p in row:
                try:
                    cells.append(None if p is None else float(p))
                except (TypeError, ValueError):
                    raise InvalidInputError(
                        f"Transition model '{self.name}': row {i} has a non-numeric entry {p!r}."
                    ) from None
            matrix.append(cells)
        self.matrix = matrix
        self.validate()

    @property
    def is_valid(self) -> bool:
        return self.validation_error is None

    def validate(self) -> bool:
        n = len(self.states)
        self.validation_error = None
        if len(self.matrix) != n or any(len(row) != n for row in self.matrix):
            self.validation_error = f"Matrix must be {n}x{n} over states {self.states}."
            return False
        for i, row in enumerate(self.matrix):
            if any(p is not None and (not math.isfinite(p) or p < 0) for p in row):
                self.validation_error = f"Row '{self.states[i]}' has a negative or non-finite entry."
                return False
            if all(p is not None for p in row) and abs(sum(row) - 1.0) > PROBABILITY_SUM_TOLERANCE:
                self.validation_error = f"Row '{self.states[i]}' sums to {sum(row):.4f}, expected 1."
                return False
        return True

    def row_distribution(self, from_state: str) -> Optional[Distribution]:
        """Row as a distribution keyed by state, or None if any entry is unset."""
        if from_state not in self.states:
            return None
        row = self.matrix[self.states.index(from_state)]
        if any(p is None for p in row):
            return None
        return dict(zip(self.states, row))


def transition_model_from_dict(data: Mapping) -> TransitionMatrixModel:
    if not isinstance(data, Mapping):
        raise InvalidInputError(f"Transition model definition must be a JSON object, got {type(data).__name__}.")
    for key in ("name", "states", "matrix"):
        if key not in data:
            raise InvalidInputError(f"Transition model definition needs '{key}'.")
    if not isinstance(data["states"], list) or not isinstance(data["matrix"], list):
        raise InvalidInputError(f"Transition model '{data['name']}': 'states' and 'matrix' must be lists.")
    kwargs = {"id": str(data["id"])} if "id" in data else {}
    return TransitionMatrixModel(name=str(data["name"]), states=list(data["states"]),
                                 matrix=list(data["matrix"]), **kwargs)
