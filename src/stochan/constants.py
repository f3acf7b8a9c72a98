"""
Named numeric tolerances and thresholds shared across the engine.

Two tolerances coexist on purpose:
- PROBABILITY_SUM_TOLERANCE applies to numbers typed in by a person
  (probability tables, transition-matrix rows), which are usually rounded
  to a few decimals.
- NORMALIZATION_TOLERANCE applies to distributions the engine produced
  itself by counting and dividing, where only floating-point noise remains.
"""

from __future__ import annotations

KEY_SEPARATOR = "|"

PROBABILITY_SUM_TOLERANCE = 1e-4
NORMALIZATION_TOLERANCE = 1e-9
TIE_TOLERANCE = 1e-12

CMF_SIGNIFICANT_DIGITS = 15

# Heuristic cut-off for calling a process first-order Markovian. It is not a
# calibrated significance level.
MARKOV_DISTANCE_THRESHOLD = 0.5

# Upper bound on |S|**T sequences enumerated per order in the order analysis.
DEFAULT_MAX_SEQUENCES = 250_000

INFINITY_MARKER = "Infinity"
