"""Exception taxonomy for the analysis engine."""

from __future__ import annotations


class StochanError(Exception):
    """Base class for all errors raised by stochan."""


class InvalidInputError(StochanError, ValueError):
    """Input has the wrong shape (empty data, arity mismatch, unknown state...)."""


class ResourceExceeded(StochanError, RuntimeError):
    """The order analysis would enumerate more sequences than allowed."""

    def __init__(self, estimated: int, limit: int):
        self.estimated = int(estimated)
        self.limit = int(limit)
        super().__init__(
            f"Order analysis needs {self.estimated} sequences per order, "
            f"above the configured limit of {self.limit}; use fewer states or time steps."
        )


class AnalysisCancelled(StochanError):
    """Raised when a caller-supplied cancellation check fires mid-analysis."""
