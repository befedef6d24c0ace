"""
stochdual Exception Classes
===========================

Custom exceptions for stochdual error handling.
"""

from typing import Optional


class StochDualError(Exception):
    """Base exception for all stochdual errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(StochDualError):
    """
    Raised when the model, the options or a risk measure are misconfigured.

    Examples: risk parameters outside [0, 1], unknown cut-selection name,
    transition matrices with the wrong shape.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid configuration: {message}")


class UnsupportedRiskMeasure(ConfigurationError):
    """
    Raised when a risk measure cannot produce a cut.

    A measure must override ``generate_cut`` or ``generate_stage_cut``.
    """

    def __init__(self, measure: object) -> None:
        self.measure = measure
        super().__init__(
            f"no cut generator for risk measure of type {type(measure).__name__}; "
            "override `generate_cut(sense, x, pi, theta, prob)` or "
            "`generate_stage_cut(sense, x, pi, theta, prob, stage, markov_state)`"
        )


class DimensionError(ConfigurationError):
    """
    Raised when vector lengths are incompatible.

    Examples: ``pi``, ``theta`` and ``prob`` of different lengths, or a state
    vector whose size differs from the number of state dimensions.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"dimension mismatch: {message}")


class InfeasibleSubproblem(StochDualError):
    """
    Raised when a stage subproblem is primal infeasible.

    This means the incoming state and sampled scenario admit no decision.
    """

    def __init__(
        self,
        message: str = "Stage subproblem is infeasible",
        stage: Optional[int] = None,
        markov_state: Optional[int] = None,
    ) -> None:
        self.stage = stage
        self.markov_state = markov_state
        super().__init__(message)


class SolverError(StochDualError):
    """
    Raised when the LP backend fails to return an optimal solution.

    Covers unbounded subproblems, iteration limits and numerical failures.
    """

    def __init__(self, message: str = "Stage subproblem solve failed") -> None:
        super().__init__(message)


class InconsistentResultShape(StochDualError):
    """
    Raised when worker simulation results cannot be concatenated.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Inconsistent result shape: {message}")


class WorkerTimeoutError(StochDualError):
    """
    Raised when a round does not complete within its configured timeout.

    The canonical model is left untouched.
    """

    def __init__(
        self,
        message: str = "Workers did not finish in time",
        pending: Optional[int] = None,
    ) -> None:
        self.pending = pending
        super().__init__(message)
