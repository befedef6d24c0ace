"""
stochdual LP Result Classes
===========================

Data classes for LP solves performed inside stage subproblems.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

import numpy as np


class Status(Enum):
    """
    LP solver status codes.

    Attributes:
        OPTIMAL: Solution found within tolerance
        PRIMAL_INFEASIBLE: Problem has no feasible solution
        DUAL_INFEASIBLE: Problem is unbounded
        MAX_ITERATIONS: Maximum iteration limit reached
        NUMERICAL_ERROR: Numerical issues encountered
        UNSOLVED: Problem not yet solved
    """
    OPTIMAL = "optimal"
    PRIMAL_INFEASIBLE = "primal_infeasible"
    DUAL_INFEASIBLE = "dual_infeasible"
    MAX_ITERATIONS = "max_iterations"
    NUMERICAL_ERROR = "numerical_error"
    UNSOLVED = "unsolved"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if an optimal solution was found."""
        return self == Status.OPTIMAL


@dataclass
class SolveResult:
    """
    Result of solving an LP.

    Attributes:
        status: Solver status
        objective: Optimal objective value (in the minimization form)
        x: Primal solution vector
        y: Dual solution vector, one entry per constraint row. ``y[i]`` is
            the derivative of the optimal objective with respect to the
            right-hand side of row ``i``.
        iterations: Number of iterations performed
        solve_time: Wall clock time in seconds

    Example:
        >>> result = solve(c, A=A, b=b, constraint_senses=["<=", "="])
        >>> if result.status == Status.OPTIMAL:
        ...     print(result.objective, result.y)
    """

    status: Status
    objective: float
    x: np.ndarray
    y: np.ndarray
    iterations: int
    solve_time: float

    problem_info: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"SolveResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"time={self.solve_time:.4f}s)"
        )

    def summary(self) -> str:
        """Return a formatted summary of the solve result."""
        lines = [
            "=" * 50,
            "LP Solve Summary",
            "=" * 50,
            f"Status:           {self.status}",
            f"Objective:        {self.objective:.10g}",
            f"Iterations:       {self.iterations}",
            f"Solve time:       {self.solve_time:.4f} s",
            f"Rows:             {len(self.y)}",
            f"Columns:          {len(self.x)}",
            "=" * 50,
        ]
        return "\n".join(lines)
