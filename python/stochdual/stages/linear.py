"""
Linear Stage Subproblems
========================

Stage subproblem written as a linear program:

    minimize (or maximize)  c_s'y + theta
    subject to              A_in z + A y  (<=, >=, =)  b_s
                            z = x_in                       (copy rows)
                            cuts on theta and y[state_out]
                            lb <= y <= ub

where ``s`` is the sampled scenario. The duals of the copy rows are the
derivatives of the optimal value with respect to the incoming state, which
is exactly what a cut needs.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import ConfigurationError, DimensionError, InfeasibleSubproblem, SolverError
from ..result import Status
from ..solver import solve as solve_lp
from ..types import Sense
from .base import StageProblem, StageSolution

# theta bound used when the model does not provide one
DEFAULT_VALUE_TO_GO_BOUND = 1e6


class LinearStageProblem(StageProblem):
    """
    Stage subproblem defined by LP data.

    Args:
        c: Stage cost of the decision variables, ``(n_y,)`` or one row per
            scenario ``(S, n_y)``
        A: Constraint matrix on the decisions ``(m, n_y)``
        b: Right-hand side ``(m,)`` or one row per scenario ``(S, m)``
        senses: Sense of each row (``'<='``, ``'>='``, ``'='``)
        state_out: Index in ``y`` of each outgoing state variable (length N)
        A_in: Constraint matrix on the incoming state ``(m, N)``
        lb: Lower bounds of ``y`` (default 0)
        ub: Upper bounds of ``y`` (default +inf)
        scenario_probability: Probability of each scenario (default uniform)
        names: Names of the decision variables, reported by simulations
        solver_params: Passed to :func:`stochdual.solver.solve`

    Example:
        >>> # y = [volume_out, hydro, thermal, spill]
        >>> problem = LinearStageProblem(
        ...     c=[0, 0, 5, 0],
        ...     A=[[1, 1, 0, 1], [0, 1, 1, 0]],
        ...     A_in=[[-1], [0]],
        ...     b=[[0, 10], [5, 10], [10, 10]],    # inflow, demand
        ...     senses=["=", "="],
        ...     state_out=[0],
        ...     ub=[20, np.inf, np.inf, np.inf],
        ... )
    """

    def __init__(
        self,
        c: Sequence[float],
        A: Sequence[Sequence[float]],
        b: Sequence[float],
        senses: Sequence[str],
        state_out: Sequence[int],
        A_in: Optional[Sequence[Sequence[float]]] = None,
        lb: Optional[Sequence[float]] = None,
        ub: Optional[Sequence[float]] = None,
        scenario_probability: Optional[Sequence[float]] = None,
        names: Optional[Sequence[str]] = None,
        solver_params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.A = np.atleast_2d(np.asarray(A, dtype=np.float64))
        m, n_y = self.A.shape
        self.state_out = np.asarray(state_out, dtype=np.int64).ravel()
        n_states = len(self.state_out)

        c = np.asarray(c, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        n_scen = max(c.shape[0] if c.ndim == 2 else 1, b.shape[0] if b.ndim == 2 else 1)
        if scenario_probability is None:
            scenario_probability = np.full(n_scen, 1.0 / n_scen)
        super().__init__(n_states, scenario_probability)
        S = self.n_scenarios

        self.c = np.tile(c, (S, 1)) if c.ndim == 1 else c
        self.b = np.tile(b, (S, 1)) if b.ndim == 1 else b
        if self.c.shape != (S, n_y):
            raise DimensionError(f"c must have shape ({n_y},) or ({S}, {n_y}), got {c.shape}")
        if self.b.shape != (S, m):
            raise DimensionError(f"b must have shape ({m},) or ({S}, {m}), got {b.shape}")

        if A_in is None:
            self.A_in = np.zeros((m, n_states))
        else:
            self.A_in = np.atleast_2d(np.asarray(A_in, dtype=np.float64))
        if self.A_in.shape != (m, n_states):
            raise DimensionError(f"A_in must have shape ({m}, {n_states}), got {self.A_in.shape}")

        self.senses = list(senses)
        if len(self.senses) != m:
            raise DimensionError(f"{m} rows but {len(self.senses)} senses")
        if np.any(self.state_out < 0) or np.any(self.state_out >= n_y):
            raise ConfigurationError(f"state_out indices must be in [0, {n_y})")

        self.lb = np.zeros(n_y) if lb is None else np.asarray(lb, dtype=np.float64).ravel()
        self.ub = np.full(n_y, np.inf) if ub is None else np.asarray(ub, dtype=np.float64).ravel()
        if len(self.lb) != n_y or len(self.ub) != n_y:
            raise DimensionError(f"bounds must have {n_y} entries")

        self.names = list(names) if names is not None else [f"y{j}" for j in range(n_y)]
        if len(self.names) != n_y:
            raise DimensionError(f"{n_y} variables but {len(self.names)} names")
        self.solver_params = dict(solver_params or {})

    @property
    def n_decisions(self) -> int:
        return self.A.shape[1]

    def _theta_bounds(self):
        if self.final_stage:
            return 0.0, 0.0
        bound = self.value_to_go_bound
        if bound is None:
            bound = -DEFAULT_VALUE_TO_GO_BOUND if self.sense == Sense.MIN else DEFAULT_VALUE_TO_GO_BOUND
        if self.sense == Sense.MIN:
            return float(bound), np.inf
        return -np.inf, float(bound)

    def build_lp(self, incoming_state: Sequence[float], scenario: int) -> Dict[str, Any]:
        """
        Assemble the LP in minimization form.

        Columns are ``[z (N), y (n_y), theta]``; rows are the copy rows, the
        stage rows, then one row per cut.
        """
        x = self._check_state(incoming_state)
        if not 0 <= scenario < self.n_scenarios:
            raise ConfigurationError(f"scenario {scenario} out of range [0, {self.n_scenarios})")

        N, n_y = self.n_states, self.n_decisions
        m = self.A.shape[0]
        n = N + n_y + 1
        sign = 1.0 if self.sense == Sense.MIN else -1.0

        c = np.zeros(n)
        c[N:N + n_y] = sign * self.c[scenario]
        c[-1] = sign

        rows: List[np.ndarray] = []
        rhs: List[float] = []
        senses: List[str] = []

        copy_rows = np.zeros((N, n))
        copy_rows[:, :N] = np.eye(N)
        rows.append(copy_rows)
        rhs.extend(x)
        senses.extend(["="] * N)

        stage_rows = np.zeros((m, n))
        stage_rows[:, :N] = self.A_in
        stage_rows[:, N:N + n_y] = self.A
        rows.append(stage_rows)
        rhs.extend(self.b[scenario])
        senses.extend(self.senses)

        if self.cuts and not self.final_stage:
            cut_rows = np.zeros((len(self.cuts), n))
            for k, cut in enumerate(self.cuts):
                # MIN: coef'y_out - theta <= -intercept
                # MAX: theta - coef'y_out <= intercept
                cut_rows[k, N + self.state_out] = sign * np.asarray(cut.coefficients)
                cut_rows[k, -1] = -sign
                rhs.append(-sign * cut.intercept)
            rows.append(cut_rows)
            senses.extend(["<="] * len(self.cuts))

        theta_lb, theta_ub = self._theta_bounds()
        lb = np.concatenate([np.full(N, -np.inf), self.lb, [theta_lb]])
        ub = np.concatenate([np.full(N, np.inf), self.ub, [theta_ub]])

        return {
            "c": c,
            "A": np.vstack(rows),
            "b": np.asarray(rhs, dtype=np.float64),
            "constraint_senses": senses,
            "lb": lb,
            "ub": ub,
        }

    def solve(self, incoming_state: Sequence[float], scenario: int) -> StageSolution:
        lp = self.build_lp(incoming_state, scenario)
        result = solve_lp(params=self.solver_params, **lp)

        if result.status == Status.PRIMAL_INFEASIBLE:
            raise InfeasibleSubproblem(
                f"stage {self.stage} markov state {self.markov_state} scenario {scenario} is infeasible",
                stage=self.stage,
                markov_state=self.markov_state,
            )
        if result.status != Status.OPTIMAL:
            raise SolverError(
                f"stage {self.stage} markov state {self.markov_state} scenario {scenario}: "
                f"solver returned {result.status}"
            )

        N, n_y = self.n_states, self.n_decisions
        sign = 1.0 if self.sense == Sense.MIN else -1.0
        y = result.x[N:N + n_y]
        theta = float(result.x[-1])
        values = {name: float(v) for name, v in zip(self.names, y)}
        values["theta"] = theta

        return StageSolution(
            objective=sign * result.objective,
            stage_objective=float(np.dot(self.c[scenario], y)),
            duals=sign * result.y[:N],
            state=y[self.state_out].copy(),
            values=values,
        )
