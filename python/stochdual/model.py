"""
stochdual Multistage Model
==========================

:class:`SDDPModel` is the canonical state of a training run: the stage
subproblems, the cut store of every (stage, Markov state) pair and the
current bound and confidence interval. Only the orchestrator mutates it.

:class:`ModelSnapshot` is the immutable, picklable part of the model
configuration that is sent to workers; a worker rebuilds its own private
model from it with :meth:`SDDPModel.from_snapshot`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .cuts import StageCuts
from .exceptions import ConfigurationError, DimensionError
from .risk import Expectation, RiskMeasure
from .stages import StageProblem, StageSolution
from .types import Sense

BuildFunction = Callable[[int, int], StageProblem]


@dataclass(frozen=True)
class ModelSnapshot:
    """
    Read-only model configuration broadcast to workers.

    Attributes:
        sense: Optimization sense
        n_stages: Number of stages
        n_markov_states: Number of Markov states per stage
        scenario_probability: ``[stage][markov]`` scenario probability vectors
        transition: ``(n_stages - 1, M, M)`` transition probabilities
        initial_markov_probability: Distribution of the first Markov state
        initial_state: State entering the first stage
        conf_level: Confidence level of the forward-pass interval
        solver_params: LP solver parameters
        value_to_go_bound: Bound on the future value in every stage
        build_function: ``(stage, markov_state) -> StageProblem``
        risk_measure: Risk measure used for cuts
    """

    sense: Sense
    n_stages: int
    n_markov_states: int
    scenario_probability: Tuple[Tuple[np.ndarray, ...], ...]
    transition: np.ndarray
    initial_markov_probability: np.ndarray
    initial_state: np.ndarray
    conf_level: float
    solver_params: Dict[str, Any]
    value_to_go_bound: Optional[float]
    build_function: BuildFunction
    risk_measure: RiskMeasure


class SDDPModel:
    """
    Multistage stochastic program with Markov-modulated stages.

    Args:
        build_function: Callable ``(stage, markov_state) -> StageProblem``.
            Must be picklable (a module-level function) to be used with a
            process pool.
        n_stages: Number of stages
        initial_state: State entering the first stage (length N)
        sense: ``"min"`` or ``"max"``
        n_markov_states: Number of Markov states per stage
        transition: A single ``(M, M)`` matrix used between every pair of
            stages, or an ``(n_stages - 1, M, M)`` array. ``transition[t][i, j]``
            is the probability of Markov state ``j`` in stage ``t + 1`` given
            state ``i`` in stage ``t``.
        initial_markov_probability: Distribution of the first Markov state
            (default: all mass on state 0)
        scenario_probability: Optional ``[stage][markov]`` probability
            vectors; read from the built stage problems when omitted
        risk_measure: Cut risk measure (default: expectation)
        value_to_go_bound: Lower bound on the future cost (minimization) or
            upper bound on the future profit (maximization)
        conf_level: Confidence level of the forward-pass interval
        solver_params: LP solver parameters, forwarded to the stage problems

    Example:
        >>> model = SDDPModel(build_stage, n_stages=3, initial_state=[5.0],
        ...                   value_to_go_bound=0.0)
        >>> SDDPSolver(model, SolveOptions(max_iterations=20)).solve()
    """

    def __init__(
        self,
        build_function: BuildFunction,
        n_stages: int,
        initial_state: Sequence[float],
        sense: Union[str, Sense] = Sense.MIN,
        n_markov_states: int = 1,
        transition: Optional[Any] = None,
        initial_markov_probability: Optional[Sequence[float]] = None,
        scenario_probability: Optional[Sequence[Sequence[Sequence[float]]]] = None,
        risk_measure: Optional[RiskMeasure] = None,
        value_to_go_bound: Optional[float] = None,
        conf_level: float = 0.95,
        solver_params: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not callable(build_function):
            raise ConfigurationError("build_function must be callable")
        if int(n_stages) < 1:
            raise ConfigurationError(f"n_stages must be at least 1, got {n_stages}")
        if int(n_markov_states) < 1:
            raise ConfigurationError(f"n_markov_states must be at least 1, got {n_markov_states}")
        if not (0.0 < float(conf_level) < 1.0):
            raise ConfigurationError(f"conf_level must be in (0, 1), got {conf_level}")
        if risk_measure is not None and not isinstance(risk_measure, RiskMeasure):
            raise ConfigurationError(f"risk_measure must be a RiskMeasure, got {type(risk_measure).__name__}")

        self.build_function = build_function
        self.n_stages = int(n_stages)
        self.n_markov_states = int(n_markov_states)
        self.sense = Sense.parse(sense)
        self.initial_state = np.asarray(initial_state, dtype=np.float64).ravel()
        self.risk_measure = risk_measure if risk_measure is not None else Expectation()
        self.value_to_go_bound = None if value_to_go_bound is None else float(value_to_go_bound)
        self.conf_level = float(conf_level)
        self.solver_params = dict(solver_params or {})

        self.transition = self._resolve_transition(transition)
        self.initial_markov_probability = self._resolve_initial(initial_markov_probability)

        self.stage_problems: List[List[StageProblem]] = self._build_stage_problems()
        self.n_states = self.stage_problems[0][0].n_states
        if len(self.initial_state) != self.n_states:
            raise DimensionError(
                f"initial_state has {len(self.initial_state)} entries, stage problems have {self.n_states} states"
            )
        self.scenario_probability = self._resolve_scenarios(scenario_probability)

        self.stagecuts: List[List[StageCuts]] = [
            [StageCuts(self.n_states) for _ in range(self.n_markov_states)]
            for _ in range(self.n_stages)
        ]

        # set by the bound / convergence machinery
        self.valid_bound: Optional[float] = None
        self.ci: Tuple[float, float] = (np.nan, np.nan)
        self.stage_one_solutions: List[List[StageSolution]] = []

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    def _resolve_transition(self, transition) -> np.ndarray:
        T, M = self.n_stages, self.n_markov_states
        if transition is None:
            if M != 1:
                raise ConfigurationError("transition is required when n_markov_states > 1")
            return np.ones((max(T - 1, 0), 1, 1))
        arr = np.asarray(transition, dtype=np.float64)
        if arr.shape == (M, M):
            arr = np.tile(arr, (max(T - 1, 0), 1, 1))
        if arr.shape != (max(T - 1, 0), M, M):
            raise ConfigurationError(
                f"transition must have shape ({M}, {M}) or ({T - 1}, {M}, {M}), got {np.shape(transition)}"
            )
        if np.any(arr < 0):
            raise ConfigurationError("transition probabilities must be non-negative")
        return arr

    def _resolve_initial(self, initial) -> np.ndarray:
        M = self.n_markov_states
        if initial is None:
            p = np.zeros(M)
            p[0] = 1.0
            return p
        p = np.asarray(initial, dtype=np.float64).ravel()
        if len(p) != M:
            raise DimensionError(f"initial_markov_probability has {len(p)} entries, expected {M}")
        if np.any(p < 0):
            raise ConfigurationError("initial_markov_probability must be non-negative")
        return p

    def _build_stage_problems(self) -> List[List[StageProblem]]:
        problems = []
        for t in range(self.n_stages):
            row = []
            for i in range(self.n_markov_states):
                problem = self.build_function(t, i)
                if not isinstance(problem, StageProblem):
                    raise ConfigurationError(
                        f"build_function({t}, {i}) returned {type(problem).__name__}, expected a StageProblem"
                    )
                problem.bind(
                    sense=self.sense,
                    final_stage=(t == self.n_stages - 1),
                    value_to_go_bound=self.value_to_go_bound,
                    stage=t,
                    markov_state=i,
                )
                if self.solver_params and hasattr(problem, "solver_params"):
                    problem.solver_params.update(self.solver_params)
                row.append(problem)
            problems.append(row)
        n_states = {p.n_states for row in problems for p in row}
        if len(n_states) != 1:
            raise DimensionError(f"stage problems disagree on the number of states: {sorted(n_states)}")
        return problems

    def _resolve_scenarios(self, scenario_probability) -> List[List[np.ndarray]]:
        table = []
        for t in range(self.n_stages):
            row = []
            for i in range(self.n_markov_states):
                problem = self.stage_problems[t][i]
                if scenario_probability is None:
                    p = np.asarray(problem.scenario_probability, dtype=np.float64)
                else:
                    p = np.asarray(scenario_probability[t][i], dtype=np.float64).ravel()
                n = problem.n_scenarios
                if len(p) != n or len(p) == 0:
                    raise DimensionError(
                        f"stage {t} markov state {i}: {len(p)} probabilities for {n} scenarios"
                    )
                if scenario_probability is not None:
                    problem.scenario_probability = p
                row.append(p)
            table.append(row)
        return table

    @classmethod
    def from_snapshot(cls, snapshot: ModelSnapshot) -> SDDPModel:
        """Rebuild a private model, with empty cut stores, from a snapshot."""
        return cls(
            build_function=snapshot.build_function,
            n_stages=snapshot.n_stages,
            initial_state=snapshot.initial_state,
            sense=snapshot.sense,
            n_markov_states=snapshot.n_markov_states,
            transition=snapshot.transition,
            initial_markov_probability=snapshot.initial_markov_probability,
            scenario_probability=snapshot.scenario_probability,
            risk_measure=snapshot.risk_measure,
            value_to_go_bound=snapshot.value_to_go_bound,
            conf_level=snapshot.conf_level,
            solver_params=snapshot.solver_params,
        )

    def snapshot(self) -> ModelSnapshot:
        """Copy of the configuration that workers need to rebuild the model."""
        return ModelSnapshot(
            sense=self.sense,
            n_stages=self.n_stages,
            n_markov_states=self.n_markov_states,
            scenario_probability=tuple(tuple(p.copy() for p in row) for row in self.scenario_probability),
            transition=self.transition.copy(),
            initial_markov_probability=self.initial_markov_probability.copy(),
            initial_state=self.initial_state.copy(),
            conf_level=self.conf_level,
            solver_params=dict(self.solver_params),
            value_to_go_bound=self.value_to_go_bound,
            build_function=self.build_function,
            risk_measure=self.risk_measure.clone(),
        )

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    @property
    def n_cuts(self) -> int:
        return sum(sc.n_cuts for row in self.stagecuts for sc in row)

    def transition_row(self, stage: int, markov_state: int) -> np.ndarray:
        """Probabilities of the Markov states of ``stage + 1``."""
        return self.transition[stage][markov_state]

    def set_stagecuts(self, stagecuts: List[List[StageCuts]]) -> None:
        """Replace the cut stores (used by workers with their private copy)."""
        if len(stagecuts) != self.n_stages or any(len(row) != self.n_markov_states for row in stagecuts):
            raise DimensionError(
                f"cut stores must be a {self.n_stages} x {self.n_markov_states} grid"
            )
        self.stagecuts = stagecuts

    def __repr__(self) -> str:
        return (
            f"SDDPModel(sense={self.sense}, n_stages={self.n_stages}, "
            f"n_markov_states={self.n_markov_states}, n_states={self.n_states}, "
            f"n_cuts={self.n_cuts}, bound={self.valid_bound})"
        )
