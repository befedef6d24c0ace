"""
Stage Subproblem Interface
==========================

The training loop only talks to stage subproblems through
:class:`StageProblem`: solve at an incoming state for one scenario, and
return the objective, the duals with respect to the incoming state and the
outgoing state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..cuts import Cut
from ..exceptions import DimensionError
from ..types import Sense


@dataclass
class StageSolution:
    """
    Solution of one stage subproblem.

    Attributes:
        objective: Stage cost plus approximated future value
        stage_objective: Stage cost only
        duals: Derivative of ``objective`` with respect to the incoming state
        state: Outgoing state
        values: Named variable values, reported by simulations
    """

    objective: float
    stage_objective: float
    duals: np.ndarray
    state: np.ndarray
    values: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"StageSolution(objective={self.objective:.6g}, "
            f"stage_objective={self.stage_objective:.6g}, "
            f"state={np.round(self.state, 6).tolist()})"
        )


class StageProblem(ABC):
    """
    Abstract stage subproblem.

    Implementations hold the stage's decision model and the cuts currently
    approximating the value of the next stage. The model calls :meth:`bind`
    once after building and :meth:`set_cuts` / :meth:`add_cut` whenever the
    cut set changes.

    Args:
        n_states: Number of state dimensions
        scenario_probability: Probability of each scenario of the stage
    """

    def __init__(self, n_states: int, scenario_probability: Optional[Sequence[float]] = None) -> None:
        self.n_states = int(n_states)
        if scenario_probability is None:
            scenario_probability = [1.0]
        self.scenario_probability = np.asarray(scenario_probability, dtype=np.float64)
        self.cuts: List[Cut] = []
        self.sense = Sense.MIN
        self.final_stage = False
        self.value_to_go_bound: Optional[float] = None
        self.stage: Optional[int] = None
        self.markov_state: Optional[int] = None

    @property
    def n_scenarios(self) -> int:
        return len(self.scenario_probability)

    def bind(
        self,
        sense: Sense,
        final_stage: bool,
        value_to_go_bound: Optional[float],
        stage: Optional[int] = None,
        markov_state: Optional[int] = None,
    ) -> None:
        """Attach the model-level settings this subproblem depends on."""
        self.sense = Sense.parse(sense)
        self.final_stage = bool(final_stage)
        self.value_to_go_bound = value_to_go_bound
        self.stage = stage
        self.markov_state = markov_state

    def set_cuts(self, cuts: Iterable[Cut]) -> None:
        """Replace the cut set."""
        cuts = list(cuts)
        for cut in cuts:
            self._check_cut(cut)
        self.cuts = cuts

    def add_cut(self, cut: Cut) -> None:
        self._check_cut(cut)
        self.cuts.append(cut)

    def _check_cut(self, cut: Cut) -> None:
        if cut.n_states != self.n_states:
            raise DimensionError(f"cut has {cut.n_states} coefficients, expected {self.n_states}")

    def _check_state(self, x: Sequence[float]) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64).ravel()
        if len(x) != self.n_states:
            raise DimensionError(f"incoming state has {len(x)} entries, expected {self.n_states}")
        return x

    @abstractmethod
    def solve(self, incoming_state: Sequence[float], scenario: int) -> StageSolution:
        """
        Solve the subproblem for one scenario.

        Raises:
            InfeasibleSubproblem: If no decision is feasible
            SolverError: If the solver fails otherwise
        """
