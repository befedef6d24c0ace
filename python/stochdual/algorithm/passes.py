"""
Serial Sampling Kernels
=======================

Single-process building blocks of SDDP, used by workers and by the
orchestrator:

- sample_trajectory: one forward path through the current policy
- backward_pass: one forward path followed by cut generation at every stage
- forward_pass_kernel: policy cost samples for the convergence test
- simulate: per-stage policy values for reporting
- rebuild_stageproblems / solve_all_stage_problems / set_valid_bound
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ..cuts import CutSelectionMethod, recompute_dominance
from ..exceptions import ConfigurationError
from ..model import SDDPModel
from ..risk import generate_cut
from ..stages import StageSolution

logger = logging.getLogger(__name__)

# (markov_state, scenario, solution) for each stage
Trajectory = List[Tuple[int, int, StageSolution]]


def _sample_index(rng: np.random.Generator, p: np.ndarray) -> int:
    """Draw an index with probability proportional to ``p``."""
    cumulative = np.cumsum(p)
    k = int(np.searchsorted(cumulative, rng.random() * cumulative[-1], side="right"))
    return min(k, len(p) - 1)


def sample_trajectory(model: SDDPModel, rng: np.random.Generator) -> Trajectory:
    """
    Simulate one scenario path with the current cuts.

    The first Markov state is drawn from the initial distribution, later ones
    from the transition rows. The scenario of each stage is drawn from the
    probabilities of its (stage, Markov state) pair.
    """
    trajectory: Trajectory = []
    markov = _sample_index(rng, model.initial_markov_probability)
    state = model.initial_state
    for t in range(model.n_stages):
        if t > 0:
            markov = _sample_index(rng, model.transition_row(t - 1, markov))
        scenario = _sample_index(rng, model.scenario_probability[t][markov])
        solution = model.stage_problems[t][markov].solve(state, scenario)
        trajectory.append((markov, scenario, solution))
        state = solution.state
    return trajectory


def _solve_children(model: SDDPModel, stage: int, state: np.ndarray):
    """Solve every (Markov state, scenario) of ``stage`` at ``state``."""
    children = []
    for j in range(model.n_markov_states):
        for s in range(len(model.scenario_probability[stage][j])):
            children.append((j, s, model.stage_problems[stage][j].solve(state, s)))
    return children


def backward_pass(model: SDDPModel, rng: np.random.Generator) -> int:
    """
    Run one backward pass and add the new cuts to ``model``.

    A trajectory is sampled first. Then, from the second to last stage back
    to the first, the children of the visited outgoing state are solved and
    every Markov state of the stage that can reach them gets one cut built
    with ``transition[i, j] * q_js`` as scenario probabilities.

    Returns:
        Number of cuts added
    """
    trajectory = sample_trajectory(model, rng)
    added = 0
    for t in range(model.n_stages - 2, -1, -1):
        state = trajectory[t][2].state
        children = _solve_children(model, t + 1, state)
        pi = np.array([sol.duals for _, _, sol in children])
        theta = np.array([sol.objective for _, _, sol in children])

        for i in range(model.n_markov_states):
            row = model.transition_row(t, i)
            if not np.any(row > 0):
                continue
            prob = np.array([row[j] * model.scenario_probability[t + 1][j][s] for j, s, _ in children])
            cut = generate_cut(model.risk_measure, model.sense, state, pi, theta, prob, stage=t, markov_state=i)
            model.stagecuts[t][i].append(cut, state)
            model.stage_problems[t][i].add_cut(cut)
            added += 1
    return added


def forward_pass_kernel(model: SDDPModel, n: int, rng: np.random.Generator) -> List[float]:
    """Total stage cost of ``n`` sampled trajectories."""
    samples = []
    for _ in range(n):
        trajectory = sample_trajectory(model, rng)
        samples.append(float(sum(sol.stage_objective for _, _, sol in trajectory)))
    return samples


def simulate(
    model: SDDPModel,
    n: int,
    variables: Sequence[str],
    rng: np.random.Generator,
) -> Dict[str, list]:
    """
    Simulate the policy ``n`` times.

    Returns:
        ``"Objective"`` is a flat list with the total cost of each
        replication. ``"markov"``, ``"scenario"``, ``"stage_objective"``
        and every requested variable hold one list per stage, with one entry
        per replication.

    Raises:
        ConfigurationError: If a requested variable is not reported by a
            stage problem
    """
    keys = ["markov", "scenario", "stage_objective"] + list(variables)
    results: Dict[str, list] = {"Objective": []}
    for key in keys:
        results[key] = [[] for _ in range(model.n_stages)]

    for _ in range(n):
        trajectory = sample_trajectory(model, rng)
        total = 0.0
        for t, (markov, scenario, sol) in enumerate(trajectory):
            results["markov"][t].append(markov)
            results["scenario"][t].append(scenario)
            results["stage_objective"][t].append(sol.stage_objective)
            for name in variables:
                if name not in sol.values:
                    raise ConfigurationError(f"stage {t} does not report a variable named '{name}'")
                results[name][t].append(sol.values[name])
            total += sol.stage_objective
        results["Objective"].append(total)
    return results


def rebuild_stageproblems(
    selection: CutSelectionMethod,
    model: SDDPModel,
    recompute: bool = True,
) -> None:
    """
    Reload every stage problem with the cuts picked by ``selection``.

    With ``recompute=False`` the dominance counts already stored on the
    cut stores are used as they are.
    """
    for t in range(model.n_stages):
        for i in range(model.n_markov_states):
            stagecuts = model.stagecuts[t][i]
            if recompute and selection.needs_dominance:
                recompute_dominance(model.sense, stagecuts)
            model.stage_problems[t][i].set_cuts(selection.select(stagecuts))


def solve_all_stage_problems(model: SDDPModel) -> List[List[StageSolution]]:
    """Solve every Markov state and scenario of the first stage at the initial state."""
    solutions = []
    for i in range(model.n_markov_states):
        problem = model.stage_problems[0][i]
        solutions.append([problem.solve(model.initial_state, s) for s in range(problem.n_scenarios)])
    model.stage_one_solutions = solutions
    return solutions


def set_valid_bound(model: SDDPModel) -> float:
    """
    Set the bound from the last first-stage solves.

    The bound is the expectation of the first-stage objective (stage cost
    plus approximated future value) over the initial Markov distribution and
    the first-stage scenarios.
    """
    if not model.stage_one_solutions:
        solve_all_stage_problems(model)
    bound = 0.0
    for i, solutions in enumerate(model.stage_one_solutions):
        p_markov = model.initial_markov_probability[i]
        if p_markov == 0:
            continue
        q = model.scenario_probability[0][i]
        bound += p_markov * sum(q[s] * sol.objective for s, sol in enumerate(solutions))
    model.valid_bound = float(bound)
    return model.valid_bound


__all__ = [
    "Trajectory",
    "sample_trajectory",
    "backward_pass",
    "forward_pass_kernel",
    "simulate",
    "rebuild_stageproblems",
    "solve_all_stage_problems",
    "set_valid_bound",
]
