"""
stochdual Training Loop
=======================

:class:`SDDPSolver` alternates backward rounds (cut generation) with
periodic forward rounds (policy evaluation and convergence test) until the
policy has converged, the iteration limit is hit or time runs out.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .cuts import get_selection
from .logging_config import setup_logging
from .model import SDDPModel
from .options import SolveOptions
from .parallel import Orchestrator, SerialPool, WorkerPool

logger = logging.getLogger(__name__)


@dataclass
class IterationLog:
    """One row of the training history."""

    iteration: int
    bound: float
    ci: Tuple[float, float]
    n_cuts: int
    cut_selection_time: float
    elapsed: float
    converged: bool = False


@dataclass
class TrainingResult:
    """
    Outcome of :meth:`SDDPSolver.solve`.

    Attributes:
        status: ``"converged"``, ``"max_iterations"`` or ``"time_limit"``
        iterations: Backward rounds run
        bound: Last valid bound (lower for minimization, upper for maximization)
        ci: Last confidence interval of the policy cost
        n_cuts: Cuts in the canonical store
        solve_time: Wall-clock seconds
        history: One entry per round
    """

    status: str
    iterations: int
    bound: Optional[float]
    ci: Tuple[float, float]
    n_cuts: int
    solve_time: float
    history: List[IterationLog] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status == "converged"

    def __repr__(self) -> str:
        return (
            f"TrainingResult(status={self.status}, bound={self.bound}, "
            f"iterations={self.iterations}, n_cuts={self.n_cuts})"
        )

    def summary(self) -> str:
        """Return a formatted summary of the training run."""
        bound = "n/a" if self.bound is None else f"{self.bound:.10g}"
        lines = [
            "=" * 50,
            "SDDP Training Summary",
            "=" * 50,
            f"Status:           {self.status}",
            f"Bound:            {bound}",
            f"Confidence int.:  [{self.ci[0]:.6g}, {self.ci[1]:.6g}]",
            f"Iterations:       {self.iterations}",
            f"Cuts:             {self.n_cuts}",
            f"Solve time:       {self.solve_time:.4f} s",
            "=" * 50,
        ]
        return "\n".join(lines)


class SDDPSolver:
    """
    Train an :class:`SDDPModel`.

    Args:
        model: Model to train; its cut stores are updated in place
        options: Training options (defaults if None)
        pool: Worker pool (default: one in-process worker). The pool is not
            closed by the solver.

    Example:
        >>> with ExecutorPool(4, kind="process") as pool:
        ...     result = SDDPSolver(model, SolveOptions(backward_passes=4), pool).solve()
        >>> print(result.summary())
    """

    def __init__(
        self,
        model: SDDPModel,
        options: Optional[SolveOptions] = None,
        pool: Optional[WorkerPool] = None,
    ) -> None:
        self.model = model
        self.options = options if options is not None else SolveOptions()
        self.pool = pool if pool is not None else SerialPool(1)

    def solve(self) -> TrainingResult:
        opts = self.options
        if opts.log_level is not None:
            setup_logging(opts.log_level)

        selection = get_selection(opts.cut_selection)
        orchestrator = Orchestrator(self.model, self.pool, seed=opts.seed, timeout=opts.timeout)
        history: List[IterationLog] = []
        status = "max_iterations"
        start = time.perf_counter()

        logger.info(
            "training %r on %d workers, cut selection %s",
            self.model, self.pool.n_workers, selection.name,
        )
        for iteration in range(1, opts.max_iterations + 1):
            selection_time = orchestrator.backward_round(
                opts.backward_passes, opts.cut_selection_frequency, selection
            )
            converged = False
            if opts.convergence_frequency > 0 and iteration % opts.convergence_frequency == 0:
                converged, _ = orchestrator.forward_round(opts.forward_passes, opts.tolerance)

            elapsed = time.perf_counter() - start
            entry = IterationLog(
                iteration=iteration,
                bound=self.model.valid_bound,
                ci=self.model.ci,
                n_cuts=self.model.n_cuts,
                cut_selection_time=selection_time,
                elapsed=elapsed,
                converged=converged,
            )
            history.append(entry)
            if iteration % opts.log_frequency == 0 or converged:
                logger.info(
                    "iter %4d | bound %.6g | ci [%.6g, %.6g] | cuts %d | %.2f s",
                    iteration, entry.bound, entry.ci[0], entry.ci[1], entry.n_cuts, elapsed,
                )

            if converged:
                status = "converged"
                break
            if elapsed >= opts.time_limit:
                status = "time_limit"
                break

        result = TrainingResult(
            status=status,
            iterations=len(history),
            bound=self.model.valid_bound,
            ci=self.model.ci,
            n_cuts=self.model.n_cuts,
            solve_time=time.perf_counter() - start,
            history=history,
        )
        logger.info("stopped: %s after %d iterations", status, result.iterations)
        return result


def simulate(
    model: SDDPModel,
    n: int,
    variables: Sequence[str] = (),
    pool: Optional[WorkerPool] = None,
    seed: Optional[int] = None,
) -> Dict[str, list]:
    """
    Simulate the trained policy.

    Returns:
        ``"Objective"`` with one total per replication, and per-stage lists
        for ``"markov"``, ``"scenario"``, ``"stage_objective"`` and each
        requested variable
    """
    pool = pool if pool is not None else SerialPool(1)
    return Orchestrator(model, pool, seed=seed).simulate(n, variables)


def objective_statistics(results: Dict[str, list]) -> Tuple[float, float]:
    """Mean and sample standard deviation of the simulated objectives."""
    objective = np.asarray(results["Objective"], dtype=np.float64)
    if objective.size < 2:
        return float(objective.mean()) if objective.size else np.nan, 0.0
    return float(objective.mean()), float(objective.std(ddof=1))
