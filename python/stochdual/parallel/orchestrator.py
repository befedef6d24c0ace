"""
Round Orchestration
===================

The :class:`Orchestrator` is the single writer of the canonical model. A
round fans work out to every worker of a pool, waits for all of them, and
only then folds the results into the model:

    IDLE -> DISPATCHING -> AWAITING_WORKERS -> MERGING -> POST_PROCESSING -> IDLE

If any worker fails (or the optional timeout expires) the round is
abandoned before MERGING and the model is left untouched.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..algorithm import rebuild_stageproblems, rtol, set_valid_bound, solve_all_stage_problems, test_and_set_ci
from ..cuts import CutSelectionMethod, NoSelection, StageDelta, recompute_dominance
from ..exceptions import InconsistentResultShape
from ..model import SDDPModel
from .pool import WorkerPool, distribute_work, iterations_per_worker
from .workers import worker_backward_pass, worker_forward_pass, worker_simulate

logger = logging.getLogger(__name__)

# spacing between the seeds of two consecutive rounds
SEED_STRIDE = 1_000_003


class RoundPhase(Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_WORKERS = "awaiting_workers"
    MERGING = "merging"
    POST_PROCESSING = "post_processing"


def merge_stagecuts(model: SDDPModel, stage: int, markov_state: int, deltas: Sequence[StageDelta]) -> bool:
    """Merge worker deltas into one pair and recompute its dominance once."""
    stagecuts = model.stagecuts[stage][markov_state]
    changed = stagecuts.merge(deltas)
    recompute_dominance(model.sense, stagecuts)
    return changed


def reduce_backward_pass(model: SDDPModel, results: Sequence[Tuple[list, float]]) -> float:
    """
    Fold backward-pass worker results into the canonical cut stores.

    Returns:
        Cut-selection time averaged over workers
    """
    for t in range(model.n_stages):
        for i in range(model.n_markov_states):
            merge_stagecuts(model, t, i, [deltas[t][i] for deltas, _ in results])
    if not results:
        return 0.0
    return sum(elapsed for _, elapsed in results) / len(results)


def _merge_results(total: Dict[str, list], result: Dict[str, list]) -> None:
    for key, value in total.items():
        if key not in result:
            raise InconsistentResultShape(f"worker result is missing key '{key}'")
        if key == "Objective":
            value.extend(result[key])
            continue
        if len(result[key]) != len(value):
            raise InconsistentResultShape(
                f"key '{key}' has {len(result[key])} stages, expected {len(value)}"
            )
        for stage_values, extra in zip(value, result[key]):
            stage_values.extend(extra)


def reduce_simulation(results: Sequence[Dict[str, list]]) -> Dict[str, list]:
    """
    Concatenate simulation results in worker order.

    ``"Objective"`` is concatenated flat; every other key stage by stage.

    Raises:
        InconsistentResultShape: If the workers disagree on keys or stages
    """
    if not results:
        return {}
    first = results[0]
    total = {key: (list(value) if key == "Objective" else [list(v) for v in value]) for key, value in first.items()}
    for result in results[1:]:
        missing = set(result) - set(total)
        if missing:
            raise InconsistentResultShape(f"first worker result is missing keys {sorted(missing)}")
        _merge_results(total, result)
    return total


class Orchestrator:
    """
    Drives backward, forward and simulation rounds over a worker pool.

    Args:
        model: Canonical model, mutated only by this object
        pool: Worker pool
        seed: Base seed; worker ``k`` of round ``r`` uses
            ``seed + r * 1_000_003 + k``. Fresh entropy if None.
        timeout: Optional bound, in seconds, on the wait for each round

    Example:
        >>> with ExecutorPool(4, kind="process") as pool:
        ...     orch = Orchestrator(model, pool, seed=42)
        ...     orch.backward_round(8)
        ...     converged, npasses = orch.forward_round(100)
    """

    def __init__(
        self,
        model: SDDPModel,
        pool: WorkerPool,
        seed: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.model = model
        self.pool = pool
        self.seed = seed
        self.timeout = timeout
        self.phase = RoundPhase.IDLE
        self.rounds = 0
        self.initialise_workers()

    def initialise_workers(self) -> None:
        """Take a fresh snapshot of the model configuration for workers."""
        self._snapshot = self.model.snapshot()

    def _seeds(self) -> List[Optional[int]]:
        workers = self.pool.workers()
        if self.seed is None:
            return [None] * len(workers)
        base = self.seed + self.rounds * SEED_STRIDE
        return [base + k for k in range(len(workers))]

    def _run(self, fn, args_for_worker) -> List[Any]:
        seeds = self._seeds()
        self.rounds += 1
        self.phase = RoundPhase.DISPATCHING
        worker_args = [args_for_worker(seed) for seed in seeds]
        self.phase = RoundPhase.AWAITING_WORKERS
        return distribute_work(self.pool, fn, worker_args, timeout=self.timeout)

    def backward_round(
        self,
        n: int,
        cut_selection_frequency: int = 0,
        selection: Optional[CutSelectionMethod] = None,
    ) -> float:
        """
        Run ``n`` backward passes spread over the workers and merge the cuts.

        Each worker runs ``ceil(n / K)`` passes against an identical copy of
        the cut stores. After merging, the stage problems are rebuilt once,
        the first stage is solved and the bound is updated.

        Returns:
            Cut-selection time: the worker average plus the canonical rebuild
        """
        selection = selection if selection is not None else NoSelection()
        per_worker = iterations_per_worker(n, self.pool.n_workers)
        try:
            results = self._run(
                worker_backward_pass,
                lambda seed: (
                    self._snapshot,
                    self.model.stagecuts,
                    per_worker,
                    cut_selection_frequency,
                    selection,
                    seed,
                ),
            )

            self.phase = RoundPhase.MERGING
            n_before = self.model.n_cuts
            selection_time = reduce_backward_pass(self.model, results)
            logger.debug(
                "backward round %d: %d workers x %d passes, %d new cuts",
                self.rounds, len(results), per_worker, self.model.n_cuts - n_before,
            )

            self.phase = RoundPhase.POST_PROCESSING
            start = time.perf_counter()
            rebuild_stageproblems(selection, self.model, recompute=False)
            selection_time += time.perf_counter() - start
            solve_all_stage_problems(self.model)
            set_valid_bound(self.model)
        finally:
            self.phase = RoundPhase.IDLE
        return selection_time

    def forward_round(self, npasses: int, tolerance: float = 0.0) -> Tuple[bool, int]:
        """
        Estimate the policy cost and test convergence.

        Returns:
            ``(has_converged, passes_run)``; converged when the relative gap
            between the confidence interval and the bound is below
            ``tolerance``
        """
        per_worker = iterations_per_worker(npasses, self.pool.n_workers)
        try:
            results = self._run(
                worker_forward_pass,
                lambda seed: (self._snapshot, self.model.stagecuts, per_worker, seed),
            )
            self.phase = RoundPhase.MERGING
            samples = [value for worker_samples in results for value in worker_samples]
            self.phase = RoundPhase.POST_PROCESSING
            test_and_set_ci(self.model, samples)
            gap = rtol(self.model)
            logger.debug("forward round %d: %d samples, ci=%s, rtol=%.3g", self.rounds, len(samples), self.model.ci, gap)
        finally:
            self.phase = RoundPhase.IDLE
        return bool(gap < tolerance), len(samples)

    def simulate(self, n: int, variables: Sequence[str] = ()) -> Dict[str, list]:
        """Simulate the current policy ``ceil(n / K)`` times on each worker."""
        self.initialise_workers()
        variables = list(variables)
        per_worker = iterations_per_worker(n, self.pool.n_workers)
        try:
            results = self._run(
                worker_simulate,
                lambda seed: (self._snapshot, self.model.stagecuts, per_worker, variables, seed),
            )
            self.phase = RoundPhase.MERGING
            return reduce_simulation(results)
        finally:
            self.phase = RoundPhase.IDLE


def parallel_backward_pass(
    model: SDDPModel,
    pool: WorkerPool,
    n: int,
    cut_selection_frequency: int = 0,
    selection: Optional[CutSelectionMethod] = None,
    seed: Optional[int] = None,
) -> float:
    return Orchestrator(model, pool, seed=seed).backward_round(n, cut_selection_frequency, selection)


def parallel_forward_pass(
    model: SDDPModel,
    pool: WorkerPool,
    npasses: int = 1,
    tolerance: float = 0.0,
    seed: Optional[int] = None,
) -> Tuple[bool, int]:
    return Orchestrator(model, pool, seed=seed).forward_round(npasses, tolerance)


def parallel_simulate(
    model: SDDPModel,
    pool: WorkerPool,
    n: int,
    variables: Sequence[str] = (),
    seed: Optional[int] = None,
) -> Dict[str, list]:
    return Orchestrator(model, pool, seed=seed).simulate(n, variables)
