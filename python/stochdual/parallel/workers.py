"""
Worker Tasks
============

Functions run by a pool worker. Each receives its own copy of the model
snapshot and of the canonical cut stores, builds a private model and
returns plain data. Nothing here touches the canonical model.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..algorithm import backward_pass, forward_pass_kernel, rebuild_stageproblems, simulate
from ..cuts import CutSelectionMethod, NoSelection, StageCuts, StageDelta
from ..model import ModelSnapshot, SDDPModel

logger = logging.getLogger(__name__)

DeltaGrid = List[List[StageDelta]]


def _private_model(snapshot: ModelSnapshot, stagecuts: List[List[StageCuts]]) -> SDDPModel:
    model = SDDPModel.from_snapshot(snapshot)
    model.set_stagecuts(stagecuts)
    return model


def worker_backward_pass(
    snapshot: ModelSnapshot,
    stagecuts: List[List[StageCuts]],
    n: int,
    cut_selection_frequency: int,
    selection: CutSelectionMethod,
    seed: Optional[int],
) -> Tuple[DeltaGrid, float]:
    """
    Run ``n`` backward passes on a private model.

    Whenever ``cut_selection_frequency > 0`` divides the local pass
    counter the stage problems are rebuilt with ``selection``.

    Returns:
        ``(deltas, cut_selection_time)`` where ``deltas[t][i]`` holds the
        sample points and cuts added to pair ``(t, i)`` by this worker
    """
    model = _private_model(snapshot, stagecuts)
    sizes = [[(sc.n_cuts, sc.n_sample_points) for sc in row] for row in model.stagecuts]
    rng = np.random.default_rng(seed)

    rebuild_stageproblems(selection, model, recompute=False)
    selection_time = 0.0
    for k in range(1, n + 1):
        backward_pass(model, rng)
        if cut_selection_frequency > 0 and k % cut_selection_frequency == 0:
            start = time.perf_counter()
            rebuild_stageproblems(selection, model)
            selection_time += time.perf_counter() - start

    deltas = [
        [sc.delta_since(*sizes[t][i]) for i, sc in enumerate(row)]
        for t, row in enumerate(model.stagecuts)
    ]
    return deltas, selection_time


def worker_forward_pass(
    snapshot: ModelSnapshot,
    stagecuts: List[List[StageCuts]],
    n: int,
    seed: Optional[int],
) -> List[float]:
    """Policy cost of ``n`` forward passes, with every cut loaded."""
    model = _private_model(snapshot, stagecuts)
    rebuild_stageproblems(NoSelection(), model)
    return forward_pass_kernel(model, n, np.random.default_rng(seed))


def worker_simulate(
    snapshot: ModelSnapshot,
    stagecuts: List[List[StageCuts]],
    n: int,
    variables: Sequence[str],
    seed: Optional[int],
) -> Dict[str, list]:
    """Simulate the policy ``n`` times, with every cut loaded."""
    model = _private_model(snapshot, stagecuts)
    rebuild_stageproblems(NoSelection(), model)
    return simulate(model, n, variables, np.random.default_rng(seed))
