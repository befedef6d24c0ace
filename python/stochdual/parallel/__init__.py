"""
stochdual Parallel Orchestration
================================

Master / worker rounds over a pool of workers. Workers get deep copies of
the model snapshot and cut stores, return only what they added, and the
orchestrator merges their results into the canonical model.

Pools
-----
SerialPool
    In-process, for debugging and tests
ExecutorPool
    Thread or process pool from ``concurrent.futures``
"""

from .orchestrator import (
    Orchestrator,
    RoundPhase,
    merge_stagecuts,
    parallel_backward_pass,
    parallel_forward_pass,
    parallel_simulate,
    reduce_backward_pass,
    reduce_simulation,
)
from .pool import ExecutorPool, SerialPool, WorkerPool, distribute_work, iterations_per_worker
from .workers import worker_backward_pass, worker_forward_pass, worker_simulate

__all__ = [
    "WorkerPool",
    "SerialPool",
    "ExecutorPool",
    "distribute_work",
    "iterations_per_worker",
    "worker_backward_pass",
    "worker_forward_pass",
    "worker_simulate",
    "Orchestrator",
    "RoundPhase",
    "merge_stagecuts",
    "reduce_backward_pass",
    "reduce_simulation",
    "parallel_backward_pass",
    "parallel_forward_pass",
    "parallel_simulate",
]
