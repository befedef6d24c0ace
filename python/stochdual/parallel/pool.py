"""
Worker Pools and Task Distribution
==================================

A :class:`WorkerPool` enumerates its workers and runs one task on a given
worker, returning a ``concurrent.futures.Future``. :func:`distribute_work`
is the fan-out / barrier primitive every round is built on.
"""

from __future__ import annotations

import concurrent.futures
import copy
import logging
import math
import multiprocessing
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..exceptions import ConfigurationError, WorkerTimeoutError

logger = logging.getLogger(__name__)


class WorkerPool(ABC):
    """Set of workers that tasks can be dispatched to."""

    @abstractmethod
    def workers(self) -> List[int]:
        """Ids of the currently available workers."""

    @abstractmethod
    def dispatch(self, worker_id: int, fn: Callable[..., Any], *args: Any) -> concurrent.futures.Future:
        """Run ``fn(*args)`` on ``worker_id``."""

    def close(self) -> None:
        pass

    @property
    def n_workers(self) -> int:
        return len(self.workers())

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SerialPool(WorkerPool):
    """
    Run every task in the calling thread.

    ``n_workers`` logical workers are still reported so that work is split
    exactly as it would be on a real pool.
    """

    def __init__(self, n_workers: int = 1) -> None:
        if n_workers < 1:
            raise ConfigurationError(f"n_workers must be at least 1, got {n_workers}")
        self._n = int(n_workers)

    def workers(self) -> List[int]:
        return list(range(self._n))

    def dispatch(self, worker_id, fn, *args):
        future: concurrent.futures.Future = concurrent.futures.Future()
        try:
            future.set_result(fn(*args))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def __repr__(self) -> str:
        return f"SerialPool(n_workers={self._n})"


class ExecutorPool(WorkerPool):
    """
    Pool backed by a ``concurrent.futures`` executor.

    Args:
        n_workers: Number of workers
        kind: ``"thread"`` or ``"process"``
        start_method: Multiprocessing start method for process pools
            (``"spawn"``, ``"fork"``, ``"forkserver"``); platform default if None

    Tasks and their arguments must be picklable for process pools, so build
    functions have to be defined at module level.
    """

    def __init__(self, n_workers: int, kind: str = "thread", start_method: Optional[str] = None) -> None:
        if n_workers < 1:
            raise ConfigurationError(f"n_workers must be at least 1, got {n_workers}")
        kind = str(kind).lower()
        self._n = int(n_workers)
        self.kind = kind
        if kind == "thread":
            self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=self._n)
        elif kind == "process":
            mp_context = multiprocessing.get_context(start_method)
            self._executor = concurrent.futures.ProcessPoolExecutor(
                max_workers=self._n,
                mp_context=mp_context,
            )
        else:
            raise ConfigurationError(f"unknown pool kind '{kind}', expected 'thread' or 'process'")

    def workers(self) -> List[int]:
        return list(range(self._n))

    def dispatch(self, worker_id, fn, *args):
        return self._executor.submit(fn, *args)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __repr__(self) -> str:
        return f"ExecutorPool(n_workers={self._n}, kind='{self.kind}')"


def iterations_per_worker(n: int, n_workers: int) -> int:
    """``ceil(n / n_workers)``; the total may exceed ``n``."""
    if n_workers < 1:
        raise ConfigurationError(f"n_workers must be at least 1, got {n_workers}")
    return int(math.ceil(n / n_workers))


def distribute_work(
    pool: WorkerPool,
    fn: Callable[..., Any],
    worker_args: Sequence[Tuple[Any, ...]],
    timeout: Optional[float] = None,
) -> List[Any]:
    """
    Run ``fn`` once per worker and wait for all of them.

    Every argument tuple is deep-copied before dispatch, so workers never
    share mutable state with each other or with the caller.

    Args:
        pool: Worker pool
        fn: Task function
        worker_args: One argument tuple per worker, in ``pool.workers()`` order
        timeout: Seconds to wait for the whole round; unbounded if None

    Returns:
        Task results in worker order

    Raises:
        WorkerTimeoutError: If the round did not finish within ``timeout``
        Exception: The first worker failure, unchanged
    """
    worker_ids = pool.workers()
    if len(worker_args) != len(worker_ids):
        raise ConfigurationError(f"{len(worker_args)} argument tuples for {len(worker_ids)} workers")

    futures = []
    for worker_id, args in zip(worker_ids, worker_args):
        futures.append(pool.dispatch(worker_id, fn, *copy.deepcopy(args)))
    logger.debug("dispatched %s to %d workers", getattr(fn, "__name__", fn), len(futures))

    done, pending = concurrent.futures.wait(futures, timeout=timeout)
    if pending:
        for future in pending:
            future.cancel()
        raise WorkerTimeoutError(
            f"{len(pending)} of {len(futures)} workers did not finish within {timeout} s",
            pending=len(pending),
        )

    return [future.result() for future in futures]
