#!/usr/bin/env python3
"""
stochdual Parallel Benchmark: backward rounds on one worker vs a pool
"""

import sys
sys.path.insert(0, '../python')

import time
import numpy as np

import stochdual
from stochdual import ExecutorPool, LinearStageProblem, SDDPModel, SerialPool
from stochdual.parallel import Orchestrator

print(f"stochdual version: {stochdual.__version__}")
print()

N_RESERVOIRS = 4
INFLOWS = np.linspace(0.0, 10.0, 5)


def build_stage(stage, markov_state):
    """Hydro-thermal stage with N_RESERVOIRS independent reservoirs."""
    n = N_RESERVOIRS
    # y = [volumes (n), hydro (n), spill (n), thermal]
    c = np.zeros(3 * n + 1)
    c[-1] = 5.0

    A = np.zeros((n + 1, 3 * n + 1))
    A_in = np.zeros((n + 1, n))
    for r in range(n):
        A[r, r] = 1.0
        A[r, n + r] = 1.0
        A[r, 2 * n + r] = 1.0
        A_in[r, r] = -1.0
    A[n, n:2 * n] = 1.0
    A[n, -1] = 1.0

    b = [list(np.full(n, inflow)) + [10.0 * n] for inflow in INFLOWS]
    ub = np.full(3 * n + 1, np.inf)
    ub[:n] = 20.0
    return LinearStageProblem(
        c=c, A=A, A_in=A_in, b=b,
        senses=["="] * (n + 1),
        state_out=list(range(n)),
        ub=ub,
    )


def make_model(n_stages):
    return SDDPModel(
        build_stage,
        n_stages=n_stages,
        initial_state=np.full(N_RESERVOIRS, 5.0),
        value_to_go_bound=0.0,
    )


def time_rounds(pool, n_stages, rounds, passes):
    """Run backward rounds and return (seconds, bound, cuts)."""
    model = make_model(n_stages)
    orchestrator = Orchestrator(model, pool, seed=42)
    start = time.perf_counter()
    for _ in range(rounds):
        orchestrator.backward_round(passes)
    elapsed = time.perf_counter() - start
    return elapsed, model.valid_bound, model.n_cuts


def benchmark_scaling():
    """Backward-round time across worker counts."""
    print("=" * 70)
    print("Backward Round Benchmark")
    print("=" * 70)

    n_stages, rounds, passes = 6, 5, 8
    print(f"\n{N_RESERVOIRS} reservoirs, {n_stages} stages, "
          f"{rounds} rounds x {passes} passes")

    results = []
    with SerialPool(1) as pool:
        elapsed, bound, cuts = time_rounds(pool, n_stages, rounds, passes)
    results.append(("serial", 1, elapsed, bound, cuts))

    for kind in ("thread", "process"):
        for workers in (2, 4):
            with ExecutorPool(workers, kind=kind) as pool:
                elapsed, bound, cuts = time_rounds(pool, n_stages, rounds, passes)
            results.append((kind, workers, elapsed, bound, cuts))

    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"{'pool':>8} {'workers':>8} {'time (ms)':>12} {'bound':>12} {'cuts':>8} {'Speedup':>10}")
    print("-" * 70)

    serial_time = results[0][2]
    for kind, workers, elapsed, bound, cuts in results:
        print(f"{kind:>8} {workers:>8} {elapsed*1000:>12.1f} {bound:>12.4f} "
              f"{cuts:>8} {serial_time/elapsed:>10.2f}x")


def benchmark_simulation():
    """Simulation throughput of a trained policy."""
    print("\n" + "=" * 70)
    print("Simulation Benchmark")
    print("=" * 70)

    model = make_model(4)
    with SerialPool(1) as pool:
        orchestrator = Orchestrator(model, pool, seed=7)
        for _ in range(5):
            orchestrator.backward_round(4)

    for n in (100, 1000):
        with SerialPool(1) as pool:
            start = time.perf_counter()
            stochdual.simulate(model, n, pool=pool, seed=1)
            elapsed = time.perf_counter() - start
        print(f"  {n:>5} replications: {elapsed*1000:.1f} ms total, "
              f"{elapsed/n*1000:.2f} ms/replication")


if __name__ == "__main__":
    benchmark_scaling()
    benchmark_simulation()
