"""
stochdual: Stochastic Dual Dynamic Programming
==============================================

stochdual trains policies for multistage stochastic linear programs with
Markov-modulated uncertainty. Cuts are generated under expectation or a
nested CVaR blend, and backward, forward and simulation rounds are spread
over a pool of workers.

Quick Start
-----------
>>> import stochdual
>>> model = stochdual.SDDPModel(build_stage, n_stages=3, initial_state=[5.0],
...                             value_to_go_bound=0.0)
>>> result = stochdual.SDDPSolver(model, stochdual.SolveOptions(max_iterations=30)).solve()
>>> print(result.status, result.bound)

Parallel training on four processes:

>>> with stochdual.ExecutorPool(4, kind="process") as pool:
...     opts = stochdual.SolveOptions(backward_passes=4, forward_passes=100)
...     result = stochdual.SDDPSolver(model, opts, pool).solve()
"""

__version__ = "0.1.0"
__author__ = "stochdual Contributors"

from .cuts import Cut, LevelOne, NoSelection, StageCuts, get_selection, recompute_dominance
from .exceptions import (
    ConfigurationError,
    DimensionError,
    InconsistentResultShape,
    InfeasibleSubproblem,
    SolverError,
    StochDualError,
    UnsupportedRiskMeasure,
    WorkerTimeoutError,
)
from .logging_config import setup_logging
from .model import ModelSnapshot, SDDPModel
from .options import SolveOptions
from .parallel import (
    ExecutorPool,
    Orchestrator,
    SerialPool,
    WorkerPool,
    parallel_backward_pass,
    parallel_forward_pass,
    parallel_simulate,
)
from .result import SolveResult, Status
from .risk import Expectation, NestedCVaR, RiskMeasure, StageDependentRisk, generate_cut
from .solver import solve
from .stages import LinearStageProblem, StageProblem, StageSolution
from .training import IterationLog, SDDPSolver, TrainingResult, simulate
from .types import Sense

__all__ = [
    # Version
    "__version__",

    # Model
    "SDDPModel",
    "ModelSnapshot",
    "Sense",
    "StageProblem",
    "StageSolution",
    "LinearStageProblem",

    # Cuts and risk
    "Cut",
    "StageCuts",
    "NoSelection",
    "LevelOne",
    "get_selection",
    "recompute_dominance",
    "RiskMeasure",
    "Expectation",
    "NestedCVaR",
    "StageDependentRisk",
    "generate_cut",

    # Training
    "SolveOptions",
    "SDDPSolver",
    "TrainingResult",
    "IterationLog",
    "simulate",

    # Parallel
    "WorkerPool",
    "SerialPool",
    "ExecutorPool",
    "Orchestrator",
    "parallel_backward_pass",
    "parallel_forward_pass",
    "parallel_simulate",

    # LP layer
    "solve",
    "SolveResult",
    "Status",

    # Logging
    "setup_logging",

    # Exceptions
    "StochDualError",
    "ConfigurationError",
    "UnsupportedRiskMeasure",
    "DimensionError",
    "InfeasibleSubproblem",
    "SolverError",
    "InconsistentResultShape",
    "WorkerTimeoutError",
]


def info() -> str:
    """Return information about the stochdual installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"stochdual version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]
    return "\n".join(lines)
