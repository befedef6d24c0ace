"""
stochdual Algorithm Kernels
===========================

Serial SDDP building blocks: trajectory sampling, backward (cut
generation) passes, forward (policy evaluation) passes, simulation, stage
rebuilds, and the bound and confidence-interval bookkeeping.
"""

from .bounds import confidence_interval, rtol, test_and_set_ci
from .passes import (
    backward_pass,
    forward_pass_kernel,
    rebuild_stageproblems,
    sample_trajectory,
    set_valid_bound,
    simulate,
    solve_all_stage_problems,
)

__all__ = [
    "sample_trajectory",
    "backward_pass",
    "forward_pass_kernel",
    "simulate",
    "rebuild_stageproblems",
    "solve_all_stage_problems",
    "set_valid_bound",
    "confidence_interval",
    "test_and_set_ci",
    "rtol",
]
