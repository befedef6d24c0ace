"""
stochdual Stage Subproblems
===========================

A multistage model is a grid of stage subproblems, one per (stage, Markov
state). The training algorithms only need each subproblem to

- solve at an incoming state for a sampled scenario,
- report the derivative of its optimal value with respect to that state,
- accept the cuts approximating the value of the next stage.

:class:`StageProblem` is that contract; :class:`LinearStageProblem` is a
ready-made implementation for linear stage models, solved with HiGHS.

>>> from stochdual.stages import LinearStageProblem
>>> def build(stage, markov_state):
...     return LinearStageProblem(c=c, A=A, A_in=A_in, b=b, senses=senses, state_out=[0])

Classes
-------
StageProblem
    Abstract stage subproblem
StageSolution
    Objective, duals and outgoing state of one solve
LinearStageProblem
    LP stage subproblem with copy-row duals
"""

from .base import StageProblem, StageSolution
from .linear import LinearStageProblem

__all__ = [
    "StageProblem",
    "StageSolution",
    "LinearStageProblem",
]
