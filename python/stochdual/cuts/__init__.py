"""
stochdual Cut Storage and Selection
===================================

Cuts are affine approximations of a stage value function built from the
duals of the next stage's subproblems. Each (stage, Markov state) pair owns
one :class:`StageCuts` store holding its cuts and the states (sample points)
at which they were built.

>>> from stochdual.cuts import Cut, StageCuts, recompute_dominance
>>> sc = StageCuts(1)
>>> sc.append(Cut(10.0, (-1.0,)), (0.0,))
>>> sc.append(Cut(6.0, (-0.25,)), (8.0,))
>>> recompute_dominance("min", sc)
array([1, 1])

Classes
-------
Cut
    Immutable affine cut, compared by exact value
StageCuts
    Insertion-ordered cut and sample-point store with set-semantics merge
NoSelection, LevelOne
    Cut-selection policies applied when stage subproblems are rebuilt
"""

from .selection import (
    CutSelectionMethod,
    LevelOne,
    NoSelection,
    get_selection,
    recompute_dominance,
)
from .stagecuts import Cut, SamplePoint, StageCuts, StageDelta

__all__ = [
    "Cut",
    "SamplePoint",
    "StageCuts",
    "StageDelta",
    "CutSelectionMethod",
    "NoSelection",
    "LevelOne",
    "get_selection",
    "recompute_dominance",
]
