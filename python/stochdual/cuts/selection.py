"""
Cut Selection
=============

Level-one dominance: a cut is kept if it is the best cut at one or more of
the sample points visited so far. Dominated cuts stay in the
:class:`StageCuts` store; only the stage subproblems are rebuilt without
them.
"""

from __future__ import annotations

from typing import List, Union

import numpy as np

from ..exceptions import ConfigurationError
from ..types import Sense
from .stagecuts import Cut, StageCuts


class CutSelectionMethod:
    """Base class for cut-selection policies used by stage rebuilds."""

    #: whether ``select`` relies on up-to-date dominance counts
    needs_dominance: bool = False
    name: str = "base"

    def select(self, stagecuts: StageCuts) -> List[Cut]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class NoSelection(CutSelectionMethod):
    """Keep every cut."""

    name = "none"

    def select(self, stagecuts: StageCuts) -> List[Cut]:
        return list(stagecuts.cuts)


class LevelOne(CutSelectionMethod):
    """Keep the cuts that are best at one or more sample points."""

    needs_dominance = True
    name = "level_one"

    def select(self, stagecuts: StageCuts) -> List[Cut]:
        return stagecuts.undominated_cuts()


_METHODS = {cls.name: cls for cls in (NoSelection, LevelOne)}


def get_selection(method: Union[str, CutSelectionMethod, None]) -> CutSelectionMethod:
    """Resolve an option value (``"none"``, ``"level_one"``) to a selection method."""
    if method is None:
        return NoSelection()
    if isinstance(method, CutSelectionMethod):
        return method
    key = str(method).strip().lower().replace("-", "_")
    if key not in _METHODS:
        raise ConfigurationError(
            f"unknown cut selection '{method}', expected one of {sorted(_METHODS)}"
        )
    return _METHODS[key]()


def recompute_dominance(sense, stagecuts: StageCuts) -> np.ndarray:
    """
    Count, for every cut, the sample points at which it is the best cut.

    The best cut is the largest for minimization (cuts are lower bounds) and
    the smallest for maximization. Ties go to the earliest cut.

    Args:
        sense: Optimization sense of the model
        stagecuts: Store to update in place

    Returns:
        The vote counts, also stored in ``stagecuts.dominance``
    """
    sense = Sense.parse(sense)
    votes = np.zeros(stagecuts.n_cuts, dtype=np.int64)
    if stagecuts.n_cuts and stagecuts.n_sample_points:
        points = np.array(stagecuts.sample_points, dtype=np.float64)
        # values[k, p]: cut k evaluated at sample point p
        values = stagecuts.intercepts()[:, None] + stagecuts.coefficient_matrix() @ points.T
        best = values.argmax(axis=0) if sense == Sense.MIN else values.argmin(axis=0)
        np.add.at(votes, best, 1)
    stagecuts.dominance = votes
    return votes
