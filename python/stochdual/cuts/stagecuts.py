"""
Cuts and Per-Stage Cut Storage
==============================

A :class:`Cut` is one affine function of the state,

    V(x) >= intercept + coefficients' x      (minimization)
    V(x) <= intercept + coefficients' x      (maximization)

and a :class:`StageCuts` collects the cuts and sample points discovered for
one (stage, Markov state) pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import DimensionError

SamplePoint = Tuple[float, ...]


@dataclass(frozen=True)
class Cut:
    """
    Affine cut of a stage value function.

    Cuts are immutable and compared by exact value, so two cuts whose
    floating point values differ in the last bit are distinct.

    Args:
        intercept: Constant term
        coefficients: Slope with respect to each state dimension

    Example:
        >>> cut = Cut.from_arrays(10.0, np.array([-1.0, 0.5]))
        >>> cut.value([2.0, 2.0])
        9.0
    """

    intercept: float
    coefficients: Tuple[float, ...]

    @classmethod
    def from_arrays(cls, intercept: float, coefficients: Iterable[float]) -> Cut:
        """Build a cut from any numeric scalar and vector."""
        return cls(float(intercept), tuple(float(c) for c in np.asarray(coefficients).ravel()))

    @property
    def n_states(self) -> int:
        """Number of state dimensions."""
        return len(self.coefficients)

    def value(self, x: Sequence[float]) -> float:
        """Evaluate the cut at state ``x``."""
        return self.intercept + float(np.dot(self.coefficients, np.asarray(x, dtype=np.float64)))

    def sort_key(self) -> Tuple[float, ...]:
        return (self.intercept,) + self.coefficients


StageDelta = Tuple[List[SamplePoint], List[Cut]]


def _as_sample_point(x: Sequence[float]) -> SamplePoint:
    return tuple(float(v) for v in np.asarray(x, dtype=np.float64).ravel())


class StageCuts:
    """
    Cuts and sample points of one (stage, Markov state) pair.

    Both sequences keep insertion order. ``append`` is the local, per-pass
    path and does not deduplicate; ``merge`` is the reduction path and
    treats both sequences as sets.

    Args:
        n_states: Number of state dimensions
        cuts: Initial cuts
        sample_points: Initial sample points

    Example:
        >>> sc = StageCuts(1)
        >>> sc.append(Cut(1.0, (2.0,)), (0.5,))
        >>> sc.n_cuts
        1
    """

    def __init__(
        self,
        n_states: int,
        cuts: Optional[Iterable[Cut]] = None,
        sample_points: Optional[Iterable[Sequence[float]]] = None,
    ) -> None:
        self.n_states = int(n_states)
        self.cuts: List[Cut] = []
        self.sample_points: List[SamplePoint] = []
        # votes per cut from the last dominance recompute, None if stale
        self.dominance: Optional[np.ndarray] = None

        for cut in cuts or ():
            self.append(cut)
        for point in sample_points or ():
            self.add_sample_point(point)

    @property
    def n_cuts(self) -> int:
        return len(self.cuts)

    @property
    def n_sample_points(self) -> int:
        return len(self.sample_points)

    def __len__(self) -> int:
        return len(self.cuts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StageCuts):
            return NotImplemented
        return (
            self.n_states == other.n_states
            and self.cuts == other.cuts
            and self.sample_points == other.sample_points
        )

    def __repr__(self) -> str:
        return (
            f"StageCuts(n_states={self.n_states}, n_cuts={self.n_cuts}, "
            f"n_sample_points={self.n_sample_points})"
        )

    def _check_cut(self, cut: Cut) -> None:
        if cut.n_states != self.n_states:
            raise DimensionError(f"cut has {cut.n_states} coefficients, expected {self.n_states}")

    def add_sample_point(self, x: Sequence[float]) -> None:
        point = _as_sample_point(x)
        if len(point) != self.n_states:
            raise DimensionError(f"sample point has {len(point)} entries, expected {self.n_states}")
        self.sample_points.append(point)
        self.dominance = None

    def append(self, cut: Cut, sample_point: Optional[Sequence[float]] = None) -> None:
        """Append a cut and, optionally, the state it was built at."""
        self._check_cut(cut)
        self.cuts.append(cut)
        self.dominance = None
        if sample_point is not None:
            self.add_sample_point(sample_point)

    def delta_since(self, n_cuts: int, n_sample_points: int) -> StageDelta:
        """Return the sample points and cuts appended after the given sizes."""
        return list(self.sample_points[n_sample_points:]), list(self.cuts[n_cuts:])

    def merge(self, deltas: Iterable[StageDelta]) -> bool:
        """
        Union the store with worker deltas.

        Items already present keep their position. New items are appended
        sorted by value, so the merged store does not depend on the order in
        which the deltas arrive.

        Args:
            deltas: ``(sample_points, cuts)`` pairs

        Returns:
            True if anything was added
        """
        seen_points = set(self.sample_points)
        seen_cuts = set(self.cuts)
        new_points = set()
        new_cuts = set()
        for points, cuts in deltas:
            for point in points:
                point = _as_sample_point(point)
                if len(point) != self.n_states:
                    raise DimensionError(f"sample point has {len(point)} entries, expected {self.n_states}")
                if point not in seen_points:
                    new_points.add(point)
            for cut in cuts:
                self._check_cut(cut)
                if cut not in seen_cuts:
                    new_cuts.add(cut)

        self.sample_points.extend(sorted(new_points))
        self.cuts.extend(sorted(new_cuts, key=Cut.sort_key))

        changed = bool(new_points or new_cuts)
        if changed:
            self.dominance = None
        return changed

    def intercepts(self) -> np.ndarray:
        return np.array([c.intercept for c in self.cuts], dtype=np.float64)

    def coefficient_matrix(self) -> np.ndarray:
        """Cut slopes as an ``(n_cuts, n_states)`` array."""
        if not self.cuts:
            return np.zeros((0, self.n_states))
        return np.array([c.coefficients for c in self.cuts], dtype=np.float64)

    def undominated_cuts(self) -> List[Cut]:
        """Cuts that won at least one sample point in the last dominance recompute."""
        if self.dominance is None or not self.sample_points:
            return list(self.cuts)
        return [cut for cut, votes in zip(self.cuts, self.dominance) if votes > 0]
