"""
Risk Measures and Cut Generation
================================

A risk measure turns the per-scenario duals and objective values of the
next stage into a single cut for the current stage.

Measures:
- Expectation: the risk-neutral Benders cut
- NestedCVaR: lambda * E[theta] + (1 - lambda) * CVaR_beta[theta]
- StageDependentRisk: a different measure per stage
"""

from __future__ import annotations

import copy
from typing import Callable, Mapping, Optional, Sequence, Union

import numpy as np

from ..cuts import Cut
from ..exceptions import ConfigurationError, DimensionError, UnsupportedRiskMeasure
from ..types import Sense
from ..utils.validation import check_unit_interval, validate_scenario_batch


class RiskMeasure:
    """
    Base class for risk measures.

    Subclasses override :meth:`generate_cut`, or :meth:`generate_stage_cut`
    when the cut depends on the stage or Markov state. A subclass that
    overrides neither cannot produce cuts.
    """

    def generate_cut(
        self,
        sense: Sense,
        x: np.ndarray,
        pi: np.ndarray,
        theta: np.ndarray,
        prob: np.ndarray,
    ) -> Cut:
        raise UnsupportedRiskMeasure(self)

    def generate_stage_cut(
        self,
        sense: Sense,
        x: np.ndarray,
        pi: np.ndarray,
        theta: np.ndarray,
        prob: np.ndarray,
        stage: int,
        markov_state: int,
    ) -> Cut:
        return self.generate_cut(sense, x, pi, theta, prob)

    def clone(self) -> RiskMeasure:
        """Independent copy, safe to use from another pass."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Expectation(RiskMeasure):
    """
    Risk-neutral expectation.

        intercept    = sum_i prob_i * (theta_i - pi_i' x)
        coefficients = sum_i prob_i * pi_i

    The sums run in scenario order so that identical inputs give
    bit-identical cuts.
    """

    def generate_cut(self, sense, x, pi, theta, prob) -> Cut:
        intercept = (theta[0] - np.dot(pi[0], x)) * prob[0]
        coefficients = pi[0] * prob[0]
        for i in range(1, len(prob)):
            intercept += (theta[i] - np.dot(pi[i], x)) * prob[i]
            coefficients = coefficients + pi[i] * prob[i]
        return Cut.from_arrays(intercept, coefficients)

    def __eq__(self, other: object) -> bool:
        return type(other) is Expectation

    def __hash__(self) -> int:
        return hash(Expectation)


expectation = Expectation()


def reweight_probabilities(
    newprob: np.ndarray,
    sense: Union[str, Sense],
    oldprob: np.ndarray,
    theta: np.ndarray,
    lambda_: float,
    beta: float,
) -> np.ndarray:
    """
    Fill ``newprob`` with the nested CVaR weights of each scenario.

    Scenarios are visited from worst to best: by theta descending for
    minimization and ascending for maximization (ties keep their original
    order). Each gets ``lambda_ * prob_i``; while less than ``beta`` of the
    probability mass has been collected it also gets
    ``(1 - lambda_) / beta * min(prob_i, beta - collected)``.

    Args:
        newprob: Output buffer, at least as long as ``oldprob``
        sense: Optimization sense
        oldprob: Scenario probabilities
        theta: Scenario objective values
        lambda_: Weight of the expectation term in [0, 1]
        beta: Tail quantile in [0, 1]

    Returns:
        ``newprob`` (modified in place)
    """
    if len(newprob) < len(oldprob):
        raise DimensionError(f"buffer of length {len(newprob)} for {len(oldprob)} scenarios")
    theta = np.asarray(theta, dtype=np.float64)
    if Sense.parse(sense) == Sense.MAX:
        order = np.argsort(theta, kind="stable")
    else:
        order = np.argsort(-theta, kind="stable")

    quantile_collected = 0.0
    for i in order:
        newprob[i] = lambda_ * oldprob[i]
        if quantile_collected < beta:
            cvarprob = min(oldprob[i], beta - quantile_collected)
            newprob[i] += (1.0 - lambda_) / beta * cvarprob
            quantile_collected += cvarprob
    return newprob


class NestedCVaR(RiskMeasure):
    """
    Convex combination of expectation and Conditional Value-at-Risk.

        lambda * E[theta] + (1 - lambda) * CVaR_beta[theta]

    ``beta = 1`` or ``lambda = 1`` is plain expectation; ``beta -> 0`` with
    ``lambda = 0`` is the worst case.

    The instance owns a scratch buffer for the reweighted probabilities that
    only ever grows. It is not safe to share one instance between two
    concurrent passes; use :meth:`clone`.

    Args:
        beta: Tail quantile in [0, 1]
        lambda_: Weight of the expectation term in [0, 1]

    Example:
        >>> measure = NestedCVaR(beta=0.2, lambda_=0.5)
        >>> cut = generate_cut(measure, "min", x, pi, theta, prob)
    """

    def __init__(self, beta: float = 1.0, lambda_: float = 1.0) -> None:
        for name, value in (("beta", beta), ("lambda", lambda_)):
            ok, msg = check_unit_interval(name, value)
            if not ok:
                raise ConfigurationError(msg)
        self.beta = float(beta)
        self.lambda_ = float(lambda_)
        self._storage = np.zeros(0)

    @property
    def storage_size(self) -> int:
        return len(self._storage)

    def _ensure_storage(self, n: int) -> np.ndarray:
        if len(self._storage) < n:
            self._storage = np.concatenate([self._storage, np.zeros(n - len(self._storage))])
        return self._storage

    def generate_cut(self, sense, x, pi, theta, prob) -> Cut:
        n = len(prob)
        storage = self._ensure_storage(n)
        reweight_probabilities(storage, sense, prob, theta, self.lambda_, self.beta)
        return expectation.generate_cut(sense, x, pi, theta, storage[:n])

    def __repr__(self) -> str:
        return f"NestedCVaR(beta={self.beta}, lambda_={self.lambda_})"


class StageDependentRisk(RiskMeasure):
    """
    Use a different risk measure in each stage.

    Args:
        measures: Mapping ``stage -> RiskMeasure`` or a callable
            ``(stage, markov_state) -> RiskMeasure``
        default: Measure for stages missing from the mapping

    Example:
        >>> # risk neutral at the start, more averse towards the end
        >>> risk = StageDependentRisk({3: NestedCVaR(0.1, 0.5)})
    """

    def __init__(
        self,
        measures: Union[Mapping[int, RiskMeasure], Callable[[int, int], RiskMeasure]],
        default: Optional[RiskMeasure] = None,
    ) -> None:
        if not (callable(measures) or isinstance(measures, Mapping)):
            raise ConfigurationError("measures must be a mapping or a callable")
        self.measures = measures
        self.default = default if default is not None else Expectation()

    def measure_for(self, stage: int, markov_state: int) -> RiskMeasure:
        if isinstance(self.measures, Mapping):
            return self.measures.get(stage, self.default)
        return self.measures(stage, markov_state)

    def generate_stage_cut(self, sense, x, pi, theta, prob, stage, markov_state) -> Cut:
        return generate_cut(self.measure_for(stage, markov_state), sense, x, pi, theta, prob)

    def generate_cut(self, sense, x, pi, theta, prob) -> Cut:
        return generate_cut(self.default, sense, x, pi, theta, prob)


def generate_cut(
    measure: RiskMeasure,
    sense: Union[str, Sense],
    x: Sequence[float],
    pi: Sequence[Sequence[float]],
    theta: Sequence[float],
    prob: Sequence[float],
    stage: Optional[int] = None,
    markov_state: Optional[int] = None,
) -> Cut:
    """
    Build one cut at state ``x`` from a batch of scenario results.

    Args:
        measure: Risk measure
        sense: Optimization sense (only affects CVaR ordering)
        x: State at which the cut is built (length N)
        pi: Dual vector of each scenario (S x N)
        theta: Objective value of each scenario (S,)
        prob: Probability of each scenario (S,)
        stage: Stage index, passed to stage-dependent measures
        markov_state: Markov state index, passed with ``stage``

    Returns:
        The cut

    Raises:
        DimensionError: If the batch lengths disagree
        UnsupportedRiskMeasure: If the measure cannot produce a cut
    """
    if not isinstance(measure, RiskMeasure):
        raise UnsupportedRiskMeasure(measure)
    ok, msg = validate_scenario_batch(x, pi, theta, prob)
    if not ok:
        raise DimensionError(msg)

    sense = Sense.parse(sense)
    x = np.asarray(x, dtype=np.float64)
    pi = np.asarray(pi, dtype=np.float64).reshape(len(prob), len(x))
    theta = np.asarray(theta, dtype=np.float64)
    prob = np.asarray(prob, dtype=np.float64)

    if stage is None:
        return measure.generate_cut(sense, x, pi, theta, prob)
    return measure.generate_stage_cut(
        sense, x, pi, theta, prob, stage, 0 if markov_state is None else markov_state
    )
