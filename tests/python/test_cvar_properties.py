"""
Property tests for the nested CVaR reweighting.
"""

import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

from stochdual.risk import Expectation, NestedCVaR, generate_cut, reweight_probabilities

unit = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
positive_beta = st.floats(min_value=1e-6, max_value=1.0, allow_nan=False)
senses = st.sampled_from(["min", "max"])


@st.composite
def distributions(draw, max_size=12):
    """Probability vector summing to one with matching theta values."""
    n = draw(st.integers(min_value=1, max_value=max_size))
    weights = draw(st.lists(st.floats(min_value=1e-3, max_value=1.0), min_size=n, max_size=n))
    theta = draw(st.lists(st.floats(min_value=-1e3, max_value=1e3), min_size=n, max_size=n))
    prob = np.asarray(weights) / np.sum(weights)
    return prob, np.asarray(theta)


class TestReweightingProperties:
    """Invariants of reweight_probabilities."""

    @settings(max_examples=200, deadline=None)
    @given(distributions(), positive_beta, unit, senses)
    def test_weights_sum_to_one(self, dist, beta, lambda_, sense):
        """The reweighted vector is a distribution when beta > 0."""
        prob, theta = dist
        newprob = reweight_probabilities(np.zeros(len(prob)), sense, prob, theta, lambda_, beta)

        assert np.all(newprob >= 0)
        np.testing.assert_allclose(newprob.sum(), 1.0, rtol=1e-9)

    @settings(max_examples=200, deadline=None)
    @given(distributions(), positive_beta, unit, senses)
    def test_weights_bounded_by_tail_density(self, dist, beta, lambda_, sense):
        """No scenario gets more than lambda p + (1 - lambda) p / beta."""
        prob, theta = dist
        newprob = reweight_probabilities(np.zeros(len(prob)), sense, prob, theta, lambda_, beta)

        limit = lambda_ * prob + (1 - lambda_) * prob / beta
        assert np.all(newprob <= limit * (1 + 1e-9) + 1e-12)

    @settings(max_examples=100, deadline=None)
    @given(distributions(), unit, senses)
    def test_lambda_one_matches_expectation(self, dist, beta, sense):
        """lambda = 1 gives exactly the expectation cut."""
        prob, theta = dist
        x = np.array([1.5])
        pi = np.linspace(-1.0, 1.0, len(prob)).reshape(-1, 1)

        cvar = generate_cut(NestedCVaR(beta=beta, lambda_=1.0), sense, x, pi, theta, prob)
        assert cvar == generate_cut(Expectation(), sense, x, pi, theta, prob)

    @settings(max_examples=100, deadline=None)
    @given(distributions(), positive_beta, senses)
    def test_risk_averse_value_is_worse(self, dist, beta, sense):
        """The CVaR-weighted mean of theta is never better than the plain mean."""
        prob, theta = dist
        newprob = reweight_probabilities(np.zeros(len(prob)), sense, prob, theta, 0.0, beta)

        risk_value = float(np.dot(newprob, theta))
        mean_value = float(np.dot(prob, theta))
        tol = 1e-9 * max(1.0, np.abs(theta).max())
        if sense == "min":
            assert risk_value >= mean_value - tol
        else:
            assert risk_value <= mean_value + tol
