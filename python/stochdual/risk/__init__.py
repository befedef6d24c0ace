"""
stochdual Risk Measures
=======================

Cut generation under risk. Given, for S scenarios of the next stage, the
dual vectors ``pi``, the objective values ``theta`` and the probabilities
``prob``, a risk measure produces one cut at the reference state ``x``.

Expectation
-----------
The risk-neutral Benders / SDDP cut:

    intercept    = sum_i prob_i * (theta_i - pi_i' x)
    coefficients = sum_i prob_i * pi_i

Nested CVaR
-----------
A blend of expectation and Conditional Value-at-Risk,

    lambda * E[theta] + (1 - lambda) * CVaR_beta[theta]

implemented by reweighting the scenario probabilities towards the worst
``beta`` tail and reusing the expectation formula.

>>> from stochdual.risk import NestedCVaR, generate_cut
>>> cut = generate_cut(
...     NestedCVaR(beta=1/3, lambda_=0.0), "min",
...     x=[0.0], pi=[[1.0], [2.0], [3.0]],
...     theta=[10.0, 20.0, 30.0], prob=[1/3, 1/3, 1/3],
... )

Classes
-------
RiskMeasure
    Base class; override ``generate_cut`` or ``generate_stage_cut``
Expectation
    Risk-neutral expectation
NestedCVaR
    lambda * E + (1 - lambda) * CVaR_beta
StageDependentRisk
    One measure per stage
"""

from .measures import (
    Expectation,
    NestedCVaR,
    RiskMeasure,
    StageDependentRisk,
    expectation,
    generate_cut,
    reweight_probabilities,
)

__all__ = [
    "RiskMeasure",
    "Expectation",
    "NestedCVaR",
    "StageDependentRisk",
    "expectation",
    "generate_cut",
    "reweight_probabilities",
]
