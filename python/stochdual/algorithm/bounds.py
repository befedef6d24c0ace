"""
Convergence Statistics
======================

Confidence interval of the forward-pass samples and the relative gap
between that interval and the bound.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from scipy import stats

from ..model import SDDPModel
from ..types import Sense


def confidence_interval(samples: Sequence[float], conf_level: float = 0.95) -> Tuple[float, Tuple[float, float]]:
    """
    Mean and Student-t confidence interval of ``samples``.

    With fewer than two samples the interval collapses to the mean.

    Returns:
        ``(mean, (lower, upper))``
    """
    arr = np.asarray(samples, dtype=np.float64)
    if arr.size == 0:
        return np.nan, (np.nan, np.nan)
    mean = float(arr.mean())
    n = arr.size
    if n < 2:
        return mean, (mean, mean)

    alpha = 1 - conf_level
    t_crit = stats.t.ppf(1 - alpha / 2, n - 1)
    margin = float(t_crit * arr.std(ddof=1) / np.sqrt(n))
    return mean, (mean - margin, mean + margin)


def test_and_set_ci(model: SDDPModel, samples: Sequence[float]) -> Tuple[float, float]:
    """Store the confidence interval of ``samples`` on the model."""
    _, ci = confidence_interval(samples, model.conf_level)
    model.ci = ci
    return ci


def rtol(model: SDDPModel) -> float:
    """
    Relative gap between the confidence interval and the bound.

    Minimization: ``(ci_lower - bound) / max(|bound|, 1)``.
    Maximization: ``(bound - ci_upper) / max(|bound|, 1)``.

    It is negative once the bound lies inside or beyond the interval.
    """
    bound = model.valid_bound
    if bound is None:
        return np.inf
    lower, upper = model.ci
    scale = max(abs(bound), 1.0)
    if model.sense == Sense.MIN:
        return (lower - bound) / scale
    return (bound - upper) / scale
