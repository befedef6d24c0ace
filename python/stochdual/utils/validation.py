"""Input validation utilities."""

from typing import Any, Tuple

import numpy as np


def validate_scenario_batch(
    x: Any,
    pi: Any,
    theta: Any,
    prob: Any,
) -> Tuple[bool, str]:
    """
    Validate the data of one cut: a reference state and per-scenario duals,
    objective values and probabilities.

    Returns:
        (is_valid, error_message) tuple
    """
    try:
        x = np.asarray(x, dtype=np.float64)
        pi = np.asarray(pi, dtype=np.float64)
        theta = np.asarray(theta, dtype=np.float64)
        prob = np.asarray(prob, dtype=np.float64)

        if x.ndim != 1:
            return False, f"x must be a vector, got shape {x.shape}"

        n = len(x)
        if pi.ndim == 1 and n == 1:
            pi = pi.reshape(-1, 1)
        if pi.ndim != 2:
            return False, f"pi must be a sequence of vectors, got shape {pi.shape}"

        S = len(prob)
        if S == 0:
            return False, "at least one scenario is required"

        if not (len(pi) == len(theta) == S):
            return False, f"pi, theta and prob have lengths {len(pi)}, {len(theta)}, {S}"

        if pi.shape[1] != n:
            return False, f"duals have {pi.shape[1]} entries but the state has {n}"

        if np.any(prob < 0):
            return False, "prob contains negative values"

        return True, ""

    except (TypeError, ValueError) as e:
        return False, str(e)


def check_unit_interval(name: str, value: Any) -> Tuple[bool, str]:
    """Check that ``value`` is a real number in [0, 1]."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return False, f"{name} must be a number, got {value!r}"
    if not (0.0 <= v <= 1.0):
        return False, f"{name} must be in [0, 1], got {value}"
    return True, ""
