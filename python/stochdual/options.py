"""
stochdual Training Options
==========================

Run-level settings of :class:`stochdual.SDDPSolver`. Model-level settings
(sense, stages, Markov chain, risk measure, ...) live on
:class:`stochdual.SDDPModel`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .cuts import get_selection
from .exceptions import ConfigurationError

# short names accepted by ``SolveOptions.from_params``
_ALIASES = {
    "max_iters": "max_iterations",
    "iterations": "max_iterations",
    "time_limit_s": "time_limit",
    "cut_selection_method": "cut_selection",
    "rtol": "tolerance",
}


@dataclass
class SolveOptions:
    """
    Training options.

    Attributes:
        max_iterations: Backward rounds before stopping
        time_limit: Wall-clock limit in seconds
        backward_passes: Backward passes per round, spread over the workers
        forward_passes: Forward passes per convergence test
        convergence_frequency: Run a convergence test every k rounds (0: never)
        cut_selection_frequency: Rebuild worker stage problems every k passes
            (0: never)
        cut_selection: ``"none"`` or ``"level_one"``
        tolerance: Stop when the relative gap drops below this value
        seed: Base seed for all random numbers (None: fresh entropy)
        timeout: Bound on the wait for each round in seconds (None: unbounded)
        log_level: Configure logging with this level before solving
        log_frequency: Log every k rounds
    """

    max_iterations: int = 50
    time_limit: float = math.inf
    backward_passes: int = 1
    forward_passes: int = 20
    convergence_frequency: int = 5
    cut_selection_frequency: int = 0
    cut_selection: str = "none"
    tolerance: float = 0.0
    seed: Optional[int] = None
    timeout: Optional[float] = None
    log_level: Optional[str] = None
    log_frequency: int = 1

    def __post_init__(self) -> None:
        for name in ("max_iterations", "convergence_frequency", "cut_selection_frequency"):
            if int(getattr(self, name)) < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ("backward_passes", "forward_passes", "log_frequency"):
            if int(getattr(self, name)) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {getattr(self, name)}")
        if self.time_limit <= 0:
            raise ConfigurationError(f"time_limit must be positive, got {self.time_limit}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        # raises on unknown names
        self.cut_selection = get_selection(self.cut_selection).name

    @classmethod
    def from_params(cls, params: Optional[Dict[str, Any]] = None) -> SolveOptions:
        """
        Build options from a plain parameter dict.

        Unknown keys raise ``ConfigurationError``.

        Example:
            >>> SolveOptions.from_params({"max_iters": 100, "rtol": 1e-3})
        """
        params = dict(params or {})
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in params.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"unknown option '{key}'")
            kwargs[name] = value
        return cls(**kwargs)
