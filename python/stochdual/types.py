"""
Common Types
============

Optimization sense shared by models, stage problems and risk measures.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from .exceptions import ConfigurationError


class Sense(str, Enum):
    """Optimization sense of a multistage model."""

    MIN = "min"
    MAX = "max"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, Sense]) -> Sense:
        """Accept a ``Sense`` or strings like ``"min"``, ``"Minimize"``, ``"max"``."""
        if isinstance(value, Sense):
            return value
        key = str(value).strip().lower()
        if key in ("min", "minimize", "minimise", "minimization", "minimisation"):
            return cls.MIN
        if key in ("max", "maximize", "maximise", "maximization", "maximisation"):
            return cls.MAX
        raise ConfigurationError(f"unknown optimization sense '{value}'")


__all__ = ["Sense"]
