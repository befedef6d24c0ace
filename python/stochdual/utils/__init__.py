"""Shared helpers."""

from .validation import check_unit_interval, validate_scenario_batch

__all__ = ["check_unit_interval", "validate_scenario_batch"]
