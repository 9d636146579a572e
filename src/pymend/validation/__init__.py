"""Patch validation for pymend.

This package validates candidate patches against the test suite, either one
at a time or on a pool of worker threads with cooperative cancellation.
"""

from pymend.validation.aggregator import RepairProgress
from pymend.validation.pool import ValidationPool
from pymend.validation.results import ValidationResult, ValidationStatus
from pymend.validation.validator import PatchValidator


__all__ = [
    'PatchValidator',
    'RepairProgress',
    'ValidationPool',
    'ValidationResult',
    'ValidationStatus',
]
