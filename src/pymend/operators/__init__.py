"""Repair operators for pymend.

This package provides the operator system for proposing add, remove and
replace operations on repair targets.
"""

from pymend.operators.add import AddOperator
from pymend.operators.protocol import RepairOperator
from pymend.operators.registry import OperatorRegistry, default_registry
from pymend.operators.remove import RemoveOperator
from pymend.operators.replace import ReplaceOperator


__all__ = [
    'AddOperator',
    'OperatorRegistry',
    'RemoveOperator',
    'RepairOperator',
    'ReplaceOperator',
    'default_registry',
]
