"""Suspiciousness formulas for spectrum-based fault localization.

A formula is a plain function ``(failed, passed, total_failed, total_passed)
-> float`` where ``failed``/``passed`` count the failing/passing tests that
executed a statement and the totals are suite-level constants. Formulas are
looked up by name, and new ones can be registered at runtime.

A statement executed by no test scores 0.

Example:
    >>> tarantula(1, 0, 1, 1)
    1.0
    >>> tarantula(1, 1, 1, 1)
    0.5
    >>> get_formula('ochiai') is ochiai
    True
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable

    SuspiciousnessFormula = Callable[[int, int, int, int], float]


def tarantula(failed: int, passed: int, total_failed: int, total_passed: int) -> float:
    """Tarantula: ``(f/F) / (f/F + p/P)``."""
    if failed == 0 and passed == 0:
        return 0.0
    fail_ratio = failed / total_failed if total_failed > 0 else 0.0
    pass_ratio = passed / total_passed if total_passed > 0 else 0.0
    denominator = fail_ratio + pass_ratio
    if denominator == 0:
        return 0.0
    return fail_ratio / denominator


def ochiai(failed: int, passed: int, total_failed: int, total_passed: int) -> float:  # noqa: ARG001
    """Ochiai: ``f / sqrt(F * (f + p))``."""
    denominator = math.sqrt(total_failed * (failed + passed))
    if denominator == 0:
        return 0.0
    return failed / denominator


def jaccard(failed: int, passed: int, total_failed: int, total_passed: int) -> float:  # noqa: ARG001
    """Jaccard: ``f / (F + p)``."""
    denominator = total_failed + passed
    if failed == 0 or denominator == 0:
        return 0.0
    return failed / denominator


_FORMULAS: dict[str, SuspiciousnessFormula] = {
    'tarantula': tarantula,
    'ochiai': ochiai,
    'jaccard': jaccard,
}


def get_formula(name: str) -> SuspiciousnessFormula:
    """Get a registered formula by name.

    Raises:
        KeyError: If no formula is registered under the name.
    """
    if name not in _FORMULAS:
        raise KeyError(f"Unknown suspiciousness formula: '{name}'")
    return _FORMULAS[name]


def register_formula(name: str, formula: SuspiciousnessFormula) -> None:
    """Register a formula under a name, replacing any existing one."""
    _FORMULAS[name] = formula


def available_formulas() -> list[str]:
    """List all registered formula names."""
    return list(_FORMULAS)
