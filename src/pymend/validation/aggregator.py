"""Progress aggregation for repair searches.

This module provides the RepairProgress class that collects validation
results from the sequential loop or from parallel workers.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pymend.validation.results import ValidationStatus


if TYPE_CHECKING:
    from pymend.validation.results import ValidationResult


class RepairProgress:
    """Aggregates validation results during a repair search.

    Thread-safe collection of results with status counts, the targets tried
    and the best partial result. Cancelled validations are counted but do not
    count as tried patches.

    Attributes:
        patches_tried: Number of patches whose validation completed.
        targets_tried: Ranked statements for which patches were generated.

    Example:
        >>> progress = RepairProgress()
        >>> progress.mark_target(4)
        >>> progress.targets_tried
        (4,)
    """

    def __init__(self) -> None:
        """Initialize empty progress."""
        self._lock = threading.Lock()
        self._results: list[ValidationResult] = []
        self._targets: list[int] = []
        self._plausible = 0
        self._failed = 0
        self._inapplicable = 0
        self._cancelled = 0
        self._best: ValidationResult | None = None

    @property
    def patches_tried(self) -> int:
        """Return the number of patches validated to completion (inapplicable included)."""
        with self._lock:
            return self._plausible + self._failed + self._inapplicable

    @property
    def plausible_count(self) -> int:
        """Return the number of plausible patches."""
        with self._lock:
            return self._plausible

    @property
    def failed_count(self) -> int:
        """Return the number of failed patches."""
        with self._lock:
            return self._failed

    @property
    def inapplicable_count(self) -> int:
        """Return the number of inapplicable patches."""
        with self._lock:
            return self._inapplicable

    @property
    def cancelled_count(self) -> int:
        """Return the number of validations cut short by cancellation."""
        with self._lock:
            return self._cancelled

    @property
    def targets_tried(self) -> tuple[int, ...]:
        """Return the ids of the ranked statements tried, in order."""
        with self._lock:
            return tuple(self._targets)

    @property
    def best_result(self) -> ValidationResult | None:
        """Return the completed result with the highest pass rate (earliest patch on ties)."""
        with self._lock:
            return self._best

    @property
    def best_pass_rate(self) -> float:
        """Return the highest pass rate seen so far, 0.0 if nothing completed."""
        with self._lock:
            return self._best.pass_rate if self._best is not None else 0.0

    def mark_target(self, statement_id: int) -> None:
        """Record that patches are being generated for a ranked statement."""
        with self._lock:
            if statement_id not in self._targets:
                self._targets.append(statement_id)

    def add_result(self, result: ValidationResult) -> None:
        """Add a validation result.

        Thread-safe method to add a result to the aggregator.

        Args:
            result: The validation result to add.
        """
        with self._lock:
            self._results.append(result)
            self._update_status_count(result.status)
            if result.status in (ValidationStatus.PLAUSIBLE, ValidationStatus.FAILED) and self._is_better(result):
                self._best = result

    def get_results(self) -> list[ValidationResult]:
        """Get all results sorted by patch generation order."""
        with self._lock:
            return sorted(self._results, key=lambda r: r.patch.sequence)

    def get_plausible(self) -> list[ValidationResult]:
        """Get the plausible results, earliest generated first."""
        return [r for r in self.get_results() if r.is_plausible]

    def _is_better(self, result: ValidationResult) -> bool:
        """Return True if result beats the current best. Must be called with lock held."""
        if self._best is None:
            return True
        if result.pass_rate != self._best.pass_rate:
            return result.pass_rate > self._best.pass_rate
        return result.patch.sequence < self._best.patch.sequence

    def _update_status_count(self, status: ValidationStatus) -> None:
        """Update status counts. Must be called with lock held.

        Args:
            status: The status to count.
        """
        if status == ValidationStatus.PLAUSIBLE:
            self._plausible += 1
        elif status == ValidationStatus.FAILED:
            self._failed += 1
        elif status == ValidationStatus.INAPPLICABLE:
            self._inapplicable += 1
        elif status == ValidationStatus.CANCELLED:
            self._cancelled += 1
        else:  # pragma: no cover
            msg = f'Unexpected validation status: {status}'
            raise ValueError(msg)
