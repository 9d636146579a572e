"""Tests for RepairProgress.

These tests verify status counting, ordering, best-result tracking and
thread safety.
"""

from __future__ import annotations

import threading

from pymend.mutation.operations import Patch, Remove
from pymend.program.instrument import TestRun, Verdict
from pymend.validation.aggregator import RepairProgress
from pymend.validation.results import ValidationResult, ValidationStatus


def result(sequence: int, status: ValidationStatus, passes: int = 0, total: int = 0) -> ValidationResult:
    patch = Patch(f'p{sequence:04d}', sequence, 10, (Remove(10),), f'patch {sequence}')
    runs = tuple(
        TestRun(test_id=f't{n}', verdict=Verdict.PASS if n < passes else Verdict.FAIL) for n in range(total)
    )
    return ValidationResult(patch, status, runs)


class TestRepairProgressCounts:
    """Tests for status counts."""

    def test_starts_empty(self) -> None:
        """New progress has nothing recorded."""
        progress = RepairProgress()

        assert progress.patches_tried == 0
        assert progress.get_results() == []
        assert progress.best_result is None
        assert progress.best_pass_rate == 0.0

    def test_counts_each_status(self) -> None:
        """Every status has its own counter."""
        progress = RepairProgress()
        progress.add_result(result(1, ValidationStatus.FAILED, 1, 2))
        progress.add_result(result(2, ValidationStatus.INAPPLICABLE))
        progress.add_result(result(3, ValidationStatus.PLAUSIBLE, 2, 2))
        progress.add_result(result(4, ValidationStatus.CANCELLED))

        assert progress.failed_count == 1
        assert progress.inapplicable_count == 1
        assert progress.plausible_count == 1
        assert progress.cancelled_count == 1

    def test_cancelled_results_are_not_tried(self) -> None:
        """Only completed validations count as tried patches."""
        progress = RepairProgress()
        progress.add_result(result(1, ValidationStatus.INAPPLICABLE))
        progress.add_result(result(2, ValidationStatus.CANCELLED))

        assert progress.patches_tried == 1


class TestRepairProgressOrdering:
    """Tests for result ordering."""

    def test_results_sorted_by_sequence(self) -> None:
        """Results come back in generation order whatever the completion order."""
        progress = RepairProgress()
        for sequence in (3, 1, 2):
            progress.add_result(result(sequence, ValidationStatus.FAILED, 0, 1))

        assert [r.patch.sequence for r in progress.get_results()] == [1, 2, 3]

    def test_plausible_results_earliest_first(self) -> None:
        """get_plausible filters and orders by sequence."""
        progress = RepairProgress()
        progress.add_result(result(5, ValidationStatus.PLAUSIBLE, 1, 1))
        progress.add_result(result(2, ValidationStatus.FAILED, 0, 1))
        progress.add_result(result(3, ValidationStatus.PLAUSIBLE, 1, 1))

        assert [r.patch.sequence for r in progress.get_plausible()] == [3, 5]

    def test_targets_are_recorded_once_in_order(self) -> None:
        """mark_target keeps the first occurrence of each target."""
        progress = RepairProgress()
        for statement_id in (10, 1, 10, 2):
            progress.mark_target(statement_id)

        assert progress.targets_tried == (10, 1, 2)


class TestRepairProgressBest:
    """Tests for best partial result tracking."""

    def test_highest_pass_rate_wins(self) -> None:
        progress = RepairProgress()
        progress.add_result(result(1, ValidationStatus.FAILED, 1, 4))
        progress.add_result(result(2, ValidationStatus.FAILED, 3, 4))
        progress.add_result(result(3, ValidationStatus.FAILED, 2, 4))

        assert progress.best_result.patch.sequence == 2
        assert progress.best_pass_rate == 0.75

    def test_earliest_patch_wins_ties(self) -> None:
        progress = RepairProgress()
        progress.add_result(result(4, ValidationStatus.FAILED, 1, 2))
        progress.add_result(result(2, ValidationStatus.FAILED, 1, 2))

        assert progress.best_result.patch.sequence == 2

    def test_inapplicable_and_cancelled_are_never_best(self) -> None:
        progress = RepairProgress()
        progress.add_result(result(1, ValidationStatus.INAPPLICABLE))
        progress.add_result(result(2, ValidationStatus.CANCELLED))

        assert progress.best_result is None


class TestRepairProgressThreadSafety:
    """Tests for concurrent access."""

    def test_concurrent_adds(self) -> None:
        """Results added from many threads are all counted."""
        progress = RepairProgress()

        def add_batch(start: int) -> None:
            for sequence in range(start, start + 25):
                progress.add_result(result(sequence, ValidationStatus.FAILED, 0, 1))

        threads = [threading.Thread(target=add_batch, args=(n * 25,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert progress.patches_tried == 100
        assert [r.patch.sequence for r in progress.get_results()] == list(range(100))
