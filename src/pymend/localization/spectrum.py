"""Spectrum collection for spectrum-based fault localization.

A Spectrum records, for every statement, how many failing and how many
passing test cases executed it at least once. The SpectrumCollector folds
execution traces into a Spectrum as runs arrive.

Example:
    >>> spectrum = Spectrum()
    >>> spectrum.record('test_1', {1: 1, 2: 1}, passed=False)
    >>> spectrum.record('test_2', {1: 1}, passed=True)
    >>> spectrum.counts(1), spectrum.counts(2)
    ((1, 1), (1, 0))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pymend.errors import EngineFault, PreconditionError


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from pymend.program.instrument import InstrumentedProgram, Instrumentor, TestRun
    from pymend.program.testcase import TestCase


@dataclass
class StatementCounts:
    """Failing and passing test counts for one statement."""

    failed: int = 0
    passed: int = 0


class Spectrum:
    """Per-statement pass/fail execution counters across a test suite.

    Attributes:
        total_failed: Number of distinct failing test cases recorded.
        total_passed: Number of distinct passing test cases recorded.
    """

    def __init__(self) -> None:
        """Create an empty spectrum."""
        self._counts: dict[int, StatementCounts] = {}
        self._verdicts: dict[str, bool] = {}

    def __len__(self) -> int:
        """Return the number of statements executed by at least one test."""
        return len(self._counts)

    def __contains__(self, statement_id: object) -> bool:
        return statement_id in self._counts

    @property
    def total_failed(self) -> int:
        """Return the number of failing test cases."""
        return sum(1 for passed in self._verdicts.values() if not passed)

    @property
    def total_passed(self) -> int:
        """Return the number of passing test cases."""
        return sum(1 for passed in self._verdicts.values() if passed)

    @property
    def failing_tests(self) -> list[str]:
        """Return the ids of failing test cases in recording order."""
        return [test_id for test_id, passed in self._verdicts.items() if not passed]

    @property
    def passing_tests(self) -> list[str]:
        """Return the ids of passing test cases in recording order."""
        return [test_id for test_id, passed in self._verdicts.items() if passed]

    def record(self, test_id: str, trace: Mapping[int, int], *, passed: bool) -> None:
        """Fold one test case's execution trace into the spectrum.

        Args:
            test_id: The test case identifier.
            trace: Statement id to execution count for the run.
            passed: The run's verdict.

        Raises:
            EngineFault: If the same test id is recorded twice.
        """
        if test_id in self._verdicts:
            msg = f'Test case {test_id!r} recorded twice; test ids must be unique'
            raise EngineFault(msg)
        self._verdicts[test_id] = passed
        for statement_id, hits in trace.items():
            if hits <= 0:
                continue
            counts = self._counts.setdefault(statement_id, StatementCounts())
            if passed:
                counts.passed += 1
            else:
                counts.failed += 1

    def counts(self, statement_id: int) -> tuple[int, int]:
        """Return ``(failed, passed)`` for a statement; ``(0, 0)`` if never executed."""
        counts = self._counts.get(statement_id)
        if counts is None:
            return 0, 0
        return counts.failed, counts.passed

    def statements(self) -> Iterator[int]:
        """Iterate over the ids of executed statements."""
        yield from self._counts

    def require_mixed_verdicts(self) -> None:
        """Check the test-suite-based repair precondition.

        Raises:
            PreconditionError: Unless at least one failing and one passing test was recorded.
        """
        if self.total_failed == 0 or self.total_passed == 0:
            msg = (
                'Repair needs at least one failing and one passing test case, '
                f'got {self.total_failed} failing and {self.total_passed} passing'
            )
            raise PreconditionError(msg)


class SpectrumCollector:
    """Collects execution traces of a test suite into a Spectrum.

    Attributes:
        spectrum: The Spectrum being built.
        runs: The TestRuns recorded so far, in suite order.
    """

    def __init__(self) -> None:
        """Create a collector with an empty spectrum."""
        self.spectrum = Spectrum()
        self.runs: list[TestRun] = []

    def record(self, run: TestRun) -> None:
        """Record one test run."""
        self.spectrum.record(run.test_id, run.trace, passed=run.passed)
        self.runs.append(run)

    def collect(
        self,
        instrumentor: Instrumentor,
        instrumented: InstrumentedProgram,
        tests: Iterable[TestCase],
    ) -> Spectrum:
        """Run every test case against the program and fold the traces.

        Args:
            instrumentor: Runs the test cases.
            instrumented: The program under repair.
            tests: The test suite.

        Returns:
            The collected Spectrum.
        """
        for run in instrumentor.run_suite(instrumented, tests):
            self.record(run)
        return self.spectrum

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the collected spectrum.

        Returns:
            Dict with keys:
                - total_tests: Number of runs recorded
                - failing_tests: Number of failing runs
                - passing_tests: Number of passing runs
                - executed_statements: Number of statements executed at least once
        """
        return {
            'total_tests': len(self.runs),
            'failing_tests': self.spectrum.total_failed,
            'passing_tests': self.spectrum.total_passed,
            'executed_statements': len(self.spectrum),
        }
