"""ValidationResult dataclass for tracking patch validation outcomes.

Each ValidationResult represents the outcome of running the whole test suite
against one patched program. A patch is plausible when every test passes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pymend.mutation.operations import Patch
    from pymend.program.instrument import TestRun, Verdict


class ValidationStatus(Enum):
    """Status of a patch after validation.

    Attributes:
        PLAUSIBLE: Every test case passed on the patched program.
        FAILED: At least one test case failed.
        INAPPLICABLE: The patch could not be applied; no test ran.
        CANCELLED: Validation stopped early because a repair was already found.
    """

    PLAUSIBLE = 'plausible'
    FAILED = 'failed'
    INAPPLICABLE = 'inapplicable'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a single patch.

    Attributes:
        patch: The patch that was validated.
        status: Outcome of the validation.
        runs: The test runs, in suite order. Empty for inapplicable patches.
        reason: Why the patch was inapplicable or cancelled, if it was.
        execution_time_ms: Time taken to validate this patch in milliseconds.
    """

    patch: Patch
    status: ValidationStatus
    runs: tuple[TestRun, ...] = field(default=())
    reason: str | None = None
    execution_time_ms: float | None = None

    @property
    def verdicts(self) -> dict[str, Verdict]:
        """Return the verdict of each test case that ran, by test id."""
        return {run.test_id: run.verdict for run in self.runs}

    @property
    def is_plausible(self) -> bool:
        """Return True if the patched program passed every test case."""
        return self.status == ValidationStatus.PLAUSIBLE

    @property
    def passed_count(self) -> int:
        """Return the number of test cases that passed."""
        return sum(1 for run in self.runs if run.passed)

    @property
    def pass_rate(self) -> float:
        """Return the fraction of test cases that passed (0.0 if none ran)."""
        if not self.runs:
            return 0.0
        return self.passed_count / len(self.runs)

    @property
    def failing_tests(self) -> list[str]:
        """Return the ids of the test cases that failed."""
        return [run.test_id for run in self.runs if not run.passed]
