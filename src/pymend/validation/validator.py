"""Patch validation against the full test suite.

The validator applies a patch to a copy of the base program, instruments the
copy and runs every test case against it. Application failures are contained
here and reported as INAPPLICABLE, never as FAILED.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from pymend.errors import EngineFault, InapplicableMutation
from pymend.mutation.applier import apply_patch
from pymend.validation.results import ValidationResult, ValidationStatus


if TYPE_CHECKING:
    from collections.abc import Sequence
    import threading

    from pymend.mutation.operations import Patch
    from pymend.program.instrument import Instrumentor
    from pymend.program.model import Program
    from pymend.program.testcase import TestCase


logger = logging.getLogger(__name__)


class PatchValidator:
    """Validates patches of one base program against one test suite.

    A validator holds no per-patch state, so a single instance can be shared
    by every worker of a ValidationPool.

    Attributes:
        program: The base program. Never modified.
        tests: The test suite, run in order for every patch.
        instrumentor: Runs the test cases and counts executions.
    """

    def __init__(self, program: Program, tests: Sequence[TestCase], instrumentor: Instrumentor) -> None:
        """Create a validator.

        Args:
            program: The base program.
            tests: The test suite.
            instrumentor: Runs the test cases.
        """
        self.program = program
        self.tests = tuple(tests)
        self.instrumentor = instrumentor

    def validate(self, patch: Patch, cancel_event: threading.Event | None = None) -> ValidationResult:
        """Apply a patch to a copy of the program and run the suite against it.

        Every test case runs, even after one fails, so the result carries the
        full verdict vector and pass rate.

        Args:
            patch: The patch to validate.
            cancel_event: When set, no further test case starts and the result
                is CANCELLED.

        Returns:
            The ValidationResult for this patch.
        """
        start_time = time.monotonic()

        if cancel_event is not None and cancel_event.is_set():
            return ValidationResult(patch=patch, status=ValidationStatus.CANCELLED, reason='cancelled before start')

        try:
            patched = apply_patch(self.program, patch)
            instrumented = self.instrumentor.instrument(patched)
        except (InapplicableMutation, EngineFault) as exc:
            logger.debug('Patch %s (%s) is inapplicable: %s', patch.patch_id, patch.description, exc)
            return ValidationResult(
                patch=patch,
                status=ValidationStatus.INAPPLICABLE,
                reason=str(exc),
                execution_time_ms=(time.monotonic() - start_time) * 1000,
            )

        runs = self.instrumentor.run_suite(instrumented, self.tests, cancel_event=cancel_event)
        execution_time_ms = (time.monotonic() - start_time) * 1000

        if len(runs) < len(self.tests):
            status = ValidationStatus.CANCELLED
            reason: str | None = f'cancelled after {len(runs)} of {len(self.tests)} test cases'
        elif all(run.passed for run in runs):
            status = ValidationStatus.PLAUSIBLE
            reason = None
        else:
            status = ValidationStatus.FAILED
            reason = None

        logger.debug('Patch %s (%s): %s', patch.patch_id, patch.description, status.value)
        return ValidationResult(
            patch=patch,
            status=status,
            runs=tuple(runs),
            reason=reason,
            execution_time_ms=execution_time_ms,
        )
