"""Exception hierarchy for pymend.

Only PreconditionError and EngineFault ever reach the caller of a repair.
InapplicableMutation is contained by the patch validator, and RuntimeFault is
recorded on a TestRun as the reason for a failing verdict.
"""

from __future__ import annotations

from enum import Enum


class RepairError(Exception):
    """Base class for all pymend errors."""


class PreconditionError(RepairError):
    """The test suite cannot drive test-suite-based repair.

    Raised when the suite lacks at least one failing and one passing test
    case. Surfaced before any patch is generated.
    """


class EngineFault(RepairError):
    """Malformed input: an unparsable program, a malformed test case or suite."""


class InapplicableMutation(RepairError):
    """A mutation operation cannot be legally applied to its target."""


class FaultKind(Enum):
    """Why a single test run failed without reaching its assertion.

    Attributes:
        EXCEPTION: The program (or the assertion callable) raised.
        TIMEOUT: The run exceeded the per-run timeout.
        MISSING_ENTRY_POINT: The entry point does not exist in the program.
    """

    EXCEPTION = 'exception'
    TIMEOUT = 'timeout'
    MISSING_ENTRY_POINT = 'missing-entry-point'


class RuntimeFault(RepairError):
    """A crash or timeout during one test run.

    Attributes:
        test_id: The test case that was running.
        kind: The category of fault.
        message: Human-readable detail (usually the exception text).
    """

    def __init__(self, test_id: str, kind: FaultKind, message: str) -> None:
        super().__init__(f'{test_id}: {kind.value}: {message}')
        self.test_id = test_id
        self.kind = kind
        self.message = message

    def __reduce__(self) -> tuple[type[RuntimeFault], tuple[str, FaultKind, str]]:
        return type(self), (self.test_id, self.kind, self.message)
