"""pymend: Mutation-based automatic repair of Python programs.

Give it a program and a test suite with at least one failing and one passing
test case. pymend finds the statements most likely to be wrong, rewrites them
using code that already exists in the codebase and returns a patch that makes
every test pass.

Example:
    Repair a function whose early return ignores ``b``::

        >>> from pymend import TestCase, repair
        >>> outcome = repair(
        ...     'def sum(a, b):\\n    if a >= 10:\\n        return a + b\\n    return a\\n',
        ...     [TestCase('test_1', 'sum', (1, 2), expected=3), TestCase('test_2', 'sum', (10, 20), expected=30)],
        ... )
        >>> outcome.patch.description
        'a to a + b'
"""

from __future__ import annotations

from pymend.config import RepairConfig, load_config, merge_configs
from pymend.errors import EngineFault, InapplicableMutation, PreconditionError, RepairError, RuntimeFault
from pymend.orchestrator import RepairOrchestrator, RepairOutcome, RepairState, repair
from pymend.program import Codebase, Program, TestCase


__version__ = '0.1.0'
__all__ = [
    'Codebase',
    'EngineFault',
    'InapplicableMutation',
    'PreconditionError',
    'Program',
    'RepairConfig',
    'RepairError',
    'RepairOrchestrator',
    'RepairOutcome',
    'RepairState',
    'RuntimeFault',
    'TestCase',
    '__version__',
    'load_config',
    'merge_configs',
    'repair',
]
