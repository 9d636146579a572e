"""Program representation, test cases and instrumentation.

A Program is a parsed module whose statement and expression nodes carry
stable integer ids. The Instrumentor runs TestCases against a program and
records which statements each run executed.

Example:
    >>> program = Program.from_source('def sum(a, b):\\n    return a\\n', 'toy.py')
    >>> instrumentor = Instrumentor(timeout=1.0)
    >>> instrumented = instrumentor.instrument(program)
    >>> instrumentor.run(instrumented, TestCase('test_1', 'sum', (1, 2), expected=3)).passed
    False
"""

from __future__ import annotations

from pymend.program.instrument import InstrumentedProgram, Instrumentor, TestRun, Verdict
from pymend.program.model import Codebase, Program
from pymend.program.statement import Statement
from pymend.program.testcase import TestCase


__all__ = [
    'Codebase',
    'InstrumentedProgram',
    'Instrumentor',
    'Program',
    'Statement',
    'TestCase',
    'TestRun',
    'Verdict',
]
