"""Shared pytest configuration and fixtures for pymend tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pymend.program import Instrumentor, Program, TestCase


if TYPE_CHECKING:
    from collections.abc import Callable


SUM_SOURCE = """\
def sum(a, b):
    if a >= 10:
        return a + b
    return a
"""


@pytest.fixture
def sum_program() -> Program:
    """The faulty ``sum``: the early return ignores ``b``."""
    return Program.from_source(SUM_SOURCE, 'toy.py')


@pytest.fixture
def sum_tests() -> list[TestCase]:
    """One failing and one passing test for ``sum``."""
    return [
        TestCase('test_1', 'sum', (1, 2), expected=3),
        TestCase('test_2', 'sum', (10, 20), expected=30),
    ]


@pytest.fixture
def instrumentor() -> Instrumentor:
    """An instrumentor with a generous timeout."""
    return Instrumentor(timeout=5.0)


@pytest.fixture
def make_program() -> Callable[..., Program]:
    """Factory for programs parsed from source text."""

    def _make(source: str, file_path: str = 'module.py', package: str = '') -> Program:
        return Program.from_source(source, file_path, package=package)

    return _make


@pytest.fixture
def statement_at() -> Callable[[Program, int], int]:
    """Return the id of the first statement starting on a line."""

    def _find(program: Program, line_number: int) -> int:
        for statement in program.statements:
            if statement.line_number == line_number:
                return statement.statement_id
        msg = f'No statement on line {line_number}'
        raise LookupError(msg)

    return _find
