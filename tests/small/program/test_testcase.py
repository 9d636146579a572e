"""Tests for TestCase validation and assertion checking."""

from __future__ import annotations

import pytest

from pymend.errors import EngineFault
from pymend.program.testcase import TestCase


@pytest.mark.small
class TestTestCaseValidation:
    """Malformed test cases are engine faults."""

    def test_requires_test_id(self):
        with pytest.raises(EngineFault, match='test_id'):
            TestCase('', 'sum', expected=1)

    def test_requires_entry_point(self):
        with pytest.raises(EngineFault, match='entry point'):
            TestCase('t', '', expected=1)

    def test_requires_an_assertion(self):
        with pytest.raises(EngineFault, match='exactly one'):
            TestCase('t', 'sum')

    def test_rejects_both_expected_and_assertion(self):
        with pytest.raises(EngineFault, match='exactly one'):
            TestCase('t', 'sum', expected=1, assertion=bool)

    def test_expected_none_is_a_valid_expectation(self):
        assert TestCase('t', 'f', expected=None).check(None)


@pytest.mark.small
class TestTestCaseCheck:
    """Tests for TestCase.check."""

    def test_expected_value_equality(self):
        case = TestCase('t', 'sum', (1, 2), expected=3)

        assert case.check(3)
        assert not case.check(4)

    def test_assertion_truthiness(self):
        case = TestCase('t', 'sum', assertion=lambda result: result % 2 == 0)

        assert case.check(4)
        assert not case.check(3)

    def test_assertion_error_is_a_failure(self):
        def must_be_positive(result):
            assert result > 0

        case = TestCase('t', 'f', assertion=must_be_positive)

        assert not case.check(-1)

    def test_other_exceptions_propagate(self):
        case = TestCase('t', 'f', assertion=lambda result: result.missing)

        with pytest.raises(AttributeError):
            case.check(1)
