"""Tests for the suspiciousness formulas and their registry."""

from __future__ import annotations

import math

import pytest

from pymend.localization.formulas import (
    available_formulas,
    get_formula,
    jaccard,
    ochiai,
    register_formula,
    tarantula,
)


COUNTS = [
    (failed, passed, total_failed, total_passed)
    for total_failed in (1, 2, 5)
    for total_passed in (1, 3)
    for failed in range(total_failed + 1)
    for passed in range(total_passed + 1)
]


@pytest.mark.small
class TestTarantula:
    """Tests for the Tarantula formula."""

    def test_executed_only_by_failing_tests_scores_one(self):
        assert tarantula(1, 0, 1, 1) == 1.0

    def test_executed_by_everything_scores_half(self):
        assert tarantula(1, 1, 1, 1) == 0.5

    def test_executed_only_by_passing_tests_scores_zero(self):
        assert tarantula(0, 1, 1, 1) == 0.0

    def test_never_executed_scores_zero(self):
        assert tarantula(0, 0, 1, 1) == 0.0

    def test_uses_ratios_not_raw_counts(self):
        # 1 of 1 failing vs 2 of 4 passing: 1 / (1 + 0.5)
        assert tarantula(1, 2, 1, 4) == pytest.approx(2 / 3)


@pytest.mark.small
class TestOchiai:
    """Tests for the Ochiai formula."""

    def test_executed_only_by_failing_tests_scores_one(self):
        assert ochiai(1, 0, 1, 1) == 1.0

    def test_executed_by_everything(self):
        assert ochiai(1, 1, 1, 1) == pytest.approx(1 / math.sqrt(2))

    def test_never_executed_scores_zero(self):
        assert ochiai(0, 0, 1, 1) == 0.0

    def test_executed_only_by_passing_tests_scores_zero(self):
        assert ochiai(0, 3, 2, 3) == 0.0


@pytest.mark.small
class TestJaccard:
    """Tests for the Jaccard formula."""

    def test_executed_only_by_failing_tests_scores_one(self):
        assert jaccard(2, 0, 2, 1) == 1.0

    def test_penalizes_passing_executions(self):
        assert jaccard(1, 1, 1, 1) == 0.5

    def test_never_executed_scores_zero(self):
        assert jaccard(0, 0, 1, 1) == 0.0


@pytest.mark.small
@pytest.mark.parametrize('formula', [tarantula, ochiai, jaccard])
def test_scores_are_bounded(formula):
    for counts in COUNTS:
        score = formula(*counts)
        assert 0.0 <= score <= 1.0, f'{formula.__name__}{counts} = {score}'


@pytest.mark.small
@pytest.mark.parametrize('formula', [tarantula, ochiai, jaccard])
def test_more_failing_executions_never_lower_the_score(formula):
    for failed in range(3):
        assert formula(failed + 1, 1, 3, 2) >= formula(failed, 1, 3, 2)


@pytest.mark.small
class TestFormulaRegistry:
    """Tests for looking up and registering formulas."""

    def test_builtin_formulas_are_available(self):
        assert {'tarantula', 'ochiai', 'jaccard'} <= set(available_formulas())

    def test_get_formula(self):
        assert get_formula('tarantula') is tarantula

    def test_unknown_formula_raises_key_error(self):
        with pytest.raises(KeyError, match='dstar'):
            get_formula('dstar')

    def test_register_formula(self, monkeypatch):
        import pymend.localization.formulas as formulas

        monkeypatch.setattr(formulas, '_FORMULAS', dict(formulas._FORMULAS))

        def always_half(failed, passed, total_failed, total_passed):
            return 0.5

        register_formula('half', always_half)

        assert get_formula('half') is always_half
        assert 'half' in available_formulas()
