"""Tests for the replace, remove and add operators."""

from __future__ import annotations

import pytest

from pymend.mutation.ingredients import IngredientPool, build_ingredient_pool
from pymend.mutation.operations import Add, Remove, Replace
from pymend.operators import AddOperator, RemoveOperator, ReplaceOperator


@pytest.fixture
def pool() -> IngredientPool:
    return IngredientPool.from_expressions(['a', 'b'])


class TestReplaceOperator:
    """Tests for ReplaceOperator."""

    def test_expression_target_gets_expression_ingredients(self, sum_program, pool):
        operations = ReplaceOperator().operations(sum_program, 11, pool)

        assert operations == [Replace(11, pool[0]), Replace(11, pool[1])]

    def test_statement_target_without_statement_ingredients(self, sum_program, pool):
        assert ReplaceOperator().operations(sum_program, 10, pool) == []

    def test_statement_target_gets_statement_ingredients(self, make_program):
        program = make_program('x = 1\ny = 2\n')
        pool = build_ingredient_pool(program, include_statements=True)
        first = program.statements[0].statement_id

        operations = ReplaceOperator().operations(program, first, pool)

        assert [op.ingredient.source for op in operations] == ['x = 1', 'y = 2']

    def test_unknown_node_is_not_targeted(self, sum_program, pool):
        assert not ReplaceOperator().can_target(sum_program, 999)
        assert ReplaceOperator().operations(sum_program, 999, pool) == []

    def test_describe(self, sum_program, pool):
        assert ReplaceOperator().describe(sum_program, Replace(11, pool[1])) == 'a to b'


class TestRemoveOperator:
    """Tests for RemoveOperator."""

    def test_single_remove_per_target(self, sum_program, pool):
        assert RemoveOperator().operations(sum_program, 11, pool) == [Remove(11)]
        assert RemoveOperator().operations(sum_program, 10, pool) == [Remove(10)]

    def test_describe_uses_first_line(self, sum_program):
        assert RemoveOperator().describe(sum_program, Remove(2)) == 'remove if a >= 10:'


class TestAddOperator:
    """Tests for AddOperator."""

    def test_targets_statements_only(self, sum_program):
        assert AddOperator().can_target(sum_program, 10)
        assert not AddOperator().can_target(sum_program, 11)

    def test_one_add_per_ingredient(self, sum_program, pool):
        operations = AddOperator().operations(sum_program, 10, pool)

        assert operations == [Add(pool[0], 10), Add(pool[1], 10)]

    def test_no_operations_for_expressions(self, sum_program, pool):
        assert AddOperator().operations(sum_program, 11, pool) == []

    def test_describe(self, sum_program, pool):
        assert AddOperator().describe(sum_program, Add(pool[1], 10)) == 'add b after return a'
