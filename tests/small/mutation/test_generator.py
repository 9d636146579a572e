"""Tests for MutationGenerator."""

from __future__ import annotations

import itertools

import pytest

from pymend.mutation.generator import MutationGenerator
from pymend.mutation.ingredients import IngredientPool, build_ingredient_pool
from pymend.mutation.operations import Add, OperationKind, Remove, Replace
from pymend.operators.registry import default_registry


@pytest.fixture
def toy_pool() -> IngredientPool:
    return IngredientPool.from_expressions(['a', 'b', '10', 'a + b', 'a >= 10'])


@pytest.mark.small
class TestExpressionTargets:
    """Patches for a single expression target."""

    def test_six_patches_for_return_value(self, sum_program, toy_pool):
        generator = MutationGenerator(toy_pool)

        patches = list(generator.patches_for_expression(sum_program, 11))

        assert [p.description for p in patches] == [
            'a to a',
            'a to b',
            'a to 10',
            'a to a + b',
            'a to a >= 10',
            'remove a',
        ]

    def test_replacements_then_exactly_one_remove(self, sum_program, toy_pool):
        patches = list(MutationGenerator(toy_pool).patches_for_expression(sum_program, 11))

        assert [p.kinds for p in patches] == [(OperationKind.REPLACE,)] * 5 + [(OperationKind.REMOVE,)]
        assert len(patches) == len(toy_pool.expressions()) + 1

    def test_patches_target_the_owning_statement(self, sum_program, toy_pool):
        patches = list(MutationGenerator(toy_pool).patches_for_expression(sum_program, 11))

        assert {p.target_statement for p in patches} == {10}

    def test_replace_operations_use_pool_ingredients(self, sum_program, toy_pool):
        patches = list(MutationGenerator(toy_pool).patches_for_expression(sum_program, 11))

        replaces = [p.operations[0] for p in patches[:5]]
        assert all(isinstance(op, Replace) and op.target == 11 for op in replaces)
        assert [op.ingredient for op in replaces] == list(toy_pool)
        assert patches[5].operations == (Remove(target=11),)


@pytest.mark.small
class TestStatementTargets:
    """Patches for a statement target."""

    def test_remove_then_add_per_ingredient(self, sum_program, toy_pool):
        patches = list(MutationGenerator(toy_pool).patches_for_statement(sum_program, 10))

        assert patches[0].operations == (Remove(target=10),)
        assert all(isinstance(p.operations[0], Add) for p in patches[1:])
        assert [p.description for p in patches[1:]] == [
            'add a after return a',
            'add b after return a',
            'add 10 after return a',
            'add a + b after return a',
            'add a >= 10 after return a',
        ]

    def test_statement_ingredients_replace_statements(self, make_program):
        program = make_program('def f(x):\n    y = x + 1\n    return y\n')
        pool = build_ingredient_pool(program, include_statements=True)
        assign = program.statements[1].statement_id

        patches = list(MutationGenerator(pool).patches_for_statement(program, assign))
        replaced = [p.description for p in patches if p.kinds == (OperationKind.REPLACE,)]

        assert replaced == ['y = x + 1 to y = x + 1', 'y = x + 1 to return y']

    def test_add_never_targets_expressions(self, sum_program, toy_pool):
        patches = MutationGenerator(toy_pool).patches_for_expression(sum_program, 11)

        assert all(OperationKind.ADD not in p.kinds for p in patches)


@pytest.mark.small
class TestGenerate:
    """Full patch sequences for a ranked statement."""

    def test_expressions_first_then_statement(self, sum_program, toy_pool):
        patches = list(MutationGenerator(toy_pool).generate(sum_program, 10))

        assert len(patches) == 6 + 1 + 5
        assert patches[3].description == 'a to a + b'
        assert patches[6].description == 'remove return a'

    def test_count_matches_generate(self, sum_program, toy_pool):
        generator = MutationGenerator(toy_pool)

        for statement in sum_program.statements:
            expected = generator.count(sum_program, statement.statement_id)
            assert len(list(generator.generate(sum_program, statement.statement_id))) == expected

    def test_patch_ids_increase_across_targets(self, sum_program, toy_pool):
        generator = MutationGenerator(toy_pool)

        first = list(generator.generate(sum_program, 10))
        second = list(generator.generate(sum_program, 2))
        sequences = [p.sequence for p in first + second]

        assert sequences == list(range(1, len(sequences) + 1))
        assert first[0].patch_id == 'p0001'

    def test_generation_is_deterministic(self, sum_program, toy_pool):
        first = [p.description for p in MutationGenerator(toy_pool).generate(sum_program, 2)]
        second = [p.description for p in MutationGenerator(toy_pool).generate(sum_program, 2)]

        assert first == second

    def test_generation_is_lazy(self, sum_program, toy_pool):
        patches = MutationGenerator(toy_pool).generate(sum_program, 10)

        first_two = list(itertools.islice(patches, 2))

        assert [p.sequence for p in first_two] == [1, 2]

    def test_generation_has_no_side_effects(self, sum_program, toy_pool):
        before = sum_program.unparse()

        list(MutationGenerator(toy_pool).generate(sum_program, 2))

        assert sum_program.unparse() == before

    def test_enabled_operators_restrict_patches(self, sum_program, toy_pool):
        generator = MutationGenerator(toy_pool, default_registry().select(['remove']))

        patches = list(generator.generate(sum_program, 10))

        assert [p.description for p in patches] == ['remove a', 'remove return a']
