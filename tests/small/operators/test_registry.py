"""Tests for operator selection and generation order."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pymend.operators import AddOperator, OperatorRegistry, RemoveOperator, ReplaceOperator, default_registry


if TYPE_CHECKING:
    from pymend.mutation.ingredients import IngredientPool
    from pymend.mutation.operations import MutationOperation
    from pymend.program.model import Program


class SwapArgumentsOperator:
    """Stand-in for a user-supplied operator; it never proposes anything."""

    @property
    def name(self) -> str:
        return 'swap-arguments'

    @property
    def description(self) -> str:
        return 'Swap the first two arguments of a call'

    def can_target(self, program: Program, node_id: int) -> bool:  # noqa: ARG002
        return False

    def operations(self, program: Program, node_id: int, pool: IngredientPool) -> list[MutationOperation]:  # noqa: ARG002
        return []

    def describe(self, program: Program, operation: MutationOperation) -> str:  # noqa: ARG002
        return ''


class TestOperatorRegistry:
    """Registration keeps the order the generator runs operators in."""

    def test_empty(self):
        registry = OperatorRegistry()

        assert registry.available() == []
        assert registry.select() == []

    def test_constructor_order_is_generation_order(self):
        registry = OperatorRegistry([AddOperator, ReplaceOperator])

        assert registry.available() == ['add', 'replace']
        assert [type(op) for op in registry.select()] == [AddOperator, ReplaceOperator]

    def test_register_appends(self):
        registry = default_registry()

        registry.register(SwapArgumentsOperator)

        assert registry.available()[-1] == 'swap-arguments'
        assert 'swap-arguments' in registry

    def test_duplicate_name_is_rejected(self):
        registry = OperatorRegistry([RemoveOperator])

        with pytest.raises(ValueError, match="'remove' is already registered"):
            registry.register(RemoveOperator)

    def test_select_returns_fresh_instances(self):
        registry = OperatorRegistry([RemoveOperator])

        first, second = registry.select()[0], registry.select()[0]

        assert first is not second


class TestSelect:
    """Narrowing the registry to the enabled operator names."""

    def test_enabled_order_wins(self):
        operators = default_registry().select(['add', 'replace'])

        assert [op.name for op in operators] == ['add', 'replace']

    def test_tuple_from_config(self):
        operators = default_registry().select(('remove',))

        assert [op.name for op in operators] == ['remove']

    def test_repeated_names_are_used_once(self):
        operators = default_registry().select(['remove', 'remove', 'add'])

        assert [op.name for op in operators] == ['remove', 'add']

    def test_unknown_name_warns_and_is_skipped(self):
        with pytest.warns(UserWarning, match="Unknown operator 'swap-arguments'"):
            operators = default_registry().select(['replace', 'swap-arguments'])

        assert [op.name for op in operators] == ['replace']

    def test_empty_selection(self):
        assert default_registry().select([]) == []


class TestDefaultRegistry:
    """The built-in operator set."""

    def test_generation_order(self):
        assert default_registry().available() == ['replace', 'remove', 'add']

    def test_registries_are_independent(self):
        default_registry().register(SwapArgumentsOperator)

        assert 'swap-arguments' not in default_registry()
