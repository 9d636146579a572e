"""Add repair operator.

This operator inserts an ingredient as a new statement after the target.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pymend.mutation.operations import Add


if TYPE_CHECKING:
    from pymend.mutation.ingredients import IngredientPool
    from pymend.mutation.operations import MutationOperation
    from pymend.program.model import Program


class AddOperator:
    """Insert each ingredient after a statement target.

    Expression ingredients become expression statements. Pure expression
    targets are never targeted.

    Mutations:
        - x = 1 -> x = 1; total += x
        - log(x) -> log(x); flush()
    """

    @property
    def name(self) -> str:
        """Return unique identifier for this operator."""
        return 'add'

    @property
    def description(self) -> str:
        """Return human-readable description for reports."""
        return 'Insert an ingredient as a new statement after the target'

    def can_target(self, program: Program, node_id: int) -> bool:
        """Return True only for statement targets."""
        return program.is_statement(node_id)

    def operations(self, program: Program, node_id: int, pool: IngredientPool) -> list[MutationOperation]:
        """Return one Add per ingredient, in pool order."""
        if not self.can_target(program, node_id):
            return []
        return [Add(ingredient=ingredient, position=node_id) for ingredient in pool]

    def describe(self, program: Program, operation: MutationOperation) -> str:
        """Return 'add <ingredient> after <statement>'."""
        assert isinstance(operation, Add)  # noqa: S101
        anchor = program.statement(operation.position)
        return f'add {operation.ingredient.source} after {anchor.source}'
