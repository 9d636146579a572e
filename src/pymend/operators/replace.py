"""Replace repair operator.

This operator substitutes an ingredient for the target node.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pymend.mutation.operations import Replace


if TYPE_CHECKING:
    from pymend.mutation.ingredients import IngredientPool
    from pymend.mutation.operations import MutationOperation
    from pymend.program.model import Program


class ReplaceOperator:
    """Replace the target with each compatible ingredient.

    Expression targets are replaced by expression ingredients, statement
    targets by statement ingredients. The ingredient equal to the target
    itself is kept, so the identity patch is part of the search space.

    Mutations:
        - return a -> return b
        - return a -> return a + b
        - x = 1 -> y += x
    """

    @property
    def name(self) -> str:
        """Return unique identifier for this operator."""
        return 'replace'

    @property
    def description(self) -> str:
        """Return human-readable description for reports."""
        return 'Replace the target with an ingredient from the pool'

    def can_target(self, program: Program, node_id: int) -> bool:
        """Return True for any node of the program."""
        return node_id in program

    def operations(self, program: Program, node_id: int, pool: IngredientPool) -> list[MutationOperation]:
        """Return one Replace per compatible ingredient, in pool order."""
        if not self.can_target(program, node_id):
            return []
        ingredients = pool.statements() if program.is_statement(node_id) else pool.expressions()
        return [Replace(target=node_id, ingredient=ingredient) for ingredient in ingredients]

    def describe(self, program: Program, operation: MutationOperation) -> str:
        """Return 'old to new'."""
        assert isinstance(operation, Replace)  # noqa: S101
        return f'{program.source_of(operation.target)} to {operation.ingredient.source}'
