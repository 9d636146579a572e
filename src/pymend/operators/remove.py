"""Remove repair operator.

This operator deletes the target node.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pymend.mutation.operations import Remove


if TYPE_CHECKING:
    from pymend.mutation.ingredients import IngredientPool
    from pymend.mutation.operations import MutationOperation
    from pymend.program.model import Program


class RemoveOperator:
    """Remove the target.

    Exactly one operation is proposed per target. Whether the removal is
    legal is decided when the patch is applied; a removal with no safe
    result is reported as inapplicable by the validator.

    Mutations:
        - return a -> return
        - f(x, y) -> f(x)
        - a and b -> a
        - x += 1 -> (statement removed)
    """

    @property
    def name(self) -> str:
        """Return unique identifier for this operator."""
        return 'remove'

    @property
    def description(self) -> str:
        """Return human-readable description for reports."""
        return 'Remove the target statement or expression'

    def can_target(self, program: Program, node_id: int) -> bool:
        """Return True for any node of the program."""
        return node_id in program

    def operations(self, program: Program, node_id: int, pool: IngredientPool) -> list[MutationOperation]:  # noqa: ARG002
        """Return a single Remove for the target."""
        if not self.can_target(program, node_id):
            return []
        return [Remove(target=node_id)]

    def describe(self, program: Program, operation: MutationOperation) -> str:
        """Return 'remove <source>'."""
        return f'remove {program.source_of(operation.target).splitlines()[0]}'
