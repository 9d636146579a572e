"""Protocol definition for repair operators.

All repair operators must implement the RepairOperator protocol.
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Protocol,
    runtime_checkable,
)


if TYPE_CHECKING:
    from pymend.mutation.ingredients import IngredientPool
    from pymend.mutation.operations import MutationOperation
    from pymend.program.model import Program


@runtime_checkable
class RepairOperator(Protocol):
    """Protocol for all repair operators.

    A RepairOperator decides whether it applies to a target node and
    enumerates the mutation operations it proposes for that target.

    Attributes:
        name: Unique identifier for this operator (e.g., 'replace', 'remove').
        description: Human-readable description for reports.
    """

    @property
    def name(self) -> str:
        """Return unique identifier for this operator."""
        ...

    @property
    def description(self) -> str:
        """Return human-readable description for reports."""
        ...

    def can_target(self, program: Program, node_id: int) -> bool:
        """Return True if this operator proposes operations for the node.

        Args:
            program: The program under repair.
            node_id: Id of the target statement or expression.

        Returns:
            True if ``operations`` would yield anything for this target.
        """
        ...

    def operations(self, program: Program, node_id: int, pool: IngredientPool) -> list[MutationOperation]:
        """Return every operation this operator proposes for the target.

        The order must be deterministic: ingredients are used in pool order.

        Args:
            program: The program under repair.
            node_id: Id of the target statement or expression.
            pool: The ingredient pool for the configured scope.

        Returns:
            The proposed operations.
        """
        ...

    def describe(self, program: Program, operation: MutationOperation) -> str:
        """Return a short human-readable summary of one operation."""
        ...
