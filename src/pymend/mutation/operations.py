"""Mutation operations and patches.

A MutationOperation is an inert description of one edit:

- ``Add(ingredient, position)``: insert the ingredient as a new statement after
  the statement ``position``.
- ``Remove(target)``: delete the target statement or expression.
- ``Replace(target, ingredient)``: substitute the ingredient for the target.

``target`` and ``position`` are node ids of the base program. A Patch is an
ordered sequence of operations; nothing happens until it is applied by
``pymend.mutation.applier.apply_patch``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pymend.mutation.ingredients import Ingredient


class OperationKind(Enum):
    """The three mutation operation kinds."""

    ADD = 'add'
    REMOVE = 'remove'
    REPLACE = 'replace'


@dataclass(frozen=True)
class Add:
    """Insert an ingredient as a statement after ``position``."""

    ingredient: Ingredient
    position: int

    @property
    def kind(self) -> OperationKind:
        return OperationKind.ADD

    @property
    def target(self) -> int:
        """Return the anchor statement id."""
        return self.position


@dataclass(frozen=True)
class Remove:
    """Delete the target node."""

    target: int

    @property
    def kind(self) -> OperationKind:
        return OperationKind.REMOVE


@dataclass(frozen=True)
class Replace:
    """Substitute an ingredient for the target node."""

    target: int
    ingredient: Ingredient

    @property
    def kind(self) -> OperationKind:
        return OperationKind.REPLACE


MutationOperation = Add | Remove | Replace


@dataclass(frozen=True)
class Patch:
    """An ordered sequence of mutation operations on a base program.

    Attributes:
        patch_id: Identifier (e.g., 'p0004').
        sequence: Position in generation order, used for deterministic reporting.
        target_statement: The ranked statement this patch was generated for.
        operations: The operations, applied in order.
        description: Human-readable summary for reports.
    """

    patch_id: str
    sequence: int
    target_statement: int
    operations: tuple[MutationOperation, ...]
    description: str

    def __post_init__(self) -> None:
        """Validate the patch.

        Raises:
            ValueError: If the patch has no operations.
        """
        if not self.operations:
            msg = f'Patch {self.patch_id} must have at least one operation'
            raise ValueError(msg)

    @property
    def kinds(self) -> tuple[OperationKind, ...]:
        """Return the kind of each operation in order."""
        return tuple(op.kind for op in self.operations)

    def then(self, other: Patch) -> Patch:
        """Compose this patch with another, applying ``other``'s operations afterwards.

        The composed patch keeps this patch's id, sequence and target.
        """
        return Patch(
            patch_id=self.patch_id,
            sequence=self.sequence,
            target_statement=self.target_statement,
            operations=self.operations + other.operations,
            description=f'{self.description}; {other.description}',
        )
