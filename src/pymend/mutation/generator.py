"""Lazy, deterministic enumeration of candidate patches.

For one ranked statement the generator yields, in order:

1. for each mutable expression directly owned by the statement (traversal
   order), one patch per operator operation: every Replace (pool order,
   identity included), then the single Remove;
2. for the statement itself: Replace by each statement ingredient, Remove,
   then Add of each ingredient after it.

A single expression target therefore yields ``len(pool.expressions()) + 1``
patches. Nothing is applied; patches are inert descriptions.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

from pymend.mutation.operations import Patch
from pymend.operators.registry import default_registry


if TYPE_CHECKING:
    from collections.abc import Iterator

    from pymend.mutation.ingredients import IngredientPool
    from pymend.operators.protocol import RepairOperator
    from pymend.program.model import Program


class MutationGenerator:
    """Generates single-operation patches for repair targets.

    Patch ids and sequence numbers increase across every call on the same
    generator, so patches from different targets never collide.

    Attributes:
        pool: The ingredient pool.
        operators: Operators applied to each target, in order.

    Example:
        >>> from pymend.mutation.ingredients import IngredientPool
        >>> from pymend.program.model import Program
        >>> program = Program.from_source('def sum(a, b):\\n    return a\\n')
        >>> pool = IngredientPool.from_expressions(['a', 'b', '10', 'a + b', 'a >= 10'])
        >>> target = program.target_expressions(program.statements[1].statement_id)[0]
        >>> [p.description for p in MutationGenerator(pool).patches_for_expression(program, target)]
        ['a to a', 'a to b', 'a to 10', 'a to a + b', 'a to a >= 10', 'remove a']
    """

    def __init__(self, pool: IngredientPool, operators: list[RepairOperator] | None = None) -> None:
        """Create a generator.

        Args:
            pool: The ingredient pool for the configured scope.
            operators: Operators to apply, in order. Defaults to replace, remove, add.
        """
        self.pool = pool
        self.operators = operators if operators is not None else default_registry().select()
        self._sequence = itertools.count(1)

    def _patches(self, program: Program, node_id: int, target_statement: int) -> Iterator[Patch]:
        for operator in self.operators:
            if not operator.can_target(program, node_id):
                continue
            for operation in operator.operations(program, node_id, self.pool):
                sequence = next(self._sequence)
                yield Patch(
                    patch_id=f'p{sequence:04d}',
                    sequence=sequence,
                    target_statement=target_statement,
                    operations=(operation,),
                    description=operator.describe(program, operation),
                )

    def patches_for_expression(self, program: Program, expression_id: int) -> Iterator[Patch]:
        """Yield the patches for one expression target.

        Args:
            program: The program under repair.
            expression_id: Id of the target expression.

        Yields:
            Replace patches in pool order, then one Remove patch.
        """
        yield from self._patches(program, expression_id, program.owner_of(expression_id))

    def patches_for_statement(self, program: Program, statement_id: int) -> Iterator[Patch]:
        """Yield the statement-level patches for one statement target.

        Args:
            program: The program under repair.
            statement_id: Id of the target statement.

        Yields:
            Replace patches (statement ingredients), one Remove, then Add patches.
        """
        yield from self._patches(program, statement_id, statement_id)

    def generate(self, program: Program, statement_id: int) -> Iterator[Patch]:
        """Yield every patch for a ranked statement.

        Args:
            program: The program under repair.
            statement_id: Id of the ranked statement.

        Yields:
            Patches for each owned expression, then for the statement itself.
        """
        for expression_id in program.target_expressions(statement_id):
            yield from self.patches_for_expression(program, expression_id)
        yield from self.patches_for_statement(program, statement_id)

    def count(self, program: Program, statement_id: int) -> int:
        """Return the number of patches ``generate`` would yield, without consuming ids."""
        total = 0
        targets = [*program.target_expressions(statement_id), statement_id]
        for node_id in targets:
            for operator in self.operators:
                if operator.can_target(program, node_id):
                    total += len(operator.operations(program, node_id, self.pool))
        return total
