"""Example extensions for pymend: a custom repair operator and formula.

This module demonstrates how to extend pymend with a repair operator that
synthesizes its own replacement instead of drawing from the ingredient pool,
and with an additional suspiciousness formula.

Usage:
    1. Copy this file to your project
    2. Adapt the operator to the bug patterns of your codebase
    3. Register it on an OperatorRegistry
    4. Pass the registry to RepairOrchestrator

Example:
    >>> from pymend import RepairConfig, RepairOrchestrator
    >>> registry = example_registry()
    >>> registry.available()
    ['replace', 'remove', 'add', 'negate-condition']
    >>> orchestrator = RepairOrchestrator(RepairConfig(formula='kulczynski2'), registry=registry)
    >>> orchestrator.config.formula
    'kulczynski2'
"""

from __future__ import annotations

import ast
import copy
from typing import TYPE_CHECKING

from pymend.localization.formulas import register_formula
from pymend.mutation.ingredients import Ingredient
from pymend.mutation.operations import Replace
from pymend.operators import OperatorRegistry, default_registry
from pymend.program.model import strip_node_ids


if TYPE_CHECKING:
    from pymend.mutation.ingredients import IngredientPool
    from pymend.mutation.operations import MutationOperation
    from pymend.program.model import Program


# =============================================================================
# Example 1: Condition Negation Operator
# =============================================================================


class NegateConditionOperator:
    """Negate the condition of an ``if`` or ``while`` statement.

    Inverted conditions are a common single-token bug that the pool rarely
    holds a fix for: the negated expression usually appears nowhere in the
    codebase. This operator builds the replacement itself.

    Mutations:
        - if x < 0: -> if not x < 0:
        - while queue: -> while not queue:

    Example:
        >>> from pymend.mutation.ingredients import IngredientPool
        >>> from pymend.program import Program
        >>> program = Program.from_source('def adult(age):\\n    if age < 18:\\n        return True\\n    return False\\n')
        >>> operator = NegateConditionOperator()
        >>> if_id = program.statements[1].statement_id
        >>> [operator.describe(program, op) for op in operator.operations(program, if_id, IngredientPool())]
        ['age < 18 to not age < 18']
    """

    @property
    def name(self) -> str:
        """Return unique identifier for this operator."""
        return 'negate-condition'

    @property
    def description(self) -> str:
        """Return human-readable description for reports."""
        return 'Negate the condition of an if or while statement'

    def can_target(self, program: Program, node_id: int) -> bool:
        """Return True for if and while statements.

        Args:
            program: The program under repair.
            node_id: The candidate target.

        Returns:
            True if the node is a conditional statement.
        """
        return program.is_statement(node_id) and isinstance(program.node(node_id), ast.If | ast.While)

    def operations(self, program: Program, node_id: int, pool: IngredientPool) -> list[MutationOperation]:  # noqa: ARG002
        """Return a single Replace of the condition by its negation.

        The pool is ignored: the ingredient is synthesized from the
        condition itself.

        Args:
            program: The program under repair.
            node_id: The conditional statement.
            pool: The ingredient pool (unused).

        Returns:
            A list with one Replace, or an empty list for other nodes.
        """
        if not self.can_target(program, node_id):
            return []

        condition = program.node(node_id).test  # type: ignore[attr-defined]
        # Always copy and strip ids: the base program's nodes must never be shared
        negated = ast.UnaryOp(op=ast.Not(), operand=strip_node_ids(copy.deepcopy(condition)))
        ingredient = Ingredient(
            ingredient_id='negated',
            source=ast.unparse(negated),
            node=negated,
            file_path=program.file_path,
            line_number=program.line_of(node_id),
        )
        return [Replace(target=program.target_expressions(node_id)[0], ingredient=ingredient)]

    def describe(self, program: Program, operation: MutationOperation) -> str:
        """Return 'old to new'."""
        assert isinstance(operation, Replace)  # noqa: S101
        return f'{program.source_of(operation.target)} to {operation.ingredient.source}'


# =============================================================================
# Example 2: Additional Suspiciousness Formula
# =============================================================================


def kulczynski2(failed: int, passed: int, total_failed: int, total_passed: int) -> float:  # noqa: ARG001
    """Kulczynski2: ``(f/F + f/(f + p)) / 2``.

    Example:
        >>> kulczynski2(1, 0, 1, 1)
        1.0
        >>> kulczynski2(1, 1, 2, 1)
        0.5
    """
    if failed == 0 or total_failed == 0:
        return 0.0
    return (failed / total_failed + failed / (failed + passed)) / 2


# =============================================================================
# Registration
# =============================================================================


def example_registry() -> OperatorRegistry:
    """Return the built-in operators plus the negation operator.

    Also registers the ``kulczynski2`` formula, so it can be named in
    RepairConfig.

    Example usage:
        registry = example_registry()
        outcome = RepairOrchestrator(registry=registry).repair(program, tests)
    """
    register_formula('kulczynski2', kulczynski2)
    registry = default_registry()
    registry.register(NegateConditionOperator)
    return registry
