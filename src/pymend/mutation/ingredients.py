"""Repair ingredients harvested from existing source.

Under the redundancy (plastic surgery) assumption, the code needed for a fix
usually already exists somewhere else in the codebase. Ingredients are the
expressions, and optionally simple statements, found in the programs of the
configured scope:

- ``file``: the program under repair only.
- ``package``: the program plus the other modules of its package.
- ``codebase``: the program plus every module of the codebase.

Ingredients are deduplicated by their unparsed source and kept in discovery
order (the program under repair first, then the codebase in load order).

Example:
    >>> from pymend.program.model import Program
    >>> program = Program.from_source('def sum(a, b):\\n    if a >= 10:\\n        return a + b\\n    return a\\n')
    >>> [i.source for i in IngredientPool.from_programs([program])]
    ['a >= 10', 'a', '10', 'a + b', 'b']
"""

from __future__ import annotations

import ast
import copy
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import TYPE_CHECKING, Literal

from pymend.errors import EngineFault
from pymend.program.model import strip_node_ids


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from pymend.program.model import Codebase, Program


logger = logging.getLogger(__name__)

IngredientScope = Literal['file', 'package', 'codebase']
VALID_SCOPES: frozenset[str] = frozenset(('file', 'package', 'codebase'))

_STATEMENT_INGREDIENTS = (ast.Assign, ast.AugAssign, ast.AnnAssign, ast.Return, ast.Expr, ast.Raise, ast.Assert)


class IngredientKind(Enum):
    """Whether an ingredient is an expression or a statement."""

    EXPRESSION = 'expression'
    STATEMENT = 'statement'


@dataclass(frozen=True)
class Ingredient:
    """A reusable piece of existing code.

    The stored node is never inserted into a program directly; ``clone``
    returns an id-free copy for each use.

    Attributes:
        ingredient_id: Identifier within its pool (e.g., 'i004').
        source: Unparsed source text, also the deduplication key.
        node: The AST of the ingredient.
        kind: Expression or statement.
        file_path: Module the ingredient was harvested from.
        line_number: Line where it was found.
    """

    ingredient_id: str
    source: str
    node: ast.AST = field(compare=False, repr=False)
    kind: IngredientKind = IngredientKind.EXPRESSION
    file_path: str = '<ingredient>'
    line_number: int = 0

    @property
    def is_expression(self) -> bool:
        """Return True for expression ingredients."""
        return self.kind == IngredientKind.EXPRESSION

    def clone(self) -> ast.AST:
        """Return a fresh, id-free copy of the ingredient's AST."""
        return strip_node_ids(copy.deepcopy(self.node))


def _docstring_ids(program: Program) -> set[int]:
    docstrings: set[int] = set()
    for statement in program.statements:
        node = program.node(statement.statement_id)
        if (
            isinstance(node, ast.Expr)
            and isinstance(node.value, ast.Constant)
            and isinstance(node.value.value, str)
        ):
            docstrings.add(statement.statement_id)
    return docstrings


def _harvest(program: Program, *, include_statements: bool) -> Iterator[tuple[IngredientKind, int]]:
    """Yield (kind, node id) of every ingredient candidate in traversal order."""
    docstrings = _docstring_ids(program)
    for node_id in program.expressions():
        if program.owner_of(node_id) not in docstrings:
            yield IngredientKind.EXPRESSION, node_id
    if include_statements:
        for statement in program.statements:
            node = program.node(statement.statement_id)
            if isinstance(node, _STATEMENT_INGREDIENTS) and statement.statement_id not in docstrings:
                yield IngredientKind.STATEMENT, statement.statement_id


class IngredientPool:
    """An ordered, deduplicated collection of ingredients.

    Attributes:
        ingredients: The ingredients in discovery order.
    """

    def __init__(self, ingredients: Iterable[Ingredient] = ()) -> None:
        """Create a pool from ingredients, in the order given."""
        self.ingredients: tuple[Ingredient, ...] = tuple(ingredients)

    @classmethod
    def from_programs(cls, programs: Iterable[Program], *, include_statements: bool = False) -> IngredientPool:
        """Harvest ingredients from programs, keeping the first occurrence of each source.

        Args:
            programs: Programs to harvest, in priority order.
            include_statements: Also harvest simple statements.

        Returns:
            The harvested pool.
        """
        seen: set[tuple[IngredientKind, str]] = set()
        ingredients: list[Ingredient] = []
        for program in programs:
            for kind, node_id in _harvest(program, include_statements=include_statements):
                source = program.source_of(node_id)
                if (kind, source) in seen:
                    continue
                seen.add((kind, source))
                ingredients.append(
                    Ingredient(
                        ingredient_id=f'i{len(ingredients) + 1:03d}',
                        source=source,
                        node=program.node(node_id),
                        kind=kind,
                        file_path=program.file_path,
                        line_number=program.line_of(node_id),
                    )
                )
        return cls(ingredients)

    @classmethod
    def from_expressions(cls, sources: Iterable[str]) -> IngredientPool:
        """Build a pool from expression source strings, in the order given.

        Raises:
            EngineFault: If a source string is not a valid expression.
        """
        ingredients: list[Ingredient] = []
        for index, text in enumerate(sources, start=1):
            try:
                node = ast.parse(text, mode='eval').body
            except SyntaxError as exc:
                msg = f'Invalid ingredient expression {text!r}: {exc}'
                raise EngineFault(msg) from exc
            ingredients.append(Ingredient(ingredient_id=f'i{index:03d}', source=ast.unparse(node), node=node))
        return cls(ingredients)

    def __iter__(self) -> Iterator[Ingredient]:
        return iter(self.ingredients)

    def __len__(self) -> int:
        return len(self.ingredients)

    def __getitem__(self, index: int) -> Ingredient:
        return self.ingredients[index]

    def expressions(self) -> list[Ingredient]:
        """Return the expression ingredients in pool order."""
        return [i for i in self.ingredients if i.kind == IngredientKind.EXPRESSION]

    def statements(self) -> list[Ingredient]:
        """Return the statement ingredients in pool order."""
        return [i for i in self.ingredients if i.kind == IngredientKind.STATEMENT]


def build_ingredient_pool(
    program: Program,
    scope: IngredientScope = 'file',
    codebase: Codebase | None = None,
    *,
    include_statements: bool = False,
) -> IngredientPool:
    """Harvest the ingredient pool for a program under the given scope.

    Args:
        program: The program under repair; always harvested first.
        scope: 'file', 'package' or 'codebase'.
        codebase: Other modules to draw from for the wider scopes.
        include_statements: Also harvest simple statements.

    Returns:
        The ingredient pool.

    Raises:
        ValueError: If the scope is unknown.
    """
    if scope not in VALID_SCOPES:
        msg = f'Invalid ingredient scope: {scope!r}. Valid scopes are: {sorted(VALID_SCOPES)}'
        raise ValueError(msg)

    programs: list[Program] = [program]
    if scope != 'file':
        if codebase is None:
            logger.debug('No codebase given for %s scope; harvesting %s only', scope, program.file_path)
        else:
            others = codebase.in_package(program.package) if scope == 'package' else list(codebase)
            programs.extend(p for p in others if p.file_path != program.file_path)

    pool = IngredientPool.from_programs(programs, include_statements=include_statements)
    logger.debug('Harvested %d ingredients from %d programs (%s scope)', len(pool), len(programs), scope)
    return pool
