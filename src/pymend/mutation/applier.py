"""Copy-on-apply execution of patches.

``apply_patch`` copies the program tree, performs each operation on the copy
in order and wraps the result in a new Program. The base program is never
touched, so any number of patches can be applied to it concurrently.

Removal is only legal where the result is still a well-formed program:

- a statement is deleted from its block; the sole statement of a block is
  replaced with ``pass``;
- the value of ``return`` and ``yield`` is dropped;
- a call argument, keyword argument or collection element is deleted;
- an operand of ``and``/``or`` is deleted, collapsing the operation to the
  remaining operand when only one is left.

Every other removal raises InapplicableMutation. The patched tree is compiled
before it is returned; a tree that does not compile is also inapplicable.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from pymend.errors import InapplicableMutation
from pymend.mutation.operations import Add, Remove, Replace
from pymend.program.model import node_id_of


if TYPE_CHECKING:
    from pymend.mutation.ingredients import Ingredient
    from pymend.mutation.operations import MutationOperation, Patch
    from pymend.program.model import Program


_NULLABLE_VALUES = (ast.Return, ast.Yield)
_SEQUENCE_PARENTS = (ast.Call, ast.List, ast.Tuple, ast.Set)


class _Slot:
    """Where a node sits in its parent: ``parent.field`` or ``parent.field[index]``."""

    __slots__ = ('field', 'index', 'node', 'parent')

    def __init__(self, parent: ast.AST, field: str, index: int | None, node: ast.AST) -> None:
        self.parent = parent
        self.field = field
        self.index = index
        self.node = node

    @property
    def siblings(self) -> list[ast.AST]:
        return getattr(self.parent, self.field)

    def put(self, new: ast.AST) -> None:
        if self.index is None:
            setattr(self.parent, self.field, new)
        else:
            self.siblings[self.index] = new


def _find_slot(tree: ast.AST, predicate: object) -> _Slot | None:
    for parent in ast.walk(tree):
        for field, value in ast.iter_fields(parent):
            if isinstance(value, list):
                for index, child in enumerate(value):
                    if isinstance(child, ast.AST) and predicate(child):  # type: ignore[operator]
                        return _Slot(parent, field, index, child)
            elif isinstance(value, ast.AST) and predicate(value):  # type: ignore[operator]
                return _Slot(parent, field, None, value)
    return None


def _locate(tree: ast.Module, node_id: int) -> _Slot:
    slot = _find_slot(tree, lambda node: node_id_of(node) == node_id)
    if slot is None:
        msg = f'Node {node_id} is not present in the program'
        raise InapplicableMutation(msg)
    return slot


def _parent_slot(tree: ast.Module, node: ast.AST) -> _Slot:
    slot = _find_slot(tree, lambda candidate: candidate is node)
    if slot is None:
        msg = f'Cannot locate the parent of {ast.unparse(node)}'
        raise InapplicableMutation(msg)
    return slot


def _relocate(new: ast.AST, old: ast.AST) -> ast.AST:
    """Give every node of ``new`` the source position of ``old``."""
    for node in ast.walk(new):
        ast.copy_location(node, old)
    return new


def _as_statement(ingredient: Ingredient) -> ast.stmt:
    node = ingredient.clone()
    if isinstance(node, ast.expr):
        return ast.Expr(value=node)
    return node  # type: ignore[return-value]


def _as_expression(ingredient: Ingredient) -> ast.expr:
    node = ingredient.clone()
    if isinstance(node, ast.Expr):
        return node.value
    if not isinstance(node, ast.expr):
        msg = f'Statement ingredient {ingredient.source!r} cannot replace an expression'
        raise InapplicableMutation(msg)
    return node


def _replace(tree: ast.Module, operation: Replace) -> None:
    slot = _locate(tree, operation.target)
    if isinstance(slot.node, ast.stmt):
        new: ast.AST = _as_statement(operation.ingredient)
    else:
        new = _as_expression(operation.ingredient)
    slot.put(_relocate(new, slot.node))


def _add(tree: ast.Module, operation: Add) -> None:
    slot = _locate(tree, operation.position)
    if not isinstance(slot.node, ast.stmt) or slot.index is None:
        msg = f'Node {operation.position} is not a statement'
        raise InapplicableMutation(msg)
    new = _relocate(_as_statement(operation.ingredient), slot.node)
    slot.siblings.insert(slot.index + 1, new)


def _remove_statement(slot: _Slot) -> None:
    siblings = slot.siblings
    if len(siblings) == 1 and slot.field != 'orelse' and slot.field != 'finalbody':
        siblings[0] = _relocate(ast.Pass(), slot.node)
    else:
        del siblings[slot.index]  # type: ignore[arg-type]


def _remove_expression(tree: ast.Module, slot: _Slot) -> None:
    parent = slot.parent
    if isinstance(parent, _NULLABLE_VALUES) and slot.field == 'value':
        parent.value = None
        return
    if isinstance(parent, ast.keyword):
        call_slot = _parent_slot(tree, parent)
        if isinstance(call_slot.parent, ast.Call):
            del call_slot.siblings[call_slot.index]  # type: ignore[arg-type]
            return
    if isinstance(parent, _SEQUENCE_PARENTS) and slot.field in ('args', 'elts'):
        del slot.siblings[slot.index]  # type: ignore[arg-type]
        return
    if isinstance(parent, ast.BoolOp):
        del slot.siblings[slot.index]  # type: ignore[arg-type]
        if len(parent.values) == 1:
            _parent_slot(tree, parent).put(parent.values[0])
        return
    msg = f'Cannot remove {ast.unparse(slot.node)} from {type(parent).__name__}'
    raise InapplicableMutation(msg)


def _remove(tree: ast.Module, operation: Remove) -> None:
    slot = _locate(tree, operation.target)
    if isinstance(slot.node, ast.stmt):
        _remove_statement(slot)
    else:
        _remove_expression(tree, slot)


def apply_operation(tree: ast.Module, operation: MutationOperation) -> None:
    """Apply one operation to an editable tree, in place.

    Raises:
        InapplicableMutation: If the operation cannot be legally applied.
    """
    if isinstance(operation, Replace):
        _replace(tree, operation)
    elif isinstance(operation, Remove):
        _remove(tree, operation)
    elif isinstance(operation, Add):
        _add(tree, operation)
    else:
        msg = f'Unknown operation: {operation!r}'
        raise InapplicableMutation(msg)


def apply_patch(program: Program, patch: Patch) -> Program:
    """Apply a patch to a copy of a program.

    Args:
        program: The base program; left unchanged.
        patch: The patch whose operations are applied in order.

    Returns:
        The patched program.

    Raises:
        InapplicableMutation: If an operation is illegal or the result does not compile.

    Example:
        >>> from pymend.mutation.ingredients import IngredientPool
        >>> from pymend.mutation.operations import Patch, Replace
        >>> from pymend.program.model import Program
        >>> program = Program.from_source('def sum(a, b):\\n    return a\\n')
        >>> statement_id = program.statements[1].statement_id
        >>> target = program.target_expressions(statement_id)[0]
        >>> ingredient = IngredientPool.from_expressions(['a + b'])[0]
        >>> patch = Patch('p0001', 1, statement_id, (Replace(target, ingredient),), 'a to a + b')
        >>> print(apply_patch(program, patch).unparse())
        def sum(a, b):
            return a + b
    """
    tree = program.copy_tree()
    for operation in patch.operations:
        apply_operation(tree, operation)
    ast.fix_missing_locations(tree)
    try:
        compile(tree, program.file_path, 'exec')
    except (SyntaxError, ValueError, TypeError) as exc:
        msg = f'Patch {patch.patch_id} produces an invalid program: {exc}'
        raise InapplicableMutation(msg) from exc
    return program.derive(tree)
