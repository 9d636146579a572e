"""Program representation as an arena of id-tagged AST nodes.

Every ``ast.stmt`` and ``ast.expr`` node of a parsed module is tagged with a
stable integer id stored on the node itself. Ids survive ``copy.deepcopy``, so
a patched program is produced by copying the tree, editing the copy and
wrapping it in a new Program (copy-on-apply). Nodes that arrive without an id
(inserted ingredients) receive fresh ids above the current maximum.

Example:
    >>> program = Program.from_source('def inc(x):\\n    return x + 1\\n', 'inc.py')
    >>> [s.source for s in program.statements]
    ['def inc(x):', 'return x + 1']
    >>> program.statements[1].function
    'inc'
"""

from __future__ import annotations

import ast
import copy
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING

from pymend.errors import EngineFault
from pymend.program.statement import Statement


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


NODE_ID_ATTR = '_pymend_id'

_SCOPE_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)
_UNTARGETABLE_EXPRESSIONS = (ast.FormattedValue, ast.Slice, ast.Starred)


def node_id_of(node: object) -> int | None:
    """Return the arena id stored on an AST node, or None if it has none."""
    return getattr(node, NODE_ID_ATTR, None)


def strip_node_ids(tree: ast.AST) -> ast.AST:
    """Remove arena ids from every node of a (copied) subtree, in place."""
    for node in ast.walk(tree):
        if hasattr(node, NODE_ID_ATTR):
            delattr(node, NODE_ID_ATTR)
    return tree


def is_targetable(node: ast.AST) -> bool:
    """Return True if an expression can be the target of a mutation.

    Only expressions evaluated for their value qualify: assignment targets,
    ``del`` targets, starred and slice nodes, and f-string internals do not.
    """
    if not isinstance(node, ast.expr) or isinstance(node, _UNTARGETABLE_EXPRESSIONS):
        return False
    ctx = getattr(node, 'ctx', None)
    return ctx is None or isinstance(ctx, ast.Load)


class _NodeIndexer(ast.NodeVisitor):
    """Assign ids to statement and expression nodes in traversal order."""

    def __init__(self, next_id: int) -> None:
        self.nodes: dict[int, ast.AST] = {}
        self.statement_ids: list[int] = []
        self.owners: dict[int, int] = {}
        self.scopes: dict[int, str | None] = {}
        self.fstring_parts: set[int] = set()
        self._next_id = next_id
        self._statement_stack: list[int] = []
        self._scope_stack: list[str] = []

    def _assign(self, node: ast.AST) -> int:
        node_id = node_id_of(node)
        if node_id is None:
            node_id = self._next_id
            self._next_id += 1
            setattr(node, NODE_ID_ATTR, node_id)
        self.nodes[node_id] = node
        return node_id

    def visit(self, node: ast.AST) -> None:
        if isinstance(node, ast.stmt):
            self._visit_statement(node)
            return
        if isinstance(node, ast.expr):
            node_id = self._assign(node)
            if self._statement_stack:
                self.owners[node_id] = self._statement_stack[-1]
            if isinstance(node, ast.JoinedStr):
                self.generic_visit(node)
                self.fstring_parts.update(node_id_of(part) for part in node.values)  # type: ignore[misc]
                return
        self.generic_visit(node)

    def _visit_statement(self, node: ast.stmt) -> None:
        node_id = self._assign(node)
        self.statement_ids.append(node_id)
        self.scopes[node_id] = '.'.join(self._scope_stack) or None
        self._statement_stack.append(node_id)
        opens_scope = isinstance(node, _SCOPE_NODES)
        if opens_scope:
            self._scope_stack.append(node.name)  # type: ignore[union-attr]
        try:
            self.generic_visit(node)
        finally:
            if opens_scope:
                self._scope_stack.pop()
            self._statement_stack.pop()


class Program:
    """A parsed Python module whose nodes carry stable integer ids.

    A Program is immutable by convention: nothing in pymend edits ``tree``
    in place. Use ``copy_tree`` to obtain an editable copy and ``derive`` to
    wrap an edited copy into a new Program.

    Attributes:
        tree: The id-tagged module AST. Must not be mutated.
        file_path: Path used for compilation and reporting.
        package: Dotted package name used for ingredient scoping.
        source: Original source text, or None for derived programs.
    """

    def __init__(
        self,
        tree: ast.Module,
        file_path: str = '<program>',
        package: str = '',
        source: str | None = None,
    ) -> None:
        self._tree = tree
        self._file_path = file_path
        self._package = package
        self._source = source
        self._source_lines = source.splitlines() if source is not None else []

        existing = [node_id for node in ast.walk(tree) if (node_id := node_id_of(node)) is not None]
        indexer = _NodeIndexer(next_id=max(existing, default=0) + 1)
        indexer.visit(tree)

        self._nodes = indexer.nodes
        self._owners = indexer.owners
        self._statements = {
            statement_id: self._make_statement(statement_id, indexer.scopes[statement_id])
            for statement_id in indexer.statement_ids
        }
        self._targets: dict[int, list[int]] = defaultdict(list)
        for node_id, owner_id in self._owners.items():
            node = self._nodes[node_id]
            if node_id not in indexer.fstring_parts and is_targetable(node):
                self._targets[owner_id].append(node_id)

    @classmethod
    def from_source(cls, source: str, file_path: str = '<program>', package: str = '') -> Program:
        """Parse source text into a Program.

        Args:
            source: Python module source.
            file_path: Path used for compilation and reporting.
            package: Dotted package name of the module.

        Returns:
            The parsed Program.

        Raises:
            EngineFault: If the source does not parse.
        """
        try:
            tree = ast.parse(source, filename=file_path)
        except (SyntaxError, ValueError) as exc:
            msg = f'Cannot parse {file_path}: {exc}'
            raise EngineFault(msg) from exc
        return cls(tree, file_path=file_path, package=package, source=source)

    def _make_statement(self, statement_id: int, function: str | None) -> Statement:
        node = self._nodes[statement_id]
        line_number = getattr(node, 'lineno', 0)
        if 0 < line_number <= len(self._source_lines):
            text = self._source_lines[line_number - 1].strip()
        else:
            text = ast.unparse(node).splitlines()[0]
        return Statement(
            statement_id=statement_id,
            source=text,
            function=function,
            line_number=line_number,
            file_path=self._file_path,
        )

    @property
    def tree(self) -> ast.Module:
        """Return the id-tagged module AST."""
        return self._tree

    @property
    def file_path(self) -> str:
        """Return the module path."""
        return self._file_path

    @property
    def package(self) -> str:
        """Return the dotted package name."""
        return self._package

    @property
    def source(self) -> str | None:
        """Return the original source text, if the program was parsed from text."""
        return self._source

    @property
    def module_name(self) -> str:
        """Return the module name used when the program is executed."""
        if self._file_path.startswith('<'):
            return '__pymend_program__'
        return Path(self._file_path).stem

    @property
    def statements(self) -> list[Statement]:
        """Return all statements in program order."""
        return list(self._statements.values())

    def statement(self, statement_id: int) -> Statement:
        """Return the statement with the given id.

        Raises:
            KeyError: If no statement has this id.
        """
        if statement_id not in self._statements:
            raise KeyError(f'Unknown statement id: {statement_id}')
        return self._statements[statement_id]

    def node(self, node_id: int) -> ast.AST:
        """Return the statement or expression node with the given id.

        Raises:
            KeyError: If no node has this id.
        """
        if node_id not in self._nodes:
            raise KeyError(f'Unknown node id: {node_id}')
        return self._nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def is_statement(self, node_id: int) -> bool:
        """Return True if the id names a statement node."""
        return node_id in self._statements

    def owner_of(self, expression_id: int) -> int:
        """Return the id of the statement that directly contains an expression."""
        return self._owners[expression_id]

    def target_expressions(self, statement_id: int) -> list[int]:
        """Return the mutable expressions directly owned by a statement.

        Expressions inside nested statements belong to those statements.

        Args:
            statement_id: The owning statement.

        Returns:
            Expression ids in traversal order.
        """
        return list(self._targets.get(statement_id, ()))

    def expressions(self) -> list[int]:
        """Return every mutable expression of the program in traversal order."""
        return sorted(node_id for owned in self._targets.values() for node_id in owned)

    def source_of(self, node_id: int) -> str:
        """Return the unparsed source of a node."""
        return ast.unparse(self.node(node_id))

    def line_of(self, node_id: int) -> int:
        """Return the line number of a node, or 0 if it has none."""
        return getattr(self.node(node_id), 'lineno', 0)

    def copy_tree(self) -> ast.Module:
        """Return an editable deep copy of the tree; ids are preserved."""
        return copy.deepcopy(self._tree)

    def derive(self, tree: ast.Module) -> Program:
        """Wrap an edited copy of this program's tree in a new Program."""
        return Program(tree, file_path=self._file_path, package=self._package)

    def unparse(self) -> str:
        """Return the program as source text."""
        return ast.unparse(self._tree)

    def __repr__(self) -> str:
        return f'Program({self._file_path!r}, statements={len(self._statements)})'


class Codebase:
    """An ordered collection of programs, used to scope ingredient harvesting.

    Example:
        >>> codebase = Codebase([Program.from_source('x = 1\\n', 'a.py', package='pkg')])
        >>> [p.file_path for p in codebase.in_package('pkg')]
        ['a.py']
    """

    def __init__(self, programs: Iterable[Program] = ()) -> None:
        self._programs = tuple(programs)

    @classmethod
    def from_directory(cls, root: Path, exclude: Iterable[str] = ()) -> Codebase:
        """Load every ``.py`` file below a directory.

        Each module's package is derived from its directory relative to
        ``root`` (``pkg/sub/mod.py`` belongs to ``pkg.sub``).

        Args:
            root: Directory to scan.
            exclude: Glob patterns (relative paths) of files to skip.

        Returns:
            A Codebase with programs in sorted path order.

        Raises:
            EngineFault: If any file does not parse.
        """
        patterns = list(exclude)
        programs: list[Program] = []
        for path in sorted(root.rglob('*.py')):
            relative = path.relative_to(root)
            if any(relative.match(pattern) for pattern in patterns):
                continue
            programs.append(
                Program.from_source(
                    path.read_text(encoding='utf-8'),
                    file_path=relative.as_posix(),
                    package='.'.join(relative.parent.parts),
                )
            )
        return cls(programs)

    @property
    def programs(self) -> tuple[Program, ...]:
        """Return the programs in load order."""
        return self._programs

    def __iter__(self) -> Iterator[Program]:
        return iter(self._programs)

    def __len__(self) -> int:
        return len(self._programs)

    def in_package(self, package: str) -> list[Program]:
        """Return the programs belonging to a package (not its subpackages)."""
        return [program for program in self._programs if program.package == package]

    def find(self, file_path: str) -> Program | None:
        """Return the program loaded from a path, if any."""
        for program in self._programs:
            if program.file_path == file_path:
                return program
        return None
