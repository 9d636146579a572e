"""Statement dataclass representing one node of a program in program order."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Statement:
    """A single statement of a parsed program.

    Attributes:
        statement_id: Stable integer id, unique within the program.
        source: First line of the statement's source text.
        function: Dotted name of the enclosing function or class, None at module level.
        line_number: Line number where the statement starts.
        file_path: Path of the module containing the statement.
    """

    statement_id: int
    source: str
    function: str | None
    line_number: int
    file_path: str

    @property
    def location(self) -> str:
        """Return the statement location as 'file:line'."""
        return f'{self.file_path}:{self.line_number}'
