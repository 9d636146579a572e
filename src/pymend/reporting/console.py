"""Console reporter for repair outcomes.

Produces human-readable output for terminal display with the repair
verdict, search statistics and the most suspicious statements.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO


if TYPE_CHECKING:
    from pymend.orchestrator import RepairOutcome


class ConsoleReporter:
    """Reporter that writes repair outcomes to the console.

    Produces output in the following format:

        ======================== pymend repair report ========================

        Status: found
        Patch p0004: a to a + b (toy.py:4)
        Verdicts: test_1 pass, test_2 pass

        Targets tried: 1
        Patches tried: 4 (0 inapplicable, 0 cancelled)
        Best pass rate: 100%
        Test executions: 10

        Top suspicious statements:
          toy.py:4                 1.000  return a
          toy.py:1                 0.500  def sum(a, b):
        ======================================================================

    Attributes:
        output: The file-like object to write to.
        top: Number of suspicious statements listed.
    """

    BORDER_CHAR = '='
    BORDER_WIDTH = 70

    def __init__(self, output: TextIO | None = None, top: int = 5) -> None:
        """Initialize the console reporter.

        Args:
            output: File-like object to write to. Defaults to sys.stdout.
            top: Number of suspicious statements to list.
        """
        self.output = output or sys.stdout
        self.top = top

    def write_report(self, outcome: RepairOutcome) -> None:
        """Write the repair report to the output.

        Args:
            outcome: The outcome of a repair run.
        """
        self._write_header()
        self._write_blank_line()

        self._write_line(f'Status: {outcome.state.value}')
        self._write_patch(outcome)
        self._write_blank_line()
        self._write_statistics(outcome)
        self._write_ranking(outcome)

        self._write_footer()

    def _write_header(self) -> None:
        """Write the report header."""
        title = ' pymend repair report '
        border_len = (self.BORDER_WIDTH - len(title)) // 2
        header = f'{self.BORDER_CHAR * border_len}{title}{self.BORDER_CHAR * border_len}'
        self._write_line(header)

    def _write_footer(self) -> None:
        """Write the report footer."""
        self._write_line(self.BORDER_CHAR * self.BORDER_WIDTH)

    def _write_patch(self, outcome: RepairOutcome) -> None:
        """Write the reported patch and its verdicts, or the best partial result."""
        result = outcome.validation if outcome.found else outcome.best_result
        if result is None:
            self._write_line('No patch passed any test case.')
            return

        patch = result.patch
        location = outcome.program.statement(patch.target_statement).location
        label = 'Patch' if outcome.found else 'Closest patch'
        self._write_line(f'{label} {patch.patch_id}: {patch.description} ({location})')
        verdicts = ', '.join(f'{test_id} {verdict.value}' for test_id, verdict in result.verdicts.items())
        self._write_line(f'Verdicts: {verdicts}')
        if len(outcome.plausible) > 1:
            self._write_line(f'Other plausible patches: {len(outcome.plausible) - 1}')

    def _write_statistics(self, outcome: RepairOutcome) -> None:
        """Write the search statistics."""
        self._write_line(f'Targets tried: {len(outcome.targets_tried)}')
        self._write_line(
            f'Patches tried: {outcome.patches_tried} '
            f'({outcome.inapplicable} inapplicable, {outcome.cancelled} cancelled)'
        )
        self._write_line(f'Best pass rate: {round(outcome.best_pass_rate * 100)}%')
        self._write_line(f'Test executions: {outcome.test_executions}')

    def _write_ranking(self, outcome: RepairOutcome) -> None:
        """Write the most suspicious statements."""
        ranked = outcome.ranking[: self.top]
        if not ranked:
            return

        self._write_blank_line()
        self._write_line('Top suspicious statements:')
        for entry in ranked:
            statement = entry.statement
            self._write_line(f'  {statement.location:<24} {entry.score:.3f}  {statement.source}')

    def _write_blank_line(self) -> None:
        """Write a blank line."""
        self.output.write('\n')

    def _write_line(self, text: str) -> None:
        """Write a line of text followed by newline."""
        self.output.write(text + '\n')
