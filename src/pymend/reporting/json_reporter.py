"""JSON reporter for repair outcomes.

Produces machine-readable JSON output for CI integration and automated
analysis of repair runs.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pymend.mutation.applier import apply_patch


if TYPE_CHECKING:
    from pathlib import Path

    from pymend.localization.ranker import RankedStatement
    from pymend.orchestrator import RepairOutcome
    from pymend.program.instrument import TestRun
    from pymend.validation.results import ValidationResult


class JsonReporter:
    """Reporter that produces JSON output for CI integration.

    JSON structure:
        {
            "summary": {
                "state": "found",
                "targets_tried": 1,
                "patches_tried": 4,
                "inapplicable": 0,
                "cancelled": 0,
                "best_pass_rate": 1.0,
                "test_executions": 10,
                "elapsed_ms": 3.2
            },
            "patches": [
                {
                    "patch_id": "p0004",
                    "description": "a to a + b",
                    "target": "toy.py:4",
                    "operations": ["replace"],
                    "status": "plausible",
                    "pass_rate": 1.0,
                    "verdicts": {"test_1": "pass", "test_2": "pass"},
                    "patched_source": "def sum(a, b): ..."
                }
            ],
            "best_result": {"patch_id": "p0004", ...},
            "ranking": [
                {"statement_id": 10, "location": "toy.py:4", "source": "return a",
                 "score": 1.0, "failed": 1, "passed": 0},
                ...
            ]
        }
    """

    def to_json(self, outcome: RepairOutcome) -> str:
        """Convert a repair outcome to a JSON string.

        Args:
            outcome: The RepairOutcome to convert.

        Returns:
            Pretty-printed JSON string.
        """
        data = self._build_report_data(outcome)
        return json.dumps(data, indent=2)

    def write_report(self, outcome: RepairOutcome, output_path: Path) -> None:
        """Write the repair report to a JSON file.

        Args:
            outcome: The RepairOutcome to write.
            output_path: Path to the output JSON file.
        """
        output_path.write_text(self.to_json(outcome))

    def _build_report_data(self, outcome: RepairOutcome) -> dict[str, Any]:
        """Build the complete report data structure."""
        return {
            'summary': self._build_summary(outcome),
            'patches': [self._build_patch(outcome, r) for r in outcome.plausible],
            'best_result': (
                None if outcome.best_result is None else self._build_patch(outcome, outcome.best_result)
            ),
            'ranking': [self._build_ranked(entry) for entry in outcome.ranking],
        }

    def _build_summary(self, outcome: RepairOutcome) -> dict[str, Any]:
        """Build the summary section."""
        return {
            'state': outcome.state.value,
            'targets_tried': len(outcome.targets_tried),
            'patches_tried': outcome.patches_tried,
            'inapplicable': outcome.inapplicable,
            'cancelled': outcome.cancelled,
            'best_pass_rate': outcome.best_pass_rate,
            'test_executions': outcome.test_executions,
            'elapsed_ms': outcome.elapsed_ms,
        }

    def _build_patch(self, outcome: RepairOutcome, result: ValidationResult) -> dict[str, Any]:
        """Build a single patch entry.

        Args:
            outcome: The outcome the result belongs to.
            result: The validation of the patch.

        Returns:
            Dictionary representing this patch.
        """
        patch = result.patch
        entry: dict[str, Any] = {
            'patch_id': patch.patch_id,
            'description': patch.description,
            'target': outcome.program.statement(patch.target_statement).location,
            'operations': [kind.value for kind in patch.kinds],
            'status': result.status.value,
            'pass_rate': result.pass_rate,
            'verdicts': {run.test_id: run.verdict.value for run in result.runs},
        }
        faults = [self._build_fault(run) for run in result.runs if run.fault is not None]
        if faults:
            entry['faults'] = faults
        if result.is_plausible:
            entry['patched_source'] = apply_patch(outcome.program, patch).unparse()
        return entry

    def _build_fault(self, run: TestRun) -> dict[str, str]:
        """Build a fault entry for a failing run."""
        fault = run.fault
        return {'test_id': run.test_id, 'kind': fault.kind.value, 'message': fault.message}  # type: ignore[union-attr]

    def _build_ranked(self, entry: RankedStatement) -> dict[str, Any]:
        """Build a ranking entry."""
        statement = entry.statement
        return {
            'statement_id': statement.statement_id,
            'location': statement.location,
            'source': statement.source,
            'score': entry.score,
            'failed': entry.failed,
            'passed': entry.passed,
        }
