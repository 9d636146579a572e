"""Integration tests for complete repairs.

These tests run the whole loop: parallel validation, cancellation,
timeouts and ingredients drawn from a codebase on disk.
"""

from __future__ import annotations

import textwrap
import threading
import time

import pytest

from pymend.config import RepairConfig, load_config
from pymend.errors import FaultKind
from pymend.orchestrator import RepairOrchestrator, RepairState
from pymend.program.instrument import FORK_AVAILABLE, HARD_LIMIT_GRACE, Instrumentor, Verdict
from pymend.program.model import Codebase, Program
from pymend.program.testcase import TestCase
from pymend.reporting import JsonReporter


STEPS_SOURCE = """\
def steps(n):
    i = 0
    while i < n:
        i = i - 1
    return i
"""


class TestParallelRepair:
    """Repairs validated on a pool of workers."""

    def test_parallel_search_finds_a_plausible_patch(self, sum_program, sum_tests) -> None:
        outcome = RepairOrchestrator(RepairConfig(max_workers=4)).repair(sum_program, sum_tests)

        assert outcome.state == RepairState.FOUND
        assert len(outcome.plausible) == 1
        assert outcome.validation.is_plausible
        assert outcome.history[-1] == RepairState.FOUND

    def test_parallel_exhaustive_matches_sequential(self, sum_program, sum_tests) -> None:
        sequential = RepairOrchestrator(RepairConfig(search_policy='exhaustive')).repair(sum_program, sum_tests)
        parallel = RepairOrchestrator(RepairConfig(search_policy='exhaustive', max_workers=4)).repair(
            sum_program, sum_tests
        )

        assert [r.patch.description for r in parallel.plausible] == [
            r.patch.description for r in sequential.plausible
        ]
        assert parallel.patches_tried == sequential.patches_tried
        assert parallel.test_executions == sequential.test_executions
        assert parallel.cancelled == 0

    def test_cancellation_stops_test_execution(self, sum_program, sum_tests) -> None:
        instrumentor = Instrumentor(timeout=5.0)
        first_found = RepairOrchestrator(RepairConfig(max_workers=4), instrumentor=instrumentor).repair(
            sum_program, sum_tests
        )
        executions = instrumentor.executions

        time.sleep(0.1)

        assert instrumentor.executions == executions
        exhaustive = RepairOrchestrator(RepairConfig(search_policy='exhaustive', max_workers=4)).repair(
            sum_program, sum_tests
        )
        assert first_found.test_executions < exhaustive.test_executions

    def test_first_found_patch_is_reproducible_sequentially(self, sum_program, sum_tests) -> None:
        first = RepairOrchestrator(RepairConfig(max_workers=1)).repair(sum_program, sum_tests)
        second = RepairOrchestrator(RepairConfig(max_workers=1)).repair(sum_program, sum_tests)

        assert first.patch == second.patch


class TestTimeouts:
    """Runs that never finish are failing verdicts."""

    @pytest.fixture
    def steps_program(self) -> Program:
        return Program.from_source(STEPS_SOURCE, 'steps.py')

    @pytest.fixture
    def steps_tests(self) -> list[TestCase]:
        return [
            TestCase('test_zero', 'steps', (0,), expected=0),
            TestCase('test_three', 'steps', (3,), expected=3),
        ]

    def test_infinite_loop_times_out(self, steps_program) -> None:
        instrumentor = Instrumentor(timeout=0.2)

        run = instrumentor.run(instrumentor.instrument(steps_program), TestCase('t', 'steps', (3,), expected=3))

        assert not run.passed
        assert run.fault.kind == FaultKind.TIMEOUT
        # the loop body ran many times before the deadline
        assert max(run.trace.values()) > 1

    def test_repairs_a_non_terminating_loop(self, steps_program, steps_tests) -> None:
        outcome = RepairOrchestrator(RepairConfig(timeout=0.2)).repair(steps_program, steps_tests)

        assert outcome.ranking[0].statement.source == 'i = i - 1'
        assert outcome.state == RepairState.FOUND
        assert outcome.patch.description == 'i - 1 to n'
        # the three earlier replacements each hit the deadline
        assert outcome.patches_tried == 4
        assert outcome.test_executions == 2 + 4 * 2


HANGING_SOURCES = [
    pytest.param(
        'import itertools\n\n\ndef has_negative(n):\n    return any(x < 0 for x in itertools.count(n))\n',
        'has_negative',
        id='generator-over-count',
    ),
    pytest.param('def total(n):\n    return sum(range(n ** 14))\n', 'total', id='sum-over-range'),
]


@pytest.mark.skipif(not FORK_AVAILABLE, reason='needs the fork start method')
class TestHardTimeLimit:
    """Runs stuck inside a single expression are killed."""

    @pytest.mark.parametrize(('source', 'entry_point'), HANGING_SOURCES)
    def test_stuck_expression_is_a_timeout(self, source, entry_point) -> None:
        instrumentor = Instrumentor(timeout=0.2)
        instrumented = instrumentor.instrument(Program.from_source(source))
        case = TestCase('t', entry_point, (10,), expected=False)
        runs = []

        worker = threading.Thread(target=lambda: runs.append(instrumentor.run(instrumented, case)))
        worker.start()
        worker.join(0.2 + HARD_LIMIT_GRACE + 3.0)

        assert not worker.is_alive()
        assert runs[0].verdict == Verdict.FAIL
        assert runs[0].fault.kind == FaultKind.TIMEOUT
        assert runs[0].trace == {}

    def test_repair_finishes_when_the_failing_test_hangs(self) -> None:
        program = Program.from_source('def total(n):\n    return sum(range(n ** 14))\n', 'total.py')
        tests = [
            TestCase('test_small', 'total', (1,), expected=0),
            TestCase('test_huge', 'total', (10,), expected=0),
        ]

        outcome = RepairOrchestrator(RepairConfig(timeout=0.2, max_workers=2)).repair(program, tests)

        assert outcome.state == RepairState.EXHAUSTED
        assert outcome.patches_tried == 0
        assert outcome.test_executions == 2
        assert outcome.elapsed_ms < (0.2 + HARD_LIMIT_GRACE + 3.0) * 1000


class TestCodebaseScope:
    """Ingredients harvested from other modules on disk."""

    @pytest.fixture
    def project(self, tmp_path):
        package = tmp_path / 'src' / 'pkg'
        package.mkdir(parents=True)
        (package / 'total.py').write_text('def total(x, hi):\n    return x\n')
        (package / 'helpers.py').write_text('def cap(x, hi):\n    return min(x, hi)\n')
        (tmp_path / 'pyproject.toml').write_text(
            textwrap.dedent(
                """
                [tool.pymend]
                ingredient-scope = "package"
                max-workers = 2
                """
            )
        )
        return tmp_path

    @pytest.fixture
    def total_tests(self) -> list[TestCase]:
        return [
            TestCase('test_capped', 'total', (5, 3), expected=3),
            TestCase('test_below', 'total', (1, 3), expected=1),
        ]

    def test_file_scope_cannot_repair(self, project, total_tests) -> None:
        codebase = Codebase.from_directory(project / 'src')
        program = codebase.find('pkg/total.py')

        outcome = RepairOrchestrator(RepairConfig(), codebase=codebase).repair(program, total_tests)

        assert outcome.state == RepairState.EXHAUSTED

    def test_package_scope_from_pyproject_repairs(self, project, total_tests, tmp_path) -> None:
        codebase = Codebase.from_directory(project / 'src')
        program = codebase.find('pkg/total.py')
        config = load_config(project)

        outcome = RepairOrchestrator(config, codebase=codebase).repair(program, total_tests)

        assert config.ingredient_scope == 'package'
        assert outcome.state == RepairState.FOUND
        assert outcome.patch.description == 'x to min(x, hi)'
        report = tmp_path / 'report.json'
        JsonReporter().write_report(outcome, report)
        assert 'min(x, hi)' in report.read_text()
