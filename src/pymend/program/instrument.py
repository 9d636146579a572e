"""Statement-level instrumentation and execution of programs under test.

The instrumentor rewrites a copy of the program so that every statement is
preceded by a probe call carrying the statement id::

    __pymend_probe__(6)
    return a + b

The probe records the statement in the run's execution trace and enforces
the per-run timeout at statement boundaries. Each run executes the compiled
module in a fresh namespace, so concurrent runs of the same
InstrumentedProgram share nothing mutable.

With a timeout set, each run also executes in a forked child process. The
child sends back the trace and the entry point's return value, and the
assertion is checked in the calling process. A child that has not answered
by ``timeout + HARD_LIMIT_GRACE`` seconds, for instance one stuck inside a
single expression such as ``sum(itertools.count())``, is killed and the run
is a timeout.

Note: results travel from the child through pickle. Only the child forked
for this run ever writes to the pipe.
"""

from __future__ import annotations

import ast
import builtins
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
import logging
import multiprocessing
import pickle
import threading
import time
from typing import TYPE_CHECKING, Any

from pymend.errors import EngineFault, FaultKind, RuntimeFault
from pymend.program.model import node_id_of


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from multiprocessing.connection import Connection
    from types import CodeType

    from pymend.program.model import Program
    from pymend.program.testcase import TestCase


logger = logging.getLogger(__name__)

PROBE_NAME = '__pymend_probe__'

# Seconds a forked run may outlive its timeout before it is killed
HARD_LIMIT_GRACE = 1.0

FORK_AVAILABLE = 'fork' in multiprocessing.get_all_start_methods()


class Verdict(Enum):
    """Outcome of a single test run."""

    PASS = 'pass'
    FAIL = 'fail'


@dataclass(frozen=True)
class TestRun:
    """Result of running one test case against one program.

    Attributes:
        test_id: The test case that ran.
        verdict: PASS if the assertion held, FAIL otherwise.
        trace: Statement id to execution count, up to the end of the run or the fault.
        fault: The crash or timeout that ended the run early, if any.
        duration_ms: Wall-clock time of the run in milliseconds.
    """

    __test__ = False

    test_id: str
    verdict: Verdict
    trace: Mapping[int, int] = field(default_factory=dict)
    fault: RuntimeFault | None = None
    duration_ms: float | None = None

    @property
    def passed(self) -> bool:
        """Return True if the test passed."""
        return self.verdict == Verdict.PASS


@dataclass(frozen=True)
class InstrumentedProgram:
    """A program together with its compiled, probe-instrumented code."""

    program: Program
    code: CodeType


class _DeadlineExceeded(BaseException):
    """Raised by the probe once a run is past its deadline.

    Derives from BaseException so ``except Exception`` in the program under
    repair does not catch it.
    """


class _MissingEntryPoint(LookupError):
    pass


def _is_docstring(statement: ast.stmt) -> bool:
    return (
        isinstance(statement, ast.Expr)
        and isinstance(statement.value, ast.Constant)
        and isinstance(statement.value.value, str)
    )


def _is_future_import(statement: ast.stmt) -> bool:
    return isinstance(statement, ast.ImportFrom) and statement.module == '__future__'


def _prelude_length(block: list[ast.stmt], owner: ast.AST) -> int:
    """Return how many leading statements of ``owner``'s body must stay first."""
    if isinstance(owner, ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef):
        return 1 if _is_docstring(block[0]) else 0
    if not isinstance(owner, ast.Module):
        return 0
    length = 1 if _is_docstring(block[0]) else 0
    while length < len(block) and _is_future_import(block[length]):
        length += 1
    return length


class ProbeInserter(ast.NodeTransformer):
    """Insert a probe call in front of every id-tagged statement.

    Docstrings of modules, classes and functions, and ``from __future__``
    imports, must stay first in their body, so their probes are emitted right
    after them.
    """

    def generic_visit(self, node: ast.AST) -> ast.AST:
        super().generic_visit(node)
        for field_name in ('body', 'orelse', 'finalbody'):
            block = getattr(node, field_name, None)
            if isinstance(block, list) and block and all(isinstance(s, ast.stmt) for s in block):
                prelude = _prelude_length(block, node) if field_name == 'body' else 0
                setattr(node, field_name, self._probe_block(block, prelude))
        return node

    def _probe_block(self, block: list[ast.stmt], prelude: int) -> list[ast.stmt]:
        probed: list[ast.stmt] = list(block[:prelude])
        probed.extend(probe for s in block[:prelude] if (probe := self._probe(s)) is not None)
        for statement in block[prelude:]:
            probe = self._probe(statement)
            if probe is not None:
                probed.append(probe)
            probed.append(statement)
        return probed

    def _probe(self, statement: ast.stmt) -> ast.stmt | None:
        statement_id = node_id_of(statement)
        if statement_id is None:
            return None
        call = ast.Call(
            func=ast.Name(id=PROBE_NAME, ctx=ast.Load()),
            args=[ast.Constant(value=statement_id)],
            keywords=[],
        )
        return ast.copy_location(ast.Expr(value=call), statement)


def _resolve_entry_point(namespace: dict[str, Any], dotted_name: str) -> Any:
    head, *rest = dotted_name.split('.')
    if head not in namespace:
        raise _MissingEntryPoint(dotted_name)
    target = namespace[head]
    for part in rest:
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise _MissingEntryPoint(dotted_name) from exc
    if not callable(target):
        raise _MissingEntryPoint(dotted_name)
    return target


def _exception_fault(test_case: TestCase, exc: BaseException) -> RuntimeFault:
    return RuntimeFault(test_case.test_id, FaultKind.EXCEPTION, f'{type(exc).__name__}: {exc}')


def _execute(
    instrumented: InstrumentedProgram,
    test_case: TestCase,
    timeout: float | None,
) -> tuple[dict[int, int], Any, RuntimeFault | None]:
    """Run the program and call the entry point in this process.

    Returns:
        The execution trace, the entry point's return value and the fault
        that ended the run early, if any.
    """
    trace: Counter[int] = Counter()
    deadline = None if timeout is None else time.monotonic() + timeout

    def probe(statement_id: int) -> None:
        trace[statement_id] += 1
        if deadline is not None and time.monotonic() > deadline:
            raise _DeadlineExceeded

    program = instrumented.program
    namespace: dict[str, Any] = {
        '__name__': program.module_name,
        '__file__': program.file_path,
        '__builtins__': builtins,
        PROBE_NAME: probe,
    }

    try:
        exec(instrumented.code, namespace)  # noqa: S102
        entry_point = _resolve_entry_point(namespace, test_case.entry_point)
        result = entry_point(*test_case.args, **test_case.kwargs)
    except _DeadlineExceeded:
        return dict(trace), None, RuntimeFault(test_case.test_id, FaultKind.TIMEOUT, f'exceeded {timeout}s')
    except _MissingEntryPoint:
        fault = RuntimeFault(
            test_case.test_id,
            FaultKind.MISSING_ENTRY_POINT,
            f'{test_case.entry_point!r} not found in {program.file_path}',
        )
        return dict(trace), None, fault
    except (Exception, SystemExit) as exc:
        return dict(trace), None, _exception_fault(test_case, exc)
    return dict(trace), result, None


def _settle(test_case: TestCase, result: Any) -> tuple[bool, RuntimeFault | None]:
    """Apply the test's assertion; an assertion that crashes is a fault."""
    try:
        return test_case.check(result), None
    except (Exception, SystemExit) as exc:
        return False, _exception_fault(test_case, exc)


def _run_in_child(
    connection: Connection,
    instrumented: InstrumentedProgram,
    test_case: TestCase,
    timeout: float | None,
) -> None:
    """Body of a forked run: execute, then send the outcome to the parent."""
    trace, result, fault = _execute(instrumented, test_case, timeout)
    if fault is not None:
        message = pickle.dumps(('settled', trace, False, fault))
    else:
        try:
            message = pickle.dumps(('returned', trace, result))
        except Exception:  # noqa: BLE001
            # The return value cannot leave this process: check it here instead
            passed, fault = _settle(test_case, result)
            message = pickle.dumps(('settled', trace, passed, fault))
    connection.send_bytes(message)
    connection.close()


class Instrumentor:
    """Runs test cases against instrumented programs and records traces.

    Attributes:
        timeout: Per-run timeout in seconds, or None for no limit.
        isolated: True if each run executes in a forked child process.
        executions: Number of runs started so far (thread-safe).

    Example:
        >>> from pymend.program.model import Program
        >>> from pymend.program.testcase import TestCase
        >>> program = Program.from_source('def double(x):\\n    return x * 2\\n')
        >>> instrumentor = Instrumentor(timeout=1.0)
        >>> run = instrumentor.run(instrumentor.instrument(program), TestCase('t', 'double', (2,), expected=4))
        >>> run.verdict
        <Verdict.PASS: 'pass'>
    """

    def __init__(self, timeout: float | None = None, isolate: bool | None = None) -> None:
        """Create an instrumentor.

        Args:
            timeout: Per-run timeout in seconds. None disables the limit.
            isolate: Run each test in a forked child process that is killed
                once it outlives the timeout. Defaults to True when a timeout
                is set and the platform can fork.

        Raises:
            ValueError: If timeout is not positive, or isolation is requested
                without a timeout or on a platform that cannot fork.
        """
        if timeout is not None and timeout <= 0:
            msg = f'timeout must be positive, got {timeout}'
            raise ValueError(msg)
        if isolate is None:
            isolate = timeout is not None and FORK_AVAILABLE
        elif isolate and timeout is None:
            msg = 'isolated runs need a timeout'
            raise ValueError(msg)
        elif isolate and not FORK_AVAILABLE:
            msg = 'isolated runs need the fork start method, which this platform lacks'
            raise ValueError(msg)
        self._timeout = timeout
        self._isolate = isolate
        self._lock = threading.Lock()
        self._executions = 0

    @property
    def timeout(self) -> float | None:
        """Return the per-run timeout in seconds."""
        return self._timeout

    @property
    def isolated(self) -> bool:
        """Return True if runs execute in forked child processes."""
        return self._isolate

    @property
    def executions(self) -> int:
        """Return the number of runs started so far."""
        with self._lock:
            return self._executions

    def instrument(self, program: Program) -> InstrumentedProgram:
        """Insert probes into a copy of the program and compile it.

        Args:
            program: The program to instrument. It is not modified.

        Returns:
            The compiled, instrumented program.

        Raises:
            EngineFault: If the instrumented program does not compile.
        """
        tree = ProbeInserter().visit(program.copy_tree())
        ast.fix_missing_locations(tree)
        try:
            code = compile(tree, program.file_path, 'exec')
        except (SyntaxError, ValueError, TypeError) as exc:
            msg = f'Cannot compile {program.file_path}: {exc}'
            raise EngineFault(msg) from exc
        return InstrumentedProgram(program=program, code=code)

    def run(self, instrumented: InstrumentedProgram, test_case: TestCase) -> TestRun:
        """Execute one test case and record which statements ran.

        Crashes, timeouts and a missing entry point never propagate: they
        produce a FAIL verdict carrying a RuntimeFault and the partial trace.
        A forked run killed at the hard limit has an empty trace.

        Args:
            instrumented: The program to run.
            test_case: The test to run.

        Returns:
            The TestRun with verdict and execution trace.
        """
        with self._lock:
            self._executions += 1

        start_time = time.monotonic()
        if self._isolate:
            trace, passed, fault = self._run_forked(instrumented, test_case)
        else:
            trace, result, fault = _execute(instrumented, test_case, self._timeout)
            passed, fault = _settle(test_case, result) if fault is None else (False, fault)
        duration_ms = (time.monotonic() - start_time) * 1000

        if fault is not None:
            logger.debug('Run %s faulted: %s', test_case.test_id, fault)

        return TestRun(
            test_id=test_case.test_id,
            verdict=Verdict.PASS if passed and fault is None else Verdict.FAIL,
            trace=trace,
            fault=fault,
            duration_ms=duration_ms,
        )

    def _run_forked(
        self,
        instrumented: InstrumentedProgram,
        test_case: TestCase,
    ) -> tuple[dict[int, int], bool, RuntimeFault | None]:
        context = multiprocessing.get_context('fork')
        receiver, sender = context.Pipe(duplex=False)
        process = context.Process(
            target=_run_in_child,
            args=(sender, instrumented, test_case, self._timeout),
            name=f'pymend-run-{test_case.test_id}',
            daemon=True,
        )
        process.start()
        sender.close()

        message: bytes | None = None
        answered = False
        try:
            answered = receiver.poll(self._timeout + HARD_LIMIT_GRACE)  # type: ignore[operator]
            if answered:
                message = receiver.recv_bytes()
        except EOFError:
            message = None
        finally:
            receiver.close()
            if process.is_alive():
                process.kill()
            process.join()

        if not answered:
            return {}, False, RuntimeFault(test_case.test_id, FaultKind.TIMEOUT, f'killed after {self._timeout}s')
        if message is None:
            detail = f'test process exited with code {process.exitcode}'
            return {}, False, RuntimeFault(test_case.test_id, FaultKind.EXCEPTION, detail)

        try:
            kind, trace, *outcome = pickle.loads(message)  # noqa: S301
        except Exception as exc:  # noqa: BLE001
            return {}, False, _exception_fault(test_case, exc)
        if kind == 'returned':
            passed, fault = _settle(test_case, outcome[0])
            return trace, passed, fault
        passed, fault = outcome
        return trace, passed, fault

    def run_suite(
        self,
        instrumented: InstrumentedProgram,
        tests: Iterable[TestCase],
        cancel_event: threading.Event | None = None,
    ) -> list[TestRun]:
        """Run test cases in order, stopping early once cancellation is requested.

        Args:
            instrumented: The program to run.
            tests: Test cases to run.
            cancel_event: Checked before each run; when set, no further run starts.

        Returns:
            The runs that were started, in suite order.
        """
        runs: list[TestRun] = []
        for test_case in tests:
            if cancel_event is not None and cancel_event.is_set():
                break
            runs.append(self.run(instrumented, test_case))
        return runs
