"""The repair loop: localize, rank, generate and validate.

A repair moves through the states::

    LOCALIZING -> RANKED -> (GENERATING -> VALIDATING)* -> FOUND | EXHAUSTED

Localization runs the suite once on the instrumented base program and ranks
its statements. Every statement with a positive score is then a repair
target, in rank order; the patches of each target are generated lazily and
validated either one at a time (``max_workers == 1``) or on a
ValidationPool. Under the first-found policy the search stops at the first
plausible patch; under the exhaustive policy every patch is validated.

Example:
    >>> from pymend.program import Program, TestCase
    >>> program = Program.from_source(
    ...     'def sum(a, b):\\n    if a >= 10:\\n        return a + b\\n    return a\\n', 'toy.py'
    ... )
    >>> tests = [TestCase('test_1', 'sum', (1, 2), expected=3), TestCase('test_2', 'sum', (10, 20), expected=30)]
    >>> outcome = RepairOrchestrator().repair(program, tests)
    >>> outcome.state, outcome.patch.description
    (<RepairState.FOUND: 'found'>, 'a to a + b')
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
import itertools
import logging
import time
from typing import TYPE_CHECKING, Any

from pymend.config import RepairConfig, merge_configs
from pymend.errors import EngineFault, FaultKind, PreconditionError
from pymend.localization.ranker import SuspiciousnessRanker
from pymend.localization.spectrum import SpectrumCollector
from pymend.mutation.applier import apply_patch
from pymend.mutation.generator import MutationGenerator
from pymend.mutation.ingredients import build_ingredient_pool
from pymend.operators.registry import default_registry
from pymend.program.instrument import Instrumentor
from pymend.program.model import Program
from pymend.validation.aggregator import RepairProgress
from pymend.validation.pool import ValidationPool
from pymend.validation.validator import PatchValidator


if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from pymend.localization.ranker import RankedStatement
    from pymend.localization.spectrum import Spectrum
    from pymend.mutation.operations import Patch
    from pymend.operators.registry import OperatorRegistry
    from pymend.program.model import Codebase
    from pymend.program.testcase import TestCase
    from pymend.validation.results import ValidationResult


logger = logging.getLogger(__name__)


class RepairState(Enum):
    """States of the repair loop.

    Attributes:
        LOCALIZING: Running the suite on the base program.
        RANKED: Statements scored and ordered.
        GENERATING: Producing patches for the next target.
        VALIDATING: Running the suite against patched programs.
        FOUND: A plausible patch was found (terminal).
        EXHAUSTED: Every target was tried without a plausible patch (terminal).
    """

    LOCALIZING = 'localizing'
    RANKED = 'ranked'
    GENERATING = 'generating'
    VALIDATING = 'validating'
    FOUND = 'found'
    EXHAUSTED = 'exhausted'


@dataclass(frozen=True)
class RepairOutcome:
    """Result of a repair run.

    Attributes:
        state: FOUND or EXHAUSTED.
        program: The base program.
        ranking: Every statement with its suspiciousness, most suspicious first.
        plausible: Plausible validations. One under first-found; every one,
            earliest generated first, under exhaustive.
        targets_tried: Ids of the ranked statements patches were generated for.
        patches_tried: Patches validated to completion, inapplicable ones included.
        inapplicable: Patches that could not be applied.
        cancelled: Validations cut short once a repair was found.
        best_pass_rate: Highest fraction of passing tests reached by any patch.
        best_result: The validation reaching that pass rate, if any completed.
        test_executions: Test runs started, localization included.
        elapsed_ms: Wall-clock time of the repair.
        history: Every state the repair passed through, in order.
    """

    state: RepairState
    program: Program
    ranking: tuple[RankedStatement, ...]
    plausible: tuple[ValidationResult, ...] = ()
    targets_tried: tuple[int, ...] = ()
    patches_tried: int = 0
    inapplicable: int = 0
    cancelled: int = 0
    best_pass_rate: float = 0.0
    best_result: ValidationResult | None = None
    test_executions: int = 0
    elapsed_ms: float = 0.0
    history: tuple[RepairState, ...] = field(default=())

    @property
    def found(self) -> bool:
        """Return True if a plausible patch was found."""
        return self.state == RepairState.FOUND

    @property
    def validation(self) -> ValidationResult | None:
        """Return the validation of the reported patch."""
        return self.plausible[0] if self.plausible else None

    @property
    def patch(self) -> Patch | None:
        """Return the reported plausible patch, if any."""
        return self.plausible[0].patch if self.plausible else None

    def repaired_program(self) -> Program | None:
        """Return the base program with the reported patch applied, if any."""
        if self.patch is None:
            return None
        return apply_patch(self.program, self.patch)


def _check_suite(tests: Sequence[TestCase]) -> tuple[TestCase, ...]:
    """Reject suites that cannot drive a repair before anything runs."""
    suite = tuple(tests)
    if not suite:
        msg = 'Repair needs at least one failing and one passing test case, got an empty suite'
        raise PreconditionError(msg)
    duplicates = sorted(test_id for test_id, n in Counter(t.test_id for t in suite).items() if n > 1)
    if duplicates:
        msg = f'Duplicate test case ids: {duplicates}'
        raise EngineFault(msg)
    return suite


class RepairOrchestrator:
    """Drives a repair from localization to a plausible patch or exhaustion.

    Attributes:
        config: The repair configuration.
        instrumentor: Runs every test case and counts executions.
        codebase: Other modules for the package and codebase ingredient scopes.
        state: The current state, None before the first repair.
        history: States of the most recent repair, in order.
    """

    def __init__(
        self,
        config: RepairConfig | None = None,
        *,
        instrumentor: Instrumentor | None = None,
        codebase: Codebase | None = None,
        registry: OperatorRegistry | None = None,
    ) -> None:
        """Create an orchestrator.

        Args:
            config: Repair configuration. Defaults to RepairConfig().
            instrumentor: Test runner. Defaults to one using ``config.timeout``.
            codebase: Modules to harvest ingredients from beyond the program itself.
            registry: Operator registry. Defaults to the built-in operators.
        """
        self.config = config if config is not None else RepairConfig()
        self.instrumentor = instrumentor if instrumentor is not None else Instrumentor(timeout=self.config.timeout)
        self.codebase = codebase
        self.state: RepairState | None = None
        self.history: list[RepairState] = []
        self._registry = registry if registry is not None else default_registry()

    def _transition(self, state: RepairState) -> None:
        logger.debug('Repair state: %s -> %s', self.state.value if self.state else 'start', state.value)
        self.state = state
        self.history.append(state)

    def localize(self, program: Program, tests: Sequence[TestCase]) -> tuple[Spectrum, list[RankedStatement]]:
        """Run the suite on the base program and rank its statements.

        Args:
            program: The program under repair.
            tests: The test suite.

        Returns:
            The collected spectrum and the ranking, most suspicious first.

        Raises:
            PreconditionError: If the suite lacks a failing or a passing test case.
            EngineFault: If the suite is malformed or names a missing entry point.
        """
        return self._localize(program, _check_suite(tests))

    def _localize(self, program: Program, suite: tuple[TestCase, ...]) -> tuple[Spectrum, list[RankedStatement]]:
        self._transition(RepairState.LOCALIZING)
        instrumented = self.instrumentor.instrument(program)
        collector = SpectrumCollector()
        spectrum = collector.collect(self.instrumentor, instrumented, suite)

        for run in collector.runs:
            if run.fault is not None and run.fault.kind == FaultKind.MISSING_ENTRY_POINT:
                msg = f'Test case {run.test_id!r}: {run.fault.message}'
                raise EngineFault(msg)
        spectrum.require_mixed_verdicts()

        ranker = SuspiciousnessRanker(
            formula=self.config.formula,
            tie_break=self.config.tie_break,
            seed=self.config.seed,
        )
        ranking = ranker.rank(program, spectrum)
        self._transition(RepairState.RANKED)
        logger.info(
            'Localized %s: %d failing, %d passing tests; top statement %s (%.3f)',
            program.file_path,
            spectrum.total_failed,
            spectrum.total_passed,
            ranking[0].statement.location if ranking else None,
            ranking[0].score if ranking else 0.0,
        )
        return spectrum, ranking

    def _generator(self, program: Program) -> MutationGenerator:
        pool = build_ingredient_pool(
            program,
            self.config.ingredient_scope,
            self.codebase,
            include_statements=self.config.statement_ingredients,
        )
        return MutationGenerator(pool, self._registry.select(self.config.operators))

    def _patch_stream(
        self,
        program: Program,
        targets: Sequence[RankedStatement],
        generator: MutationGenerator,
        progress: RepairProgress,
    ) -> Iterator[Patch]:
        """Yield the patches of every target in rank order, recording state changes."""
        for target in targets:
            self._transition(RepairState.GENERATING)
            progress.mark_target(target.statement_id)
            logger.debug('Target %s (score %.3f)', target.statement.location, target.score)
            first = True
            for patch in generator.generate(program, target.statement_id):
                if first:
                    self._transition(RepairState.VALIDATING)
                    first = False
                yield patch

    def _search_sequential(
        self, patches: Iterator[Patch], validator: PatchValidator, progress: RepairProgress
    ) -> list[ValidationResult]:
        found: list[ValidationResult] = []
        for patch in patches:
            result = validator.validate(patch)
            progress.add_result(result)
            if result.is_plausible:
                found.append(result)
                if self.config.stops_at_first:
                    break
        return found

    def _search_parallel(
        self, patches: Iterator[Patch], validator: PatchValidator, progress: RepairProgress
    ) -> list[ValidationResult]:
        found: list[ValidationResult] = []
        with ValidationPool(validator, max_workers=self.config.max_workers) as pool:
            for result in pool.validate_all(patches, stop_on_plausible=self.config.stops_at_first):
                progress.add_result(result)
                if result.is_plausible:
                    found.append(result)
        if self.config.stops_at_first:
            return found[:1]
        return sorted(found, key=lambda r: r.patch.sequence)

    def repair(self, program: Program, tests: Sequence[TestCase]) -> RepairOutcome:
        """Search for a patch that makes every test case pass.

        Args:
            program: The program under repair. Never modified.
            tests: The test suite; needs at least one failing and one passing case.

        Returns:
            The RepairOutcome, FOUND or EXHAUSTED.

        Raises:
            PreconditionError: If the suite lacks a failing or a passing test case.
            EngineFault: If the program or the suite is malformed.
        """
        start_time = time.monotonic()
        executions_before = self.instrumentor.executions
        self.state = None
        self.history = []

        suite = _check_suite(tests)
        _, ranking = self._localize(program, suite)
        targets = [ranked for ranked in ranking if ranked.score > 0]

        progress = RepairProgress()
        validator = PatchValidator(program, suite, self.instrumentor)
        patches = self._patch_stream(program, targets, self._generator(program), progress)
        if self.config.max_patches is not None:
            patches = itertools.islice(patches, self.config.max_patches)

        if self.config.max_workers == 1:
            found = self._search_sequential(patches, validator, progress)
        else:
            found = self._search_parallel(patches, validator, progress)

        self._transition(RepairState.FOUND if found else RepairState.EXHAUSTED)
        outcome = RepairOutcome(
            state=self.state,  # type: ignore[arg-type]
            program=program,
            ranking=tuple(ranking),
            plausible=tuple(found),
            targets_tried=progress.targets_tried,
            patches_tried=progress.patches_tried,
            inapplicable=progress.inapplicable_count,
            cancelled=progress.cancelled_count,
            best_pass_rate=progress.best_pass_rate,
            best_result=progress.best_result,
            test_executions=self.instrumentor.executions - executions_before,
            elapsed_ms=(time.monotonic() - start_time) * 1000,
            history=tuple(self.history),
        )
        if outcome.found:
            logger.info(
                'Found plausible patch %s (%s) after %d patches',
                outcome.patch.patch_id,  # type: ignore[union-attr]
                outcome.patch.description,  # type: ignore[union-attr]
                outcome.patches_tried,
            )
        else:
            logger.info(
                'No plausible patch: %d targets, %d patches tried, best pass rate %.2f',
                len(outcome.targets_tried),
                outcome.patches_tried,
                outcome.best_pass_rate,
            )
        return outcome


def repair(
    program: Program | str,
    tests: Sequence[TestCase],
    config: RepairConfig | None = None,
    *,
    codebase: Codebase | None = None,
    **overrides: Any,
) -> RepairOutcome:
    """Repair a program with a one-off orchestrator.

    Args:
        program: The program under repair, or its source text.
        tests: The test suite.
        config: Base configuration. Defaults to RepairConfig().
        codebase: Modules to harvest ingredients from beyond the program itself.
        **overrides: RepairConfig field values taking precedence over ``config``.

    Returns:
        The RepairOutcome.

    Example:
        >>> from pymend.program import TestCase
        >>> outcome = repair(
        ...     'def sum(a, b):\\n    if a >= 10:\\n        return a + b\\n    return a\\n',
        ...     [TestCase('test_1', 'sum', (1, 2), expected=3), TestCase('test_2', 'sum', (10, 20), expected=30)],
        ...     formula='ochiai',
        ... )
        >>> outcome.found
        True
    """
    if isinstance(program, str):
        program = Program.from_source(program)
    base = config if config is not None else RepairConfig()
    effective = merge_configs(base, **overrides) if overrides else base
    return RepairOrchestrator(effective, codebase=codebase).repair(program, tests)
