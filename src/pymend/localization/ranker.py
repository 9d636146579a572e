"""Suspiciousness ranking of program statements.

The ranker scores every statement of a program with the configured formula
and orders them from most to least suspicious. How statements with equal
scores are ordered is a tie-break policy:

- ``line``: ascending line number, then statement id. Fully deterministic.
- ``uniform``: random order inside each tie group.
- ``weighted``: weighted-random order inside each tie group, weight
  ``failed(s) + 1``, so statements run by more failing tests tend to go first.

The random policies draw from ``random.Random(seed)``, so a fixed seed
reproduces the same ranking.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
import random
from typing import TYPE_CHECKING, Literal

from pymend.localization.formulas import get_formula


if TYPE_CHECKING:
    from pymend.localization.spectrum import Spectrum
    from pymend.program.model import Program
    from pymend.program.statement import Statement


TieBreak = Literal['line', 'uniform', 'weighted']
VALID_TIE_BREAKS: frozenset[str] = frozenset(('line', 'uniform', 'weighted'))


@dataclass(frozen=True)
class RankedStatement:
    """A statement with its suspiciousness score and spectrum counts.

    Attributes:
        statement: The ranked statement.
        score: Suspiciousness score.
        failed: Failing tests that executed the statement.
        passed: Passing tests that executed the statement.
    """

    statement: Statement
    score: float
    failed: int
    passed: int

    @property
    def statement_id(self) -> int:
        """Return the ranked statement's id."""
        return self.statement.statement_id


class SuspiciousnessRanker:
    """Ranks statements by suspiciousness.

    Attributes:
        formula_name: Name of the registered formula in use.
        tie_break: The tie-break policy.
        seed: Seed for the random tie-break policies.
    """

    def __init__(self, formula: str = 'tarantula', tie_break: TieBreak = 'line', seed: int | None = None) -> None:
        """Create a ranker.

        Args:
            formula: Registered formula name.
            tie_break: One of 'line', 'uniform', 'weighted'.
            seed: Seed for the random tie-break policies.

        Raises:
            KeyError: If the formula is not registered.
            ValueError: If the tie-break policy is unknown.
        """
        if tie_break not in VALID_TIE_BREAKS:
            msg = f'Invalid tie break: {tie_break!r}. Valid policies are: {sorted(VALID_TIE_BREAKS)}'
            raise ValueError(msg)
        self.formula_name = formula
        self.tie_break = tie_break
        self.seed = seed
        self._formula = get_formula(formula)

    def score(self, spectrum: Spectrum, statement_id: int) -> float:
        """Compute the suspiciousness of one statement."""
        failed, passed = spectrum.counts(statement_id)
        return self._formula(failed, passed, spectrum.total_failed, spectrum.total_passed)

    def rank(self, program: Program, spectrum: Spectrum) -> list[RankedStatement]:
        """Score every statement of a program and order by suspiciousness.

        Statements no test executed are included with score 0.

        Args:
            program: The program whose statements are ranked.
            spectrum: The collected spectrum.

        Returns:
            Statements sorted by descending score, ties ordered by the tie-break policy.
        """
        ranked = []
        for statement in program.statements:
            failed, passed = spectrum.counts(statement.statement_id)
            ranked.append(
                RankedStatement(
                    statement=statement,
                    score=self.score(spectrum, statement.statement_id),
                    failed=failed,
                    passed=passed,
                )
            )

        ranked.sort(key=lambda r: (-r.score, r.statement.line_number, r.statement_id))
        if self.tie_break == 'line':
            return ranked

        rng = random.Random(self.seed)  # noqa: S311
        ordered: list[RankedStatement] = []
        for _, group in groupby(ranked, key=lambda r: r.score):
            ordered.extend(self._break_tie(list(group), rng))
        return ordered

    def _break_tie(self, group: list[RankedStatement], rng: random.Random) -> list[RankedStatement]:
        if len(group) == 1:
            return group
        if self.tie_break == 'uniform':
            rng.shuffle(group)
            return group
        # Efraimidis-Spirakis: sorting by u ** (1 / w) samples a weighted permutation.
        keys = {r.statement_id: rng.random() ** (1 / (r.failed + 1)) for r in group}
        return sorted(group, key=lambda r: keys[r.statement_id], reverse=True)
