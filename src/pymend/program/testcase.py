"""Test cases driving fault localization and patch validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pymend.errors import EngineFault


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


class _Missing(Enum):
    MISSING = 'missing'


MISSING = _Missing.MISSING


@dataclass(frozen=True)
class TestCase:
    """One test: inputs for an entry point plus an executable assertion.

    Exactly one of ``expected`` and ``assertion`` must be given. With
    ``expected`` the result must compare equal; with ``assertion`` the callable
    receives the result and the test passes when it returns a truthy value
    (raising ``AssertionError`` counts as a failure).

    Attributes:
        test_id: Unique identifier within the suite.
        entry_point: Dotted name resolved in the executed module (``'sum'``, ``'Cart.total'``).
        args: Positional arguments passed to the entry point.
        kwargs: Keyword arguments passed to the entry point.
        expected: Expected return value.
        assertion: Callable deciding whether the result is acceptable.

    Example:
        >>> case = TestCase('test_1', 'sum', args=(1, 2), expected=3)
        >>> case.check(3)
        True
    """

    __test__ = False

    test_id: str
    entry_point: str
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    expected: Any = MISSING
    assertion: Callable[[Any], object] | None = None

    def __post_init__(self) -> None:
        """Validate the test case.

        Raises:
            EngineFault: If the case has no id, no entry point, or not exactly one assertion.
        """
        if not self.test_id:
            msg = 'Test case must have a non-empty test_id'
            raise EngineFault(msg)
        if not self.entry_point:
            msg = f'Test case {self.test_id!r} must name an entry point'
            raise EngineFault(msg)
        has_expected = self.expected is not MISSING
        if has_expected == (self.assertion is not None):
            msg = f'Test case {self.test_id!r} needs exactly one of expected or assertion'
            raise EngineFault(msg)

    def check(self, result: Any) -> bool:
        """Return True if a result satisfies this test's assertion."""
        if self.assertion is None:
            return bool(result == self.expected)
        try:
            return bool(self.assertion(result))
        except AssertionError:
            return False
