"""Root pytest configuration for pymend.

Size markers come from where a test lives: ``tests/small`` and
``tests/medium`` mark their tests, and doctests collected from ``src`` and
``examples`` count as small. Fixtures live in tests/conftest.py.
"""

from __future__ import annotations

from pathlib import Path

import pytest


SIZES = ('small', 'medium', 'large')
DOCTEST_DIRECTORIES = ('src', 'examples')


def _size_of(item: pytest.Item) -> str | None:
    # Innermost directory wins
    for part in reversed(Path(str(item.path)).parts):
        if part in SIZES:
            return part
        if part in DOCTEST_DIRECTORIES:
            return 'small'
    return None


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config,  # noqa: ARG001
    items: list[pytest.Item],
) -> None:
    """Add a size marker to every test that does not declare one."""
    for item in items:
        if any(marker.name in SIZES for marker in item.iter_markers()):
            continue
        size = _size_of(item)
        if size is not None:
            item.add_marker(getattr(pytest.mark, size))
