"""Configuration loading for pymend.

This module defines the repair configuration, reads overrides from the
pyproject.toml ``[tool.pymend]`` section and provides sensible defaults when
configuration is absent.

Example:
    >>> config = RepairConfig(formula='ochiai', max_workers=4)
    >>> config.search_policy
    'first-found'
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import tomllib
from typing import TYPE_CHECKING, Any, Literal
import warnings

from pymend.localization.formulas import available_formulas
from pymend.localization.ranker import VALID_TIE_BREAKS
from pymend.mutation.ingredients import VALID_SCOPES


if TYPE_CHECKING:
    from pathlib import Path

    from pymend.localization.ranker import TieBreak
    from pymend.mutation.ingredients import IngredientScope


SearchPolicy = Literal['first-found', 'exhaustive']
VALID_SEARCH_POLICIES: frozenset[str] = frozenset(('first-found', 'exhaustive'))


@dataclass(frozen=True)
class RepairConfig:
    """Configuration for a repair run.

    Attributes:
        formula: Suspiciousness formula name ('tarantula', 'ochiai', 'jaccard').
        ingredient_scope: Where ingredients come from ('file', 'package', 'codebase').
        search_policy: 'first-found' stops at the first plausible patch,
            'exhaustive' validates every patch.
        max_workers: Number of validation threads. 1 runs sequentially.
        timeout: Per-run timeout in seconds, or None for no limit.
        tie_break: Ordering of equally suspicious statements ('line', 'uniform', 'weighted').
        seed: Seed for the randomized tie-break policies.
        operators: Enabled operator names in order. None enables all.
        statement_ingredients: Also harvest simple statements as ingredients.
        max_patches: Stop after this many patches were validated. None is unbounded.
    """

    formula: str = 'tarantula'
    ingredient_scope: IngredientScope = 'file'
    search_policy: SearchPolicy = 'first-found'
    max_workers: int = 1
    timeout: float | None = 5.0
    tie_break: TieBreak = 'line'
    seed: int | None = None
    operators: tuple[str, ...] | None = None
    statement_ingredients: bool = False
    max_patches: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if self.formula not in available_formulas():
            msg = f'Invalid formula: {self.formula!r}. Valid formulas are: {available_formulas()}'
            raise ValueError(msg)

        if self.ingredient_scope not in VALID_SCOPES:
            msg = f'Invalid ingredient scope: {self.ingredient_scope!r}. Valid scopes are: {sorted(VALID_SCOPES)}'
            raise ValueError(msg)

        if self.search_policy not in VALID_SEARCH_POLICIES:
            msg = (
                f'Invalid search policy: {self.search_policy!r}. '
                f'Valid policies are: {sorted(VALID_SEARCH_POLICIES)}'
            )
            raise ValueError(msg)

        if self.tie_break not in VALID_TIE_BREAKS:
            msg = f'Invalid tie break: {self.tie_break!r}. Valid policies are: {sorted(VALID_TIE_BREAKS)}'
            raise ValueError(msg)

        if self.max_workers <= 0:
            msg = f'max_workers must be positive, got {self.max_workers}'
            raise ValueError(msg)

        if self.timeout is not None and self.timeout <= 0:
            msg = f'timeout must be positive, got {self.timeout}'
            raise ValueError(msg)

        if self.max_patches is not None and self.max_patches <= 0:
            msg = f'max_patches must be positive, got {self.max_patches}'
            raise ValueError(msg)

    @property
    def stops_at_first(self) -> bool:
        """Return True for the first-found search policy."""
        return self.search_policy == 'first-found'


_FIELD_NAMES = frozenset(f.name for f in fields(RepairConfig))


def _normalize(tool_config: dict[str, Any]) -> dict[str, Any]:
    """Map ``dashed-keys`` to field names, warning about unknown keys."""
    values: dict[str, Any] = {}
    for key, value in tool_config.items():
        name = key.replace('-', '_')
        if name not in _FIELD_NAMES:
            warnings.warn(f"Unknown pymend configuration key '{key}', ignoring", UserWarning, stacklevel=3)
            continue
        values[name] = tuple(value) if name == 'operators' and value is not None else value
    return values


def load_config(rootdir: Path) -> RepairConfig:
    """Load configuration from pyproject.toml.

    Reads the [tool.pymend] section from pyproject.toml in the given
    directory. Returns default configuration if the file or section does not
    exist.

    Args:
        rootdir: Directory containing pyproject.toml.

    Returns:
        RepairConfig with values from pyproject.toml or defaults.

    Raises:
        ValueError: If a configured value is invalid.
    """
    pyproject_path = rootdir / 'pyproject.toml'

    if not pyproject_path.exists():
        return RepairConfig()

    with pyproject_path.open('rb') as f:
        data = tomllib.load(f)

    tool_config = data.get('tool', {}).get('pymend', {})
    return RepairConfig(**_normalize(tool_config))


def merge_configs(file_config: RepairConfig, **overrides: Any) -> RepairConfig:
    """Merge explicit settings with file configuration.

    Explicit values take precedence over pyproject.toml configuration. None
    and empty strings are treated as not provided. ``operators`` may be given
    as a comma-separated string.

    Args:
        file_config: Configuration loaded from pyproject.toml.
        **overrides: RepairConfig field values.

    Returns:
        RepairConfig with explicit values overriding file config where provided.

    Raises:
        TypeError: If an override names an unknown field.
        ValueError: If a resulting value is invalid.
    """
    changes: dict[str, Any] = {}
    for name, value in overrides.items():
        if name not in _FIELD_NAMES:
            msg = f'Unknown configuration field: {name!r}'
            raise TypeError(msg)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if name == 'operators' and isinstance(value, str):
            value = tuple(op.strip() for op in value.split(',') if op.strip())
        elif name == 'operators':
            value = tuple(value)
        changes[name] = value
    return replace(file_config, **changes)
