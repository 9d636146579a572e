"""Ordered operator sets for the mutation generator.

An OperatorRegistry is the list of operator classes a repair may use, in
the order the generator runs them on each target. ``RepairConfig.operators``
narrows it with ``select``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
import warnings


if TYPE_CHECKING:
    from collections.abc import Iterable

    from pymend.operators.protocol import RepairOperator


class OperatorRegistry:
    """Operator classes keyed by name, in generation order.

    Example:
        >>> from pymend.operators import AddOperator, RemoveOperator
        >>> registry = OperatorRegistry([RemoveOperator, AddOperator])
        >>> registry.available()
        ['remove', 'add']
        >>> [op.name for op in registry.select(['add'])]
        ['add']
    """

    def __init__(self, operator_classes: Iterable[type[RepairOperator]] = ()) -> None:
        """Create a registry holding the given operator classes in order."""
        self._operators: dict[str, type[RepairOperator]] = {}
        for operator_class in operator_classes:
            self.register(operator_class)

    def __contains__(self, name: object) -> bool:
        return name in self._operators

    def register(self, operator_class: type[RepairOperator]) -> None:
        """Append an operator class under its ``name``.

        Raises:
            ValueError: If an operator with the same name is already registered.
        """
        name = operator_class().name
        if name in self._operators:
            msg = f'Operator {name!r} is already registered'
            raise ValueError(msg)
        self._operators[name] = operator_class

    def select(self, enabled: Iterable[str] | None = None) -> list[RepairOperator]:
        """Instantiate the operators a repair runs.

        Args:
            enabled: Operator names in the order the generator should run them.
                None selects every registered operator in registration order.
                Unknown names are ignored with a warning and repeated names
                are used once.

        Returns:
            Fresh operator instances.
        """
        if enabled is None:
            return [operator_class() for operator_class in self._operators.values()]

        selected: list[RepairOperator] = []
        seen: set[str] = set()
        for name in enabled:
            if name in seen:
                continue
            seen.add(name)
            if name not in self._operators:
                warnings.warn(f"Unknown operator '{name}' requested, ignoring", UserWarning, stacklevel=2)
                continue
            selected.append(self._operators[name]())
        return selected

    def available(self) -> list[str]:
        """Return the registered operator names in generation order."""
        return list(self._operators)


def default_registry() -> OperatorRegistry:
    """Return a registry holding the built-in operators in generation order."""
    from pymend.operators.add import AddOperator
    from pymend.operators.remove import RemoveOperator
    from pymend.operators.replace import ReplaceOperator

    return OperatorRegistry([ReplaceOperator, RemoveOperator, AddOperator])
