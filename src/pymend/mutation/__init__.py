"""Ingredients, mutation operations, patch generation and application."""

from __future__ import annotations

from pymend.mutation.applier import apply_patch
from pymend.mutation.generator import MutationGenerator
from pymend.mutation.ingredients import Ingredient, IngredientKind, IngredientPool, build_ingredient_pool
from pymend.mutation.operations import Add, MutationOperation, OperationKind, Patch, Remove, Replace


__all__ = [
    'Add',
    'Ingredient',
    'IngredientKind',
    'IngredientPool',
    'MutationGenerator',
    'MutationOperation',
    'OperationKind',
    'Patch',
    'Remove',
    'Replace',
    'apply_patch',
    'build_ingredient_pool',
]
