"""
Recipe Module
=============

Responsibility:
- Declare preprocessing as an ordered list of steps.
- Learn step parameters from analysis rows only and apply them elsewhere.
"""

from .steps import (
    Step, ImputeStep, ZeroVarianceStep, NormalizeStep, DummyStep,
    OrdinalScoreStep, TextTfStep, FunctionStep, build_step, STEP_TYPES
)
from .recipe import Recipe, FittedRecipe

__all__ = [
    'Step', 'ImputeStep', 'ZeroVarianceStep', 'NormalizeStep', 'DummyStep',
    'OrdinalScoreStep', 'TextTfStep', 'FunctionStep', 'build_step', 'STEP_TYPES',
    'Recipe', 'FittedRecipe'
]
