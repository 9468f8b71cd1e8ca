from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from modules.recipe.steps import Step
from utils.exceptions import StepFitError, TuningException


class Recipe:
    """
    Ordered list of preprocessing steps for one outcome column.

    A Recipe is a declaration only. Calling `fit` on a set of rows produces a
    FittedRecipe whose parameters were learned from those rows and nothing
    else, which is what keeps the assessment rows of a fold out of the
    preprocessing of its analysis rows.
    """

    def __init__(self, outcome: str, steps: Sequence[Step] = ()):
        self.outcome = outcome
        self.steps: Tuple[Step, ...] = tuple(steps)

    def add_step(self, step: Step) -> "Recipe":
        return Recipe(self.outcome, self.steps + (step,))

    def fit(self, rows: pd.DataFrame) -> "FittedRecipe":
        """
        Fit every step in declared order, each on the previous step's output.

        Raises:
            StepFitError: If `rows` is empty or any step cannot be fit.
        """
        if rows.empty:
            first = self.steps[0].name if self.steps else 'recipe'
            raise StepFitError("Cannot fit a recipe on zero rows.", step=first)

        current = rows
        fitted: List[Tuple[Step, Dict[str, Any]]] = []
        for step in self.steps:
            try:
                params = step.fit(current, self.outcome)
                current = step.apply(current, params)
            except TuningException:
                raise
            except Exception as e:
                raise StepFitError(f"Step '{step.name}' failed: {e}", step=step.name) from e
            fitted.append((step, params))

        return FittedRecipe(self, fitted, len(rows))

    def __repr__(self) -> str:
        return f"Recipe(outcome={self.outcome!r}, steps={[s.name for s in self.steps]})"


class FittedRecipe:
    """A Recipe with learned parameters; applies them to any rows."""

    def __init__(self, recipe: Recipe, fitted: List[Tuple[Step, Dict[str, Any]]], n_fit_rows: int):
        self.recipe = recipe
        self.fitted = fitted
        self.n_fit_rows = n_fit_rows

    @property
    def outcome(self) -> str:
        return self.recipe.outcome

    def apply(self, rows: pd.DataFrame) -> pd.DataFrame:
        for step, params in self.fitted:
            rows = step.apply(rows, params)
        return rows

    def predictors(self, rows: pd.DataFrame) -> pd.DataFrame:
        """Apply the recipe and drop the outcome column, if present."""
        baked = self.apply(rows)
        return baked.drop(columns=[self.outcome], errors='ignore')

    def learned_parameters(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [(step.name, step.describe(params)) for step, params in self.fitted]
