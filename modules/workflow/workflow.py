from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from modules.model_factory import Domain, FittedModel, ModelAdapter, ModelFactory, ModelSpec
from modules.recipe import FittedRecipe, Recipe
from utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class Workflow:
    """
    A Recipe bound to a ModelSpec; the unit submitted to tuning.

    `finalize` returns a new Workflow with every tunable hyperparameter bound,
    the original is never modified.
    """
    recipe: Recipe
    model: ModelSpec

    def __post_init__(self):
        if not isinstance(self.recipe, Recipe):
            raise ConfigurationError("Workflow requires a Recipe.", field='workflow.recipe')
        if not isinstance(self.model, ModelSpec):
            raise ConfigurationError("Workflow requires a ModelSpec.", field='workflow.model')

    @property
    def outcome(self) -> str:
        return self.recipe.outcome

    def tunable(self) -> Dict[str, Domain]:
        return self.model.tunable()

    @property
    def is_final(self) -> bool:
        return self.model.is_final

    def finalize(self, values: Mapping[str, Any]) -> "Workflow":
        return Workflow(self.recipe, self.model.finalize(values))

    def fit(self, rows: pd.DataFrame, adapter: Optional[ModelAdapter] = None) -> "FittedWorkflow":
        """
        Fit the recipe and then the model on `rows`.

        Raises:
            ConfigurationError: If tunable parameters are still unbound.
            StepFitError / ModelFitError: Propagated from the recipe or adapter.
        """
        if not self.is_final:
            raise ConfigurationError(
                f"Workflow has unbound tunable parameters {sorted(self.tunable())}; finalize it first.",
                field='workflow.model.params'
            )
        adapter = adapter or ModelFactory.create(self.model.family)

        fitted_recipe = self.recipe.fit(rows)
        X = fitted_recipe.predictors(rows)
        y = rows[self.outcome].to_numpy()
        model = adapter.fit(X, y, self.model.fixed(), self.model.mode, self.model.engine_args)
        return FittedWorkflow(self, fitted_recipe, model, rows.index.to_numpy(), list(X.columns))


class FittedWorkflow:
    """Trained recipe + model pair with a predict interface."""

    def __init__(self, workflow: Workflow, recipe: FittedRecipe, model: FittedModel,
                 training_index: np.ndarray, feature_names: List[str]):
        self.workflow = workflow
        self.recipe = recipe
        self.model = model
        # Row labels the recipe and model were fit on
        self.training_index = np.asarray(training_index)
        self.feature_names = feature_names

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        X = self.recipe.predictors(rows).reindex(columns=self.feature_names)
        return self.model.predict(X)

    def __repr__(self) -> str:
        return f"FittedWorkflow({self.model!r}, n_train={len(self.training_index)})"
