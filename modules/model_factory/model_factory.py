import abc
import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
from sklearn.dummy import DummyClassifier, DummyRegressor
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.linear_model import ElasticNet, LogisticRegression
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from utils import constants
from utils.exceptions import ConfigurationError, ModelFitError


class FittedModel:
    """A trained estimator behind a uniform predict interface."""

    def __init__(self, estimator: Any, family: str, params: Mapping[str, Any]):
        self.estimator = estimator
        self.family = family
        self.params = dict(params)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return np.asarray(self.estimator.predict(X))

    def __repr__(self) -> str:
        return f"FittedModel({self.family}, params={self.params})"


class ModelAdapter(abc.ABC):
    """
    Capability interface for one model family.

    The tuning engine only ever calls `fit`; it never inspects the estimator.
    """
    family: str = ""
    modes: tuple = ()

    @abc.abstractmethod
    def fit(self, X: pd.DataFrame, y: np.ndarray, params: Mapping[str, Any],
            mode: str = constants.REGRESSION, engine_args: Optional[Mapping[str, Any]] = None) -> FittedModel:
        pass


class SklearnAdapter(ModelAdapter):
    """
    Adapter for scikit-learn estimators.

    `translate` maps the family's hyperparameter names (e.g. `penalty`,
    `mixture`) to estimator keyword arguments; it receives the training
    features so data-dependent bounds (such as `mtry`) can be clipped.
    """

    def __init__(self, family: str, estimators: Dict[str, type],
                 translate: Callable[[Mapping[str, Any], pd.DataFrame], Dict[str, Any]] = None,
                 defaults: Optional[Dict[str, Any]] = None):
        self.family = family
        self.estimators = estimators
        self.modes = tuple(estimators)
        self.translate = translate or _passthrough_args
        self.defaults = defaults or {}

    def build(self, params: Mapping[str, Any], mode: str, X: pd.DataFrame,
              engine_args: Optional[Mapping[str, Any]] = None) -> Any:
        if mode not in self.estimators:
            raise ConfigurationError(
                f"Model family '{self.family}' does not support mode '{mode}'. Supported: {list(self.modes)}",
                field='workflow.model.mode'
            )
        model_class = self.estimators[mode]
        kwargs = {**self.defaults, **(engine_args or {}), **self.translate(params, X)}
        return model_class(**_filter_params(model_class, kwargs))

    def fit(self, X, y, params, mode=constants.REGRESSION, engine_args=None) -> FittedModel:
        estimator = self.build(params, mode, X, engine_args)
        try:
            estimator.fit(X, y)
        except Exception as e:
            raise ModelFitError(f"Failed to fit {self.family} with {dict(params)}: {e}") from e
        return FittedModel(estimator, self.family, params)


def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove parameters from `params` that are not accepted by `model_class` constructor.
    """
    sig = inspect.signature(model_class.__init__)

    valid_keys = [
        p.name for p in sig.parameters.values()
        if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    ]

    # Always allow **kwargs if the model supports it
    has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

    if has_kwargs:
        return params

    return {k: v for k, v in params.items() if k in valid_keys}


# --- Hyperparameter name translations ---

def _passthrough_args(params, X):
    return dict(params)


def _no_args(params, X):
    return {}


def _elastic_net_args(params, X):
    args = {}
    if 'penalty' in params:
        args['alpha'] = float(params['penalty'])
    if 'mixture' in params:
        args['l1_ratio'] = float(params['mixture'])
    return args


def _logistic_args(params, X):
    args = {}
    if 'penalty' in params:
        args['C'] = 1.0 / max(float(params['penalty']), 1e-12)
    if 'mixture' in params:
        args['penalty'] = 'elasticnet'
        args['solver'] = 'saga'
        args['l1_ratio'] = float(params['mixture'])
    return args


def _tree_args(params, X):
    args = {}
    if 'cost_complexity' in params:
        args['ccp_alpha'] = float(params['cost_complexity'])
    if 'tree_depth' in params:
        args['max_depth'] = int(params['tree_depth'])
    if 'min_n' in params:
        args['min_samples_split'] = max(int(params['min_n']), 2)
    return args


def _forest_args(params, X):
    args = {}
    if 'mtry' in params:
        # Never ask for more split candidates than there are predictors
        args['max_features'] = max(1, min(int(params['mtry']), X.shape[1]))
    if 'trees' in params:
        args['n_estimators'] = int(params['trees'])
    if 'min_n' in params:
        args['min_samples_split'] = max(int(params['min_n']), 2)
    return args


class ModelFactory:
    """
    Registry of model adapters keyed by family name.

    Built-in families cover the decision tree, elastic net and random forest
    models used across the analyses, plus a constant `null_model` baseline.
    Callers may register additional adapters.
    """

    ADAPTERS: Dict[str, ModelAdapter] = {
        'null_model': SklearnAdapter(
            'null_model',
            {constants.REGRESSION: DummyRegressor, constants.CLASSIFICATION: DummyClassifier},
            translate=_no_args
        ),
        'linear_reg': SklearnAdapter(
            'linear_reg',
            {constants.REGRESSION: ElasticNet},
            translate=_elastic_net_args,
            defaults={'max_iter': 10000}
        ),
        'logistic_reg': SklearnAdapter(
            'logistic_reg',
            {constants.CLASSIFICATION: LogisticRegression},
            translate=_logistic_args,
            defaults={'max_iter': 5000}
        ),
        'decision_tree': SklearnAdapter(
            'decision_tree',
            {constants.REGRESSION: DecisionTreeRegressor, constants.CLASSIFICATION: DecisionTreeClassifier},
            translate=_tree_args
        ),
        'rand_forest': SklearnAdapter(
            'rand_forest',
            {constants.REGRESSION: RandomForestRegressor, constants.CLASSIFICATION: RandomForestClassifier},
            translate=_forest_args,
            defaults={'n_estimators': 500}
        ),
    }

    @classmethod
    def create(cls, family: str) -> ModelAdapter:
        """Return the adapter registered for `family`."""
        if family not in cls.ADAPTERS:
            raise ConfigurationError(
                f"Unknown model family: {family}. Available: {cls.get_available_models()}",
                field='workflow.model.family'
            )
        return cls.ADAPTERS[family]

    @classmethod
    def register(cls, adapter: ModelAdapter) -> None:
        cls.ADAPTERS[adapter.family] = adapter

    @classmethod
    def unregister(cls, family: str) -> None:
        cls.ADAPTERS.pop(family, None)

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported model families."""
        return list(cls.ADAPTERS.keys())
