import logging
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from modules.data_manager import Dataset
from modules.model_factory import ContinuousDomain, FittedModel, ModelAdapter, ModelFactory, ModelSpec
from modules.recipe import Recipe
from modules.split_engine import SplitEngine
from modules.workflow import Workflow
from utils import constants
from utils.exceptions import ModelFitError


class ConstantPredictor:
    def __init__(self, value):
        self.value = float(value)

    def predict(self, X):
        return np.full(len(X), self.value)


class ConstantAdapter(ModelAdapter):
    """
    Predicts the hyperparameter `c` for every row, so on an outcome that is
    always 3 the RMSE of a candidate is exactly |c - 3|.

    Fixed parameters drive failures: values of `c` below `fail_below` raise
    ModelFitError, and `c == explode_at` raises a plain RuntimeError.
    """
    family = 'constant'
    modes = (constants.REGRESSION,)

    def fit(self, X, y, params, mode=constants.REGRESSION, engine_args=None):
        c = params['c']
        if c < params.get('fail_below', -np.inf):
            raise ModelFitError(f"c={c} is below the failure threshold")
        if params.get('explode_at') is not None and c == params['explode_at']:
            raise RuntimeError("adapter exploded")
        return FittedModel(ConstantPredictor(c), self.family, params)


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def constant_adapter():
    adapter = ConstantAdapter()
    ModelFactory.register(adapter)
    yield adapter
    ModelFactory.unregister(adapter.family)


@pytest.fixture
def constant_dataset():
    rng = np.random.RandomState(0)
    return Dataset(pd.DataFrame({'x': rng.normal(size=50), 'y': np.full(50, 3.0)}), 'y')


@pytest.fixture
def constant_plan(constant_dataset, mock_logger):
    engine = SplitEngine({'splitting': {'seed': 11}}, mock_logger)
    return engine.resample(constant_dataset, scheme=constants.KFOLD, folds=5, repeats=2)


@pytest.fixture
def constant_workflow():
    """Factory for workflows tuning `c` over [0, 10] with the constant adapter."""
    def build(**fixed):
        params = {'c': ContinuousDomain(0.0, 10.0), **fixed}
        return Workflow(Recipe('y', []), ModelSpec('constant', params))
    return build
