import numpy as np
import pandas as pd
import pytest
from sklearn.dummy import DummyRegressor
from sklearn.linear_model import ElasticNet

from modules.model_factory import ContinuousDomain, FittedModel, ModelAdapter, ModelFactory, ModelSpec
from utils import constants
from utils.exceptions import ConfigurationError, ModelFitError


@pytest.fixture
def regression_data():
    rng = np.random.RandomState(0)
    X = pd.DataFrame({'a': rng.normal(size=50), 'b': rng.normal(size=50)})
    y = 2 * X['a'].to_numpy() - X['b'].to_numpy()
    return X, y


def test_elastic_net_translation(regression_data):
    X, y = regression_data
    fitted = ModelFactory.create('linear_reg').fit(X, y, {'penalty': 0.1, 'mixture': 0.5})

    assert isinstance(fitted, FittedModel)
    assert isinstance(fitted.estimator, ElasticNet)
    assert fitted.estimator.alpha == 0.1
    assert fitted.estimator.l1_ratio == 0.5
    assert fitted.estimator.max_iter == 10000
    assert fitted.predict(X).shape == (50,)


def test_random_forest_mtry_is_clipped(regression_data):
    X, y = regression_data
    fitted = ModelFactory.create('rand_forest').fit(X, y, {'mtry': 10, 'trees': 5}, engine_args={'random_state': 1})
    assert fitted.estimator.max_features == 2
    assert fitted.estimator.n_estimators == 5
    assert fitted.estimator.random_state == 1


def test_null_model_ignores_params_and_unknown_engine_args(regression_data):
    X, y = regression_data
    fitted = ModelFactory.create('null_model').fit(X, y, {'penalty': 1.0}, engine_args={'random_state': 3})
    assert isinstance(fitted.estimator, DummyRegressor)
    assert np.allclose(fitted.predict(X), y.mean())


def test_unsupported_mode(regression_data):
    X, y = regression_data
    with pytest.raises(ConfigurationError) as info:
        ModelFactory.create('linear_reg').fit(X, y, {}, mode=constants.CLASSIFICATION)
    assert info.value.field == 'workflow.model.mode'


def test_fit_failure_is_model_fit_error(regression_data):
    X, y = regression_data
    y = y.copy()
    y[0] = np.nan
    with pytest.raises(ModelFitError):
        ModelFactory.create('decision_tree').fit(X, y, {'tree_depth': 3})


def test_unknown_family():
    with pytest.raises(ConfigurationError, match="Unknown model family") as info:
        ModelFactory.create('SuperAdvancedAIModel')
    assert info.value.field == 'workflow.model.family'


def test_register_custom_adapter():
    class MeanAdapter(ModelAdapter):
        family = 'mean_only'
        modes = (constants.REGRESSION,)

        def fit(self, X, y, params, mode=constants.REGRESSION, engine_args=None):
            return FittedModel(DummyRegressor().fit(X, y), self.family, params)

    ModelFactory.register(MeanAdapter())
    try:
        assert 'mean_only' in ModelFactory.get_available_models()
        assert ModelFactory.create('mean_only').family == 'mean_only'
    finally:
        ModelFactory.unregister('mean_only')
    assert 'mean_only' not in ModelFactory.get_available_models()


def test_get_available_models():
    models = ModelFactory.get_available_models()
    for family in ('null_model', 'linear_reg', 'logistic_reg', 'decision_tree', 'rand_forest'):
        assert family in models


class TestModelSpec:

    def test_tunable_and_fixed(self):
        spec = ModelSpec('linear_reg', {'penalty': ContinuousDomain(-4, 0, 'log10'), 'mixture': 0.5})
        assert list(spec.tunable()) == ['penalty']
        assert spec.fixed() == {'mixture': 0.5}
        assert not spec.is_final

    def test_finalize(self):
        spec = ModelSpec('linear_reg', {'penalty': ContinuousDomain(-4, 0, 'log10'), 'mixture': 0.5})
        final = spec.finalize({'penalty': 0.01})
        assert final.is_final
        assert final.params == {'penalty': 0.01, 'mixture': 0.5}
        # Original left untouched
        assert not spec.is_final

    @pytest.mark.parametrize("values", [
        {'penalty': 0.01, 'bogus': 1},
        {},
        {'penalty': 10.0},
    ])
    def test_finalize_rejects_bad_values(self, values):
        spec = ModelSpec('linear_reg', {'penalty': ContinuousDomain(-4, 0, 'log10')})
        with pytest.raises(ConfigurationError):
            spec.finalize(values)

    def test_unknown_mode(self):
        with pytest.raises(ConfigurationError):
            ModelSpec('linear_reg', mode='survival')
