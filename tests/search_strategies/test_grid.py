import pytest

from modules.evaluation_engine import MetricRegistry
from modules.model_factory import ContinuousDomain, DiscreteDomain, IntegerDomain
from modules.search_strategies import GridSearch
from modules.tuning_engine import Candidate, TuningHistory
from utils.exceptions import ConfigurationError


@pytest.fixture
def params():
    return {
        'a': ContinuousDomain(0.0, 1.0),
        'b': IntegerDomain(1, 10),
        'kind': DiscreteDomain(('x', 'y')),
    }


@pytest.fixture
def history():
    return TuningHistory(MetricRegistry.get('rmse'))


def test_cartesian_product_size(params, history):
    candidates = GridSearch(params, levels=3).propose(history)
    # Discrete dimensions always use every value
    assert len(candidates) == 3 * 3 * 2
    assert [c.index for c in candidates] == list(range(18))
    assert len({c.key for c in candidates}) == 18


def test_per_parameter_levels(params, history):
    candidates = GridSearch(params, levels={'a': 4, 'b': 2}).propose(history)
    assert len(candidates) == 4 * 2 * 2
    assert {c.values['b'] for c in candidates} == {1, 10}


def test_proposes_a_single_round(params, history):
    search = GridSearch(params, levels=2)
    assert not search.is_done(history)
    assert search.propose(history)
    assert search.is_done(history)
    assert search.propose(history) == []


def test_explicit_grid(params, history):
    grid = [{'a': 0.1, 'b': 2, 'kind': 'x'}, {'a': 0.9, 'b': 3, 'kind': 'y'}]
    candidates = GridSearch(params, grid=grid).propose(history)
    assert [c.values for c in candidates] == grid


@pytest.mark.parametrize("grid, field", [
    ([{'a': 0.1}], 'search.grid'),
    ([{'a': 0.1, 'b': 2, 'kind': 'x', 'extra': 1}], 'search.grid'),
    ([{'a': 5.0, 'b': 2, 'kind': 'x'}], 'a'),
    ([{'a': 0.5, 'b': 2, 'kind': 'z'}], 'kind'),
])
def test_invalid_grid(params, history, grid, field):
    with pytest.raises(ConfigurationError) as info:
        GridSearch(params, grid=grid).propose(history)
    assert info.value.field == field


def test_skips_configurations_already_in_history(history):
    history.add_candidates([Candidate(0, {'a': 0.0})])
    candidates = GridSearch({'a': ContinuousDomain(0.0, 1.0)}, levels=3).propose(history)
    assert [c.values['a'] for c in candidates] == [0.5, 1.0]
    assert [c.index for c in candidates] == [1, 2]


def test_no_tunable_parameters(history):
    candidates = GridSearch({}).propose(history)
    assert len(candidates) == 1
    assert candidates[0].values == {}
