import pytest

from modules.model_factory import ContinuousDomain, DiscreteDomain, IntegerDomain, domain_from_config
from utils.exceptions import ConfigurationError


def test_continuous_levels_on_transformed_scale():
    domain = ContinuousDomain(-4, -1, 'log10')
    assert domain.levels(4) == pytest.approx([1e-4, 1e-3, 1e-2, 1e-1])
    assert domain.levels(1) == pytest.approx([10 ** -2.5])


def test_continuous_unit_mapping():
    domain = ContinuousDomain(-10, 0, 'log10')
    assert domain.from_unit(0.0) == pytest.approx(1e-10)
    assert domain.from_unit(1.0) == pytest.approx(1.0)
    # Clipped to the interval
    assert domain.from_unit(1.5) == pytest.approx(1.0)
    for value in (1e-8, 1e-3, 0.5):
        assert domain.from_unit(domain.to_unit(value)) == pytest.approx(value)


def test_continuous_contains():
    domain = ContinuousDomain(0.0, 1.0)
    assert domain.contains(0.0) and domain.contains(1.0) and domain.contains(0.3)
    assert not domain.contains(1.1)
    assert not domain.contains("abc")


def test_integer_levels_are_distinct():
    assert IntegerDomain(1, 3).levels(5) == [1, 2, 3]
    assert IntegerDomain(1, 10).levels(2) == [1, 10]


def test_integer_unit_round_trip_covers_every_value():
    domain = IntegerDomain(2, 7)
    assert [domain.from_unit(domain.to_unit(v)) for v in range(2, 8)] == list(range(2, 8))
    assert domain.from_unit(1.0) == 7
    assert domain.contains(4) and not domain.contains(4.5) and not domain.contains(8)


def test_discrete_domain_never_subsamples():
    domain = DiscreteDomain(('gini', 'entropy', 'log_loss'))
    assert domain.levels(1) == ['gini', 'entropy', 'log_loss']
    assert domain.from_unit(0.99) == 'log_loss'
    assert domain.numeric is False


def test_validate_names_the_parameter():
    with pytest.raises(ConfigurationError) as info:
        IntegerDomain(1, 5).validate('min_n', 9)
    assert info.value.field == 'min_n'


@pytest.mark.parametrize("spec, expected", [
    ({"type": "continuous", "range": [-10, 0], "transform": "log10"}, ContinuousDomain(-10.0, 0.0, 'log10')),
    ({"type": "integer", "range": [1, 15]}, IntegerDomain(1, 15)),
    ({"type": "discrete", "values": ["a", "b"]}, DiscreteDomain(("a", "b"))),
])
def test_domain_from_config(spec, expected):
    assert domain_from_config('p', spec) == expected


@pytest.mark.parametrize("spec", [
    {"type": "continuous"},
    {"type": "continuous", "range": [1, 0]},
    {"type": "continuous", "range": [0, 1], "transform": "sqrt"},
    {"type": "weird", "range": [0, 1]},
])
def test_invalid_domain_config(spec):
    with pytest.raises(ConfigurationError) as info:
        domain_from_config('penalty', spec)
    assert info.value.field == 'workflow.model.params.penalty'
