import logging
from unittest.mock import MagicMock

import pytest

from modules.evaluation_engine import MetricRegistry
from modules.selector import Selector, select_best, select_by_one_std_err
from modules.tuning_engine import Candidate, Leaderboard, Summary
from utils.exceptions import ConfigurationError, EmptyLeaderboardError


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


def _board(metric_name, rows):
    """rows: (penalty, mean, std_err) per candidate, in construction order."""
    metric = MetricRegistry.get(metric_name)
    entries = [
        (Candidate(i, {'penalty': penalty}), Summary(metric_name, mean, std_err, 10))
        for i, (penalty, mean, std_err) in enumerate(rows)
    ]
    return Leaderboard(metric, entries)


@pytest.fixture
def rmse_board():
    return _board('rmse', [
        (0.001, 1.00, 0.10),
        (0.01, 1.05, 0.10),
        (0.1, 1.08, 0.10),
        (1.0, 1.50, 0.10),
    ])


def test_select_best(rmse_board):
    assert select_best(rmse_board).index == 0
    assert [c.index for c in select_best(rmse_board, n=2)] == [0, 1]


def test_select_best_empty():
    failed = [(Candidate(0, {'penalty': 1.0}), Summary('rmse', float('nan'), float('nan'), 0, 10))]
    with pytest.raises(EmptyLeaderboardError):
        select_best(Leaderboard(MetricRegistry.get('rmse'), [], failed=failed))


def test_one_std_err_prefers_simpler_model(rmse_board):
    # Bound is 1.00 + 0.10; larger penalties are simpler
    chosen = select_by_one_std_err(rmse_board, [('penalty', False)])
    assert chosen.values == {'penalty': 0.1}


def test_one_std_err_ascending(rmse_board):
    chosen = select_by_one_std_err(rmse_board, [('penalty', True)])
    assert chosen.index == 0


def test_one_std_err_for_maximized_metric():
    board = _board('accuracy', [
        (0.001, 0.90, 0.02),
        (0.01, 0.89, 0.02),
        (0.1, 0.80, 0.02),
    ])
    assert select_by_one_std_err(board, [('penalty', False)]).values == {'penalty': 0.01}


def test_one_std_err_without_std_err():
    board = _board('rmse', [(0.001, 1.0, float('nan')), (0.1, 1.0, float('nan')), (1.0, 1.2, float('nan'))])
    # Bound collapses to the best mean; ties on the mean are still eligible
    assert select_by_one_std_err(board, [('penalty', False)]).values == {'penalty': 0.1}


def test_unknown_simplicity_parameter(rmse_board):
    with pytest.raises(ConfigurationError) as info:
        select_by_one_std_err(rmse_board, [('trees', True)])
    assert info.value.field == 'selection.simplicity'


class TestSelector:

    def test_default_rule_is_best(self, mock_logger, rmse_board):
        assert Selector({}, mock_logger).select(rmse_board).index == 0
        mock_logger.info.assert_called_once()

    def test_one_std_err_rule(self, mock_logger, rmse_board):
        config = {'selection': {'rule': 'one_std_err', 'simplicity': [['penalty', False]]}}
        assert Selector(config, mock_logger).select(rmse_board).values == {'penalty': 0.1}

    def test_one_std_err_requires_simplicity(self, mock_logger, rmse_board):
        with pytest.raises(ConfigurationError):
            Selector({'selection': {'rule': 'one_std_err'}}, mock_logger).select(rmse_board)

    def test_unknown_rule(self, mock_logger):
        with pytest.raises(ConfigurationError) as info:
            Selector({'selection': {'rule': 'cheapest'}}, mock_logger)
        assert info.value.field == 'selection.rule'
