import logging
from unittest.mock import MagicMock

import numpy as np
import pytest

from modules.split_engine import make_strata
from modules.split_engine.strata import POOLED_LABEL


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


def test_numeric_quantile_bins(mock_logger):
    strata = make_strata(np.arange(100, dtype=float), breaks=4, depth=20, logger=mock_logger)
    labels, counts = np.unique(strata, return_counts=True)
    assert list(labels) == ['q1', 'q2', 'q3', 'q4']
    assert list(counts) == [25, 25, 25, 25]
    mock_logger.warning.assert_not_called()


def test_breaks_reduced_to_honour_depth(mock_logger):
    strata = make_strata(np.arange(60, dtype=float), breaks=4, depth=20, logger=mock_logger)
    assert len(np.unique(strata)) == 3
    mock_logger.warning.assert_called_once()


def test_too_little_data_disables_stratification(mock_logger):
    assert make_strata(np.arange(30, dtype=float), breaks=4, depth=20, logger=mock_logger) is None


def test_rare_levels_merged_into_smallest_level():
    values = ['a'] * 50 + ['b'] * 45 + ['c'] * 3 + ['d'] * 2
    strata = make_strata(values, pool=0.1)
    labels, counts = np.unique(strata, return_counts=True)
    assert dict(zip(labels, counts)) == {'a': 50, 'b': 50}


def test_rare_levels_pooled_together():
    values = ['a'] * 40 + ['b'] * 40 + ['c'] * 8 + ['d'] * 7 + ['e'] * 5
    strata = make_strata(values, pool=0.1)
    labels, counts = np.unique(strata, return_counts=True)
    assert dict(zip(labels, counts)) == {POOLED_LABEL: 20, 'a': 40, 'b': 40}


def test_booleans_are_levels():
    strata = make_strata([True, False] * 10)
    assert set(strata) == {'True', 'False'}


def test_empty_input():
    assert make_strata([]) is None
