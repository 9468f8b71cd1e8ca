import numpy as np
import pandas as pd
import pytest
from unittest.mock import MagicMock
import logging

from modules.data_manager import DataManager
from utils.exceptions import DataValidationError


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


def _write_csv(tmp_path, frame):
    path = tmp_path / "data.csv"
    frame.to_csv(path, index=False)
    return path


def test_execute_loads_and_drops_columns(tmp_path, mock_logger):
    path = _write_csv(tmp_path, pd.DataFrame({'id': [1, 2, 3], 'x': [0.1, 0.2, np.nan], 'y': [1.0, 2.0, 3.0]}))
    config = {'data': {'file_path': str(path), 'outcome': 'y', 'drop_columns': ['id']}}

    dataset = DataManager(config, mock_logger).execute()

    assert dataset.outcome == 'y'
    assert dataset.predictors == ['x']
    # Missing predictor values only warn
    assert any("missing values" in str(c) for c in mock_logger.warning.call_args_list)


def test_missing_file(tmp_path, mock_logger):
    config = {'data': {'file_path': str(tmp_path / "nope.csv"), 'outcome': 'y'}}
    with pytest.raises(DataValidationError, match="not found"):
        DataManager(config, mock_logger).execute()


def test_outcome_override_and_missing_outcome(tmp_path, mock_logger):
    path = _write_csv(tmp_path, pd.DataFrame({'a': [1.0, 2.0], 'b': [3.0, 4.0]}))
    manager = DataManager({'data': {'file_path': str(path)}}, mock_logger)
    with pytest.raises(DataValidationError, match="No outcome"):
        manager.execute()
    assert manager.execute('b').outcome == 'b'


def test_infinite_values_rejected(tmp_path, mock_logger):
    path = tmp_path / "data.parquet"
    pd.DataFrame({'x': [1.0, np.inf], 'y': [1.0, 2.0]}).to_parquet(path)
    with pytest.raises(DataValidationError, match="infinite"):
        DataManager({'data': {'file_path': str(path), 'outcome': 'y'}}, mock_logger).execute()
