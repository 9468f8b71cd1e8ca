import numpy as np
import pandas as pd
import pytest

from modules.data_manager import Dataset
from utils import constants
from utils.exceptions import DataValidationError


def test_mode_from_outcome_dtype():
    assert Dataset(pd.DataFrame({'x': [1, 2], 'y': [0.5, 1.5]}), 'y').mode == constants.REGRESSION
    assert Dataset(pd.DataFrame({'x': [1, 2], 'y': ['a', 'b']}), 'y').mode == constants.CLASSIFICATION
    assert Dataset(pd.DataFrame({'x': [1, 2], 'y': [True, False]}), 'y').mode == constants.CLASSIFICATION


@pytest.mark.parametrize("frame, message", [
    (pd.DataFrame({'x': [1]}), "not found"),
    (pd.DataFrame({'y': []}), "no rows"),
    (pd.DataFrame({'y': [1.0, np.nan]}), "missing values"),
])
def test_validation(frame, message):
    with pytest.raises(DataValidationError, match=message):
        Dataset(frame, 'y')


def test_dataset_is_not_mutated_through_accessors():
    raw = pd.DataFrame({'x': [1, 2, 3], 'y': [1.0, 2.0, 3.0]}, index=[10, 11, 12])
    ds = Dataset(raw, 'y')

    rows = ds.rows([0, 2])
    rows.loc[:, 'x'] = 99
    frame = ds.frame
    frame.loc[:, 'y'] = -1.0

    assert ds.frame['x'].tolist() == [1, 2, 3]
    assert ds.frame['y'].tolist() == [1.0, 2.0, 3.0]
    # Positions and labels coincide
    assert list(ds.rows([0, 2]).index) == [0, 2]
    # Source frame untouched
    assert list(raw.index) == [10, 11, 12]


def test_from_records_and_accessors():
    ds = Dataset.from_records([{'a': 1, 'y': 'u'}, {'a': 2, 'y': 'v'}], 'y')
    assert len(ds) == 2
    assert ds.predictors == ['a']
    assert ds.outcome_values([1]).tolist() == ['v']
