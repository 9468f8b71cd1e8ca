import json

import numpy as np
import pandas as pd
import pytest

from utils.cache import config_fingerprint
from utils.file_io import read_dataframe, save_dataframe, save_json


def test_parquet_round_trip(tmp_path):
    df = pd.DataFrame({'a': [1, 2, 3], 'b': ['x', 'y', 'z']})
    path = save_dataframe(df, tmp_path / "nested" / "frame.parquet")
    assert path.exists()
    pd.testing.assert_frame_equal(read_dataframe(path), df)


def test_read_csv(tmp_path):
    path = tmp_path / "data.csv"
    pd.DataFrame({'y': [1.0, 2.0]}).to_csv(path, index=False)
    assert read_dataframe(path)['y'].tolist() == [1.0, 2.0]


def test_read_unsupported_extension(tmp_path):
    with pytest.raises(ValueError, match="Unsupported file extension"):
        read_dataframe(tmp_path / "data.txt")


def test_save_json_handles_numpy(tmp_path):
    path = save_json({'n': np.int64(3), 'x': np.float32(0.5), 'v': np.arange(2), 'ok': np.bool_(True)},
                     tmp_path / "out.json")
    assert json.loads(path.read_text()) == {'n': 3, 'x': 0.5, 'v': [0, 1], 'ok': True}


def test_config_fingerprint_is_order_independent():
    assert config_fingerprint({'a': 1, 'b': 2}) == config_fingerprint({'b': 2, 'a': 1})
    assert config_fingerprint({'a': 1}) != config_fingerprint({'a': 2})
    assert len(config_fingerprint({'a': 1})) == 12
