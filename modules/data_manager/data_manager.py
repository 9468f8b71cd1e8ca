import os
import logging
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Optional

from modules.data_manager.dataset import Dataset
from utils.exceptions import DataValidationError
from utils.error_handling import handle_engine_errors
from utils.file_io import read_dataframe


class DataManager:
    """
    Loads the raw tabular input named in the configuration and wraps it in an
    immutable Dataset.

    The core is agnostic to file format; CSV, Parquet and Excel are accepted.
    Dataset-specific cleaning is expected to happen before this point.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.data_config = config.get('data', {})
        self.data: Optional[pd.DataFrame] = None

    @handle_engine_errors("Data Management")
    def execute(self, outcome: Optional[str] = None) -> Dataset:
        """
        Load and validate the dataset.

        Args:
            outcome: Outcome column; defaults to `data.outcome` from the config.

        Returns:
            Dataset: The validated, immutable dataset.
        """
        self.logger.info("Starting Data Manager execution...")
        outcome = outcome or self.data_config.get('outcome')
        if not outcome:
            raise DataValidationError("No outcome column configured ('data.outcome').")

        self.load_data()
        self.validate_columns(outcome)

        dataset = Dataset(self.data, outcome)
        self.logger.info(f"Loaded {dataset}")
        return dataset

    def load_data(self) -> pd.DataFrame:
        """Load data from the file path specified in config."""
        file_path_str = self.data_config.get('file_path')
        if not file_path_str:
            raise DataValidationError("Data 'file_path' must be specified.")

        file_path = Path(os.path.expanduser(file_path_str)).resolve()
        if not file_path.exists():
            raise DataValidationError(f"Data file not found: {file_path}")

        self.logger.info(f"Loading data from {file_path}")
        try:
            self.data = read_dataframe(file_path)
        except ValueError as e:
            raise DataValidationError(str(e)) from e

        drop_columns = self.data_config.get('drop_columns', [])
        if drop_columns:
            self.data = self.data.drop(columns=drop_columns, errors='ignore')

        self.logger.info(f"Loaded {len(self.data)} rows, {len(self.data.columns)} columns.")
        return self.data

    def validate_columns(self, outcome: str) -> None:
        """Ensure the outcome exists and report predictor issues."""
        if outcome not in self.data.columns:
            raise DataValidationError(f"Outcome column '{outcome}' not found. Available: {list(self.data.columns)}")

        numeric = self.data.select_dtypes(include=[np.number])
        if not numeric.empty:
            n_inf = int(np.isinf(numeric.to_numpy(dtype=float)).sum())
            if n_inf:
                raise DataValidationError(f"Data contains {n_inf} infinite values.")

        missing = self.data.drop(columns=[outcome]).isna().sum()
        for column, count in missing[missing > 0].items():
            self.logger.warning(f"Predictor '{column}' has {count} missing values.")
