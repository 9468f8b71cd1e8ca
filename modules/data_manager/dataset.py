"""
Immutable tabular dataset with a designated outcome column.
"""
from typing import Any, Dict, Iterable, Sequence

import numpy as np
import pandas as pd

from utils import constants
from utils.exceptions import DataValidationError


class Dataset:
    """
    Ordered collection of rows with one outcome attribute.

    Rows are addressed by position; the underlying frame always carries a
    RangeIndex so index labels and positions coincide. Accessors hand out
    copies, the loaded frame itself is never mutated.
    """

    def __init__(self, frame: pd.DataFrame, outcome: str):
        if outcome not in frame.columns:
            raise DataValidationError(f"Outcome column '{outcome}' not found in data.")
        if frame.empty:
            raise DataValidationError("Dataset has no rows.")
        if frame[outcome].isna().any():
            n_missing = int(frame[outcome].isna().sum())
            raise DataValidationError(f"Outcome column '{outcome}' has {n_missing} missing values.")

        self._frame = frame.reset_index(drop=True).copy()
        self.outcome = outcome
        self.mode = (
            constants.REGRESSION
            if pd.api.types.is_numeric_dtype(self._frame[outcome]) and not pd.api.types.is_bool_dtype(self._frame[outcome])
            else constants.CLASSIFICATION
        )

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]], outcome: str) -> "Dataset":
        return cls(pd.DataFrame.from_records(list(records)), outcome)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def predictors(self) -> list:
        return [c for c in self._frame.columns if c != self.outcome]

    def outcome_values(self, positions: Sequence[int] = None) -> np.ndarray:
        values = self._frame[self.outcome]
        if positions is not None:
            values = values.iloc[np.asarray(positions, dtype=int)]
        return values.to_numpy()

    def rows(self, positions: Sequence[int]) -> pd.DataFrame:
        """Return a copy of the rows at the given positions (index labels preserved)."""
        return self._frame.iloc[np.asarray(positions, dtype=int)].copy()

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return f"Dataset(rows={len(self)}, outcome='{self.outcome}', mode='{self.mode}')"
