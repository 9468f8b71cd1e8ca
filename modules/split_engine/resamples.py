"""
Split and resampling plan containers.

All row references are positions into the owning Dataset.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

import numpy as np
import pandas as pd

from modules.data_manager.dataset import Dataset
from utils.exceptions import DataLeakageError, InsufficientDataError


def _frozen(positions) -> np.ndarray:
    arr = np.array(positions, dtype=int, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Split:
    """Disjoint, exhaustive train/test partition of a Dataset."""
    dataset: Dataset
    train: np.ndarray
    test: np.ndarray
    stratified_by: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'train', _frozen(np.sort(self.train)))
        object.__setattr__(self, 'test', _frozen(np.sort(self.test)))
        if np.intersect1d(self.train, self.test).size:
            raise DataLeakageError("Train and test partitions overlap.")

    def training(self) -> pd.DataFrame:
        return self.dataset.rows(self.train)

    def testing(self) -> pd.DataFrame:
        return self.dataset.rows(self.test)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'row': np.concatenate([self.train, self.test]),
            'partition': ['train'] * len(self.train) + ['test'] * len(self.test),
        }).sort_values('row', ignore_index=True)

    def __repr__(self) -> str:
        return f"Split(train={len(self.train)}, test={len(self.test)}, stratified_by={self.stratified_by!r})"


@dataclass(frozen=True, eq=False)
class Fold:
    """One analysis/assessment pair used for a single resampling iteration."""
    index: int
    id: str
    analysis: np.ndarray
    assessment: np.ndarray
    repeat: int = 1

    def __post_init__(self):
        object.__setattr__(self, 'analysis', _frozen(np.sort(self.analysis)))
        object.__setattr__(self, 'assessment', _frozen(np.sort(self.assessment)))
        if not len(self.analysis) or not len(self.assessment):
            raise InsufficientDataError(f"Fold {self.id} has an empty analysis or assessment set.", fold=self.id)
        if np.intersect1d(self.analysis, self.assessment).size:
            raise DataLeakageError(f"Fold {self.id}: analysis and assessment rows overlap.")

    def __repr__(self) -> str:
        return f"Fold({self.id}, analysis={len(self.analysis)}, assessment={len(self.assessment)})"


@dataclass(frozen=True, eq=False)
class ResamplePlan:
    """Ordered sequence of folds drawn from the training rows only."""
    dataset: Dataset
    folds: Tuple[Fold, ...]
    scheme: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'folds', tuple(self.folds))

    def __len__(self) -> int:
        return len(self.folds)

    def __iter__(self) -> Iterator[Fold]:
        return iter(self.folds)

    def __getitem__(self, item) -> Fold:
        return self.folds[item]

    @property
    def rows(self) -> np.ndarray:
        """Every position touched by any fold."""
        if not self.folds:
            return np.array([], dtype=int)
        return np.unique(np.concatenate([np.concatenate([f.analysis, f.assessment]) for f in self.folds]))

    def to_frame(self) -> pd.DataFrame:
        records = []
        for fold in self.folds:
            records.extend({'fold': fold.id, 'repeat': fold.repeat, 'row': r, 'role': 'analysis'} for r in fold.analysis)
            records.extend({'fold': fold.id, 'repeat': fold.repeat, 'row': r, 'role': 'assessment'} for r in fold.assessment)
        return pd.DataFrame.from_records(records, columns=['fold', 'repeat', 'row', 'role'])

    def __repr__(self) -> str:
        return f"ResamplePlan(scheme={self.scheme!r}, folds={len(self)}, params={self.params})"
