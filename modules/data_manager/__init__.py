"""
Data Manager Module
===================

Responsibility:
- Loading of raw tabular data files (CSV, Parquet, Excel).
- Validation of the outcome column.
- Immutable Dataset wrapper consumed by splitting and tuning.
"""

from .dataset import Dataset
from .data_manager import DataManager

__all__ = ['Dataset', 'DataManager']
